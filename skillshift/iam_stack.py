from aws_cdk import (
    Stack,
    aws_iam as iam,
)
from constructs import Construct

import common.constants as constants
from common.stack_context import StackContext


class IamStack(Stack):

    def __init__(self, scope: Construct, construct_id: str, env_name: str = constants.DEFAULT_ENV, **kwargs) -> None:
        super().__init__(scope, construct_id, **kwargs)
        self.context = StackContext(scope=self, env=env_name)

        self.task_role = self._build_task_role()
        self.devops_group = self._build_devops_group()

        self.context.export(constants.TASK_ROLE_ARN_EXPORT, self.task_role.role_arn, "The ARN of the ECS Task Role")

    def _build_task_role(self) -> iam.Role:
        """Role assumed by the application containers."""
        task_role = iam.Role(
            self,
            self.context.build_resource_id("TaskRole"),
            role_name=self.context.build_resource_name("task-role"),
            assumed_by=iam.ServicePrincipal(constants.ECS_TASKS_PRINCIPAL),
            description="IAM Role for ECS tasks to interact with AWS services",
        )
        task_role.add_to_policy(
            iam.PolicyStatement(
                actions=constants.TASK_ROLE_S3_ACTIONS,
                resources=[f"arn:aws:s3:::{constants.SERVICE_NAME}-*"],
            )
        )
        return task_role

    def _build_devops_group(self) -> iam.Group:
        group = iam.Group(
            self,
            self.context.build_resource_id("DevOpsGroup"),
            group_name=f"{constants.DEVOPS_GROUP_NAME}-{self.context.env}",
        )
        for policy_name in constants.DEVOPS_MANAGED_POLICIES:
            group.add_managed_policy(iam.ManagedPolicy.from_aws_managed_policy_name(policy_name))
        return group
