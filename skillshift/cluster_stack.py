from aws_cdk import (
    Stack,
    aws_ec2 as ec2,
    aws_ecs as ecs,
)
from constructs import Construct

import common.constants as constants
from common.stack_context import StackContext


class ClusterStack(Stack):

    def __init__(
        self, scope: Construct, construct_id: str, vpc: ec2.IVpc, env_name: str = constants.DEFAULT_ENV, **kwargs
    ) -> None:
        super().__init__(scope, construct_id, **kwargs)
        self.context = StackContext(scope=self, env=env_name)

        self.cluster = ecs.Cluster(
            self,
            self.context.build_resource_id("Cluster"),
            cluster_name=self.context.build_resource_name("cluster"),
            container_insights=True,
            vpc=vpc,
        )

        self.context.export(constants.CLUSTER_NAME_EXPORT, self.cluster.cluster_name, "SkillShift ECS cluster name")
