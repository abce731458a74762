from attrs import define, field
from aws_cdk import CfnOutput, RemovalPolicy, Stack, aws_logs as logs
from typing import Optional

import common.constants as constants


@define(slots=True, frozen=True)
class StackContext:
    scope: Stack
    env: str = field(
        default=constants.DEFAULT_ENV,
        metadata={"description": "Deployment environment (dev, staging, prod)"},
    )
    service: str = field(default=constants.SERVICE_NAME, init=False)
    component: str = field(default=constants.COMPONENT)

    @property
    def aws_account_id(self) -> str:
        return Stack.of(self.scope).account

    @property
    def aws_region(self) -> str:
        return Stack.of(self.scope).region

    # ---------- naming ----------
    def build_resource_name(
        self, resource_type: str, action: Optional[str] = None
    ) -> str:
        """Build resource name with optional action.

        Examples:
            - Without action: skillshift-baseapp-cluster-dev
            - With action: skillshift-baseapp-build-project-dev
        """
        if action:
            return f"{self.service}-{self.component}-{action}-{resource_type}-{self.env}".lower()
        return f"{self.service}-{self.component}-{resource_type}-{self.env}".lower()

    def build_resource_id(self, resource_type: str, action: Optional[str] = None) -> str:
        """Build resource ID with optional action.

        Examples:
            - Without action: SkillshiftBaseappCluster
            - With action: SkillshiftBaseappBuildProject
        """
        if action:
            return (
                f"{self.service.capitalize()}"
                f"{self.component.capitalize()}"
                f"{action.capitalize()}"
                f"{resource_type.capitalize()}"
            )
        return (
            f"{self.service.capitalize()}"
            f"{self.component.capitalize()}"
            f"{resource_type.capitalize()}"
        )

    def build_log_group(
        self, resource_type: str, prefix: str, action: Optional[str] = None
    ) -> logs.LogGroup:
        return logs.LogGroup(
            self.scope,
            self.build_resource_id("LogGroup", action=action),
            log_group_name=f"/{prefix}/{self.build_resource_name(resource_type, action=action)}",
            removal_policy=RemovalPolicy.DESTROY,
            retention=logs.RetentionDays.ONE_WEEK,
        )

    # ---------- exports ----------
    def export(self, export_name: str, value: str, description: str = "") -> CfnOutput:
        """Publish ``value`` as a CloudFormation export other runs can import."""
        return CfnOutput(
            self.scope,
            f"{export_name}Output",
            value=value,
            description=description or export_name,
            export_name=export_name,
        )
