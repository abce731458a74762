from aws_cdk import (
    RemovalPolicy,
    Stack,
    aws_ecr as ecr,
)
from constructs import Construct

import common.constants as constants
from common.stack_context import StackContext


class EcrStack(Stack):

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        env_name: str = constants.DEFAULT_ENV,
        max_image_count: int = constants.MAX_IMAGE_COUNT,
        **kwargs,
    ) -> None:
        super().__init__(scope, construct_id, **kwargs)
        self.context = StackContext(scope=self, env=env_name)

        self.repository = ecr.Repository(
            self,
            self.context.build_resource_id("Repository"),
            repository_name=constants.REPOSITORY_NAME,
            image_scan_on_push=True,
            removal_policy=RemovalPolicy.RETAIN,
            lifecycle_rules=[
                ecr.LifecycleRule(
                    description=f"Keep last {max_image_count} images",
                    max_image_count=max_image_count,
                )
            ],
        )

        self.context.export(
            constants.REPOSITORY_URI_EXPORT, self.repository.repository_uri, "SkillShift image repository URI"
        )
