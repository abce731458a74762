from aws_cdk import (
    Stack,
    aws_ssm as ssm,
)
from constructs import Construct

import common.constants as constants
from common.stack_context import StackContext


class ParametersStack(Stack):
    """Runtime configuration the service reads from Parameter Store."""

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        api_base_url: str = constants.DEFAULT_API_BASE_URL,
        env_name: str = constants.DEFAULT_ENV,
        **kwargs,
    ) -> None:
        super().__init__(scope, construct_id, **kwargs)
        self.context = StackContext(scope=self, env=env_name)

        self.api_base_url = ssm.StringParameter(
            self,
            self.context.build_resource_id("ApiBaseUrl"),
            description="Public API base URL injected into the web container",
            parameter_name=constants.API_BASE_URL_PARAMETER_NAME,
            string_value=api_base_url,
        )

        # The name is a plain string, so importers can use it without a deploy-time lookup.
        self.context.export(
            constants.API_BASE_URL_PARAMETER_EXPORT,
            constants.API_BASE_URL_PARAMETER_NAME,
            "Parameter holding the public API base URL",
        )
