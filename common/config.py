"""Topology configuration read from CDK context, falling back to environment variables."""
import os
from typing import Optional

import aws_cdk as cdk
from attrs import define, field

import common.constants as constants

EXPORT_TABLE_CLOUDFORMATION = "cloudformation"
EXPORT_TABLE_MEMORY = "memory"


def _stack_selection(value) -> tuple[str, ...]:
    if not value:
        return constants.ALL_STACKS
    if isinstance(value, str):
        value = value.split(",")
    selected = tuple(item.strip() for item in value if item.strip())
    unknown = sorted(set(selected) - set(constants.ALL_STACKS))
    if unknown:
        raise ValueError(f"Unknown stacks selected: {', '.join(unknown)}")
    return selected


@define(slots=True, frozen=True, kw_only=True)
class TopologyConfig:
    env: str = constants.DEFAULT_ENV
    account: Optional[str] = None
    region: str = constants.DEFAULT_REGION
    stacks: tuple[str, ...] = field(default=constants.ALL_STACKS, converter=_stack_selection)
    export_table: str = EXPORT_TABLE_CLOUDFORMATION
    api_base_url: str = constants.DEFAULT_API_BASE_URL
    github_owner: str = ""
    github_repo: str = ""
    github_branch: str = constants.DEFAULT_SOURCE_BRANCH
    connection_arn: str = ""
    max_image_count: int = field(default=constants.MAX_IMAGE_COUNT, converter=int)

    @property
    def environment(self) -> cdk.Environment:
        return cdk.Environment(account=self.account, region=self.region)

    @classmethod
    def from_app(cls, app: cdk.App) -> "TopologyConfig":
        def setting(context_key: str, env_var: str, default=None):
            value = app.node.try_get_context(context_key)
            if value is None:
                value = os.getenv(env_var, default)
            return value

        return cls(
            env=setting("env", "SKILLSHIFT_ENV", constants.DEFAULT_ENV),
            account=os.getenv("CDK_DEFAULT_ACCOUNT"),
            region=os.getenv("CDK_DEFAULT_REGION", constants.DEFAULT_REGION),
            stacks=setting("stacks", "SKILLSHIFT_STACKS"),
            export_table=setting("exportTable", "SKILLSHIFT_EXPORT_TABLE", EXPORT_TABLE_CLOUDFORMATION),
            api_base_url=setting("apiBaseUrl", "SKILLSHIFT_API_BASE_URL", constants.DEFAULT_API_BASE_URL),
            github_owner=setting("githubOwner", "SKILLSHIFT_GITHUB_OWNER", ""),
            github_repo=setting("githubRepo", "SKILLSHIFT_GITHUB_REPO", ""),
            github_branch=setting("githubBranch", "SKILLSHIFT_GITHUB_BRANCH", constants.DEFAULT_SOURCE_BRANCH),
            connection_arn=setting("connectionArn", "SKILLSHIFT_CONNECTION_ARN", ""),
            max_image_count=setting("maxImageCount", "SKILLSHIFT_MAX_IMAGE_COUNT", constants.MAX_IMAGE_COUNT),
        )
