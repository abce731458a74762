import pytest
from aws_cdk import App

import common.constants as constants
from common.config import EXPORT_TABLE_CLOUDFORMATION, TopologyConfig


def test_defaults_select_every_stack():
    config = TopologyConfig()

    assert config.stacks == constants.ALL_STACKS
    assert config.export_table == EXPORT_TABLE_CLOUDFORMATION
    assert config.environment.account is None


def test_stack_selection_accepts_a_comma_separated_list():
    config = TopologyConfig(stacks="Parameters, Service")

    assert config.stacks == ("Parameters", "Service")


def test_unknown_stack_is_rejected():
    with pytest.raises(ValueError, match="Database"):
        TopologyConfig(stacks=["Network", "Database"])


def test_context_takes_precedence_over_environment(monkeypatch):
    monkeypatch.setenv("SKILLSHIFT_ENV", "staging")
    monkeypatch.setenv("SKILLSHIFT_GITHUB_OWNER", "from-env")
    monkeypatch.setenv("CDK_DEFAULT_REGION", "eu-west-1")
    app = App(context={"env": "prod", "stacks": "Network,Cluster", "maxImageCount": "5"})

    config = TopologyConfig.from_app(app)

    assert config.env == "prod"
    assert config.github_owner == "from-env"
    assert config.region == "eu-west-1"
    assert config.stacks == ("Network", "Cluster")
    assert config.max_image_count == 5
