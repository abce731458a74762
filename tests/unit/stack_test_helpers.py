from dataclasses import dataclass
from typing import Any, Mapping, Optional

import pytest
from aws_cdk import App
from aws_cdk.assertions import Template

from common.config import TopologyConfig
from provisioning.exports import InMemoryExportTable
from provisioning.planner import ProvisioningPlanner, ProvisioningReport
from skillshift.topology import SkillShiftTopology

TEST_CONNECTION_ARN = "arn:aws:codeconnections:us-east-1:123456789012:connection/11111111-2222-3333-4444-555555555555"


# ------------------- Test Case Data Classes -------------------
@dataclass(frozen=True)
class ResourceCountCase:
    stack_id: str
    resource_type: str
    count: int


@dataclass(frozen=True)
class ExportTestCase:
    stack_id: str
    export_name: str


@dataclass(frozen=True)
class ProvisionedTopology:
    report: ProvisioningReport
    topology: SkillShiftTopology

    def template(self, stack_id: str) -> Template:
        return Template.from_stack(self.topology.stacks[stack_id])


# ------------------- Helper Functions -------------------


def find_resources_by_type(
    template: Template, resource_type: str, props: Optional[dict] = None
) -> Mapping[str, Any]:

    return template.find_resources(resource_type, props=props)


def get_single_resource_id(
    resources: Mapping[str, Any], resource_type: str = "resource"
) -> str:
    return next(iter(resources))


def build_config(**overrides) -> TopologyConfig:
    settings = {
        "env": "test",
        "github_owner": "skillshift",
        "github_repo": "skillshiftapp",
        "connection_arn": TEST_CONNECTION_ARN,
    }
    settings.update(overrides)
    return TopologyConfig(**settings)


def provision_topology(config: Optional[TopologyConfig] = None, export_table=None) -> ProvisionedTopology:
    app = App()
    topology = SkillShiftTopology(app, config or build_config())
    if export_table is None:
        export_table = InMemoryExportTable()
    planner = ProvisioningPlanner(export_table=export_table)
    report = planner.run(topology.descriptors())
    return ProvisionedTopology(report=report, topology=topology)


# ------------------- Pytest Fixtures -------------------


@pytest.fixture(scope="module")
def provisioned() -> ProvisionedTopology:
    return provision_topology()
