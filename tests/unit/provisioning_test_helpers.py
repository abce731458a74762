from dataclasses import dataclass, field
from typing import Callable, Iterable, Mapping, Optional

import pytest

from provisioning.descriptor import Bindings, StackDescriptor
from provisioning.exports import InMemoryExportTable
from provisioning.planner import ProvisioningPlanner
from provisioning.registry import ResourceRegistry
from provisioning.resources import (
    ExportSpec,
    Resource,
    ResourceKind,
    ResourceSelector,
    primary_attribute,
)

# Values that satisfy the export shape of each kind.
SAMPLE_VALUES = {
    ResourceKind.Network: "vpc-0a1b2c3d4e5f60718",
    ResourceKind.Cluster: "skillshift-cluster",
    ResourceKind.Repository: "123456789012.dkr.ecr.us-east-1.amazonaws.com/skill-shift",
    ResourceKind.Role: "arn:aws:iam::123456789012:role/skillshift-task-role",
    ResourceKind.Service: "skillshift-service",
    ResourceKind.LoadBalancer: "skill-alb-1234567890.us-east-1.elb.amazonaws.com",
    ResourceKind.Pipeline: "skillshift-pipeline",
    ResourceKind.Parameter: "/skillshift/production/NEXT_PUBLIC_API_BASE_URL",
}


# ------------------- Test Case Data Classes -------------------
@dataclass
class ExecutionLog:
    """Records which stacks ran and what they were given."""

    executed: list[str] = field(default_factory=list)
    bindings: dict[str, Mapping[ResourceSelector, Resource]] = field(default_factory=dict)


@dataclass(frozen=True)
class ResolutionFailureCase:
    id: str
    stacks: tuple
    error: type


# ------------------- Helper Functions -------------------


def sample_resources(stack_id: str, kinds: Iterable[ResourceKind]) -> list[Resource]:
    return [
        Resource.create(
            stack_id,
            kind,
            kind.value,
            **{primary_attribute(kind): SAMPLE_VALUES[kind]},
        )
        for kind in sorted(kinds, key=lambda k: k.value)
    ]


def declare(
    stack_id: str,
    requires: Iterable[ResourceSelector] = (),
    produces: Iterable[ResourceKind] = (),
    exports: Optional[Mapping[str, ExportSpec]] = None,
    log: Optional[ExecutionLog] = None,
    body: Optional[Callable[[Bindings], Iterable[Resource]]] = None,
) -> StackDescriptor:
    """Declare a stack whose body records the call and returns sample resources."""
    produces = frozenset(produces)

    def default_body(bindings: Bindings) -> Iterable[Resource]:
        if log is not None:
            log.executed.append(stack_id)
            log.bindings[stack_id] = dict(bindings)
        return sample_resources(stack_id, produces)

    return StackDescriptor(
        id=stack_id,
        body=body or default_body,
        requires=requires,
        produces=produces,
        exports=exports or {},
    )


def scenario_stacks(log: Optional[ExecutionLog] = None) -> list[StackDescriptor]:
    """Network, Iam, Cluster and Service, declared out of dependency order."""
    return [
        declare(
            "Service",
            requires=[
                ResourceSelector.from_stack(ResourceKind.Cluster, "Cluster"),
                ResourceSelector.from_stack(ResourceKind.Role, "Iam"),
            ],
            produces=[ResourceKind.Service],
            log=log,
        ),
        declare(
            "Cluster",
            requires=[ResourceSelector.from_stack(ResourceKind.Network, "Network")],
            produces=[ResourceKind.Cluster],
            log=log,
        ),
        declare("Network", produces=[ResourceKind.Network], log=log),
        declare("Iam", produces=[ResourceKind.Role], log=log),
    ]


# ------------------- Pytest Fixtures -------------------


@pytest.fixture
def registry() -> ResourceRegistry:
    return ResourceRegistry()


@pytest.fixture
def export_table() -> InMemoryExportTable:
    return InMemoryExportTable()


@pytest.fixture
def execution_log() -> ExecutionLog:
    return ExecutionLog()


@pytest.fixture
def planner(registry: ResourceRegistry, export_table: InMemoryExportTable) -> ProvisioningPlanner:
    return ProvisioningPlanner(registry=registry, export_table=export_table)
