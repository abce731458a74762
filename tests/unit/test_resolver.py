import random

import pytest

from provisioning.errors import (
    AmbiguousDependency,
    CyclicDependency,
    DuplicateId,
    InconsistentResolutionMode,
    TypeMismatch,
    UnresolvedDependency,
)
from provisioning.resolver import DependencyResolver
from provisioning.resources import ExportSpec, ResourceKind, ResourceSelector
from provisioning_test_helpers import ResolutionFailureCase, declare, scenario_stacks


@pytest.fixture
def resolver() -> DependencyResolver:
    return DependencyResolver()


# ------------------- Ordering -------------------


def test_scenario_orders_producers_before_consumers(resolver: DependencyResolver):
    plan = resolver.resolve(scenario_stacks())

    assert plan.order == ("Iam", "Network", "Cluster", "Service")
    assert plan.dependencies_of("Service") == frozenset({"Cluster", "Iam"})
    assert plan.dependencies_of("Cluster") == frozenset({"Network"})
    assert plan.external_imports == ()


def test_every_stack_follows_its_dependencies(resolver: DependencyResolver):
    plan = resolver.resolve(scenario_stacks())

    for stack_id in plan.order:
        for dependency in plan.dependencies_of(stack_id):
            assert plan.position(dependency) < plan.position(stack_id)


@pytest.mark.parametrize("seed", range(5))
def test_order_does_not_depend_on_declaration_order(resolver: DependencyResolver, seed: int):
    stacks = scenario_stacks()
    expected = resolver.resolve(stacks).order

    random.Random(seed).shuffle(stacks)

    assert resolver.resolve(stacks).order == expected


def test_independent_stacks_are_ordered_by_id(resolver: DependencyResolver):
    stacks = [declare(stack_id, produces=[]) for stack_id in ("Pipeline", "Ecr", "Iam", "Network")]

    assert resolver.resolve(stacks).order == ("Ecr", "Iam", "Network", "Pipeline")


def test_kind_only_selector_binds_to_the_single_producer(resolver: DependencyResolver):
    stacks = [
        declare("Cluster", requires=[ResourceSelector.of_kind(ResourceKind.Network)], produces=[ResourceKind.Cluster]),
        declare("Network", produces=[ResourceKind.Network]),
    ]

    plan = resolver.resolve(stacks)

    assert plan.order == ("Network", "Cluster")


def test_export_publisher_is_ordered_before_importer(resolver: DependencyResolver):
    stacks = [
        declare(
            "Service",
            requires=[ResourceSelector.from_export("ApiBaseUrl", ResourceKind.Parameter)],
            produces=[ResourceKind.Service],
        ),
        declare(
            "Parameters",
            produces=[ResourceKind.Parameter],
            exports={"ApiBaseUrl": ExportSpec(ResourceKind.Parameter)},
        ),
    ]

    plan = resolver.resolve(stacks)

    assert plan.order == ("Parameters", "Service")
    assert plan.external_imports == ()


def test_unpublished_export_is_left_to_the_export_table(resolver: DependencyResolver):
    selector = ResourceSelector.from_export("VpcId", ResourceKind.Network)
    stacks = [declare("Cluster", requires=[selector], produces=[ResourceKind.Cluster])]

    plan = resolver.resolve(stacks)

    assert plan.order == ("Cluster",)
    assert plan.external_imports == (("Cluster", selector),)


def test_plan_dict_is_stable(resolver: DependencyResolver):
    first = resolver.resolve(scenario_stacks()).to_dict()
    second = resolver.resolve(list(reversed(scenario_stacks()))).to_dict()

    assert first == second
    assert first["dependencies"]["Service"] == ["Cluster", "Iam"]


# ------------------- Cycles -------------------


def test_cycle_reports_every_stack_on_it(resolver: DependencyResolver):
    stacks = [
        declare("A", requires=[ResourceSelector.from_stack(ResourceKind.Cluster, "B")], produces=[ResourceKind.Network]),
        declare("B", requires=[ResourceSelector.from_stack(ResourceKind.Role, "C")], produces=[ResourceKind.Cluster]),
        declare("C", requires=[ResourceSelector.from_stack(ResourceKind.Network, "A")], produces=[ResourceKind.Role]),
        declare("D", requires=[ResourceSelector.from_stack(ResourceKind.Network, "A")], produces=[]),
    ]

    with pytest.raises(CyclicDependency) as error:
        resolver.resolve(stacks)

    # A feeds C, C feeds B, B feeds A; D only waits on the cycle.
    assert error.value.cycle == ("A", "C", "B")
    assert "A -> C -> B -> A" in str(error.value)


def test_stack_requiring_its_own_output_is_a_cycle(resolver: DependencyResolver):
    stacks = [declare("Iam", requires=[ResourceSelector.of_kind(ResourceKind.Role)], produces=[ResourceKind.Role])]

    with pytest.raises(CyclicDependency) as error:
        resolver.resolve(stacks)

    assert error.value.cycle == ("Iam",)


# ------------------- Configuration errors -------------------

RESOLUTION_FAILURES = (
    ResolutionFailureCase(
        id="no_producer_of_kind",
        stacks=(declare("Service", requires=[ResourceSelector.of_kind(ResourceKind.Cluster)]),),
        error=UnresolvedDependency,
    ),
    ResolutionFailureCase(
        id="unknown_producing_stack",
        stacks=(declare("Service", requires=[ResourceSelector.from_stack(ResourceKind.Cluster, "Cluster")]),),
        error=UnresolvedDependency,
    ),
    ResolutionFailureCase(
        id="producer_lacks_kind",
        stacks=(
            declare("Cluster", produces=[ResourceKind.Cluster]),
            declare("Service", requires=[ResourceSelector.from_stack(ResourceKind.Role, "Cluster")]),
        ),
        error=UnresolvedDependency,
    ),
    ResolutionFailureCase(
        id="two_role_producers",
        stacks=(
            declare("IamA", produces=[ResourceKind.Role]),
            declare("IamB", produces=[ResourceKind.Role]),
            declare("Service", requires=[ResourceSelector.of_kind(ResourceKind.Role)]),
        ),
        error=AmbiguousDependency,
    ),
    ResolutionFailureCase(
        id="duplicate_stack_id",
        stacks=(declare("Network", produces=[ResourceKind.Network]), declare("Network")),
        error=DuplicateId,
    ),
    ResolutionFailureCase(
        id="duplicate_export_name",
        stacks=(
            declare("A", produces=[ResourceKind.Network], exports={"VpcId": ExportSpec(ResourceKind.Network)}),
            declare("B", produces=[ResourceKind.Network], exports={"VpcId": ExportSpec(ResourceKind.Network)}),
        ),
        error=DuplicateId,
    ),
    ResolutionFailureCase(
        id="export_kind_differs",
        stacks=(
            declare("Network", produces=[ResourceKind.Network], exports={"VpcId": ExportSpec(ResourceKind.Network)}),
            declare("Cluster", requires=[ResourceSelector.from_export("VpcId", ResourceKind.Role)]),
        ),
        error=TypeMismatch,
    ),
    ResolutionFailureCase(
        id="kind_consumed_in_both_modes",
        stacks=(
            declare("Network", produces=[ResourceKind.Network]),
            declare("Cluster", requires=[ResourceSelector.from_stack(ResourceKind.Network, "Network")]),
            declare("Peering", requires=[ResourceSelector.from_export("VpcId", ResourceKind.Network)]),
        ),
        error=InconsistentResolutionMode,
    ),
)


@pytest.mark.parametrize("case", RESOLUTION_FAILURES, ids=lambda case: case.id)
def test_invalid_declarations_produce_no_plan(resolver: DependencyResolver, case: ResolutionFailureCase):
    with pytest.raises(case.error):
        resolver.resolve(case.stacks)


def test_ambiguous_role_names_both_producers(resolver: DependencyResolver):
    stacks = [
        declare("IamA", produces=[ResourceKind.Role]),
        declare("IamB", produces=[ResourceKind.Role]),
        declare("Service", requires=[ResourceSelector.of_kind(ResourceKind.Role)]),
    ]

    with pytest.raises(AmbiguousDependency) as error:
        resolver.resolve(stacks)

    assert error.value.stack_id == "Service"
    assert error.value.producers == ("IamA", "IamB")


def test_naming_the_producer_resolves_the_ambiguity(resolver: DependencyResolver):
    stacks = [
        declare("IamA", produces=[ResourceKind.Role]),
        declare("IamB", produces=[ResourceKind.Role]),
        declare("Service", requires=[ResourceSelector.from_stack(ResourceKind.Role, "IamB")]),
    ]

    plan = resolver.resolve(stacks)

    assert plan.dependencies_of("Service") == frozenset({"IamB"})


def test_unresolved_dependency_names_stack_and_selector(resolver: DependencyResolver):
    selector = ResourceSelector.of_kind(ResourceKind.Cluster)

    with pytest.raises(UnresolvedDependency) as error:
        resolver.resolve([declare("Service", requires=[selector])])

    assert error.value.stack_id == "Service"
    assert error.value.selector == selector
