import os
import threading
from typing import Iterable, Optional

from attrs import define, field
from aws_cdk import Token
from aws_lambda_powertools import Logger

from provisioning.broker import ReferenceBroker
from provisioning.descriptor import StackDescriptor
from provisioning.errors import ProvisioningError, UndeclaredOutput
from provisioning.exports import ExportTable, InMemoryExportTable
from provisioning.registry import ResourceRegistry
from provisioning.resolver import DependencyResolver, DeploymentPlan
from provisioning.resources import ExportRecord, Resource

logger = Logger(service="skillshift-provisioning", level=os.getenv("LOG_LEVEL", "INFO").upper())


@define(slots=True, frozen=True)
class ProvisioningReport:
    """Outcome of one run: what completed, what exists, and what stopped it."""

    plan: DeploymentPlan = field(repr=False)
    completed: tuple[str, ...] = field(converter=tuple)
    resources: tuple[Resource, ...] = field(converter=tuple, repr=False)
    failed_stack: Optional[str] = None
    error: Optional[ProvisioningError] = None
    cancelled: bool = False

    @property
    def succeeded(self) -> bool:
        return self.error is None and not self.cancelled

    @property
    def pending(self) -> tuple[str, ...]:
        done = set(self.completed)
        return tuple(stack_id for stack_id in self.plan.order if stack_id not in done)

    def raise_for_error(self) -> None:
        if self.error is not None:
            raise self.error


class ProvisioningPlanner:
    """Drives one provisioning run, one stack at a time in plan order.

    The planner is the only writer of the registry.
    """

    def __init__(
        self,
        registry: Optional[ResourceRegistry] = None,
        export_table: Optional[ExportTable] = None,
        resolver: Optional[DependencyResolver] = None,
    ) -> None:
        self.registry = registry if registry is not None else ResourceRegistry()
        self.export_table = export_table if export_table is not None else InMemoryExportTable()
        self.resolver = resolver or DependencyResolver()
        self.broker = ReferenceBroker(self.registry, self.export_table)
        self._cancelled = threading.Event()

    def cancel(self) -> None:
        """Stop issuing new stack executions; running ones finish."""
        self._cancelled.set()

    def plan(self, descriptors: Iterable[StackDescriptor]) -> DeploymentPlan:
        plan = self.resolver.resolve(descriptors)
        # Imports from earlier runs must exist before anything is created.
        for stack_id, selector in plan.external_imports:
            self.broker.resolve(selector, stack_id=stack_id)
        return plan

    def run(self, descriptors: Iterable[StackDescriptor]) -> ProvisioningReport:
        plan = self.plan(descriptors)
        return self.execute(plan)

    def execute(self, plan: DeploymentPlan) -> ProvisioningReport:
        completed: list[str] = []
        created: list[Resource] = []

        for descriptor in plan:
            if self._cancelled.is_set():
                logger.warning("Provisioning cancelled", pending=[s for s in plan.order if s not in completed])
                return ProvisioningReport(plan, completed, created, cancelled=True)

            logger.info("Executing stack", stack_id=descriptor.id, position=plan.position(descriptor.id))
            bindings = self.broker.bind(descriptor)
            try:
                produced = descriptor.execute(bindings)
                self._check_new_ids(descriptor.id, produced)
            except ProvisioningError as e:
                logger.exception("Stack execution failed", stack_id=descriptor.id)
                return ProvisioningReport(plan, completed, created, failed_stack=descriptor.id, error=e)

            for resource in produced:
                self.registry.register(resource)
                created.append(resource)
            self._publish_exports(descriptor, produced)
            completed.append(descriptor.id)

        logger.info("Provisioning run complete", stacks=len(completed), resources=len(created))
        return ProvisioningReport(plan, completed, created)

    def _check_new_ids(self, stack_id: str, produced: tuple[Resource, ...]) -> None:
        """Reject outputs whose ids clash, so nothing of the stack is registered."""
        seen: set[str] = set()
        for resource in produced:
            if resource.id in self.registry or resource.id in seen:
                raise UndeclaredOutput(stack_id, f"resource id '{resource.id}' is already taken")
            seen.add(resource.id)

    def _publish_exports(self, descriptor: StackDescriptor, produced: tuple[Resource, ...]) -> None:
        by_kind = {resource.kind: resource for resource in produced}
        for name, spec in sorted(descriptor.exports.items()):
            resource = by_kind[spec.kind]
            self.registry.register_export(name, resource.id)
            value = resource.attributes.get(spec.attribute_name)
            if value is None:
                logger.warning("Export has no value", export_name=name, stack_id=descriptor.id)
                continue
            if Token.is_unresolved(value):
                # Resolved by CloudFormation at deploy time through the stack's CfnOutput export.
                logger.info(
                    "Export value is a deploy-time token, not persisted", export_name=name, stack_id=descriptor.id
                )
                continue
            self.export_table.publish(
                ExportRecord(name=name, value=str(value), kind=spec.kind, producing_stack_id=descriptor.id)
            )
            logger.info("Published export", export_name=name, stack_id=descriptor.id)
