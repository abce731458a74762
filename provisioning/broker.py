import os
from typing import Optional

from aws_lambda_powertools import Logger

from provisioning.descriptor import Bindings, StackDescriptor
from provisioning.errors import ExportNotFound, MissingBinding, TypeMismatch
from provisioning.exports import ExportTable, InMemoryExportTable
from provisioning.registry import ResourceRegistry
from provisioning.resources import (
    ExportRecord,
    Resource,
    ResourceSelector,
    matches_shape,
    primary_attribute,
)

logger = Logger(service="skillshift-provisioning", level=os.getenv("LOG_LEVEL", "INFO").upper())


class ReferenceBroker:
    """Read-only bridge from selectors to resources.

    In-run handoff reads the registry; named imports read the registry's export
    index first and then the persisted export table.
    """

    def __init__(self, registry: ResourceRegistry, export_table: Optional[ExportTable] = None) -> None:
        self._registry = registry
        self._exports = export_table if export_table is not None else InMemoryExportTable()

    def resolve(self, selector: ResourceSelector, stack_id: Optional[str] = None) -> Resource:
        if selector.is_export:
            return self._resolve_export(selector, stack_id)
        return self._resolve_handoff(selector, stack_id)

    def bind(self, descriptor: StackDescriptor) -> Bindings:
        bound = {
            selector: self.resolve(selector, stack_id=descriptor.id)
            for selector in sorted(descriptor.requires, key=str)
        }
        return Bindings(descriptor.id, bound)

    def _resolve_handoff(self, selector: ResourceSelector, stack_id: Optional[str]) -> Resource:
        consumer = stack_id or "<unknown>"
        if selector.stack_id is not None:
            resource = self._registry.find_by_kind_and_producer(selector.kind, selector.stack_id)
        else:
            matches = [resource for resource in self._registry if resource.kind == selector.kind]
            resource = matches[0] if len(matches) == 1 else None
        if resource is None:
            # The resolver guaranteed a producer that ran earlier in the plan.
            raise MissingBinding(consumer, selector)
        return resource

    def _resolve_export(self, selector: ResourceSelector, stack_id: Optional[str]) -> Resource:
        in_run = self._registry.find_by_export_name(selector.export_name)
        if in_run is not None:
            if in_run.kind != selector.kind:
                raise TypeMismatch(selector, f"export resolves to a {in_run.kind.value}")
            return in_run

        record = self._exports.get(selector.export_name)
        if record is None:
            raise ExportNotFound(selector.export_name, stack_id)
        self._check_record(selector, record)
        logger.debug("Resolved export from table", export_name=record.name, stack_id=stack_id)
        return Resource(
            id=f"export:{record.name}",
            kind=selector.kind,
            producing_stack_id=record.producing_stack_id or "external",
            attributes={primary_attribute(selector.kind): record.value, "export_name": record.name},
        )

    @staticmethod
    def _check_record(selector: ResourceSelector, record: ExportRecord) -> None:
        if record.kind is not None and record.kind != selector.kind:
            raise TypeMismatch(selector, f"export '{record.name}' holds a {record.kind_name}")
        if not matches_shape(selector.kind, record.value):
            raise TypeMismatch(
                selector,
                f"value {record.value!r} is not a valid {primary_attribute(selector.kind)}",
            )
