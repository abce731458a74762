import os
from typing import Iterator, Optional

from aws_lambda_powertools import Logger

from provisioning.errors import ConflictingOutputs, DuplicateId, UnknownResource
from provisioning.resources import Resource, ResourceKind

logger = Logger(service="skillshift-provisioning", level=os.getenv("LOG_LEVEL", "INFO").upper())


class ResourceRegistry:
    """Every resource created during one provisioning run, keyed by id.

    Only the planner writes to it. Stacks read it through the reference broker.
    """

    def __init__(self) -> None:
        self._resources: dict[str, Resource] = {}
        self._exports: dict[str, str] = {}

    def __len__(self) -> int:
        return len(self._resources)

    def __iter__(self) -> Iterator[Resource]:
        return iter(self._resources.values())

    def __contains__(self, resource_id: object) -> bool:
        return resource_id in self._resources

    def register(self, resource: Resource) -> None:
        if resource.id in self._resources:
            raise DuplicateId(resource.id)
        self._resources[resource.id] = resource
        logger.debug(
            "Registered resource",
            resource_id=resource.id,
            kind=resource.kind.value,
            stack_id=resource.producing_stack_id,
        )

    def register_export(self, name: str, resource_id: str) -> None:
        if name in self._exports:
            raise DuplicateId(name, what="export")
        if resource_id not in self._resources:
            raise UnknownResource(resource_id)
        self._exports[name] = resource_id

    def lookup(self, resource_id: str) -> Optional[Resource]:
        return self._resources.get(resource_id)

    def find_by_kind_and_producer(self, kind: ResourceKind, producing_stack_id: str) -> Optional[Resource]:
        matches = [
            resource
            for resource in self._resources.values()
            if resource.kind == kind and resource.producing_stack_id == producing_stack_id
        ]
        if len(matches) > 1:
            raise ConflictingOutputs(producing_stack_id, kind, [resource.id for resource in matches])
        return matches[0] if matches else None

    def find_by_export_name(self, name: str) -> Optional[Resource]:
        resource_id = self._exports.get(name)
        return self._resources[resource_id] if resource_id is not None else None

    def exports(self) -> dict[str, str]:
        return dict(self._exports)
