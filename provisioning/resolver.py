import heapq
import os
from types import MappingProxyType
from typing import Any, Iterable, Iterator, Mapping, Optional

from attrs import define, field
from aws_lambda_powertools import Logger

from provisioning.descriptor import StackDescriptor
from provisioning.errors import (
    AmbiguousDependency,
    CyclicDependency,
    DuplicateId,
    InconsistentResolutionMode,
    TypeMismatch,
    UnresolvedDependency,
)
from provisioning.resources import ResourceKind, ResourceSelector

logger = Logger(service="skillshift-provisioning", level=os.getenv("LOG_LEVEL", "INFO").upper())


def _freeze_mapping(mapping: Mapping) -> Mapping:
    return MappingProxyType(dict(mapping))


@define(slots=True, frozen=True)
class DeploymentPlan:
    """Ordered stack ids such that every stack comes after all its producers.

    ``dependencies`` maps each stack to the stacks it directly depends on.
    ``external_imports`` lists (stack id, selector) pairs that no declared stack
    publishes and must be read from the persisted export table.
    """

    order: tuple[str, ...] = field(converter=tuple)
    stacks: Mapping[str, StackDescriptor] = field(converter=_freeze_mapping, repr=False)
    dependencies: Mapping[str, frozenset] = field(converter=_freeze_mapping)
    external_imports: tuple[tuple[str, ResourceSelector], ...] = field(default=(), converter=tuple)

    def __iter__(self) -> Iterator[StackDescriptor]:
        return (self.stacks[stack_id] for stack_id in self.order)

    def __len__(self) -> int:
        return len(self.order)

    def position(self, stack_id: str) -> int:
        return self.order.index(stack_id)

    def dependencies_of(self, stack_id: str) -> frozenset:
        return self.dependencies[stack_id]

    def to_dict(self) -> dict[str, Any]:
        """Stable, JSON-friendly form for printing and diffing plans."""
        return {
            "order": list(self.order),
            "dependencies": {stack_id: sorted(self.dependencies[stack_id]) for stack_id in self.order},
            "external_imports": [
                {"stack": stack_id, "export": selector.export_name, "kind": selector.kind.value}
                for stack_id, selector in self.external_imports
            ],
        }


class DependencyResolver:
    """Turns a set of stack declarations into a DeploymentPlan.

    Resolution only reads declarations; no stack body is ever called here.
    """

    def resolve(self, descriptors: Iterable[StackDescriptor]) -> DeploymentPlan:
        stacks = self._index(descriptors)
        self._check_resolution_modes(stacks)

        edges: dict[str, set[str]] = {stack_id: set() for stack_id in stacks}
        external: list[tuple[str, ResourceSelector]] = []
        publishers = self._export_publishers(stacks)

        for stack_id in sorted(stacks):
            for selector in sorted(stacks[stack_id].requires, key=str):
                producer = self._producer_for(stack_id, selector, stacks, publishers)
                if producer is None:
                    external.append((stack_id, selector))
                else:
                    edges[stack_id].add(producer)

        order = self._topological_order(edges)
        plan = DeploymentPlan(
            order=order,
            stacks=stacks,
            dependencies={stack_id: frozenset(deps) for stack_id, deps in edges.items()},
            external_imports=external,
        )
        logger.info("Resolved deployment plan", order=list(order), external_imports=len(external))
        return plan

    # ---------- declarations ----------

    @staticmethod
    def _index(descriptors: Iterable[StackDescriptor]) -> dict[str, StackDescriptor]:
        stacks: dict[str, StackDescriptor] = {}
        for descriptor in descriptors:
            if descriptor.id in stacks:
                raise DuplicateId(descriptor.id, what="stack")
            stacks[descriptor.id] = descriptor
        return stacks

    @staticmethod
    def _export_publishers(stacks: Mapping[str, StackDescriptor]) -> dict[str, str]:
        publishers: dict[str, str] = {}
        for stack_id in sorted(stacks):
            for name in stacks[stack_id].exports:
                if name in publishers:
                    raise DuplicateId(name, what="export")
                publishers[name] = stack_id
        return publishers

    @staticmethod
    def _check_resolution_modes(stacks: Mapping[str, StackDescriptor]) -> None:
        handoff: dict[ResourceKind, set[str]] = {}
        exported: dict[ResourceKind, set[str]] = {}
        for stack_id, descriptor in stacks.items():
            for selector in descriptor.requires:
                target = exported if selector.is_export else handoff
                target.setdefault(selector.kind, set()).add(stack_id)
        for kind in sorted(handoff.keys() & exported.keys(), key=lambda k: k.value):
            raise InconsistentResolutionMode(kind, handoff[kind], exported[kind])

    # ---------- edges ----------

    @staticmethod
    def _producer_for(
        stack_id: str,
        selector: ResourceSelector,
        stacks: Mapping[str, StackDescriptor],
        publishers: Mapping[str, str],
    ) -> Optional[str]:
        if selector.is_export:
            publisher = publishers.get(selector.export_name)
            if publisher is None:
                return None
            spec = stacks[publisher].exports[selector.export_name]
            if spec.kind != selector.kind:
                raise TypeMismatch(
                    selector, f"'{publisher}' publishes '{selector.export_name}' as {spec.kind.value}"
                )
            return publisher

        if selector.stack_id is not None:
            producer = stacks.get(selector.stack_id)
            if producer is None:
                raise UnresolvedDependency(stack_id, selector, reason=f"no stack named '{selector.stack_id}'")
            if selector.kind not in producer.produces:
                raise UnresolvedDependency(
                    stack_id, selector, reason=f"'{selector.stack_id}' does not produce {selector.kind.value}"
                )
            return producer.id

        candidates = sorted(sid for sid, descriptor in stacks.items() if selector.kind in descriptor.produces)
        if not candidates:
            raise UnresolvedDependency(stack_id, selector)
        if len(candidates) > 1:
            raise AmbiguousDependency(stack_id, selector, candidates)
        return candidates[0]

    # ---------- ordering ----------

    @staticmethod
    def _topological_order(edges: Mapping[str, set[str]]) -> list[str]:
        """Kahn's algorithm, always releasing the smallest ready stack id first."""
        dependents: dict[str, set[str]] = {stack_id: set() for stack_id in edges}
        remaining = {stack_id: len(deps) for stack_id, deps in edges.items()}
        for stack_id, deps in edges.items():
            for dep in deps:
                dependents[dep].add(stack_id)

        ready = [stack_id for stack_id, count in remaining.items() if count == 0]
        heapq.heapify(ready)
        order: list[str] = []
        while ready:
            stack_id = heapq.heappop(ready)
            order.append(stack_id)
            for dependent in dependents[stack_id]:
                remaining[dependent] -= 1
                if remaining[dependent] == 0:
                    heapq.heappush(ready, dependent)

        if len(order) != len(edges):
            blocked = {stack_id for stack_id, count in remaining.items() if count > 0}
            raise CyclicDependency(DependencyResolver._find_cycle(edges, blocked))
        return order

    @staticmethod
    def _find_cycle(edges: Mapping[str, set[str]], blocked: set[str]) -> list[str]:
        """Return one cycle among ``blocked`` in producer -> consumer order."""
        # Every blocked stack waits on at least one blocked stack, so following
        # dependencies from any of them must revisit a stack.
        start = min(blocked)
        path: list[str] = []
        seen: dict[str, int] = {}
        current = start
        while current not in seen:
            seen[current] = len(path)
            path.append(current)
            current = min(dep for dep in edges[current] if dep in blocked)
        cycle = path[seen[current]:]
        cycle.reverse()
        smallest = cycle.index(min(cycle))
        return cycle[smallest:] + cycle[:smallest]
