from collections import Counter
from types import MappingProxyType
from typing import Any, Callable, Iterable, Iterator, Mapping

from attrs import define, field
from attrs.validators import instance_of, is_callable

from provisioning.errors import (
    MissingBinding,
    ProviderError,
    ProvisioningError,
    UndeclaredOutput,
)
from provisioning.resources import ExportSpec, Resource, ResourceKind, ResourceSelector


class Bindings(Mapping[ResourceSelector, Resource]):
    """Read-only selector -> resource mapping handed to a stack body."""

    def __init__(self, stack_id: str, bound: Mapping[ResourceSelector, Resource]) -> None:
        self.stack_id = stack_id
        self._bound = dict(bound)

    def __getitem__(self, selector: ResourceSelector) -> Resource:
        try:
            return self._bound[selector]
        except KeyError:
            raise MissingBinding(self.stack_id, selector) from None

    def __iter__(self) -> Iterator[ResourceSelector]:
        return iter(self._bound)

    def __len__(self) -> int:
        return len(self._bound)

    def __contains__(self, selector: object) -> bool:
        return selector in self._bound

    def handle(self, selector: ResourceSelector) -> Any:
        return self[selector].handle

    def value(self, selector: ResourceSelector, attribute: str | None = None) -> Any:
        resource = self[selector]
        return resource.attributes[attribute] if attribute else resource.primary_value


ProvisioningFn = Callable[[Bindings], Iterable[Resource]]


def _frozen_selectors(selectors: Iterable[ResourceSelector]) -> frozenset:
    return frozenset(selectors)


def _frozen_kinds(kinds: Iterable[ResourceKind]) -> frozenset:
    return frozenset(ResourceKind(kind) for kind in kinds)


def _frozen_exports(exports: Mapping[str, ExportSpec]) -> Mapping[str, ExportSpec]:
    return MappingProxyType(dict(exports))


@define(slots=True, frozen=True, eq=False)
class StackDescriptor:
    """A named unit of provisioning.

    ``requires``, ``produces`` and ``exports`` are plain declarations, so the
    resolver can plan without running ``body``.
    """

    id: str = field(validator=instance_of(str))
    body: ProvisioningFn = field(validator=is_callable(), repr=False)
    requires: frozenset = field(factory=frozenset, converter=_frozen_selectors)
    produces: frozenset = field(factory=frozenset, converter=_frozen_kinds)
    exports: Mapping[str, ExportSpec] = field(factory=dict, converter=_frozen_exports)
    description: str = ""

    def __attrs_post_init__(self) -> None:
        for name, spec in self.exports.items():
            if spec.kind not in self.produces:
                raise ValueError(f"Stack '{self.id}' exports '{name}' as {spec.kind.value} but does not produce it")

    def execute(self, bindings: Mapping[ResourceSelector, Resource]) -> tuple[Resource, ...]:
        for selector in sorted(self.requires, key=str):
            if selector not in bindings:
                raise MissingBinding(self.id, selector)

        scoped = bindings if isinstance(bindings, Bindings) else Bindings(self.id, bindings)
        try:
            produced = tuple(self.body(scoped))
        except (ProvisioningError, MissingBinding):
            raise
        except Exception as e:
            raise ProviderError(self.id, f"{type(e).__name__}: {e}") from e

        self._check_outputs(produced)
        return produced

    def _check_outputs(self, produced: tuple[Resource, ...]) -> None:
        for resource in produced:
            if not isinstance(resource, Resource):
                raise UndeclaredOutput(self.id, f"returned {type(resource).__name__}, not a Resource")
            if resource.producing_stack_id != self.id:
                raise UndeclaredOutput(
                    self.id, f"resource '{resource.id}' claims producer '{resource.producing_stack_id}'"
                )
            if resource.kind not in self.produces:
                raise UndeclaredOutput(self.id, f"resource '{resource.id}' has undeclared kind {resource.kind.value}")

        counts = Counter(resource.kind for resource in produced)
        repeated = sorted(kind.value for kind, count in counts.items() if count > 1)
        if repeated:
            raise UndeclaredOutput(self.id, f"produced more than one resource of kind {', '.join(repeated)}")
        missing = sorted(kind.value for kind in self.produces if kind not in counts)
        if missing:
            raise UndeclaredOutput(self.id, f"declared but did not produce {', '.join(missing)}")
