import re
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Optional, Union

from attrs import define, field
from attrs.validators import instance_of, optional


class ResourceKind(str, Enum):
    Network = "Network"
    Cluster = "Cluster"
    Repository = "Repository"
    Role = "Role"
    Service = "Service"
    LoadBalancer = "LoadBalancer"
    Pipeline = "Pipeline"
    Parameter = "Parameter"


# Primary attribute of each kind and the shape an exported value must have.
KIND_SHAPES: Mapping[ResourceKind, tuple[str, re.Pattern]] = MappingProxyType(
    {
        ResourceKind.Network: ("vpc_id", re.compile(r"^vpc-[0-9a-f]{8,17}$")),
        ResourceKind.Cluster: ("cluster_name", re.compile(r"^[A-Za-z0-9_-]{1,255}$")),
        ResourceKind.Repository: (
            "repository_uri",
            re.compile(r"^\d{12}\.dkr\.ecr\.[a-z0-9-]+\.amazonaws\.com(\.cn)?/[a-z0-9._/-]+$"),
        ),
        ResourceKind.Role: ("role_arn", re.compile(r"^arn:aws[\w-]*:iam::\d{12}:role/[\w+=,.@/-]+$")),
        ResourceKind.Service: ("service_name", re.compile(r"^[A-Za-z0-9_-]{1,255}$")),
        ResourceKind.LoadBalancer: ("dns_name", re.compile(r"^[A-Za-z0-9.-]+\.elb\.amazonaws\.com$")),
        ResourceKind.Pipeline: ("pipeline_name", re.compile(r"^[A-Za-z0-9.@_-]{1,100}$")),
        ResourceKind.Parameter: ("parameter_name", re.compile(r"^/?[A-Za-z0-9_.\-/]{1,2048}$")),
    }
)


def primary_attribute(kind: ResourceKind) -> str:
    return KIND_SHAPES[kind][0]


def matches_shape(kind: ResourceKind, value: Any) -> bool:
    """Check an exported value against the shape expected for ``kind``."""
    _, pattern = KIND_SHAPES[kind]
    return isinstance(value, str) and pattern.match(value) is not None


def _freeze(attributes: Mapping[str, Any]) -> Mapping[str, Any]:
    return MappingProxyType(dict(attributes))


@define(slots=True, frozen=True, eq=False)
class Resource:
    """A provisioned entity as the core sees it.

    ``attributes`` are the facts returned by the provider (ids, ARNs, DNS
    names). ``handle`` is the provider's own object, e.g. a CDK construct, and
    only exists for resources created in the current run.
    """

    id: str = field(validator=instance_of(str))
    kind: ResourceKind = field(converter=ResourceKind, validator=instance_of(ResourceKind))
    producing_stack_id: str = field(validator=instance_of(str))
    attributes: Mapping[str, Any] = field(factory=dict, converter=_freeze)
    handle: Any = field(default=None, repr=False)

    @classmethod
    def create(
        cls, stack_id: str, kind: ResourceKind, name: str, handle: Any = None, **attributes: Any
    ) -> "Resource":
        """Build a resource stamped with ``stack_id`` as its producer."""
        return cls(
            id=f"{stack_id}/{name}",
            kind=kind,
            producing_stack_id=stack_id,
            attributes=attributes,
            handle=handle,
        )

    def __getitem__(self, name: str) -> Any:
        return self.attributes[name]

    @property
    def primary_value(self) -> Any:
        return self.attributes.get(primary_attribute(self.kind))


@define(slots=True, frozen=True)
class ResourceSelector:
    """Which resource a stack needs.

    A kind plus at most one of: the producing stack id (in-run handoff) or an
    export name (named import). With neither, the kind must have exactly one
    producer among the declared stacks.
    """

    kind: ResourceKind = field(converter=ResourceKind)
    stack_id: Optional[str] = field(default=None, validator=optional(instance_of(str)))
    export_name: Optional[str] = field(default=None, validator=optional(instance_of(str)))

    def __attrs_post_init__(self) -> None:
        if self.stack_id is not None and self.export_name is not None:
            raise ValueError("A selector names either a producing stack or an export, not both")

    @classmethod
    def of_kind(cls, kind: ResourceKind) -> "ResourceSelector":
        return cls(kind)

    @classmethod
    def from_stack(cls, kind: ResourceKind, stack_id: str) -> "ResourceSelector":
        return cls(kind, stack_id=stack_id)

    @classmethod
    def from_export(cls, export_name: str, kind: ResourceKind) -> "ResourceSelector":
        return cls(kind, export_name=export_name)

    @property
    def is_export(self) -> bool:
        return self.export_name is not None

    def __str__(self) -> str:
        if self.export_name is not None:
            return f"{self.kind.value} export '{self.export_name}'"
        if self.stack_id is not None:
            return f"{self.kind.value} from '{self.stack_id}'"
        return self.kind.value


@define(slots=True, frozen=True)
class ExportSpec:
    """A named export a stack publishes: the primary attribute of one of its resources."""

    kind: ResourceKind = field(converter=ResourceKind)
    attribute: Optional[str] = None

    @property
    def attribute_name(self) -> str:
        return self.attribute or primary_attribute(self.kind)


def _recorded_kind(kind: Any) -> Union[ResourceKind, str, None]:
    """Known kinds become ``ResourceKind``; anything else is kept as written."""
    if kind is None or isinstance(kind, ResourceKind):
        return kind
    try:
        return ResourceKind(kind)
    except (TypeError, ValueError):
        return str(kind)


@define(slots=True, frozen=True)
class ExportRecord:
    """One entry of an export table.

    ``value`` and ``kind`` are kept as stored; whether they satisfy an import
    is decided when the import is resolved.
    """

    name: str = field(validator=instance_of(str))
    value: Any = None
    kind: Union[ResourceKind, str, None] = field(default=None, converter=_recorded_kind)
    producing_stack_id: Optional[str] = None

    @property
    def kind_name(self) -> Optional[str]:
        return self.kind.value if isinstance(self.kind, ResourceKind) else self.kind

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "value": self.value,
            "kind": self.kind_name,
            "producing_stack_id": self.producing_stack_id,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ExportRecord":
        return cls(
            name=data["name"],
            value=data.get("value"),
            kind=data.get("kind"),
            producing_stack_id=data.get("producing_stack_id"),
        )
