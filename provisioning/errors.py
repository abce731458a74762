from typing import Optional, Sequence


class TopologyError(Exception):
    """Base class for every failure raised by the provisioning core."""


# ---------- resolution time: nothing has been created yet ----------


class ProvisioningConfigError(TopologyError):
    """The declared topology cannot produce a deployment plan."""


class DuplicateId(ProvisioningConfigError):
    def __init__(self, identifier: str, what: str = "resource") -> None:
        super().__init__(f"Duplicate {what} id '{identifier}'")
        self.identifier = identifier
        self.what = what


class CyclicDependency(ProvisioningConfigError):
    def __init__(self, cycle: Sequence[str]) -> None:
        self.cycle = tuple(cycle)
        path = " -> ".join([*self.cycle, self.cycle[0]]) if self.cycle else ""
        super().__init__(f"Cyclic dependency between stacks: {path}")


class UnresolvedDependency(ProvisioningConfigError):
    def __init__(self, stack_id: str, selector, reason: str = "no producer") -> None:
        super().__init__(f"Stack '{stack_id}' requires {selector}: {reason}")
        self.stack_id = stack_id
        self.selector = selector


class AmbiguousDependency(ProvisioningConfigError):
    def __init__(self, stack_id: str, selector, producers: Sequence[str]) -> None:
        self.stack_id = stack_id
        self.selector = selector
        self.producers = tuple(sorted(producers))
        super().__init__(
            f"Stack '{stack_id}' requires {selector} which is produced by "
            f"{', '.join(self.producers)}; name the producing stack"
        )


class InconsistentResolutionMode(ProvisioningConfigError):
    def __init__(self, kind, handoff_stacks: Sequence[str], export_stacks: Sequence[str]) -> None:
        self.kind = kind
        self.handoff_stacks = tuple(sorted(handoff_stacks))
        self.export_stacks = tuple(sorted(export_stacks))
        super().__init__(
            f"{kind} is consumed by direct handoff in {', '.join(self.handoff_stacks)} "
            f"and by named export in {', '.join(self.export_stacks)}; pick one mode per kind"
        )


# ---------- broker ----------


class ResolutionError(TopologyError):
    """A selector could not be turned into a binding."""


class ExportNotFound(ResolutionError):
    def __init__(self, export_name: str, stack_id: Optional[str] = None) -> None:
        consumer = f" (required by '{stack_id}')" if stack_id else ""
        super().__init__(f"No export named '{export_name}'{consumer}")
        self.export_name = export_name
        self.stack_id = stack_id


class TypeMismatch(ResolutionError):
    def __init__(self, selector, detail: str) -> None:
        super().__init__(f"{selector} cannot be satisfied: {detail}")
        self.selector = selector
        self.detail = detail


# ---------- execution time ----------


class ProvisioningError(TopologyError):
    def __init__(self, stack_id: str, message: str) -> None:
        super().__init__(f"Stack '{stack_id}' failed: {message}")
        self.stack_id = stack_id


class ProviderError(ProvisioningError):
    """The external resource-creation collaborator failed."""


class UndeclaredOutput(ProvisioningError):
    """A stack body returned resources that do not match its declaration."""


class MissingBinding(TopologyError):
    """Internal invariant violation: a validated selector has no binding.

    Not a ProvisioningError or ResolutionError; it is never reported as a
    stack failure and never retried.
    """

    def __init__(self, stack_id: str, selector) -> None:
        super().__init__(f"Stack '{stack_id}' executed without a binding for {selector}")
        self.stack_id = stack_id
        self.selector = selector


# ---------- registry and export tables ----------


class UnknownResource(TopologyError):
    def __init__(self, resource_id: str) -> None:
        super().__init__(f"No resource with id '{resource_id}' is registered")
        self.resource_id = resource_id


class ConflictingOutputs(TopologyError):
    """A stack has more than one registered resource of the same kind."""

    def __init__(self, stack_id: str, kind, resource_ids: Sequence[str]) -> None:
        self.stack_id = stack_id
        self.kind = kind
        self.resource_ids = tuple(sorted(resource_ids))
        super().__init__(
            f"Stack '{stack_id}' registered several {getattr(kind, 'value', kind)} resources: "
            f"{', '.join(self.resource_ids)}"
        )


class ExportTableError(TopologyError):
    def __init__(self, location: str, reason: str) -> None:
        super().__init__(f"Export table '{location}' cannot be read: {reason}")
        self.location = location
        self.reason = reason
