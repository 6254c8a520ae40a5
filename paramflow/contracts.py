"""Contracts describing the typed signatures fed to the compiler."""

from __future__ import annotations

from dataclasses import dataclass, field

# Operation kinds.
INIT = "init"
REMOTE = "remote"
RESOURCE = "resource"
FUNCTION = "function"
OPERATION_KINDS = (INIT, REMOTE, RESOURCE, FUNCTION)


@dataclass(eq=False)
class TypeDescriptor:
    """Read-only shape of one type, as supplied by the source compiler.

    Descriptors may form cycles (a record holding a field of its own type), so
    children are excluded from ``repr`` and equality is identity.
    """

    kind: str
    name: str | None = None
    resolved_name: str | None = None
    fields: list[FieldDescriptor] = field(default_factory=list, repr=False)
    value_type: TypeDescriptor | None = field(default=None, repr=False)
    element_type: TypeDescriptor | None = field(default=None, repr=False)
    members: list[TypeDescriptor] = field(default_factory=list, repr=False)
    constraint: TypeDescriptor | None = field(default=None, repr=False)

    @property
    def display_name(self) -> str | None:
        return self.name or self.resolved_name or None


@dataclass(eq=False)
class FieldDescriptor:
    """One named record field."""

    name: str
    type: TypeDescriptor
    optional: bool = False
    has_default: bool = False
    doc: str | None = None


@dataclass
class ParameterSpec:
    """One declared operation parameter."""

    name: str
    type: TypeDescriptor
    defaultable: bool = False
    # Literal default as written in the source, e.g. '"json"' or '()'.
    default: str | None = None
    doc: str | None = None


@dataclass
class OperationSpec:
    """A remote, resource, plain or init function exposed as an operation."""

    name: str
    kind: str = REMOTE
    params: list[ParameterSpec] = field(default_factory=list)
    operation_id: str | None = None
    # Resource path as written, e.g. ["users", "[string userId]", "threads"].
    path: list[str] = field(default_factory=list)
    returns: TypeDescriptor | None = None
    doc: str = ""


@dataclass
class ClientSpec:
    """A client class: one connection with its init and operations."""

    name: str
    connection_type: str
    operations: list[OperationSpec] = field(default_factory=list)
    init: OperationSpec | None = None


@dataclass
class ModuleSpec:
    """Full input document consumed by the generator."""

    name: str
    org: str = ""
    version: str = ""
    clients: list[ClientSpec] = field(default_factory=list)
    config: dict = field(default_factory=dict)
