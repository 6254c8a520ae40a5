"""Parameter Node variants produced by the classifier and read by both renderers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import ClassVar, Union

from paramflow.conditions import Condition
from paramflow.errors import MalformedVariantError
from paramflow.naming import sanitize_param_name

# Scalar kinds carried by Simple nodes.
STRING = "string"
INT = "int"
FLOAT = "float"
DECIMAL = "decimal"
BOOLEAN = "boolean"
XML = "xml"
JSON = "json"
ANYDATA = "anydata"
SCALAR_KINDS = (STRING, INT, FLOAT, DECIMAL, BOOLEAN, XML, JSON)

# Composite kinds, each backed by its own variant.
RECORD = "record"
MAP = "map"
ARRAY = "array"
UNION = "union"
COMPOSITE_KINDS = (RECORD, MAP, ARRAY, UNION)

DISCRIMINATOR_SUFFIX = "DataType"


@dataclass
class _ParamBase:
    index: str
    value: str
    required: bool = True
    default_value: str | None = None
    description: str | None = None
    enable_condition: Condition = field(default_factory=Condition)
    # Label under which this node appears as a union member.
    display_type_name: str | None = None
    type_descriptor: bool = False

    @property
    def name(self) -> str:
        return sanitize_param_name(self.value)


@dataclass
class SimpleParam(_ParamBase):
    """Scalar leaf."""

    kind: str = STRING


@dataclass
class RecordParam(_ParamBase):
    """Record with its fields flattened to dotted value names."""

    kind: ClassVar[str] = RECORD
    record_name: str = ""
    parent_path: str = ""
    fields: list[ParamNode] = field(default_factory=list)


@dataclass
class MapParam(_ParamBase):
    kind: ClassVar[str] = MAP
    value_kind: str | None = None
    value_fields: list[SimpleParam] = field(default_factory=list)
    render_as_table: bool = False


@dataclass
class ArrayParam(_ParamBase):
    kind: ClassVar[str] = ARRAY
    element_kind: str | None = None
    element_fields: list[SimpleParam] = field(default_factory=list)
    render_as_table: bool = False
    two_dimensional: bool = False
    inner_element_kind: str | None = None
    union_array: bool = False
    union_member_types: list[str] = field(default_factory=list)


@dataclass
class UnionParam(_ParamBase):
    kind: ClassVar[str] = UNION
    members: list[ParamNode] = field(default_factory=list)


ParamNode = Union[SimpleParam, RecordParam, MapParam, ArrayParam, UnionParam]


def check_variant(node: ParamNode) -> None:
    """Raise when a Simple node claims a composite kind."""
    if isinstance(node, SimpleParam) and node.kind in COMPOSITE_KINDS:
        raise MalformedVariantError(
            f"Parameter '{node.value}' has kind '{node.kind}' but is not a {node.kind} node."
        )


def discriminator_name(value: str) -> str:
    return sanitize_param_name(value) + DISCRIMINATOR_SUFFIX


def member_label(member: ParamNode, position: int) -> str:
    if member.display_type_name:
        return member.display_type_name
    if isinstance(member, RecordParam):
        return member.record_name or f"Record{position}"
    if isinstance(member, UnionParam):
        return f"Union{position}"
    return member.kind


def selectable_members(union: UnionParam) -> list[ParamNode]:
    """Members that can be picked in the discriminator; empty nested unions are dropped."""
    return [m for m in union.members if not (isinstance(m, UnionParam) and not m.members)]


def has_discriminator(union: UnionParam) -> bool:
    return len(selectable_members(union)) > 1


def last_segment(value: str) -> str:
    return value.rsplit(".", 1)[-1]


def immediate_parent_segment(value: str) -> str | None:
    """``a.b.c`` -> ``b``; ``a.b`` -> ``a``; ``a`` -> None."""
    if "." not in value:
        return None
    head = value.rsplit(".", 1)[0]
    return head.rsplit(".", 1)[-1]


def is_advanced(node: ParamNode) -> bool:
    return not node.required or bool(node.default_value)


def iter_nodes(nodes: list[ParamNode]):
    """Depth-first walk over nodes, record fields and union members."""
    for node in nodes:
        yield node
        if isinstance(node, RecordParam):
            yield from iter_nodes(node.fields)
        elif isinstance(node, UnionParam):
            yield from iter_nodes(node.members)
