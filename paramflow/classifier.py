"""Turn type descriptors into bounded Parameter Node trees.

Classification is recursive descent over the descriptor graph. Every top-level
parameter owns one :class:`ExpansionBudget`; each record field reserves a unit
before it is classified, so self-referential record graphs stop expanding once
the budget runs out. Kinds without a renderable form yield ``None`` and the
caller decides whether that skips a field or the whole operation.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace

from paramflow.conditions import Condition
from paramflow.contracts import ParameterSpec, TypeDescriptor
from paramflow.errors import MissingNameError
from paramflow.naming import capitalize
from paramflow.params import (
    ANYDATA,
    ARRAY,
    BOOLEAN,
    DECIMAL,
    FLOAT,
    INT,
    MAP,
    RECORD,
    STRING,
    UNION,
    ArrayParam,
    MapParam,
    ParamNode,
    RecordParam,
    SimpleParam,
    UnionParam,
    discriminator_name,
)

logger = logging.getLogger(__name__)

MAX_FIELD_BUDGET = 200

NIL = "nil"
TYPEDESC = "typedesc"
_SUPPORTED_KINDS = (STRING, INT, FLOAT, DECIMAL, BOOLEAN, "xml", "json", ARRAY, RECORD, MAP, UNION, NIL, TYPEDESC)
TABLE_SCALAR_KINDS = (STRING, INT, BOOLEAN, FLOAT, DECIMAL)
# Constraint kinds for which a type-descriptor parameter cannot be offered.
TYPEDESC_SKIP_KINDS = ("any",)


def param_type_name(kind: str | None) -> str | None:
    """Supported kind name for a descriptor kind, or None when it has no renderable form."""
    if kind in _SUPPORTED_KINDS:
        return kind
    return None


class ExpansionBudget:
    """Mutable count of leaf fields one top-level parameter may still materialize."""

    def __init__(self, limit: int = MAX_FIELD_BUDGET):
        self.limit = limit
        self.remaining = limit

    @property
    def exhausted(self) -> bool:
        return self.remaining <= 0

    def reserve(self) -> bool:
        self.remaining -= 1
        return self.remaining >= 0

    def refund(self) -> None:
        self.remaining += 1

    def checkpoint(self) -> int:
        return self.remaining

    def restore(self, mark: int) -> None:
        """Give back every unit reserved since ``mark`` was taken."""
        self.remaining = mark


@dataclass
class _Slot:
    """Where a node is placed in the tree."""

    position: int
    value: str
    # Fallback record name when the descriptor carries none.
    name: str
    required: bool
    # Path prefix for the fields of a record placed here.
    fields_path: str
    description: str | None = None


def qualify(parent_path: str, name: str) -> str:
    if not parent_path:
        return name
    return f"{parent_path}.{name}"


def _record_display_name(desc: TypeDescriptor, fallback: str) -> str:
    return desc.name or desc.resolved_name or fallback


def _simple(desc_kind: str, slot: _Slot) -> SimpleParam:
    return SimpleParam(
        index=str(slot.position),
        value=slot.value,
        kind=desc_kind,
        required=slot.required,
        description=slot.description,
    )


def _classify_slot(desc: TypeDescriptor, slot: _Slot, budget: ExpansionBudget, active: tuple) -> ParamNode | None:
    kind = param_type_name(desc.kind)
    if kind is None or kind == NIL:
        return None
    if kind == UNION:
        return _classify_union(desc, slot, budget, active)
    if kind == RECORD:
        return _classify_record(desc, slot, budget, active)
    if kind == MAP:
        return _classify_map(desc, slot)
    if kind == ARRAY:
        return _classify_array(desc, slot)
    if kind == TYPEDESC:
        return _classify_typedesc(desc, slot)
    return _simple(kind, slot)


def _classify_record(desc: TypeDescriptor, slot: _Slot, budget: ExpansionBudget, active: tuple) -> RecordParam:
    record = RecordParam(
        index=str(slot.position),
        value=slot.value,
        required=slot.required,
        description=slot.description,
        record_name=_record_display_name(desc, slot.name),
        parent_path=slot.fields_path,
    )
    populate_record_fields(record, desc, slot.fields_path, budget, active)
    return record


def populate_record_fields(
    record: RecordParam,
    desc: TypeDescriptor,
    parent_path: str,
    budget: ExpansionBudget,
    active: tuple = (),
) -> None:
    if budget.exhausted:
        logger.debug("Expansion budget exhausted before record %s", record.value)
        return
    position = 0
    for fdesc in desc.fields:
        if not fdesc.name:
            raise MissingNameError(f"Record '{record.record_name}' has a field without a name.")
        if param_type_name(fdesc.type.kind) is None:
            logger.debug("Skipping field %s of %s: unsupported kind %s", fdesc.name, record.value, fdesc.type.kind)
            continue
        if not budget.reserve():
            logger.debug("Expansion budget exhausted inside record %s", record.value)
            return
        qualified = qualify(parent_path, fdesc.name)
        optional = fdesc.optional or fdesc.has_default
        slot = _Slot(
            position=position,
            value=qualified,
            name=fdesc.name,
            required=not optional and record.required,
            fields_path=qualified,
            description=fdesc.doc,
        )
        node = _classify_slot(fdesc.type, slot, budget, active)
        if node is None:
            budget.refund()
            logger.debug("Skipping field %s of %s: nothing to represent", fdesc.name, record.value)
            continue
        record.fields.append(node)
        position += 1


def _column_fields(desc: TypeDescriptor) -> list[SimpleParam]:
    columns: list[SimpleParam] = []
    for fdesc in desc.fields:
        kind = param_type_name(fdesc.type.kind)
        if kind is None:
            continue
        columns.append(
            SimpleParam(
                index=str(len(columns)),
                value=fdesc.name,
                kind=kind,
                required=not fdesc.optional,
                description=fdesc.doc,
            )
        )
    return columns


def _renders_as_table(desc: TypeDescriptor | None, *, array: bool) -> bool:
    if desc is None:
        return False
    if desc.kind in TABLE_SCALAR_KINDS:
        return True
    if desc.kind == RECORD:
        return len(desc.fields) > 0
    if array and desc.kind in (ARRAY, UNION):
        return True
    return False


def _classify_map(desc: TypeDescriptor, slot: _Slot) -> MapParam:
    node = MapParam(index=str(slot.position), value=slot.value, required=slot.required, description=slot.description)
    value_type = desc.value_type
    if value_type is None:
        return node
    node.value_kind = param_type_name(value_type.kind) or value_type.kind
    node.render_as_table = _renders_as_table(value_type, array=False)
    if node.render_as_table and value_type.kind == RECORD:
        node.value_fields = _column_fields(value_type)
    return node


def _union_member_type_names(desc: TypeDescriptor) -> list[str]:
    names: list[str] = []
    for member in desc.members:
        if member.kind == NIL:
            continue
        name = param_type_name(member.kind)
        if name is not None and name not in names:
            names.append(name)
    return names


def _classify_array(desc: TypeDescriptor, slot: _Slot) -> ArrayParam:
    node = ArrayParam(index=str(slot.position), value=slot.value, required=slot.required, description=slot.description)
    element = desc.element_type
    if element is None:
        return node
    node.element_kind = param_type_name(element.kind) or element.kind
    node.render_as_table = _renders_as_table(element, array=True)
    if not node.render_as_table:
        return node
    if element.kind == RECORD:
        node.element_fields = _column_fields(element)
    elif element.kind == ARRAY:
        node.two_dimensional = True
        if element.element_type is not None:
            inner = element.element_type
            node.inner_element_kind = param_type_name(inner.kind) or inner.kind
    elif element.kind == UNION:
        node.union_array = True
        node.union_member_types = _union_member_type_names(element)
    return node


def _member_label(member: TypeDescriptor, kind: str, position: int) -> str:
    if kind == RECORD:
        return member.name or f"Record{position}"
    if kind == UNION:
        return member.name or f"Union{position}"
    return kind


def _union_candidates(desc: TypeDescriptor) -> list[tuple[str, str, TypeDescriptor]]:
    """Non-nil, representable members with de-duplicated labels, in declaration order."""
    seen: set[str] = set()
    candidates: list[tuple[str, str, TypeDescriptor]] = []
    for member in desc.members:
        kind = param_type_name(member.kind)
        if kind is None or kind == NIL:
            continue
        label = _member_label(member, kind, len(candidates))
        if label in seen:
            continue
        seen.add(label)
        candidates.append((label, kind, member))
    return candidates


def _classify_union(desc: TypeDescriptor, slot: _Slot, budget: ExpansionBudget, active: tuple) -> ParamNode | None:
    if id(desc) in active:
        logger.debug("Union %s refers to itself, not expanding again", slot.value)
        return None
    if budget.exhausted:
        logger.debug("Expansion budget exhausted before union %s", slot.value)
        return None
    required = slot.required and not any(member.kind == NIL for member in desc.members)
    candidates = _union_candidates(desc)
    if not candidates:
        return None
    if len(candidates) == 1 and candidates[0][1] != UNION:
        return _classify_slot(candidates[0][2], replace(slot, required=required), budget, active)

    start = budget.checkpoint()
    active = active + (id(desc),)
    union = UnionParam(index=str(slot.position), value=slot.value, required=required, description=slot.description)
    discriminator = discriminator_name(slot.value)
    survivors: list[TypeDescriptor] = []
    for label, kind, member in candidates:
        member_slot = _Slot(
            position=len(union.members),
            value=slot.value + capitalize(label),
            name=label,
            required=required,
            # Record members put their fields under the union's own name.
            fields_path=slot.value,
        )
        before = budget.checkpoint()
        node = _classify_slot(member, member_slot, budget, active)
        if node is None:
            budget.restore(before)
            logger.debug("Dropping union member %s of %s", label, slot.value)
            continue
        if isinstance(node, RecordParam):
            node.record_name = label
        node.display_type_name = label
        node.enable_condition = Condition.when(discriminator, label)
        union.members.append(node)
        survivors.append(member)

    if not union.members:
        return None
    if len(union.members) == 1 and not isinstance(union.members[0], UnionParam):
        # The survivor is rebuilt in the union's own slot, so its first build is not charged.
        budget.restore(start)
        return _classify_slot(survivors[0], replace(slot, required=required), budget, active)
    return union


def _classify_typedesc(desc: TypeDescriptor, slot: _Slot) -> ParamNode | None:
    constraint = desc.constraint
    if constraint is None or constraint.kind in TYPEDESC_SKIP_KINDS:
        return None
    if constraint.kind == ANYDATA:
        node = _simple(ANYDATA, slot)
    elif constraint.kind == UNION:
        return _classify_typedesc_union(constraint, slot)
    elif constraint.kind == RECORD:
        node = _simple(STRING, slot)
        node.default_value = _record_display_name(constraint, slot.name)
    else:
        kind = param_type_name(constraint.kind)
        if kind is None or kind in (TYPEDESC, NIL, MAP, ARRAY):
            return None
        node = _simple(kind, slot)
    node.type_descriptor = True
    return node


def _classify_typedesc_union(desc: TypeDescriptor, slot: _Slot) -> ParamNode | None:
    required = slot.required and not any(member.kind == NIL for member in desc.members)
    union = UnionParam(
        index=str(slot.position),
        value=slot.value,
        required=required,
        description=slot.description,
        type_descriptor=True,
    )
    discriminator = discriminator_name(slot.value)
    seen: set[str] = set()
    for member in desc.members:
        if member.kind == NIL or member.kind in TYPEDESC_SKIP_KINDS:
            continue
        if member.kind == RECORD:
            label = member.display_name or f"Record{len(union.members)}"
            option_kind = STRING
        else:
            option_kind = param_type_name(member.kind)
            if option_kind is None or option_kind in (TYPEDESC, NIL):
                continue
            label = option_kind
        if label in seen:
            continue
        seen.add(label)
        union.members.append(
            SimpleParam(
                index=str(len(union.members)),
                value=slot.value + capitalize(label),
                kind=option_kind,
                required=required,
                default_value=label,
                enable_condition=Condition.when(discriminator, label),
                display_type_name=label,
                type_descriptor=True,
            )
        )
    if not union.members:
        return None
    if len(union.members) == 1:
        single = union.members[0]
        return SimpleParam(
            index=str(slot.position),
            value=slot.value,
            kind=single.kind,
            required=required,
            default_value=single.default_value,
            description=slot.description,
            type_descriptor=True,
        )
    return union


def normalize_default(raw: str | None) -> str | None:
    """Turn a source-level default literal into the value pre-filled in the form."""
    if raw is None:
        return None
    text = raw.strip()
    if len(text) >= 2 and text.startswith('"') and text.endswith('"'):
        return text[1:-1]
    if text == "()":
        return ""
    return text


def classify(
    desc: TypeDescriptor,
    position: int,
    budget: ExpansionBudget,
    *,
    name: str,
    required: bool = True,
    description: str | None = None,
) -> ParamNode | None:
    """Classify one top-level parameter type; ``None`` means it cannot be represented."""
    if not name:
        raise MissingNameError(f"Parameter at position {position} has no name.")
    slot = _Slot(position=position, value=name, name=name, required=required, fields_path="", description=description)
    return _classify_slot(desc, slot, budget, ())


def classify_parameter(param: ParameterSpec, position: int, field_budget: int = MAX_FIELD_BUDGET) -> ParamNode | None:
    default = normalize_default(param.default)
    required = not param.defaultable and default is None
    node = classify(
        param.type,
        position,
        ExpansionBudget(field_budget),
        name=param.name,
        required=required,
        description=param.doc,
    )
    if node is not None and default is not None:
        node.default_value = default
    return node
