"""Flat, indexed wire declarations and the parameter-descriptor stream."""

from __future__ import annotations

from typing import NamedTuple, Sequence

from paramflow.naming import PathSegment
from paramflow.params import (
    ParamNode,
    RecordParam,
    UnionParam,
    check_variant,
    discriminator_name,
    has_discriminator,
    member_label,
)

PROPERTY_SEPARATOR = "\n        "
PARAMETER_SEPARATOR = "\n    "


class WireDeclaration(NamedTuple):
    name: str
    value: str


class ParameterDescriptor(NamedTuple):
    name: str
    description: str


def escape_xml(value: str | None) -> str:
    """Escape ``& < > "`` for use in a double-quoted attribute; ``'`` is left as is."""
    if value is None:
        return ""
    return value.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;").replace('"', "&quot;")


def _key(scope: str, suffix: str) -> str:
    if scope:
        return f"{scope}_{suffix}"
    return suffix


def _expands(node: ParamNode, expand_records: bool = True) -> bool:
    return expand_records and isinstance(node, RecordParam) and bool(node.fields)


def _record_members(union: UnionParam):
    for position, member in enumerate(union.members):
        if isinstance(member, RecordParam):
            yield member_label(member, position), member


def _field_declarations(
    node: ParamNode,
    field_scope: str,
    counter: list[int],
    out: list[WireDeclaration],
    union_member: str | None = None,
    expand_records: bool = True,
) -> None:
    check_variant(node)
    if _expands(node, expand_records):
        for child in node.fields:
            _field_declarations(child, field_scope, counter, out, union_member, expand_records)
        return
    index = counter[0]
    counter[0] += 1
    out.append(WireDeclaration(_key(field_scope, f"param{index}"), node.value))
    out.append(WireDeclaration(_key(field_scope, f"paramType{index}"), node.kind))
    if isinstance(node, UnionParam) and has_discriminator(node):
        out.append(WireDeclaration(_key(field_scope, f"dataType{index}"), discriminator_name(node.value)))
    if union_member is not None:
        out.append(WireDeclaration(_key(field_scope, f"unionMember{index}"), union_member))
    if isinstance(node, UnionParam) and expand_records:
        for label, member in _record_members(node):
            for child in member.fields:
                _field_declarations(child, field_scope, counter, out, label, expand_records)


def render_wire(
    params: Sequence[ParamNode],
    scope: str = "",
    *,
    expand_records: bool = True,
) -> list[WireDeclaration]:
    """Declarations for ``params`` in order; ``scope`` is the connection type in configuration context.

    With ``expand_records`` off, records and record union members travel as one
    JSON value under their own name, matching the form.
    """
    out: list[WireDeclaration] = []
    for index, node in enumerate(params):
        check_variant(node)
        param_key = _key(scope, f"param{index}")
        out.append(WireDeclaration(param_key, node.value))
        if _expands(node, expand_records):
            out.append(WireDeclaration(_key(scope, f"paramType{index}"), node.kind))
            out.append(WireDeclaration(f"{param_key}_recordName", node.record_name))
            counter = [0]
            field_scope = _key(scope, node.name)
            for child in node.fields:
                _field_declarations(child, field_scope, counter, out, expand_records=expand_records)
            continue
        out.append(WireDeclaration(_key(scope, f"paramType{index}"), node.kind))
        if isinstance(node, UnionParam):
            if has_discriminator(node):
                out.append(WireDeclaration(_key(scope, f"dataType{index}"), discriminator_name(node.value)))
            if not expand_records:
                continue
            counter = [0]
            field_scope = _key(scope, node.name)
            for label, member in _record_members(node):
                for child in member.fields:
                    _field_declarations(child, field_scope, counter, out, label, expand_records)
    return out


def render_path_params(segments: Sequence[PathSegment]) -> list[WireDeclaration]:
    out: list[WireDeclaration] = []
    index = 0
    for segment in segments:
        if not segment.is_param:
            continue
        out.append(WireDeclaration(f"pathParam{index}", segment.name))
        out.append(WireDeclaration(f"pathParamType{index}", segment.type_name))
        index += 1
    return out


def format_properties(declarations: Sequence[WireDeclaration]) -> str:
    return PROPERTY_SEPARATOR.join(
        f'<property name="{decl.name}" value="{escape_xml(decl.value)}"/>' for decl in declarations
    )


def render_parameter_descriptors(
    params: Sequence[ParamNode],
    emitted: set[str] | None = None,
    *,
    expand_records: bool = True,
) -> list[ParameterDescriptor]:
    """One descriptor per distinct leaf name, plus a ``<name>DataType`` entry ahead of each union's members.

    ``emitted`` is shared across calls so a name reachable through several
    union arms is declared only once.
    """
    emitted = emitted if emitted is not None else set()
    out: list[ParameterDescriptor] = []

    def visit(node: ParamNode) -> None:
        check_variant(node)
        if _expands(node, expand_records):
            for child in node.fields:
                visit(child)
            return
        if isinstance(node, UnionParam):
            if has_discriminator(node):
                _emit(discriminator_name(node.value), node.description)
            if node.type_descriptor:
                return
            for member in node.members:
                visit(member)
            return
        _emit(node.name, node.description)

    def _emit(name: str, description: str | None) -> None:
        if name in emitted:
            return
        emitted.add(name)
        out.append(ParameterDescriptor(name, description or ""))

    for param in params:
        visit(param)
    return out


def format_parameter_elements(descriptors: Sequence[ParameterDescriptor]) -> str:
    return PARAMETER_SEPARATOR.join(
        f'<parameter name="{item.name}" description="{escape_xml(item.description)}"/>' for item in descriptors
    )
