"""Conditional, grouped form schema rendered from Parameter Node trees."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Sequence

from paramflow.conditions import Condition
from paramflow.errors import UnsupportedKindError
from paramflow.naming import PathSegment, camel_case_to_title_case, capitalize, sanitize_param_name
from paramflow.params import (
    ANYDATA,
    BOOLEAN,
    DECIMAL,
    FLOAT,
    INT,
    JSON,
    STRING,
    XML,
    ArrayParam,
    MapParam,
    ParamNode,
    RecordParam,
    SimpleParam,
    UnionParam,
    check_variant,
    discriminator_name,
    immediate_parent_segment,
    is_advanced,
    last_segment,
    member_label,
    selectable_members,
)

STRING_OR_EXPRESSION = "stringOrExpression"
BOOLEAN_INPUT = "boolean"
COMBO = "combo"

VALIDATE_TYPE_REGEX = "regex"
VALIDATE_TYPE_JSON = "json"
INTEGER_REGEX = r"^(-?\d+|\$\{.+\})$"
INTEGER_REGEX_OPTIONAL = r"^$|" + INTEGER_REGEX
DECIMAL_REGEX = r"^(-?\d+(\.\d+)?|\$\{.+\})$"
DECIMAL_REGEX_OPTIONAL = r"^$|" + DECIMAL_REGEX
JSON_OBJECT_REGEX_OPTIONAL = r"^$|^(\{[\s\S]*\}|\$\{.+\})$"
JSON_ARRAY_REGEX_OPTIONAL = r"^$|^(\[[\s\S]*\]|\$\{.+\})$"

ADVANCED_GROUP = "Advanced"
BASIC_GROUP = "Basic"
TOGGLE_PREFIX = "enable_"

Entry = dict[str, Any]


@dataclass
class FormContext:
    expand_records: bool = True
    # Configuration forms gate optional composites behind an enable toggle.
    config_context: bool = False


def _display(value: str) -> str:
    return sanitize_param_name(last_segment(value))


def _with_condition(body: Entry, condition: Condition) -> Entry:
    if condition:
        body["enableCondition"] = condition.to_list()
    return body


def attribute(
    name: str,
    display_name: str,
    input_type: str,
    *,
    default: str | None = None,
    required: bool = False,
    help_tip: str | None = None,
    validate_type: str | None = None,
    match_pattern: str | None = None,
    condition: Condition = Condition(),
    combo_values: Sequence[str] | None = None,
) -> Entry:
    body: Entry = {
        "name": name,
        "displayName": display_name,
        "inputType": input_type,
        "defaultValue": default or "",
        "required": required,
        "helpTip": help_tip or "",
    }
    if combo_values is not None:
        body["comboValues"] = list(combo_values)
    if validate_type:
        body["validateType"] = validate_type
    if match_pattern:
        body["matchPattern"] = match_pattern
    return {"type": "attribute", "value": _with_condition(body, condition)}


def attribute_group(name: str, elements: list[Entry], *, condition: Condition = Condition(), collapsed: bool = False) -> Entry:
    body: Entry = {"groupName": name}
    if collapsed:
        body["collapsed"] = True
    _with_condition(body, condition)
    body["elements"] = elements
    return {"type": "attributeGroup", "value": body}


def _typed_input(
    name: str,
    display: str,
    kind: str,
    *,
    required: bool,
    default: str | None,
    help_tip: str | None,
    condition: Condition = Condition(),
) -> Entry:
    if kind in (STRING, XML):
        return attribute(name, display, STRING_OR_EXPRESSION, default=default, required=required,
                         help_tip=help_tip, condition=condition)
    if kind in (JSON, ANYDATA):
        return _json_input(name, display, required=required, default=default,
                           help_tip=help_tip or "Expecting JSON object",
                           optional_pattern=JSON_OBJECT_REGEX_OPTIONAL, condition=condition)
    if kind == INT:
        return attribute(name, display, STRING_OR_EXPRESSION, default=default, required=required, help_tip=help_tip,
                         validate_type=VALIDATE_TYPE_REGEX,
                         match_pattern=INTEGER_REGEX if required else INTEGER_REGEX_OPTIONAL, condition=condition)
    if kind in (DECIMAL, FLOAT):
        return attribute(name, display, STRING_OR_EXPRESSION, default=default, required=required, help_tip=help_tip,
                         validate_type=VALIDATE_TYPE_REGEX,
                         match_pattern=DECIMAL_REGEX if required else DECIMAL_REGEX_OPTIONAL, condition=condition)
    if kind == BOOLEAN:
        return attribute(name, display, BOOLEAN_INPUT, default=default, required=required, help_tip=help_tip,
                         condition=condition)
    raise UnsupportedKindError(f"No input widget for kind '{kind}' (parameter '{name}').")


def _json_input(
    name: str,
    display: str,
    *,
    required: bool,
    default: str | None,
    help_tip: str,
    optional_pattern: str,
    condition: Condition,
) -> Entry:
    if required:
        return attribute(name, display, STRING_OR_EXPRESSION, default=default, required=True, help_tip=help_tip,
                         validate_type=VALIDATE_TYPE_JSON, condition=condition)
    return attribute(name, display, STRING_OR_EXPRESSION, default=default, required=False, help_tip=help_tip,
                     validate_type=VALIDATE_TYPE_REGEX, match_pattern=optional_pattern, condition=condition)


def _simple_entry(node: SimpleParam, condition: Condition) -> Entry:
    return _typed_input(node.name, _display(node.value), node.kind, required=node.required,
                        default=node.default_value, help_tip=node.description, condition=condition)


def _opaque_entry(node: ParamNode, condition: Condition, help_tip: str, optional_pattern: str) -> Entry:
    return _json_input(node.name, _display(node.value), required=node.required, default=node.default_value,
                       help_tip=node.description or help_tip, optional_pattern=optional_pattern,
                       condition=condition)


def _gate(node: ParamNode, condition: Condition, ctx: FormContext) -> tuple[list[Entry], Condition]:
    """Enable toggle for an optional composite in configuration context, and the condition its content gets."""
    if not ctx.config_context or node.required:
        return [], condition
    display = _display(node.value)
    toggle_name = TOGGLE_PREFIX + node.name
    toggle = attribute(toggle_name, f"Configure {display}", BOOLEAN_INPUT, default="false", required=False,
                       help_tip=f"Enable to configure {display} settings", condition=condition)
    return [toggle], condition.merge(Condition.when(toggle_name, "true"))


# Tables.

def _column(name: str, display: str, kind: str | None, *, required: bool, help_tip: str) -> Entry:
    if kind == INT:
        return attribute(name, display, STRING_OR_EXPRESSION, required=required, help_tip=help_tip,
                         validate_type=VALIDATE_TYPE_REGEX,
                         match_pattern=INTEGER_REGEX if required else INTEGER_REGEX_OPTIONAL)
    if kind in (DECIMAL, FLOAT):
        return attribute(name, display, STRING_OR_EXPRESSION, required=required, help_tip=help_tip,
                         validate_type=VALIDATE_TYPE_REGEX,
                         match_pattern=DECIMAL_REGEX if required else DECIMAL_REGEX_OPTIONAL)
    if kind == BOOLEAN:
        return attribute(name, display, BOOLEAN_INPUT, default="false", required=required, help_tip=help_tip)
    return attribute(name, display, STRING_OR_EXPRESSION, required=required, help_tip=help_tip)


def _field_columns(fields: Sequence[SimpleParam]) -> list[Entry]:
    columns = []
    for item in fields:
        display = capitalize(item.value)
        columns.append(_column(item.value, display, item.kind, required=item.required,
                               help_tip=item.description or display))
    return columns


def _value_help(kind: str | None, fallback: str) -> str:
    if kind == INT:
        return "Integer value"
    if kind in (DECIMAL, FLOAT):
        return "Decimal value"
    if kind == BOOLEAN:
        return "Boolean value (true/false)"
    return fallback


def table(
    name: str,
    display: str,
    columns: list[Entry],
    *,
    required: bool,
    description: str | None = None,
    condition: Condition = Condition(),
    table_key: str | None = None,
    table_value: str | None = None,
) -> Entry:
    body: Entry = {
        "name": name,
        "displayName": display,
        "title": display,
        "description": description or f"Configure {display} entries",
        "tableKey": table_key or columns[0]["value"]["name"],
        "tableValue": table_value or columns[-1]["value"]["name"],
        "required": required,
    }
    _with_condition(body, condition)
    body["elements"] = columns
    return {"type": "table", "value": body}


def _map_table(node: MapParam, condition: Condition) -> Entry:
    columns = [_column("key", "Key", STRING, required=True, help_tip="Key for the map entry")]
    if node.value_fields:
        columns.extend(_field_columns(node.value_fields))
    else:
        columns.append(_column("value", "Value", node.value_kind, required=True,
                               help_tip=_value_help(node.value_kind, "Value for the map entry")))
    return table(node.name, _display(node.value), columns, required=node.required,
                 description=node.description, condition=condition)


def _array_table(node: ArrayParam, condition: Condition) -> Entry:
    display = _display(node.value)
    if node.two_dimensional:
        inner_value = _column("value", "Value", node.inner_element_kind, required=True,
                              help_tip=_value_help(node.inner_element_kind, "Value"))
        inner = table("innerArray", "Inner Array", [inner_value], required=node.required,
                      description="Inner array elements", table_key="value", table_value="value")
        row_label = attribute("rowLabel", "Row Label", STRING_OR_EXPRESSION, required=False,
                              help_tip="Label for this row (optional)")
        return table(node.name, display, [row_label, inner], required=node.required,
                     description=node.description, condition=condition, table_key="Row", table_value="rowLabel")
    if node.union_array:
        types = node.union_member_types or [STRING]
        selector = attribute("type", "Type", COMBO, default=types[0], required=True,
                             help_tip="Select the data type for this element", combo_values=types)
        value = _column("value", "Value", STRING, required=True, help_tip="Element value")
        columns = [selector, value]
    elif node.element_fields:
        columns = _field_columns(node.element_fields)
    else:
        columns = [_column("value", "Value", node.element_kind, required=True,
                           help_tip=_value_help(node.element_kind, "Array element"))]
    return table(node.name, display, columns, required=node.required, description=node.description,
                 condition=condition)


# Composites.

def _render_record_fields(
    entries: Sequence[tuple[ParamNode, Condition]],
    parent_condition: Condition,
    ctx: FormContext,
    parent_group: str | None,
) -> list[Entry]:
    """Render fields in order, clustering those that share an immediate parent segment into groups."""
    out: list[Entry] = []
    groups: dict[str, list[Entry]] = {}
    for field_node, own_condition in entries:
        condition = parent_condition.merge(own_condition)
        segment = immediate_parent_segment(field_node.value)
        if segment is None or segment == parent_group:
            out.extend(_render_node(field_node, condition, ctx, parent_group))
            continue
        if segment not in groups:
            groups[segment] = []
            title = camel_case_to_title_case(segment)
            out.append(attribute_group(title, groups[segment], condition=parent_condition))
        groups[segment].extend(_render_node(field_node, condition, ctx, segment))
    return out


def _render_record(node: RecordParam, condition: Condition, ctx: FormContext, group: str | None) -> list[Entry]:
    if not ctx.expand_records:
        return [_opaque_entry(node, condition, "Expecting JSON object", JSON_OBJECT_REGEX_OPTIONAL)]
    out, content_condition = _gate(node, condition, ctx)
    if node.fields:
        out.extend(_render_record_fields([(f, f.enable_condition) for f in node.fields],
                                         content_condition, ctx, group))
    else:
        # Unexpanded records (no fields, or budget cut) take the whole value as JSON.
        out.append(_opaque_entry(node, content_condition, "Expecting JSON object", JSON_OBJECT_REGEX_OPTIONAL))
    return out


def _render_union(node: UnionParam, condition: Condition, ctx: FormContext, group: str | None) -> list[Entry]:
    valid = selectable_members(node)
    effective_group = group or immediate_parent_segment(node.value)
    out: list[Entry] = []
    single = len(valid) == 1
    if len(valid) > 1:
        labels = [member_label(member, position) for position, member in enumerate(valid)]
        display = _display(node.value)
        if not node.type_descriptor:
            display += "DataType"
        out.append(attribute(discriminator_name(node.value), display, COMBO,
                             default=node.default_value or labels[0], required=node.required,
                             help_tip=node.description, condition=condition, combo_values=labels))
    if node.type_descriptor:
        return out

    record_fields: list[tuple[ParamNode, Condition]] = []
    record_slot: int | None = None
    for member in valid:
        member_condition = Condition() if single else member.enable_condition
        if isinstance(member, RecordParam) and member.fields and ctx.expand_records:
            if record_slot is None:
                record_slot = len(out)
            record_fields.extend((f, member_condition.merge(f.enable_condition)) for f in member.fields)
        else:
            out.extend(_render_node(member, condition.merge(member_condition), ctx, effective_group))
    if record_slot is not None:
        out[record_slot:record_slot] = _render_record_fields(record_fields, condition, ctx, effective_group)
    return out


def _render_node(node: ParamNode, condition: Condition, ctx: FormContext, group: str | None = None) -> list[Entry]:
    check_variant(node)
    if isinstance(node, SimpleParam):
        return [_simple_entry(node, condition)]
    if isinstance(node, RecordParam):
        return _render_record(node, condition, ctx, group)
    if isinstance(node, UnionParam):
        return _render_union(node, condition, ctx, group)
    if isinstance(node, MapParam):
        out, content_condition = _gate(node, condition, ctx)
        if node.render_as_table:
            out.append(_map_table(node, content_condition))
        else:
            out.append(_opaque_entry(node, content_condition, "Expecting JSON object with key-value pairs",
                                     JSON_OBJECT_REGEX_OPTIONAL))
        return out
    if isinstance(node, ArrayParam):
        out, content_condition = _gate(node, condition, ctx)
        if node.render_as_table:
            out.append(_array_table(node, content_condition))
        else:
            out.append(_opaque_entry(node, content_condition, "Expecting JSON array", JSON_ARRAY_REGEX_OPTIONAL))
        return out
    raise UnsupportedKindError(f"Unknown parameter node {type(node).__name__}.")


def render_form(params: Sequence[ParamNode], ctx: FormContext | None = None) -> list[Entry]:
    """Form entries for ``params`` in declaration order."""
    ctx = ctx or FormContext()
    out: list[Entry] = []
    for node in params:
        out.extend(_render_node(node, node.enable_condition, ctx))
    return out


def render_path_param_entries(segments: Sequence[PathSegment]) -> list[Entry]:
    out = []
    for segment in segments:
        if not segment.is_param:
            continue
        kind = segment.type_name if segment.type_name in (INT, DECIMAL, FLOAT, BOOLEAN) else STRING
        out.append(_typed_input(segment.name, segment.name, kind, required=True, default=None, help_tip=None))
    return out


def render_operation_form(
    name: str,
    title: str,
    params: Sequence[ParamNode],
    path_segments: Sequence[PathSegment] = (),
    *,
    help_text: str = "",
    expand_records: bool = True,
) -> dict[str, Any]:
    """Operation form: path parameters, required parameters inline, then a collapsed Advanced group."""
    ctx = FormContext(expand_records=expand_records)
    elements = render_path_param_entries(path_segments)
    elements.extend(render_form([p for p in params if not is_advanced(p)], ctx))
    advanced = render_form([p for p in params if is_advanced(p)], ctx)
    if advanced:
        elements.append(attribute_group(ADVANCED_GROUP, advanced, collapsed=True))
    return {"operationName": name, "title": title, "help": help_text, "elements": elements}


def render_config_form(
    connection_name: str,
    title: str,
    params: Sequence[ParamNode],
    *,
    help_text: str = "",
    expand_records: bool = True,
) -> dict[str, Any]:
    ctx = FormContext(expand_records=expand_records, config_context=True)
    elements = [attribute_group(BASIC_GROUP, render_form([p for p in params if not is_advanced(p)], ctx))]
    advanced = render_form([p for p in params if is_advanced(p)], ctx)
    if advanced:
        elements.append(attribute_group(ADVANCED_GROUP, advanced, collapsed=True))
    return {"connectionName": connection_name, "title": title, "help": help_text, "elements": elements}


def iter_entry_names(entries: Sequence[Entry]):
    """Names of every attribute, combo and table in ``entries``, descending into groups but not table columns."""
    for entry in entries:
        value = entry["value"]
        if entry["type"] == "attributeGroup":
            yield from iter_entry_names(value["elements"])
        else:
            yield value["name"]


def dump_form(document: Any) -> str:
    return json.dumps(document, indent=2)
