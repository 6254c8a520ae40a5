from __future__ import annotations

import json

import pytest

from paramflow.classifier import ExpansionBudget, classify, classify_parameter
from paramflow.contracts import FieldDescriptor, ParameterSpec, TypeDescriptor
from paramflow.errors import MalformedVariantError, UnsupportedKindError
from paramflow.form import (
    DECIMAL_REGEX_OPTIONAL,
    INTEGER_REGEX,
    JSON_OBJECT_REGEX_OPTIONAL,
    FormContext,
    dump_form,
    iter_entry_names,
    render_config_form,
    render_form,
    render_operation_form,
)
from paramflow.naming import PathSegment
from paramflow.params import SimpleParam


def _t(kind: str, **kwargs) -> TypeDescriptor:
    return TypeDescriptor(kind=kind, **kwargs)


def _make_record(name: str, *fields: tuple[str, TypeDescriptor]) -> TypeDescriptor:
    return TypeDescriptor(kind="record", name=name, fields=[FieldDescriptor(n, t) for n, t in fields])


def _node(desc: TypeDescriptor, name: str, required: bool = True):
    return classify(desc, 0, ExpansionBudget(), name=name, required=required)


def _values(entries):
    return [entry["value"] for entry in entries]


def test_flat_record_renders_inline_attributes():
    config = _node(_make_record("Config", ("host", _t("string")), ("port", _t("int"))), "config")
    entries = render_form([config])

    assert [e["type"] for e in entries] == ["attribute", "attribute"]
    host, port = _values(entries)
    assert host["name"] == "host" and host["inputType"] == "stringOrExpression"
    assert host["required"] is True
    assert port["validateType"] == "regex"
    assert port["matchPattern"] == INTEGER_REGEX


def test_nested_record_is_grouped_by_parent_segment():
    auth = _make_record("AuthConfig", ("token", _t("string")))
    config = _node(_make_record("Config", ("auth", auth)), "config")
    entries = render_form([config])

    assert len(entries) == 1
    group = entries[0]
    assert group["type"] == "attributeGroup"
    assert group["value"]["groupName"] == "Auth"
    assert [e["value"]["name"] for e in group["value"]["elements"]] == ["auth_token"]
    assert group["value"]["elements"][0]["value"]["displayName"] == "token"


def test_two_member_union_renders_combo_then_gated_members():
    entries = render_form([_node(_t("union", members=[_t("string"), _t("int")]), "value")])

    combo, text, number = _values(entries)
    assert combo["name"] == "valueDataType"
    assert combo["inputType"] == "combo"
    assert combo["comboValues"] == ["string", "int"]
    assert combo["defaultValue"] == "string"
    assert "enableCondition" not in combo
    assert text["name"] == "valueString"
    assert text["enableCondition"] == [{"valueDataType": "string"}]
    assert number["enableCondition"] == [{"valueDataType": "int"}]
    assert number["matchPattern"] == INTEGER_REGEX


def test_nil_union_renders_single_optional_input():
    entries = render_form([_node(_t("union", members=[_t("string"), _t("nil")]), "value")])
    assert len(entries) == 1
    (only,) = _values(entries)
    assert only["inputType"] == "stringOrExpression"
    assert only["required"] is False
    assert "comboValues" not in only


def test_scalar_array_renders_single_value_column_table():
    entries = render_form([_node(_t("array", element_type=_t("string")), "items")])
    assert len(entries) == 1
    table = entries[0]
    assert table["type"] == "table"
    columns = table["value"]["elements"]
    assert [c["value"]["name"] for c in columns] == ["value"]
    assert table["value"]["tableKey"] == "value" and table["value"]["tableValue"] == "value"
    assert table["value"]["description"] == "Configure items entries"


def test_union_record_members_share_one_group_with_member_conditions():
    basic = _make_record("Basic", ("user", _t("string")))
    token = _make_record("Token", ("token", _t("string")))
    request = _node(_make_record("Request", ("auth", _t("union", members=[basic, token]))), "request")
    entries = render_form([request])

    combo, group = entries
    assert combo["value"]["name"] == "authDataType"
    assert combo["value"]["displayName"] == "authDataType"
    assert combo["value"]["comboValues"] == ["Basic", "Token"]
    assert group["value"]["groupName"] == "Auth"
    user, tok = _values(group["value"]["elements"])
    assert user["name"] == "auth_user"
    assert user["enableCondition"] == [{"authDataType": "Basic"}]
    assert tok["enableCondition"] == [{"authDataType": "Token"}]


def test_config_context_gates_optional_record():
    proxy = classify_parameter(
        ParameterSpec("proxy", _make_record("Proxy", ("host", _t("string"))), defaultable=True), 0
    )
    entries = render_form([proxy], FormContext(config_context=True))

    toggle, host = _values(entries)
    assert toggle["name"] == "enable_proxy"
    assert toggle["inputType"] == "boolean"
    assert toggle["defaultValue"] == "false"
    assert toggle["displayName"] == "Configure proxy"
    assert host["enableCondition"] == [{"enable_proxy": "true"}]
    assert host["required"] is False


def test_operation_context_does_not_gate():
    proxy = _node(_make_record("Proxy", ("host", _t("string"))), "proxy", required=False)
    entries = render_form([proxy])
    assert [e["value"]["name"] for e in entries] == ["host"]


def test_records_as_json_when_expansion_is_off():
    config = _node(_make_record("Config", ("host", _t("string"))), "config", required=False)
    (entry,) = _values(render_form([config], FormContext(expand_records=False)))
    assert entry["name"] == "config"
    assert entry["helpTip"] == "Expecting JSON object"
    assert entry["validateType"] == "regex"


def test_record_cut_off_by_budget_takes_json():
    inner = _make_record("Inner", ("a", _t("string")))
    outer = _make_record("Outer", ("x", _t("string")), ("inner", inner))
    node = classify(outer, 0, ExpansionBudget(2), name="outer")
    assert node.fields[1].fields == []

    x, nested = _values(render_form([node]))
    assert x["name"] == "x"
    assert nested["name"] == "inner"
    assert nested["validateType"] == "json"
    assert nested["helpTip"] == "Expecting JSON object"


def test_fieldless_optional_record_takes_json():
    empty = _node(_make_record("Empty"), "extra", required=False)
    (entry,) = _values(render_form([empty]))
    assert entry["validateType"] == "regex"
    assert entry["matchPattern"] == JSON_OBJECT_REGEX_OPTIONAL


def test_map_tables_and_opaque_maps():
    limits = _node(_t("map", value_type=_t("int")), "limits")
    (table,) = render_form([limits])
    key, value = _values(table["value"]["elements"])
    assert key["name"] == "key" and key["helpTip"] == "Key for the map entry"
    assert value["helpTip"] == "Integer value"
    assert table["value"]["tableKey"] == "key" and table["value"]["tableValue"] == "value"

    nested = _node(_t("map", value_type=_t("map", value_type=_t("string"))), "nested")
    (opaque,) = _values(render_form([nested]))
    assert opaque["helpTip"] == "Expecting JSON object with key-value pairs"
    assert opaque["validateType"] == "json"


def test_record_element_array_has_one_column_per_field():
    row = _make_record("Row", ("name", _t("string")), ("score", _t("decimal")))
    row.fields[1].optional = True
    (table,) = render_form([_node(_t("array", element_type=row), "rows")])
    name, score = _values(table["value"]["elements"])
    assert name["displayName"] == "Name"
    assert score["matchPattern"] == DECIMAL_REGEX_OPTIONAL
    assert table["value"]["tableKey"] == "name" and table["value"]["tableValue"] == "score"


def test_two_dimensional_array_nests_inner_table():
    grid = _node(_t("array", element_type=_t("array", element_type=_t("int"))), "grid")
    (table,) = render_form([grid])
    row_label, inner = table["value"]["elements"]
    assert row_label["value"]["name"] == "rowLabel"
    assert inner["type"] == "table"
    assert inner["value"]["name"] == "innerArray"
    assert inner["value"]["elements"][0]["value"]["helpTip"] == "Integer value"


def test_union_array_has_type_selector_and_value_column():
    mixed = _node(_t("array", element_type=_t("union", members=[_t("string"), _t("int")])), "mixed")
    (table,) = render_form([mixed])
    selector, value = _values(table["value"]["elements"])
    assert selector["inputType"] == "combo"
    assert selector["comboValues"] == ["string", "int"]
    assert selector["defaultValue"] == "string"
    assert value["helpTip"] == "Element value"


def test_type_descriptor_union_renders_only_combo():
    people = _t("union", members=[_make_record("Person"), _make_record("Employee")])
    entries = render_form([_node(_t("typedesc", constraint=people), "targetType")])
    (combo,) = _values(entries)
    assert combo["name"] == "targetTypeDataType"
    assert combo["displayName"] == "targetType"
    assert combo["comboValues"] == ["Person", "Employee"]


def test_malformed_variant_and_unknown_kind_raise():
    with pytest.raises(MalformedVariantError):
        render_form([SimpleParam(index="0", value="broken", kind="record")])
    with pytest.raises(UnsupportedKindError):
        render_form([SimpleParam(index="0", value="stream", kind="stream")])


def test_operation_form_layout():
    params = [
        classify_parameter(ParameterSpec("id", _t("string")), 0),
        classify_parameter(ParameterSpec("limit", _t("int"), defaultable=True, default="10"), 1),
    ]
    document = render_operation_form(
        "getUser",
        "get user",
        params,
        [PathSegment("userId", is_param=True), PathSegment("page", is_param=True, type_name="int")],
    )

    names = [e["value"].get("name") or e["value"].get("groupName") for e in document["elements"]]
    assert names == ["userId", "page", "id", "Advanced"]
    advanced = document["elements"][-1]["value"]
    assert advanced["collapsed"] is True
    assert advanced["elements"][0]["value"]["defaultValue"] == "10"
    assert document["elements"][1]["value"]["matchPattern"] == INTEGER_REGEX


def test_config_form_layout_and_dump():
    params = [classify_parameter(ParameterSpec("token", _t("string")), 0)]
    document = render_config_form("gmail", "Gmail", params)
    assert [e["value"]["groupName"] for e in document["elements"]] == ["Basic"]
    assert list(iter_entry_names(document["elements"])) == ["token"]
    assert json.loads(dump_form(document)) == document
