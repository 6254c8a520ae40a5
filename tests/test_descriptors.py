from __future__ import annotations

import json

import pytest

from paramflow.descriptors import load_module, module_from_mapping, normalize_kind, parse_type, parse_type_table
from paramflow.errors import InvalidDescriptorError, MissingNameError


def _make_document() -> dict:
    return {
        "name": "gmail",
        "org": "acme",
        "version": "1.2.0",
        "config": {"fieldBudget": 50},
        "types": {
            "Node": {
                "kind": "record",
                "fields": [
                    {"name": "label", "type": "string"},
                    {"name": "next", "type": {"ref": "Node"}, "optional": True},
                ],
            }
        },
        "clients": [
            {
                "name": "Client",
                "connectionType": "GMAIL",
                "init": {"params": [{"name": "token", "type": "string"}]},
                "operations": [
                    {
                        "name": "get",
                        "kind": "resource",
                        "path": ["users", "[string userId]"],
                        "params": [
                            {"name": "tree", "type": {"ref": "Node"}, "doc": "A linked node"},
                            {"name": "format", "type": "string", "default": '"json"'},
                        ],
                    }
                ],
            }
        ],
    }


def test_normalize_kind_collapses_subtypes():
    assert normalize_kind("int:Signed32") == "int"
    assert normalize_kind("byte") == "int"
    assert normalize_kind("string:Char") == "string"
    assert normalize_kind("xml:Element") == "xml"
    assert normalize_kind("()") == "nil"
    assert normalize_kind("Decimal") == "decimal"


def test_parse_type_shorthand_and_nesting():
    desc = parse_type({"kind": "array", "elementType": {"kind": "map", "valueType": "int"}})
    assert desc.kind == "array"
    assert desc.element_type.kind == "map"
    assert desc.element_type.value_type.kind == "int"


def test_parse_type_errors():
    with pytest.raises(InvalidDescriptorError):
        parse_type({"name": "NoKind"})
    with pytest.raises(InvalidDescriptorError):
        parse_type({"ref": "Missing"}, {})
    with pytest.raises(InvalidDescriptorError):
        parse_type(42)
    with pytest.raises(MissingNameError):
        parse_type({"kind": "record", "fields": [{"type": "string"}]})


def test_type_table_links_cycles_to_shared_descriptors():
    table = parse_type_table(_make_document()["types"])
    node = table["Node"]
    assert node.name == "Node"
    assert node.fields[1].type is node
    assert node.fields[1].optional is True


def test_module_from_mapping():
    module = module_from_mapping(_make_document())
    assert (module.name, module.org, module.version) == ("gmail", "acme", "1.2.0")
    assert module.config == {"fieldBudget": 50}

    client = module.clients[0]
    assert client.connection_type == "GMAIL"
    assert client.init.kind == "init" and client.init.name == "init"
    op = client.operations[0]
    assert op.kind == "resource"
    assert op.path == ["users", "[string userId]"]
    assert op.params[0].doc == "A linked node"
    assert op.params[1].default == '"json"' and op.params[1].defaultable is True


def test_connection_type_defaults_to_client_name():
    module = module_from_mapping({"name": "m", "clients": [{"name": "Client"}]})
    assert module.clients[0].connection_type == "Client"
    assert module.clients[0].init is None


def test_invalid_operation_kind():
    raw = {"name": "m", "clients": [{"name": "C", "operations": [{"name": "x", "kind": "stream"}]}]}
    with pytest.raises(InvalidDescriptorError):
        module_from_mapping(raw)


def test_load_module(tmp_path):
    path = tmp_path / "module.json"
    path.write_text(json.dumps(_make_document()), encoding="utf-8")
    assert load_module(path).name == "gmail"

    broken = tmp_path / "broken.json"
    broken.write_text("{not json", encoding="utf-8")
    with pytest.raises(InvalidDescriptorError):
        load_module(broken)
