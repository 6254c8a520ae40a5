from __future__ import annotations

import pytest

from paramflow.config import GeneratorConfig
from paramflow.descriptors import module_from_mapping
from paramflow.form import TOGGLE_PREFIX, iter_entry_names
from paramflow.generator import classify_operation, generate_client, generate_module, write_artifacts
from paramflow.progress import track_step
from paramflow.report import UNSUPPORTED_PARAMETER_TYPE


def _make_module(**config) -> dict:
    address = {
        "kind": "record",
        "name": "Address",
        "fields": [
            {"name": "street", "type": "string"},
            {"name": "zip", "type": "int", "optional": True},
        ],
    }
    return {
        "name": "shop",
        "org": "acme",
        "version": "0.3.0",
        "config": config,
        "types": {
            "Category": {
                "kind": "record",
                "fields": [
                    {"name": "title", "type": "string"},
                    {"name": "parent", "type": {"ref": "Category"}, "optional": True},
                ],
            }
        },
        "clients": [
            {
                "name": "ShopClient",
                "connectionType": "SHOP",
                "init": {
                    "params": [
                        {"name": "apiKey", "type": "string"},
                        {
                            "name": "proxy",
                            "type": {"kind": "record", "name": "Proxy", "fields": [{"name": "host", "type": "string"}]},
                            "defaultable": True,
                        },
                    ]
                },
                "operations": [
                    {
                        "name": "createOrder",
                        "params": [
                            {
                                "name": "order",
                                "type": {
                                    "kind": "record",
                                    "name": "Order",
                                    "fields": [
                                        {"name": "shipping", "type": address},
                                        {
                                            "name": "payment",
                                            "type": {
                                                "kind": "union",
                                                "members": [
                                                    {
                                                        "kind": "record",
                                                        "name": "Card",
                                                        "fields": [{"name": "number", "type": "string"}],
                                                    },
                                                    {
                                                        "kind": "record",
                                                        "name": "Voucher",
                                                        "fields": [{"name": "code", "type": "string"}],
                                                    },
                                                ],
                                            },
                                        },
                                        {"name": "tags", "type": {"kind": "array", "elementType": "string"}},
                                        {"name": "meta", "type": {"kind": "map", "valueType": "decimal"}},
                                    ],
                                },
                            },
                            {"name": "note", "type": {"kind": "union", "members": ["string", "int", "()"]}},
                            {"name": "category", "type": {"ref": "Category"}},
                            {
                                "name": "target",
                                "type": {
                                    "kind": "typedesc",
                                    "constraint": {"kind": "union", "members": [address, {"kind": "record", "name": "Box"}]},
                                },
                            },
                        ],
                    },
                    {"name": "get", "params": [{"name": "id", "type": "string"}]},
                    {"name": "get", "operationId": "get", "params": []},
                    {"name": "subscribe", "params": [{"name": "handler", "type": "function"}]},
                    {
                        "name": "list",
                        "params": [
                            {"name": "filter", "type": "function", "defaultable": True},
                            {"name": "limit", "type": "int", "default": "10"},
                        ],
                    },
                ],
            }
        ],
    }


def _generate(**config):
    module = module_from_mapping(_make_module(**config))
    return generate_module(module)


def test_unsupported_required_parameter_skips_operation():
    module = module_from_mapping(_make_module())
    subscribe = module.clients[0].operations[3]
    classified = classify_operation(subscribe)
    assert classified.skipped
    assert classified.skip_reason == UNSUPPORTED_PARAMETER_TYPE
    assert classified.params == []


def test_unsupported_optional_parameter_is_dropped():
    module = module_from_mapping(_make_module())
    listing = module.clients[0].operations[4]
    classified = classify_operation(listing)
    assert not classified.skipped
    assert [p.value for p in classified.params] == ["limit"]
    assert classified.params[0].index == "0"


def test_report_counts_and_reasons():
    artifacts = _generate()
    report = artifacts.report
    assert report.included_count == 5
    assert report.skipped_count == 1
    assert report.skip_reasons() == [UNSUPPORTED_PARAMETER_TYPE]
    assert report.clients[0].skipped[0].name == "subscribe"


def test_names_are_deduplicated_per_client():
    client = _generate().clients[0]
    assert [op.name for op in client.operations] == ["createOrder", "get", "get1", "list"]
    assert client.init.name == "SHOP"


def test_wire_and_form_names_agree():
    client = _generate().clients[0]
    for artifacts in [client.init, *client.operations]:
        descriptor_names = {d.name for d in artifacts.parameter_descriptors}
        form_names = set(iter_entry_names(artifacts.form["elements"]))
        form_names -= {seg.name for seg in artifacts.path_params}
        form_names = {name for name in form_names if not name.startswith(TOGGLE_PREFIX)}
        assert descriptor_names == form_names, artifacts.name


def test_create_order_artifacts():
    create = _generate().clients[0].operations[0]
    names = [d.name for d in create.parameter_descriptors]
    assert names[:4] == ["shipping_street", "shipping_zip", "paymentDataType", "payment_number"]
    assert "noteDataType" in names and "targetDataType" in names

    wire = dict(create.wire)
    assert wire["param0_recordName"] == "Order"
    assert wire["order_param2"] == "payment"
    assert wire["order_dataType2"] == "paymentDataType"
    assert wire["order_unionMember3"] == "Card"
    assert wire["order_unionMember4"] == "Voucher"

    xml = create.to_xml()
    assert xml.startswith('<template name="createOrder">')
    assert '<property name="order_param0" value="shipping.street"/>' in xml


def test_init_uses_connection_scope_and_toggles():
    init = _generate().clients[0].init
    wire = dict(init.wire)
    assert wire["SHOP_param0"] == "apiKey"
    assert wire["SHOP_param1_recordName"] == "Proxy"
    assert wire["SHOP_proxy_param0"] == "host"

    basic, advanced = init.form["elements"]
    assert basic["value"]["groupName"] == "Basic"
    toggle = advanced["value"]["elements"][0]["value"]
    assert toggle["name"] == "enable_proxy"


def test_config_budget_limits_recursive_types():
    small = _generate(fieldBudget=3).clients[0].operations[0]
    category = small.params[2]
    depth = 0
    node = category
    while node.fields and node.fields[-1].kind == "record":
        node = node.fields[-1]
        depth += 1
    assert depth <= 3


def test_expand_records_off_keeps_records_opaque():
    module = module_from_mapping(_make_module())
    client = generate_client(module.clients[0], GeneratorConfig(expand_records=False))
    create = client.operations[0]
    assert [e["value"]["name"] for e in create.form["elements"][:1]] == ["order"]
    assert create.parameter_descriptors[0].name == "order"
    assert create.wire[:2] == [("param0", "order"), ("paramType0", "record")]
    assert not [decl for decl in create.wire if decl.name.startswith("order_") or "recordName" in decl.name]


def test_progress_events():
    events: list[tuple[str, str]] = []
    metadata = {"_progress_callback": lambda step, status, detail: events.append((step, status))}
    module = module_from_mapping(_make_module())
    generate_client(module.clients[0], metadata=metadata)

    assert events[0] == ("ShopClient.init", "running")
    assert ("ShopClient.subscribe", "done") in events
    assert all(status in ("running", "done") for _, status in events)


def test_track_step_reports_failure():
    events: list[str] = []
    metadata = {"_progress_callback": lambda step, status, detail: events.append(status)}
    with pytest.raises(RuntimeError):
        with track_step(metadata, "boom", "explodes"):
            raise RuntimeError("boom")
    assert events == ["running", "failed"]

    with track_step(None, "quiet") as timing:
        pass
    assert timing["_timing"] >= 0


def test_write_artifacts(tmp_path):
    artifacts = _generate()
    written = write_artifacts(artifacts, tmp_path / "out")

    out = tmp_path / "out"
    assert (out / "functions" / "createOrder.xml").exists()
    assert (out / "uischema" / "get1.json").exists()
    assert (out / "config" / "SHOP.xml").exists()
    assert (out / "uischema" / "SHOP.json").exists()
    assert (out / "generation-report.log").read_text(encoding="utf-8").startswith("=" * 49)
    assert len(written) == 2 + 2 * 4 + 1
