"""Load module/operation/type descriptions from JSON documents."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from paramflow.contracts import (
    OPERATION_KINDS,
    REMOTE,
    ClientSpec,
    FieldDescriptor,
    ModuleSpec,
    OperationSpec,
    ParameterSpec,
    TypeDescriptor,
)
from paramflow.errors import InvalidDescriptorError, MissingNameError

logger = logging.getLogger(__name__)

_KIND_PREFIXES = {"int": "int", "string": "string", "xml": "xml"}
_KIND_ALIASES = {"byte": "int", "singleton": "string", "()": "nil", "null": "nil"}


def normalize_kind(kind: str) -> str:
    """Collapse subtype spellings (``int:Signed32``, ``string:Char``) onto their base kind."""
    text = str(kind).strip().lower()
    if text in _KIND_ALIASES:
        return _KIND_ALIASES[text]
    base = text.split(":", 1)[0]
    return _KIND_PREFIXES.get(base, text)


def _require_name(raw: dict[str, Any], what: str) -> str:
    name = raw.get("name")
    if not isinstance(name, str) or not name:
        raise MissingNameError(f"{what} is missing a 'name': {raw!r}")
    return name


def _fill_type(desc: TypeDescriptor, raw: dict[str, Any], table: dict[str, TypeDescriptor]) -> None:
    desc.resolved_name = raw.get("resolvedName", desc.resolved_name)
    for item in raw.get("fields", []) or []:
        if not isinstance(item, dict):
            raise InvalidDescriptorError(f"Record field must be a mapping, got {type(item).__name__}.")
        desc.fields.append(
            FieldDescriptor(
                name=_require_name(item, "Record field"),
                type=parse_type(item.get("type"), table),
                optional=bool(item.get("optional", False)),
                has_default=bool(item.get("hasDefault", False)),
                doc=item.get("doc") or item.get("description"),
            )
        )
    if raw.get("valueType") is not None:
        desc.value_type = parse_type(raw["valueType"], table)
    if raw.get("elementType") is not None:
        desc.element_type = parse_type(raw["elementType"], table)
    for member in raw.get("members", []) or []:
        desc.members.append(parse_type(member, table))
    if raw.get("constraint") is not None:
        desc.constraint = parse_type(raw["constraint"], table)


def parse_type(raw: Any, table: dict[str, TypeDescriptor] | None = None) -> TypeDescriptor:
    """Build a descriptor from a mapping, a bare kind string or a ``{"ref": name}`` link."""
    table = table if table is not None else {}
    if isinstance(raw, str):
        return TypeDescriptor(kind=normalize_kind(raw))
    if not isinstance(raw, dict):
        raise InvalidDescriptorError(f"Type must be a mapping or kind string, got {type(raw).__name__}.")
    if "ref" in raw:
        ref = raw["ref"]
        if ref not in table:
            raise InvalidDescriptorError(f"Unknown type reference '{ref}'. Known: {', '.join(sorted(table))}")
        return table[ref]
    if "kind" not in raw:
        raise InvalidDescriptorError(f"Type is missing a 'kind': {raw!r}")
    desc = TypeDescriptor(kind=normalize_kind(raw["kind"]), name=raw.get("name"))
    _fill_type(desc, raw, table)
    return desc


def parse_type_table(raw: dict[str, Any] | None) -> dict[str, TypeDescriptor]:
    """Build the named type table, linking references (including cycles) to shared descriptors."""
    table: dict[str, TypeDescriptor] = {}
    entries = raw or {}
    for type_name, body in entries.items():
        if not isinstance(body, dict) or "kind" not in body:
            raise InvalidDescriptorError(f"Named type '{type_name}' must be a mapping with a 'kind'.")
        table[type_name] = TypeDescriptor(kind=normalize_kind(body["kind"]), name=body.get("name", type_name))
    for type_name, body in entries.items():
        _fill_type(table[type_name], body, table)
    return table


def _parse_params(raw: list[Any] | None, table: dict[str, TypeDescriptor]) -> list[ParameterSpec]:
    specs: list[ParameterSpec] = []
    for item in raw or []:
        if not isinstance(item, dict):
            raise InvalidDescriptorError(f"Parameter must be a mapping, got {type(item).__name__}.")
        default = item.get("default")
        specs.append(
            ParameterSpec(
                name=_require_name(item, "Parameter"),
                type=parse_type(item.get("type"), table),
                defaultable=bool(item.get("defaultable", default is not None)),
                default=None if default is None else str(default),
                doc=item.get("doc") or item.get("description"),
            )
        )
    return specs


def parse_operation(raw: dict[str, Any], table: dict[str, TypeDescriptor] | None = None) -> OperationSpec:
    table = table if table is not None else {}
    kind = str(raw.get("kind", REMOTE)).lower()
    if kind not in OPERATION_KINDS:
        raise InvalidDescriptorError(f"Invalid operation kind '{kind}'. Allowed: {', '.join(OPERATION_KINDS)}")
    returns = raw.get("returns")
    return OperationSpec(
        name=_require_name(raw, "Operation"),
        kind=kind,
        params=_parse_params(raw.get("params"), table),
        operation_id=raw.get("operationId"),
        path=[str(segment) for segment in raw.get("path", []) or []],
        returns=None if returns is None else parse_type(returns, table),
        doc=raw.get("doc", "") or "",
    )


def module_from_mapping(raw: dict[str, Any]) -> ModuleSpec:
    if not isinstance(raw, dict):
        raise InvalidDescriptorError(f"Module document must be a mapping, got {type(raw).__name__}.")
    table = parse_type_table(raw.get("types"))
    clients: list[ClientSpec] = []
    for item in raw.get("clients", []) or []:
        client_name = _require_name(item, "Client")
        init_raw = item.get("init")
        init = None
        if init_raw is not None:
            init_raw = {"name": "init", **init_raw, "kind": "init"}
            init = parse_operation(init_raw, table)
        clients.append(
            ClientSpec(
                name=client_name,
                connection_type=item.get("connectionType") or client_name,
                operations=[parse_operation(op, table) for op in item.get("operations", []) or []],
                init=init,
            )
        )
    module = ModuleSpec(
        name=_require_name(raw, "Module"),
        org=raw.get("org", "") or "",
        version=str(raw.get("version", "") or ""),
        clients=clients,
        config=dict(raw.get("config") or {}),
    )
    logger.debug("Loaded module %s with %d client(s) and %d named type(s)", module.name, len(clients), len(table))
    return module


def load_module(path: str | Path) -> ModuleSpec:
    path = Path(path)
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise InvalidDescriptorError(f"{path}: invalid JSON ({exc})") from exc
    return module_from_mapping(raw)
