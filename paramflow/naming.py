"""Identifier sanitization and operation name resolution."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Callable, Sequence

from paramflow.contracts import RESOURCE, OperationSpec, TypeDescriptor

logger = logging.getLogger(__name__)

TYPE_NAME_SUFFIXES = ("Queries", "Query", "Request", "Response", "Params", "Options", "Payload")
GENERIC_PREFIX_TOKENS = {"list", "get", "create", "update", "delete"}
GENERIC_SUFFIX_TOKENS = {"list", "collection", "items"}

_SEPARATORS = re.compile(r"[-_\s]+")


def sanitize_param_name(name: str | None) -> str:
    """Strip leading quote-escapes and replace dots so the name is usable as a flat identifier."""
    if name is None:
        return ""
    sanitized = name.lstrip("'").replace(".", "_")
    return sanitized or "param"


def sanitize_xml_name(name: str | None) -> str:
    if not name:
        return "resource"
    out: list[str] = []
    for ch in name:
        if not out:
            if ch.isalpha() or ch == "_":
                out.append(ch)
            elif ch.isdigit():
                out.append("_" + ch)
            continue
        out.append(ch if ch.isalnum() or ch in "_-." else "_")
    return "".join(out) or "resource"


def to_pascal_case(text: str | None) -> str:
    if not text:
        return ""
    return "".join(part[0].upper() + part[1:].lower() for part in _SEPARATORS.split(text) if part)


def capitalize(text: str) -> str:
    return text[:1].upper() + text[1:]


def humanize_name(name: str | None) -> str:
    """``getAllCountries_status`` -> ``get all countries status``."""
    if not name:
        return ""
    out: list[str] = []
    prev = ""
    for ch in name:
        if ch in "_- ":
            if out and out[-1] != " ":
                out.append(" ")
        elif ch.isupper():
            if (prev.islower() or prev.isdigit()) and out and out[-1] != " ":
                out.append(" ")
            out.append(ch.lower())
        else:
            out.append(ch)
        prev = ch
    return re.sub(r"\s+", " ", "".join(out)).strip()


def camel_case_to_title_case(text: str | None) -> str:
    if not text:
        return text or ""
    spaced = re.sub(r"([a-z])([A-Z])", r"\1 \2", text)
    spaced = re.sub(r"([A-Z])([A-Z][a-z])", r"\1 \2", spaced)
    return capitalize(spaced)


@dataclass(frozen=True)
class PathSegment:
    """A literal resource path segment or a ``[type name]`` path parameter."""

    name: str
    is_param: bool = False
    type_name: str = "string"


def parse_path_segments(segments: Sequence[str]) -> list[PathSegment]:
    parsed: list[PathSegment] = []
    for raw in segments:
        text = (raw or "").strip()
        if not text:
            continue
        if text.startswith("[") and text.endswith("]"):
            inside = text[1:-1].strip()
            type_name, _, param_name = inside.rpartition(" ")
            if not param_name:
                continue
            parsed.append(PathSegment(name=param_name, is_param=True, type_name=type_name.strip() or "string"))
        else:
            parsed.append(PathSegment(name=text))
    return parsed


# Strategies. Each returns a candidate name or None when it has no opinion.

NameStrategy = Callable[[OperationSpec], "str | None"]


def from_operation_id(operation: OperationSpec) -> str | None:
    if operation.operation_id:
        return operation.operation_id
    return None


def from_path_segments(operation: OperationSpec) -> str | None:
    if operation.kind != RESOURCE:
        return None
    segments = parse_path_segments(operation.path)
    if not segments:
        return None
    parts = [(operation.name or "resource").lower()]
    parts.extend(to_pascal_case(seg.name) for seg in segments if not seg.is_param)
    parts.extend("By" + capitalize(seg.name) for seg in segments if seg.is_param)
    return sanitize_xml_name("".join(parts))


def strip_type_suffix(type_name: str) -> str:
    for suffix in TYPE_NAME_SUFFIXES:
        if type_name.endswith(suffix) and len(type_name) > len(suffix):
            return type_name[: -len(suffix)]
    return type_name


def split_camel_tokens(text: str) -> list[str]:
    tokens: list[str] = []
    current = ""
    for idx, ch in enumerate(text):
        if idx > 0 and ch.isupper() and (text[idx - 1].islower() or text[idx - 1].isdigit()):
            tokens.append(current)
            current = ""
        current += ch
    if current:
        tokens.append(current)
    return tokens


def resource_hint_from_type_name(type_name: str | None) -> str:
    """``GmailUsersDraftsListQueries`` -> ``UsersDrafts``."""
    if not type_name:
        return ""
    tokens = split_camel_tokens(strip_type_suffix(type_name))
    if len(tokens) >= 3:
        tokens = tokens[1:]
    elif len(tokens) == 2 and tokens[0].lower() in GENERIC_PREFIX_TOKENS:
        tokens = tokens[1:]
    if len(tokens) > 1 and tokens[-1].lower() in GENERIC_SUFFIX_TOKENS:
        tokens = tokens[:-1]
    return "".join(tokens)


def _named_return_type(returns: TypeDescriptor | None) -> str | None:
    if returns is None:
        return None
    if returns.kind == "union":
        for member in returns.members:
            if member.kind != "error":
                return member.display_name
        return None
    return returns.display_name


def from_signature(operation: OperationSpec) -> str | None:
    if operation.kind != RESOURCE:
        return operation.name or None
    method = (operation.name or "resource").lower()
    hint = ""
    for param in operation.params:
        hint = resource_hint_from_type_name(param.type.display_name)
        if hint:
            break
    if not hint:
        hint = resource_hint_from_type_name(_named_return_type(operation.returns))
    if hint:
        return sanitize_xml_name(method + capitalize(hint))
    return sanitize_xml_name(method + "Resource")


DEFAULT_STRATEGIES: tuple[NameStrategy, ...] = (from_operation_id, from_path_segments, from_signature)


def resolve_operation_name(
    operation: OperationSpec,
    strategies: Sequence[NameStrategy] = DEFAULT_STRATEGIES,
) -> str | None:
    """Return the first non-empty name produced by ``strategies``, in order."""
    for strategy in strategies:
        candidate = strategy(operation)
        if candidate:
            return candidate
    return None


class NameRegistry:
    """Hands out unique operation names within one client."""

    def __init__(self):
        self._counts: dict[str, int] = {}

    def reserve(self, name: str) -> str:
        if name not in self._counts:
            self._counts[name] = 0
            return name
        self._counts[name] += 1
        unique = f"{name}{self._counts[name]}"
        logger.debug("Operation name %r already taken, using %r", name, unique)
        return unique


def avoid_param_clash(name: str, operation: OperationSpec) -> str:
    taken = {param.name for param in operation.params}
    taken.update(seg.name for seg in parse_path_segments(operation.path) if seg.is_param)
    if name in taken or operation.name in taken:
        return f"{name}_operation"
    return name


def display_name_for(operation: OperationSpec, resolved_name: str) -> str:
    source = resolved_name.replace("'", "")
    if operation.kind != RESOURCE or operation.operation_id:
        return humanize_name(source)
    doc = (operation.doc or "").strip()
    if doc:
        newline = doc.find("\n")
        period = doc.find(".")
        if newline > 0 and (period < 0 or newline < period):
            return doc[:newline].strip()
        if period > 0:
            return doc[: period + 1].strip()
        return doc[:100].strip() + "..." if len(doc) > 100 else doc
    return humanize_name(source)
