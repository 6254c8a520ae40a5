"""Visibility conditions attached to form entries.

A condition is either empty, a single clause rendered as ``[{"key":"value"}]``
or a conjunction rendered as ``["AND", {...}, {...}]``. Conditions are kept as
an ordered tuple of ``(key, value)`` clauses so that merging is a plain
ordered union and the result does not depend on how merges were bracketed.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

AND = "AND"


@dataclass(frozen=True)
class Condition:
    """Conjunction of ``key == value`` clauses evaluated by the form renderer."""

    clauses: tuple[tuple[str, str], ...] = ()

    def __bool__(self) -> bool:
        return bool(self.clauses)

    @classmethod
    def when(cls, key: str, value: str) -> Condition:
        return cls(((key, value),))

    def merge(self, other: Condition | None) -> Condition:
        """AND ``other`` into this condition, keeping clause order and dropping repeats."""
        if not other:
            return self
        if not self:
            return other
        merged = list(self.clauses)
        for clause in other.clauses:
            if clause not in merged:
                merged.append(clause)
        return Condition(tuple(merged))

    def to_list(self) -> list[Any]:
        objects = [{key: value} for key, value in self.clauses]
        if len(objects) == 1:
            return objects
        return [AND, *objects]

    def to_json(self) -> str:
        if not self:
            return ""
        return json.dumps(self.to_list(), separators=(",", ":"))

