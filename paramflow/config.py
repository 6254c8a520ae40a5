"""Generator settings read from the input document and the command line."""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any

from paramflow.classifier import MAX_FIELD_BUDGET
from paramflow.errors import InvalidConfigError

_KEY_ALIASES = {
    "fieldBudget": "field_budget",
    "expandRecords": "expand_records",
    "connectionType": "connection_type",
    "moduleName": "module_name",
}


@dataclass
class GeneratorConfig:
    field_budget: int = MAX_FIELD_BUDGET
    expand_records: bool = True
    # Wire scope for init parameters; None uses the client's connection type.
    connection_type: str | None = None
    module_name: str = ""

    def __post_init__(self):
        if isinstance(self.field_budget, bool) or not isinstance(self.field_budget, int):
            raise InvalidConfigError(f"field_budget must be an integer, got {self.field_budget!r}.")
        if self.field_budget < 1:
            raise InvalidConfigError(f"field_budget must be at least 1, got {self.field_budget}.")
        if not isinstance(self.expand_records, bool):
            raise InvalidConfigError(f"expand_records must be true or false, got {self.expand_records!r}.")

    @classmethod
    def from_mapping(cls, raw: dict[str, Any] | None, **overrides: Any) -> GeneratorConfig:
        """Build a config from a ``"config"`` document section; ``None`` overrides are ignored."""
        known = {f.name for f in fields(cls)}
        values: dict[str, Any] = {}
        for key, value in (raw or {}).items():
            name = _KEY_ALIASES.get(key, key)
            if name not in known:
                raise InvalidConfigError(f"Unknown config key '{key}'. Allowed: {', '.join(sorted(known))}")
            values[name] = value
        values.update({key: value for key, value in overrides.items() if value is not None})
        return cls(**values)

    def module_uses_dotted_names(self) -> bool:
        return "." in self.module_name
