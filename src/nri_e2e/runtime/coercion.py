"""Value coercion for result comparison.

NRDB returns numbers, strings, booleans and nulls; spec files declare
expected values as whatever YAML produced. Both sides go through coerce()
before they are compared, then to_value() tags them so that comparisons
never rely on Python's loose equality (True == 1.0).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class ValueKind(Enum):
    """Kind of a coerced value."""

    NUMBER = "number"
    TEXT = "text"
    BOOLEAN = "boolean"
    NULL = "null"
    OTHER = "other"  # lists, mappings and anything else passed through


@dataclass(frozen=True)
class Value:
    """A coerced value tagged with its kind."""

    kind: ValueKind
    raw: Any

    @property
    def is_number(self) -> bool:
        return self.kind is ValueKind.NUMBER

    def __str__(self) -> str:
        if self.kind is ValueKind.NULL:
            return "nil"
        if self.kind is ValueKind.BOOLEAN:
            return "true" if self.raw else "false"
        return str(self.raw)


def coerce(value: Any) -> Any:
    """Normalize a scalar into its canonical comparable form.

    - int -> float
    - "nil" (any case) -> None
    - "true" / "false" (any case) -> bool
    - anything else unchanged
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return float(value)
    if isinstance(value, str):
        lowered = value.lower()
        if lowered == "nil":
            return None
        if lowered == "true":
            return True
        if lowered == "false":
            return False
    return value


def to_value(value: Any) -> Value:
    """Coerce and tag a value."""
    value = coerce(value)
    if value is None:
        return Value(ValueKind.NULL, None)
    if isinstance(value, bool):
        return Value(ValueKind.BOOLEAN, value)
    if isinstance(value, float):
        return Value(ValueKind.NUMBER, value)
    if isinstance(value, str):
        return Value(ValueKind.TEXT, value)
    return Value(ValueKind.OTHER, value)
