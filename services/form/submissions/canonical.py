"""Answer value kinds and the canonical text used to bucket identical values."""
from __future__ import annotations

import json
from decimal import Decimal
from numbers import Number
from typing import Any

STRING = "string"
NUMBER = "number"
STRING_LIST = "string_list"
LIST = "list"
OTHER = "other"

LIST_SEPARATOR = "|"


def is_number(value: Any) -> bool:
    # JSON booleans decode to bool, which is an int subclass.
    return isinstance(value, Number) and not isinstance(value, bool)


def value_kind(value: Any) -> str:
    """Classify a decoded JSON answer value."""

    if isinstance(value, str):
        return STRING
    if is_number(value):
        return NUMBER
    if isinstance(value, (list, tuple)):
        if all(isinstance(item, str) for item in value):
            return STRING_LIST
        return LIST
    return OTHER


def format_number(value: Any) -> str:
    """Shortest exact decimal text: no trailing zeros and never an exponent."""

    if isinstance(value, int):
        return str(value)
    number = Decimal(repr(value) if isinstance(value, float) else str(value))
    if not number.is_finite():
        return str(value)
    return format(number.normalize(), "f")


def canonical_key(value: Any) -> str:
    """Deterministic text for an answer value.

    List elements are joined with ``|`` so a value such as ``["a|b"]`` shares a
    key with ``["a", "b"]``; existing dashboards and exports depend on this form.
    """

    kind = value_kind(value)
    if kind == STRING:
        return value
    if kind == NUMBER:
        return format_number(value)
    if kind in (STRING_LIST, LIST):
        return LIST_SEPARATOR.join(canonical_key(item) for item in value)
    return json.dumps(value, sort_keys=True, separators=(",", ":"), default=str)
