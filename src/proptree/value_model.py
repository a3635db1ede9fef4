"""
Dynamically-typed value model for serialized object trees.

A serialized tree is built from plain Python containers:

- Map: a dict of str -> value (a node's properties and children)
- List: a list of values (repeated keys, list-valued properties)
- Scalar: anything else (str, int, float, bool, None, date, Enum, ...)

Tuples are treated as Lists. The add-mapped-data rule below is the only way
the engine inserts into a Map, so repeated keys escalate into a flat List and
Lists are never nested directly inside one another by the engine.
"""

from datetime import date, datetime, time
from enum import Enum
from typing import Any, Dict, List

ValueMap = Dict[str, Any]
ValueList = List[Any]


class ValueKind(Enum):
    """Shape of a value in the serialized tree."""
    MAP = "map"
    LIST = "list"
    SCALAR = "scalar"


def value_kind(value: Any) -> ValueKind:
    """Classify a value as Map, List or Scalar."""
    if isinstance(value, dict):
        return ValueKind.MAP
    if isinstance(value, (list, tuple)):
        return ValueKind.LIST
    return ValueKind.SCALAR


def is_map(value: Any) -> bool:
    return isinstance(value, dict)


def is_list(value: Any) -> bool:
    return isinstance(value, (list, tuple))


def add_mapped_data(data: ValueMap, key: str, value: Any) -> None:
    """
    Insert value under key, escalating repeated keys into a List.

    - key absent: store value directly
    - key present with a non-List value: replace with [old, value]
    - key present with a List: append value

    Inserting v1, v2, v3 in sequence yields v1, then [v1, v2], then
    [v1, v2, v3].
    """
    if key not in data:
        data[key] = value
        return
    existing = data[key]
    # Build a new list; the stored one may be shared with the caller
    if isinstance(existing, (list, tuple)):
        data[key] = list(existing) + [value]
    else:
        data[key] = [existing, value]


def scalar_to_text(value: Any) -> str:
    """Render a scalar the way it is written into text formats."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, Enum):
        return scalar_to_text(value.value)
    return str(value)


def is_scalar_text(value: Any) -> bool:
    """True if value can be rendered as text (Maps and Lists cannot)."""
    return value_kind(value) is ValueKind.SCALAR
