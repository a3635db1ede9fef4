"""
JSON persistence for serialized object trees.

The JSON document's top-level object is the serialized map of the root node:
property names and child type-tags as keys, per merge.serialize(). Values
JSON cannot represent natively are written as text (dates and datetimes in
ISO-8601, enums by value); the reflection adapter converts them back to the
declared property types on deserialize.

File entry points never raise on I/O problems; they log the failure and
return False, leaving the live tree untouched.
"""

import json
import logging
from datetime import date, datetime, time
from enum import Enum
from pathlib import PurePath
from typing import Any, Optional, Union

from proptree.config import SerializerConfig, resolve_config
from proptree.factory import ObjectFactory
from proptree.merge import deserialize, serialize
from proptree.reflection import ADAPTER, ReflectionAdapter
from proptree.value_model import ValueMap

logger = logging.getLogger(__name__)

PathLike = Union[str, PurePath]


def _encode_default(obj: Any) -> Any:
    """json.dumps hook for scalars outside the JSON type system."""
    if isinstance(obj, (datetime, date, time)):
        return obj.isoformat()
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (set, frozenset)):
        return list(obj)
    if isinstance(obj, PurePath):
        return str(obj)
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def dumps(data: ValueMap, indent: Optional[int] = None, *, config: Optional[SerializerConfig] = None) -> str:
    """Render a Value map as JSON text."""
    config = resolve_config(config)
    return json.dumps(data, default=_encode_default,
                      indent=config.json_indent if indent is None else indent,
                      ensure_ascii=False)


def loads(text: str) -> ValueMap:
    """
    Parse JSON text into a Value map.

    A document whose top-level value is not an object yields an empty map.
    Raises json.JSONDecodeError for malformed text.
    """
    data = json.loads(text)
    if not isinstance(data, dict):
        logger.warning(f"JSON top-level value is {type(data).__name__}, not an object; using empty map")
        return {}
    return data


def write_json_data(data: ValueMap, path: PathLike, *, config: Optional[SerializerConfig] = None) -> bool:
    """Write a Value map to path as JSON. Returns False on failure."""
    config = resolve_config(config)
    try:
        text = dumps(data, config=config)
    except (TypeError, ValueError) as e:
        logger.error(f"Cannot encode data for {path} as JSON: {e}")
        return False
    try:
        with open(path, 'w', encoding=config.encoding) as f:
            f.write(text)
    except OSError as e:
        logger.error(f"Failed to write JSON file {path}: {e}")
        return False
    return True


def read_json_data(path: PathLike, *, config: Optional[SerializerConfig] = None) -> Optional[ValueMap]:
    """Read a Value map from a JSON file. Returns None on failure."""
    config = resolve_config(config)
    try:
        with open(path, 'r', encoding=config.encoding) as f:
            text = f.read()
    except (OSError, UnicodeDecodeError) as e:
        logger.error(f"Failed to read JSON file {path}: {e}")
        return None
    try:
        return loads(text)
    except ValueError as e:
        logger.error(f"Malformed JSON in {path}: {e}")
        return None


def write_json(
    node: Any,
    path: PathLike,
    max_depth: Optional[int] = None,
    include_read_only: Optional[bool] = None,
    include_instance_name: Optional[bool] = None,
    *,
    adapter: ReflectionAdapter = ADAPTER,
    config: Optional[SerializerConfig] = None,
) -> bool:
    """Serialize node's tree and write it to path as JSON."""
    data = serialize(node, max_depth, include_read_only, include_instance_name,
                     adapter=adapter, config=config)
    return write_json_data(data, path, config=config)


def read_json(
    node: Any,
    path: PathLike,
    factory: Optional[ObjectFactory] = None,
    *,
    adapter: ReflectionAdapter = ADAPTER,
    config: Optional[SerializerConfig] = None,
) -> bool:
    """Read a JSON file and merge it into node's tree."""
    data = read_json_data(path, config=config)
    if data is None:
        return False
    deserialize(node, data, factory, adapter=adapter, config=config)
    return True
