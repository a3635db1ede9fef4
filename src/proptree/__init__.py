"""
Property-tree serialization for live object trees.

Converts a tree of introspectable objects into a generic keyed tree of
dicts, lists and scalars (and back), and renders that tree as JSON or XML.

Key Features:
- Serialize a node, its properties and its descendants into a Value map
- Merge a Value map back into an existing tree without duplicating children
- Pluggable object factory for children that have no live counterpart
- JSON and XML codecs with boolean-result file entry points
- Reflection adapter interface, so any object system can be plugged in

Quick Start:
    >>> from dataclasses import dataclass
    >>> from proptree import LiveNode, ObjectFactory, serialize, deserialize
    >>>
    >>> @dataclass(eq=False)
    ... class Pet(LiveNode):
    ...     species: str = ""
    >>>
    >>> @dataclass(eq=False)
    ... class Person(LiveNode):
    ...     age: int = 0
    >>>
    >>> jane = Person(age=30)
    >>> jane.add_child(Pet(species="dog")).object_name = "Fido"
    >>> serialize(jane)
    {'age': 30, 'Pet': {'objectName': 'Fido', 'species': 'dog'}}
    >>>
    >>> factory = ObjectFactory()
    >>> factory.register_class(Pet)
    >>> copy_of_jane = Person()
    >>> deserialize(copy_of_jane, serialize(jane), factory)

Architecture:
    LiveTree -> merge.serialize (via ReflectionAdapter) -> Value map -> codec -> text
    text -> codec -> Value map -> merge.deserialize (via ReflectionAdapter + ObjectFactory) -> LiveTree

Modules:
    - value_model: Value shapes and the add-mapped-data rule
    - reflection: ReflectionAdapter protocol, LiveNode and its adapter
    - factory: Type-tag -> constructor registry
    - merge: serialize/deserialize engine
    - json_codec: JSON text and file I/O
    - xml_codec: XML element mapping and file I/O
    - config: Serializer settings and scoping
"""

# Configuration
from proptree.config import (
    SerializerConfig,
    DEFAULT_CONFIG,
    get_current_config,
    serializer_config,
)

# Value model
from proptree.value_model import (
    ValueKind,
    value_kind,
    is_map,
    is_list,
    add_mapped_data,
)

# Reflection
from proptree.reflection import (
    PropertyDescriptor,
    ReflectionAdapter,
    LiveNode,
    NodeReflectionAdapter,
    node_field,
    coerce_value,
    ADAPTER,
)

# Factory
from proptree.factory import ObjectFactory

# Merge engine
from proptree.merge import (
    serialize,
    serialize_objects,
    deserialize,
    deserialize_objects,
)

# Format codecs
from proptree.json_codec import (
    write_json,
    read_json,
    write_json_data,
    read_json_data,
)
from proptree.xml_codec import (
    to_xml,
    from_xml,
    save_xml,
    load_xml,
    load_new_xml,
)

__all__ = [
    # Configuration
    'SerializerConfig',
    'DEFAULT_CONFIG',
    'get_current_config',
    'serializer_config',
    # Value model
    'ValueKind',
    'value_kind',
    'is_map',
    'is_list',
    'add_mapped_data',
    # Reflection
    'PropertyDescriptor',
    'ReflectionAdapter',
    'LiveNode',
    'NodeReflectionAdapter',
    'node_field',
    'coerce_value',
    'ADAPTER',
    # Factory
    'ObjectFactory',
    # Merge engine
    'serialize',
    'serialize_objects',
    'deserialize',
    'deserialize_objects',
    # JSON
    'write_json',
    'read_json',
    'write_json_data',
    'read_json_data',
    # XML
    'to_xml',
    'from_xml',
    'save_xml',
    'load_xml',
    'load_new_xml',
]

__version__ = '1.0.0'
__description__ = 'Serialize and merge live object trees as JSON-like keyed trees and XML'
