"""
Reflection adapter: the narrow interface the merge engine uses to look at
and mutate live objects.

The engine never touches concrete node kinds directly. Everything it needs
(enumerate properties, get/set by name, type-tag, instance-name, children,
parenting) goes through a ReflectionAdapter. This module also provides the
stock implementation:

- LiveNode: base class for object trees. Each node has a type-tag (its kind),
  an optional instance-name, an ordered list of owned children and an open
  set of dynamic properties.
- NodeReflectionAdapter: ReflectionAdapter for LiveNode subclasses. Declared
  properties are dataclass fields and Python ``property`` accessors; values
  written from text formats are coerced to the declared field type.

Example:
    >>> @dataclass(eq=False)
    ... class Pet(LiveNode):
    ...     species: str = ""
    ...     legs: int = node_field(4, read_only=True)
    >>> spot = Pet()
    >>> spot.object_name = "Spot"
    >>> ADAPTER.set(spot, "species", "dog")
"""

import collections.abc
import dataclasses
import inspect
import logging
import types
import typing
from dataclasses import dataclass, field, is_dataclass, MISSING
from datetime import date, datetime, time
from enum import Enum
from pathlib import PurePath
from typing import Any, ClassVar, Dict, List, Optional, Protocol, Sequence, runtime_checkable

from proptree.value_model import scalar_to_text

logger = logging.getLogger(__name__)

# PEP 604 unions (int | None) have their own origin type
_UNION_TYPE = getattr(types, 'UnionType', None)

# Field metadata key marking a dataclass field as read-only
READ_ONLY = 'proptree_read_only'


@dataclass(frozen=True)
class PropertyDescriptor:
    """Describes one named property of a live node."""
    name: str
    readable: bool = True
    writable: bool = True
    value_type: Any = None  # Declared type, None if unknown
    dynamic: bool = False


@runtime_checkable
class ReflectionAdapter(Protocol):
    """Capabilities the merge engine consumes from an object system."""

    def properties_of(self, node: Any) -> Sequence[PropertyDescriptor]: ...
    def get(self, node: Any, name: str) -> Any: ...
    def set(self, node: Any, name: str, value: Any) -> None: ...
    def type_tag_of(self, node: Any) -> str: ...
    def instance_name_of(self, node: Any) -> str: ...
    def set_instance_name(self, node: Any, name: str) -> None: ...
    def children_of(self, node: Any) -> Sequence[Any]: ...
    def add_child(self, parent: Any, child: Any) -> None: ...
    def is_node(self, value: Any) -> bool: ...
    def create_base_node(self) -> Any: ...
    def node_tag_of_type(self, value_type: Any) -> Optional[str]: ...
    def node_list_tag_of_type(self, value_type: Any) -> Optional[str]: ...


def node_field(default=MISSING, *, default_factory=MISSING, read_only: bool = False, **kwargs):
    """dataclasses.field() with a read_only flag for serialization."""
    metadata = dict(kwargs.pop('metadata', None) or {})
    if read_only:
        metadata[READ_ONLY] = True
    return field(default=default, default_factory=default_factory, metadata=metadata, **kwargs)


class LiveNode:
    """
    Base class for serializable object trees.

    Subclasses are usually dataclasses (declare them with ``eq=False`` so
    nodes compare by identity, like the tree itself does). The type-tag
    defaults to the class name; set ``type_tag`` on the class to override it.

    A parent exclusively owns its children: set_parent() detaches a node
    from its previous parent before attaching it to the new one.
    """
    type_tag: ClassVar[str] = "Node"

    def __new__(cls, *args, **kwargs):
        # State lives here so dataclass-generated __init__ methods need not
        # chain up to LiveNode.
        self = super().__new__(cls)
        self._object_name = ""
        self._parent = None
        self._children = []
        self._dynamic_properties = {}
        return self

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        if 'type_tag' not in cls.__dict__:
            cls.type_tag = cls.__name__

    @property
    def object_name(self) -> str:
        return self._object_name

    @object_name.setter
    def object_name(self, name: str) -> None:
        self._object_name = "" if name is None else str(name)

    @property
    def parent(self) -> Optional['LiveNode']:
        return self._parent

    @property
    def children(self) -> List['LiveNode']:
        """Direct children in insertion order (a copy)."""
        return list(self._children)

    def set_parent(self, parent: Optional['LiveNode']) -> None:
        """Move this node under parent (None detaches it)."""
        ancestor = parent
        while ancestor is not None:
            if ancestor is self:
                raise ValueError(f"Cannot parent {self!r} under its own descendant {parent!r}")
            ancestor = ancestor._parent
        if self._parent is not None:
            siblings = self._parent._children
            for index, sibling in enumerate(siblings):
                if sibling is self:
                    del siblings[index]
                    break
        self._parent = parent
        if parent is not None:
            parent._children.append(self)

    def add_child(self, child: 'LiveNode') -> 'LiveNode':
        child.set_parent(self)
        return child

    def find_children(self, name: Optional[str] = None, type_tag: Optional[str] = None,
                      recursive: bool = True) -> List['LiveNode']:
        """Descendants matching name and/or type_tag, depth-first in child order."""
        found = []
        for child in self._children:
            if (name is None or child.object_name == name) and \
                    (type_tag is None or child.type_tag == type_tag):
                found.append(child)
            if recursive:
                found.extend(child.find_children(name, type_tag, recursive))
        return found

    def find_child(self, name: Optional[str] = None, type_tag: Optional[str] = None,
                   recursive: bool = True) -> Optional['LiveNode']:
        matches = self.find_children(name, type_tag, recursive)
        return matches[0] if matches else None

    # Dynamic properties

    def dynamic_property_names(self) -> List[str]:
        return list(self._dynamic_properties)

    def get_dynamic(self, name: str, default: Any = None) -> Any:
        return self._dynamic_properties.get(name, default)

    def set_dynamic(self, name: str, value: Any) -> None:
        self._dynamic_properties[name] = value

    def __repr__(self):
        name = f" {self._object_name!r}" if self._object_name else ""
        return f"<{self.type_tag}{name}>"


# Accessors defined on LiveNode itself are structural, not serialized properties
_STRUCTURAL_NAMES = frozenset(
    name for name, attr in vars(LiveNode).items() if isinstance(attr, property)
) | {'type_tag'}


def _declared_types(cls: type) -> Dict[str, Any]:
    """Resolved annotations of cls, falling back to raw ones."""
    try:
        return typing.get_type_hints(cls)
    except (NameError, TypeError) as e:
        logger.debug(f"Could not resolve type hints for {cls.__name__}: {e}")
        hints = {}
        for klass in reversed(cls.__mro__):
            hints.update(getattr(klass, '__annotations__', {}))
        return {name: (None if isinstance(hint, str) else hint) for name, hint in hints.items()}


def _accessor_types(accessor: property) -> Dict[str, Any]:
    if accessor.fget is None:
        return {}
    try:
        return typing.get_type_hints(accessor.fget)
    except (NameError, TypeError):
        return {}


def _coerce_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ('true', '1', 'yes', 'on'):
            return True
        if lowered in ('false', '0', 'no', 'off', ''):
            return False
    raise ValueError(f"Cannot convert {value!r} to bool")


def coerce_value(value: Any, target: Any) -> Any:
    """
    Convert value to the declared type target.

    Handles the types text formats lose (numbers, bools, dates, enums) and
    Optional/Union declarations. Raises TypeError or ValueError when the
    value cannot be represented as target.
    """
    if target is None or target is Any:
        return value

    origin = typing.get_origin(target)
    if origin is typing.Union or (_UNION_TYPE is not None and origin is _UNION_TYPE):
        args = typing.get_args(target)
        if value is None and type(None) in args:
            return None
        for arg in args:
            if arg is type(None):
                continue
            try:
                return coerce_value(value, arg)
            except (TypeError, ValueError):
                continue
        raise TypeError(f"{value!r} matches no member of {target}")
    if origin is not None:
        # Parameterized generics: check the container only
        if origin in (list, tuple, set, frozenset) and isinstance(value, (list, tuple, set, frozenset)):
            return origin(value)
        if origin is dict and isinstance(value, dict):
            return dict(value)
        raise TypeError(f"Cannot convert {type(value).__name__} to {target}")

    if not isinstance(target, type):
        return value
    if target is bool:
        return _coerce_bool(value)
    if isinstance(value, target):
        if target is int and isinstance(value, bool):
            return int(value)
        if target is date and isinstance(value, datetime):
            return value.date()
        return value
    if isinstance(value, (dict, list, tuple)) or inspect.isclass(value):
        raise TypeError(f"Cannot convert {type(value).__name__} to {target.__name__}")
    if target is int:
        if isinstance(value, float):
            if not value.is_integer():
                raise ValueError(f"{value!r} is not integral")
            return int(value)
        return int(str(value).strip())
    if target is float:
        return float(value)
    if target is str:
        return scalar_to_text(value)
    if target is datetime:
        if isinstance(value, date):
            return datetime(value.year, value.month, value.day)
        return datetime.fromisoformat(str(value).strip())
    if target is date:
        return date.fromisoformat(str(value).strip()[:10])
    if target is time:
        return time.fromisoformat(str(value).strip())
    if issubclass(target, Enum):
        try:
            return target(value)
        except ValueError:
            return target[str(value)]
    if issubclass(target, PurePath):
        return target(str(value))
    raise TypeError(f"Cannot convert {type(value).__name__} to {target.__name__}")


def _non_optional(value_type: Any) -> Any:
    """Strip None from Optional[X]; other unions are returned unchanged."""
    origin = typing.get_origin(value_type)
    if origin is typing.Union or (_UNION_TYPE is not None and origin is _UNION_TYPE):
        args = [arg for arg in typing.get_args(value_type) if arg is not type(None)]
        if len(args) == 1:
            return args[0]
    return value_type


def node_class_of(value_type: Any) -> Optional[type]:
    """The LiveNode subclass declared by value_type (Optional allowed), else None."""
    value_type = _non_optional(value_type)
    if inspect.isclass(value_type) and issubclass(value_type, LiveNode):
        return value_type
    return None


def node_element_class_of(value_type: Any) -> Optional[type]:
    """The LiveNode subclass X of a List[X] / Sequence[X] declaration, else None."""
    value_type = _non_optional(value_type)
    origin = typing.get_origin(value_type)
    if origin not in (list, collections.abc.Sequence, collections.abc.MutableSequence):
        return None
    args = typing.get_args(value_type)
    return node_class_of(args[0]) if len(args) == 1 else None


class NodeReflectionAdapter:
    """
    ReflectionAdapter for LiveNode trees.

    Declared properties, in order:
    1. Public dataclass fields (read-only when declared with node_field(read_only=True))
    2. Public ``property`` accessors of the class (writable when they have a setter)
    3. Dynamic properties stored on the node

    Args:
        accept_dynamic: If True (default), writes to undeclared names create
            dynamic properties (open set). If False, they are ignored.
        coerce: If True (default), values written to declared properties are
            converted to the declared type; values that cannot be converted
            are ignored.
    """

    def __init__(self, accept_dynamic: bool = True, coerce: bool = True):
        self.accept_dynamic = accept_dynamic
        self.coerce = coerce
        # Declared descriptors per class, keyed by name in declaration order
        self._declared: Dict[type, Dict[str, PropertyDescriptor]] = {}

    def _declared_by_class(self, cls: type) -> Dict[str, PropertyDescriptor]:
        cached = self._declared.get(cls)
        if cached is not None:
            return cached

        hints = _declared_types(cls)
        descriptors: Dict[str, PropertyDescriptor] = {}

        if is_dataclass(cls):
            for f in dataclasses.fields(cls):
                if f.name.startswith('_'):
                    continue
                descriptors[f.name] = PropertyDescriptor(
                    name=f.name,
                    readable=True,
                    writable=not f.metadata.get(READ_ONLY, False),
                    value_type=hints.get(f.name, None if isinstance(f.type, str) else f.type),
                )

        for klass in reversed(cls.__mro__):
            if klass is LiveNode or klass is object:
                continue
            for name, attr in vars(klass).items():
                if not isinstance(attr, property) or name.startswith('_'):
                    continue
                if name in _STRUCTURAL_NAMES or name in descriptors:
                    continue
                getter_hints = _accessor_types(attr)
                descriptors[name] = PropertyDescriptor(
                    name=name,
                    readable=attr.fget is not None,
                    writable=attr.fset is not None,
                    value_type=getter_hints.get('return'),
                )

        self._declared[cls] = descriptors
        logger.debug(f"Cached {len(descriptors)} declared properties for {cls.__name__}")
        return descriptors

    def declared_properties(self, node: LiveNode) -> List[PropertyDescriptor]:
        return list(self._declared_by_class(type(node)).values())

    def properties_of(self, node: LiveNode) -> List[PropertyDescriptor]:
        descriptors = self.declared_properties(node)
        declared = {d.name for d in descriptors}
        for name in node.dynamic_property_names():
            if name not in declared:
                descriptors.append(PropertyDescriptor(name=name, dynamic=True))
        return descriptors

    def _descriptor(self, node: LiveNode, name: str) -> Optional[PropertyDescriptor]:
        return self._declared_by_class(type(node)).get(name)

    def get(self, node: LiveNode, name: str) -> Any:
        descriptor = self._descriptor(node, name)
        if descriptor is not None:
            return getattr(node, name) if descriptor.readable else None
        return node.get_dynamic(name)

    def set(self, node: LiveNode, name: str, value: Any) -> None:
        """Write a property, coercing or ignoring values of the wrong type."""
        descriptor = self._descriptor(node, name)
        if descriptor is None:
            if self.accept_dynamic:
                node.set_dynamic(name, value)
            else:
                logger.debug(f"Ignoring unknown property {node.type_tag}.{name}")
            return
        if not descriptor.writable:
            logger.debug(f"Ignoring write to read-only property {node.type_tag}.{name}")
            return
        if self.coerce:
            try:
                value = coerce_value(value, descriptor.value_type)
            except (TypeError, ValueError, KeyError) as e:
                logger.debug(f"Ignoring {node.type_tag}.{name} = {value!r}: {e}")
                return
        setattr(node, name, value)

    def type_tag_of(self, node: LiveNode) -> str:
        return node.type_tag

    def instance_name_of(self, node: LiveNode) -> str:
        return node.object_name

    def set_instance_name(self, node: LiveNode, name: str) -> None:
        node.object_name = name

    def children_of(self, node: LiveNode) -> List[LiveNode]:
        return node.children

    def add_child(self, parent: LiveNode, child: LiveNode) -> None:
        child.set_parent(parent)

    def is_node(self, value: Any) -> bool:
        return isinstance(value, LiveNode)

    def create_base_node(self) -> LiveNode:
        return LiveNode()

    def node_tag_of_type(self, value_type: Any) -> Optional[str]:
        cls = node_class_of(value_type)
        return cls.type_tag if cls is not None else None

    def node_list_tag_of_type(self, value_type: Any) -> Optional[str]:
        cls = node_element_class_of(value_type)
        return cls.type_tag if cls is not None else None


# Shared default adapter (its only state is the per-class descriptor cache)
ADAPTER = NodeReflectionAdapter()
