"""
Tree serialization and merge engine.

serialize() projects a live node tree into a Value map:

    {property name: value, ..., child type-tag: child map | [child map, ...]}

deserialize() merges such a map back into a live tree. Existing children are
reused when they match (by type-tag, and by instance-name when the data
carries one); otherwise new children are built through the ObjectFactory.
Merging is additive: properties and children absent from the data are left
alone, so deserialize(node, serialize(node)) is idempotent.

Resolution rules for one (key, value) entry of the data:

- Map: a single child payload. With an instance-name, only a child with the
  same type-tag and instance-name matches; without one, the first child with
  the type-tag matches. No match -> create through the factory (or directly
  for the base type-tag). A key that is not a child type-tag at all (no
  existing child, no factory entry) is a property write of the whole map.
- List: several children sharing the type-tag key, possibly mixed with
  property values. Named children are matched by instance-name first, then
  unnamed children are consumed in order, then new ones are created.
  Non-map elements are written to the property named key. A key that is not
  a child type-tag is a property write of the whole list.
- Node-typed properties: a Map or List written to a property that holds or
  is declared as a node (or a list of nodes) is merged into the referenced
  node(s). Missing ones are created through the factory entry for the
  declared class's type-tag, or the data is dropped; maps are never stored
  in such a property.
- Scalar: a property write.

Failures are local: a child that can neither be matched nor created is
dropped and the remaining entries are still merged.
"""

import copy
import logging
from typing import Any, FrozenSet, List, Optional, Sequence

from proptree.config import SerializerConfig, resolve_config
from proptree.factory import ObjectFactory
from proptree.reflection import ADAPTER, ReflectionAdapter
from proptree.value_model import ValueKind, ValueList, ValueMap, add_mapped_data, is_map, value_kind

logger = logging.getLogger(__name__)

# Marks a property value left out of the serialized map
_SKIP = object()


# =============================================================================
# Serialize: live tree -> Value map
# =============================================================================

def serialize(
    node: Any,
    max_depth: Optional[int] = None,
    include_read_only: Optional[bool] = None,
    include_instance_name: Optional[bool] = None,
    *,
    adapter: ReflectionAdapter = ADAPTER,
    config: Optional[SerializerConfig] = None,
) -> ValueMap:
    """
    Serialize node and its descendants into a Value map.

    Args:
        node: Root of the tree to serialize. None yields an empty map.
        max_depth: Levels of children to include. The config's
            unbounded_depth sentinel (-1) means all levels, 0 means
            properties only.
        include_read_only: Also serialize properties that cannot be written.
        include_instance_name: Emit non-empty instance-names under the
            config's instance_name_key.
        adapter: Reflection adapter for the node kind.
        config: Serializer configuration; defaults to the scoped one.

    Returns:
        A fresh map; nothing in it aliases the live tree.
    """
    config = resolve_config(config)
    if max_depth is None:
        max_depth = config.unbounded_depth
    if include_read_only is None:
        include_read_only = config.include_read_only
    if include_instance_name is None:
        include_instance_name = config.include_instance_name
    return _Serializer(adapter, config, include_read_only, include_instance_name).node(
        node, max_depth, frozenset()
    )


def serialize_objects(
    nodes: Sequence[Any],
    max_depth: Optional[int] = None,
    include_read_only: Optional[bool] = None,
    include_instance_name: Optional[bool] = None,
    *,
    adapter: ReflectionAdapter = ADAPTER,
    config: Optional[SerializerConfig] = None,
) -> ValueList:
    """Serialize each node of a sequence into a list of maps."""
    return [
        serialize(node, max_depth, include_read_only, include_instance_name,
                  adapter=adapter, config=config)
        for node in nodes
    ]


class _Serializer:
    """One serialize() call: the options plus the traversal."""

    def __init__(self, adapter: ReflectionAdapter, config: SerializerConfig,
                 include_read_only: bool, include_instance_name: bool):
        self.adapter = adapter
        self.config = config
        self.include_read_only = include_read_only
        self.include_instance_name = include_instance_name

    def node(self, node: Any, depth: int, active: FrozenSet[int]) -> ValueMap:
        data: ValueMap = {}
        if node is None:
            return data
        adapter = self.adapter
        name_key = self.config.instance_name_key
        # Nodes on the current path; guards node-valued properties against cycles
        active = active | {id(node)}

        if self.include_instance_name:
            name = adapter.instance_name_of(node)
            if name:
                add_mapped_data(data, name_key, name)

        for descriptor in adapter.properties_of(node):
            if not descriptor.readable or descriptor.name == name_key:
                continue
            if not (self.include_read_only or descriptor.writable):
                continue
            value = adapter.get(node, descriptor.name)
            self.add_property(data, descriptor.name, value, depth, active)

        unbounded = self.config.unbounded_depth
        if depth == unbounded or depth > 0:
            child_depth = depth if depth == unbounded else depth - 1
            for child in adapter.children_of(node):
                add_mapped_data(data, adapter.type_tag_of(child), self.node(child, child_depth, active))
        return data

    def add_property(self, data: ValueMap, key: str, value: Any, depth: int,
                     active: FrozenSet[int]) -> None:
        """Add a property value, serializing referenced nodes in place."""
        projected = self.project(key, value, depth, active)
        if projected is not _SKIP:
            add_mapped_data(data, key, projected)

    def project(self, key: str, value: Any, depth: int, active: FrozenSet[int]) -> Any:
        """Fresh copy of a property value with every node replaced by its map."""
        if self.adapter.is_node(value):
            if id(value) in active:
                logger.warning(f"Skipping node in {key!r}: it references a node being serialized")
                return _SKIP
            return self.node(value, depth, active)
        if isinstance(value, dict):
            items = ((k, self.project(key, v, depth, active)) for k, v in value.items())
            return {k: v for k, v in items if v is not _SKIP}
        if isinstance(value, (list, tuple, set, frozenset)):
            items = (self.project(key, item, depth, active) for item in value)
            return [item for item in items if item is not _SKIP]
        return value


# =============================================================================
# Deserialize: Value map -> live tree (merge)
# =============================================================================

def deserialize(
    node: Any,
    data: ValueMap,
    factory: Optional[ObjectFactory] = None,
    *,
    adapter: ReflectionAdapter = ADAPTER,
    config: Optional[SerializerConfig] = None,
) -> None:
    """
    Merge data into node, reusing matching children and creating missing ones.

    Args:
        node: Target of the merge. None is a no-op.
        data: Value map as produced by serialize() or a format codec.
        factory: Creates children that have no live counterpart. Without a
            factory only base type-tag children can be created.
        adapter: Reflection adapter for the node kind.
        config: Serializer configuration; defaults to the scoped one.
    """
    if node is None:
        logger.debug("deserialize() called without a target node; nothing to do")
        return
    if not is_map(data):
        logger.warning(f"deserialize() expects a map, got {type(data).__name__}; ignoring")
        return
    _Merger(adapter, resolve_config(config), factory).merge(node, data)


def deserialize_objects(
    nodes: List[Any],
    data: ValueList,
    factory: Optional[ObjectFactory] = None,
    creator_key: str = "",
    *,
    adapter: ReflectionAdapter = ADAPTER,
    config: Optional[SerializerConfig] = None,
) -> None:
    """
    Merge a list of maps positionally into a list of nodes.

    The i-th map element is merged into nodes[i]. Missing nodes are created
    with factory entry creator_key, or else the type-tag of the first
    existing node, and stored in (or appended to) nodes. Non-map elements
    are skipped. Stops at the first element that needs a node that cannot
    be created.
    """
    _Merger(adapter, resolve_config(config), factory).merge_objects(nodes, data, creator_key)


class _Merger:
    """One deserialize() call: adapter, config and factory plus the traversal."""

    def __init__(self, adapter: ReflectionAdapter, config: SerializerConfig,
                 factory: Optional[ObjectFactory]):
        self.adapter = adapter
        self.config = config
        self.factory = factory

    def merge(self, node: Any, data: ValueMap) -> None:
        for key, value in data.items():
            kind = value_kind(value)
            if kind is ValueKind.MAP:
                self.merge_map(node, key, value)
            elif kind is ValueKind.LIST:
                self.merge_list(node, key, value)
            else:
                self.set_property(node, key, value)

    # Helpers ------------------------------------------------------------

    def instance_name(self, data: ValueMap) -> str:
        name = data.get(self.config.instance_name_key)
        return "" if name is None else str(name)

    def is_child_key(self, node: Any, key: str) -> bool:
        """True if key names a child type-tag of node (existing or creatable)."""
        if key == self.config.base_type_tag:
            return True
        if self.factory is not None and self.factory.has(key):
            return True
        return any(self.adapter.type_tag_of(child) == key for child in self.adapter.children_of(node))

    def create_child(self, node: Any, key: str) -> Optional[Any]:
        child = None
        if key == self.config.base_type_tag:
            child = self.adapter.create_base_node()
        elif self.factory is not None and self.factory.has(key):
            child = self.factory.create(key)
        if child is None:
            logger.debug(f"No creator for {key!r}; dropping child data under {self.adapter.type_tag_of(node)}")
            return None
        self.adapter.add_child(node, child)
        logger.debug(f"Created {key!r} child under {self.adapter.type_tag_of(node)}")
        return child

    def set_property(self, node: Any, key: str, value: Any) -> None:
        if key == self.config.instance_name_key:
            self.adapter.set_instance_name(node, "" if value is None else str(value))
        else:
            self.adapter.set(node, key, copy.deepcopy(value))

    # Entry kinds --------------------------------------------------------

    def merge_map(self, node: Any, key: str, child_data: ValueMap) -> None:
        adapter = self.adapter
        name_key = self.config.instance_name_key
        tagged = [child for child in adapter.children_of(node) if adapter.type_tag_of(child) == key]

        target = None
        if name_key in child_data:
            name = self.instance_name(child_data)
            target = next((child for child in tagged if adapter.instance_name_of(child) == name), None)
        elif tagged:
            target = tagged[0]

        if target is None:
            if not self.is_child_key(node, key):
                self.write_structured_property(node, key, child_data)
                return
            target = self.create_child(node, key)
        if target is not None:
            self.merge(target, child_data)

    def merge_list(self, node: Any, key: str, items: ValueList) -> None:
        if not self.is_child_key(node, key):
            self.write_structured_property(node, key, items)
            return

        adapter = self.adapter
        name_key = self.config.instance_name_key
        named = []
        unnamed = []
        for child in adapter.children_of(node):
            if adapter.type_tag_of(child) != key:
                continue
            if adapter.instance_name_of(child):
                named.append(child)
            else:
                unnamed.append(child)

        for item in items:
            if not is_map(item):
                self.set_property(node, key, item)
                continue
            target = None
            if name_key in item:
                name = self.instance_name(item)
                for index, child in enumerate(named):
                    if adapter.instance_name_of(child) == name:
                        target = named.pop(index)
                        break
            if target is None and unnamed:
                target = unnamed.pop(0)
            if target is None:
                target = self.create_child(node, key)
            if target is not None:
                self.merge(target, item)

    def declared_type(self, node: Any, key: str) -> Any:
        for descriptor in self.adapter.properties_of(node):
            if descriptor.name == key:
                return descriptor.value_type
        return None

    def write_structured_property(self, node: Any, key: str, value: Any) -> None:
        """Map/List data under a key that is not a child type-tag."""
        adapter = self.adapter
        current = adapter.get(node, key)
        value_type = self.declared_type(node, key)

        if is_map(value):
            if adapter.is_node(current):
                self.merge(current, value)
                return
            tag = adapter.node_tag_of_type(value_type)
            if tag is not None:
                # Node-typed slot holding no node yet
                target = self.factory.create(tag) if self.factory is not None else None
                if target is None:
                    logger.debug(f"No creator for {tag!r}; dropping data for property {key!r}")
                    return
                self.merge(target, value)
                adapter.set(node, key, target)
                return
        elif isinstance(value, (list, tuple)):
            tag = adapter.node_list_tag_of_type(value_type)
            holds_nodes = isinstance(current, list) and \
                all(adapter.is_node(item) for item in current)
            if tag is not None or (holds_nodes and current):
                nodes = current if holds_nodes else []
                self.merge_objects(nodes, value, tag or "")
                if nodes is not current and nodes:
                    adapter.set(node, key, nodes)
                return
        self.set_property(node, key, value)

    def merge_objects(self, nodes: List[Any], data: ValueList, creator_key: str) -> None:
        index = 0
        for item in data:
            if not is_map(item):
                continue
            target = nodes[index] if index < len(nodes) else None
            if target is None and self.factory is not None:
                if creator_key:
                    target = self.factory.create(creator_key)
                if target is None:
                    existing = next((obj for obj in nodes if obj is not None), None)
                    if existing is not None:
                        target = self.factory.create(self.adapter.type_tag_of(existing))
            if target is None:
                if index >= len(nodes):
                    logger.debug(f"Cannot create object for element {index}; stopping")
                    return
            else:
                self.merge(target, item)
                if index < len(nodes):
                    nodes[index] = target
                else:
                    nodes.append(target)
            index += 1
