"""
XML persistence for serialized object trees, using ElementTree.

Mapping between a Value map and an element:

    <Person>                          {
      <objectName>Jane</objectName>     "objectName": "Jane",
      <height>170</height>              "height": "170",
      <Person>...</Person>              "Person": [{...},
      <Person>...</Person>                         {...}],
      <Pet species="dog">...</Pet>      "Pet": {"species": "dog", ...},
    </Person>                         }

Writing:
- a Map value becomes a child element named by its key
- a List value becomes one child element per Map element; its other
  elements are written like scalars
- a scalar becomes an attribute (when its key is listed in attribute_keys, or
  all_properties_as_attributes is set) or a child element holding the text;
  empty text is skipped when skip_empty is set

Reading:
- attributes become scalar entries
- a child element with text (whitespace included) and no element children
  becomes a scalar entry
- any other child element becomes a nested map
- repeated tags collapse into Lists (add-mapped-data rule)

All values read back are text; the reflection adapter converts them to the
declared property types on deserialize.
"""

import logging
import re
import xml.etree.ElementTree as ET
from pathlib import PurePath
from typing import Any, Iterable, Optional, Union

from proptree.config import SerializerConfig, resolve_config
from proptree.factory import ObjectFactory
from proptree.merge import deserialize, serialize
from proptree.reflection import ADAPTER, ReflectionAdapter
from proptree.value_model import ValueKind, ValueMap, add_mapped_data, is_map, is_scalar_text, \
    scalar_to_text, value_kind

logger = logging.getLogger(__name__)

PathLike = Union[str, PurePath]


# =============================================================================
# Value map <-> Element
# =============================================================================

def append_xml(
    element: ET.Element,
    data: ValueMap,
    attribute_keys: Iterable[str] = (),
    all_properties_as_attributes: bool = False,
    skip_empty: bool = True,
) -> ET.Element:
    """Append data's entries to element as attributes and child elements."""
    attribute_keys = frozenset(attribute_keys)
    for key, value in data.items():
        kind = value_kind(value)
        if kind is ValueKind.MAP:
            child = ET.SubElement(element, key)
            append_xml(child, value, attribute_keys, all_properties_as_attributes, skip_empty)
        elif kind is ValueKind.LIST:
            for item in value:
                if is_map(item):
                    child = ET.SubElement(element, key)
                    append_xml(child, item, attribute_keys, all_properties_as_attributes, skip_empty)
                else:
                    _append_property(element, key, item, attribute_keys,
                                     all_properties_as_attributes, skip_empty)
        else:
            _append_property(element, key, value, attribute_keys,
                             all_properties_as_attributes, skip_empty)
    return element


def _append_property(element: ET.Element, key: str, value: Any, attribute_keys: frozenset,
                     all_properties_as_attributes: bool, skip_empty: bool) -> None:
    if not is_scalar_text(value):
        logger.debug(f"Skipping {key!r}: nested list has no XML text form")
        return
    text = scalar_to_text(value)
    if not text and skip_empty:
        return
    if all_properties_as_attributes or key in attribute_keys:
        element.set(key, text)
    else:
        ET.SubElement(element, key).text = text


def to_xml(
    root_tag: str,
    data: ValueMap,
    attribute_keys: Iterable[str] = (),
    all_properties_as_attributes: bool = False,
    skip_empty: bool = True,
) -> ET.Element:
    """Build a root element named root_tag holding data."""
    return append_xml(ET.Element(root_tag), data, attribute_keys, all_properties_as_attributes, skip_empty)


def from_xml(element: ET.Element) -> ValueMap:
    """Parse an element's attributes and children into a Value map."""
    data: ValueMap = dict(element.attrib)
    for child in element:
        if not isinstance(child.tag, str):
            continue  # comments and processing instructions
        if len(child) == 0 and child.text:
            add_mapped_data(data, child.tag, child.text)
        else:
            add_mapped_data(data, child.tag, from_xml(child))
    return data


def to_xml_string(root: ET.Element, *, config: Optional[SerializerConfig] = None) -> str:
    """Indented XML document text for root, with an XML declaration."""
    config = resolve_config(config)
    if config.xml_indent:
        ET.indent(root, space=config.xml_indent)
    body = ET.tostring(root, encoding='unicode')
    return f'<?xml version="1.0" encoding="{config.encoding}"?>\n{body}\n'


def from_xml_string(text: str) -> ValueMap:
    """Parse XML text into a Value map. Raises ET.ParseError when malformed."""
    return from_xml(ET.fromstring(text))


# =============================================================================
# Live tree <-> XML file
# =============================================================================

# Letter or underscore first, then letters, digits, '.', '-', '_' (no namespace colon)
_XML_NAME = re.compile(r'[^\W\d][\w.\-]*')


def root_tag_for(node: Any, adapter: ReflectionAdapter = ADAPTER) -> str:
    """Root element tag: the instance-name if set and a valid XML name, else the type-tag."""
    name = adapter.instance_name_of(node)
    if name and _XML_NAME.fullmatch(name):
        return name
    tag = adapter.type_tag_of(node)
    if name:
        logger.warning(f"Instance-name {name!r} is not a valid XML element name; "
                       f"using type-tag {tag!r} as the root tag")
    return tag


def save_xml(
    node: Any,
    path: PathLike,
    attribute_keys: Iterable[str] = (),
    all_properties_as_attributes: bool = False,
    skip_empty: bool = True,
    *,
    max_depth: Optional[int] = None,
    include_read_only: Optional[bool] = None,
    adapter: ReflectionAdapter = ADAPTER,
    config: Optional[SerializerConfig] = None,
) -> bool:
    """
    Serialize node's tree and write it to path as XML.

    Args:
        node: Root of the tree. Its instance-name (or type-tag) names the
            document's root element.
        path: Destination file.
        attribute_keys: Property names written as XML attributes.
        all_properties_as_attributes: Write every scalar property as an attribute.
        skip_empty: Omit properties whose text is empty.

    Returns:
        False if node is None or the file could not be written.
    """
    if node is None:
        logger.error(f"save_xml() called without a node for {path}")
        return False
    config = resolve_config(config)
    data = serialize(node, max_depth, include_read_only, adapter=adapter, config=config)
    root = to_xml(root_tag_for(node, adapter), data, attribute_keys,
                  all_properties_as_attributes, skip_empty)
    text = to_xml_string(root, config=config)
    try:
        with open(path, 'w', encoding=config.encoding) as f:
            f.write(text)
    except OSError as e:
        logger.error(f"Failed to write XML file {path}: {e}")
        return False
    return True


def _parse_root(path: PathLike) -> Optional[ET.Element]:
    try:
        return ET.parse(path).getroot()
    except OSError as e:
        logger.error(f"Failed to read XML file {path}: {e}")
    except ET.ParseError as e:
        logger.error(f"Malformed XML in {path}: {e}")
    return None


def load_xml(
    node: Any,
    path: PathLike,
    factory: Optional[ObjectFactory] = None,
    *,
    adapter: ReflectionAdapter = ADAPTER,
    config: Optional[SerializerConfig] = None,
) -> bool:
    """Read an XML file and merge it into node's tree."""
    root = _parse_root(path)
    if root is None:
        return False
    deserialize(node, from_xml(root), factory, adapter=adapter, config=config)
    return True


def load_new_xml(
    path: PathLike,
    factory: ObjectFactory,
    *,
    adapter: ReflectionAdapter = ADAPTER,
    config: Optional[SerializerConfig] = None,
) -> Optional[Any]:
    """
    Create a new tree from an XML file.

    The root node is built by the factory entry named by the root element's
    tag, then the document is merged into it. Returns None when the file
    cannot be read or the factory has no entry for the root tag.
    """
    root = _parse_root(path)
    if root is None:
        return None
    if not factory.has(root.tag):
        logger.debug(f"No creator for root element {root.tag!r} in {path}")
        return None
    node = factory.create(root.tag)
    if node is None:
        return None
    deserialize(node, from_xml(root), factory, adapter=adapter, config=config)
    return node
