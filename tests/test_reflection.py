"""Tests for LiveNode and NodeReflectionAdapter."""
import pytest
from dataclasses import dataclass
from datetime import date
from typing import List, Optional, Sequence

import proptree.reflection as reflection
from proptree import ADAPTER, LiveNode, NodeReflectionAdapter, ReflectionAdapter, coerce_value
from conftest import Color, Person, Pet, Profile, make_pet


class TestLiveNode:
    """Tree structure and identity of live nodes."""

    def test_type_tag_defaults_to_class_name(self):
        assert Person().type_tag == "Person"
        assert LiveNode().type_tag == "Node"

    def test_type_tag_override(self):
        @dataclass(eq=False)
        class Dog(Pet):
            type_tag = "Pet"

        assert Dog().type_tag == "Pet"

    def test_set_parent_moves_node(self):
        """A node belongs to exactly one parent."""
        a, b = Person(), Person()
        pet = a.add_child(Pet())
        pet.set_parent(b)
        assert a.children == []
        assert b.children == [pet]
        assert pet.parent is b

    def test_set_parent_detaches_by_identity(self):
        """Equal-looking siblings are not confused with each other."""
        root = Person()
        first = root.add_child(make_pet("cat"))
        second = root.add_child(make_pet("cat"))
        second.set_parent(None)
        assert root.children == [first]
        assert root.children[0] is first

    def test_cycle_rejected(self):
        root = Person()
        child = root.add_child(Person())
        with pytest.raises(ValueError):
            root.set_parent(child)
        with pytest.raises(ValueError):
            root.set_parent(root)

    def test_find_child(self, family):
        assert family.find_child("Fido").species == "dog"
        assert family.find_child(type_tag="Pet").object_name == "Fido"
        assert family.find_child("Nobody") is None
        assert len(family.find_children(type_tag="Pet")) == 2

    def test_object_name_none_becomes_empty(self):
        node = Pet()
        node.object_name = None
        assert node.object_name == ""


class TestPropertyEnumeration:
    """Declared and dynamic properties exposed by the adapter."""

    def test_adapter_satisfies_protocol(self):
        assert isinstance(ADAPTER, ReflectionAdapter)

    def test_declared_order_and_flags(self, profile):
        descriptors = ADAPTER.properties_of(profile)
        names = [d.name for d in descriptors]
        assert names == ["height", "weight", "active", "born", "color", "tags",
                         "serial", "best_friend", "summary", "label"]
        flags = {d.name: d.writable for d in descriptors}
        assert flags["serial"] is False
        assert flags["summary"] is False
        assert flags["label"] is True
        assert flags["height"] is True

    def test_private_and_structural_names_hidden(self, profile):
        names = {d.name for d in ADAPTER.properties_of(profile)}
        assert "_label" not in names
        assert "object_name" not in names
        assert "children" not in names
        assert "type_tag" not in names

    def test_dynamic_properties_listed_last(self):
        pet = Pet(species="dog")
        ADAPTER.set(pet, "vaccinated", True)
        descriptors = ADAPTER.properties_of(pet)
        assert [d.name for d in descriptors] == ["species", "vaccinated"]
        assert descriptors[-1].dynamic
        assert ADAPTER.get(pet, "vaccinated") is True

    def test_declared_properties_cached_per_class(self, monkeypatch):
        calls = []
        resolve = reflection._declared_types

        def counting(cls):
            calls.append(cls)
            return resolve(cls)

        monkeypatch.setattr(reflection, "_declared_types", counting)
        adapter = NodeReflectionAdapter()
        p = Profile()
        for _ in range(3):
            adapter.set(p, "height", 1)
            adapter.get(p, "height")
            adapter.properties_of(p)
        adapter.properties_of(Profile())
        assert calls == [Profile]

    def test_node_types(self):
        assert ADAPTER.node_tag_of_type(Optional[Pet]) == "Pet"
        assert ADAPTER.node_tag_of_type(Optional[int]) is None
        assert ADAPTER.node_list_tag_of_type(List[Pet]) == "Pet"
        assert ADAPTER.node_list_tag_of_type(Sequence[Person]) == "Person"
        assert ADAPTER.node_list_tag_of_type(List[str]) is None
        assert ADAPTER.node_list_tag_of_type(Pet) is None


class TestPropertyWrites:
    """Coercion and rejection rules of NodeReflectionAdapter.set."""

    def test_text_coerced_to_declared_types(self):
        p = Profile()
        ADAPTER.set(p, "height", "170")
        ADAPTER.set(p, "weight", "61.5")
        ADAPTER.set(p, "active", "true")
        ADAPTER.set(p, "born", "1969-07-20")
        ADAPTER.set(p, "color", "green")
        assert p.height == 170
        assert p.weight == 61.5
        assert p.active is True
        assert p.born == date(1969, 7, 20)
        assert p.color is Color.GREEN

    def test_uncoercible_value_ignored(self):
        p = Profile(height=150)
        ADAPTER.set(p, "height", "tall")
        ADAPTER.set(p, "height", {"not": "a number"})
        assert p.height == 150

    def test_read_only_write_ignored(self):
        p = Profile()
        ADAPTER.set(p, "serial", "S-99")
        ADAPTER.set(p, "summary", "x")
        assert p.serial == "S-1"

    def test_property_setter_used(self):
        p = Profile()
        ADAPTER.set(p, "label", "captain")
        assert p.label == "captain"

    def test_closed_adapter_ignores_unknown_names(self):
        closed = NodeReflectionAdapter(accept_dynamic=False)
        pet = Pet()
        closed.set(pet, "vaccinated", True)
        assert pet.dynamic_property_names() == []

    def test_no_coercion_when_disabled(self):
        raw = NodeReflectionAdapter(coerce=False)
        p = Profile()
        raw.set(p, "height", "170")
        assert p.height == "170"


class TestCoerceValue:
    """Standalone coercion helper."""

    def test_optional(self):
        assert coerce_value(None, Optional[int]) is None
        assert coerce_value("5", Optional[int]) == 5

    def test_bool_strings(self):
        assert coerce_value("False", bool) is False
        assert coerce_value("1", bool) is True
        with pytest.raises(ValueError):
            coerce_value("maybe", bool)

    def test_int_from_float(self):
        assert coerce_value(3.0, int) == 3
        with pytest.raises(ValueError):
            coerce_value(3.5, int)

    def test_unknown_target_passthrough(self):
        assert coerce_value("x", None) == "x"
