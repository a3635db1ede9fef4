"""Tests for ObjectFactory."""
import pytest

from proptree import LiveNode, ObjectFactory
from conftest import Person, Pet


def test_register_and_create():
    """create() returns a fresh, unparented node."""
    factory = ObjectFactory()
    factory.register("Pet", Pet)
    assert factory.has("Pet")
    pet = factory.create("Pet")
    assert isinstance(pet, Pet)
    assert pet.parent is None


def test_create_returns_distinct_nodes():
    """No identity caching between calls."""
    factory = ObjectFactory({"Pet": Pet})
    assert factory.create("Pet") is not factory.create("Pet")


def test_constructor_called_once_per_create():
    calls = []

    def make_pet():
        calls.append(1)
        return Pet()

    factory = ObjectFactory()
    factory.register("Pet", make_pet)
    factory.create("Pet")
    factory.create("Pet")
    assert len(calls) == 2


def test_create_unknown_tag_returns_none():
    factory = ObjectFactory()
    assert factory.create("Ghost") is None
    assert not factory.has("Ghost")
    assert "Ghost" not in factory


def test_register_rejects_bad_input():
    factory = ObjectFactory()
    with pytest.raises(TypeError):
        factory.register("Pet", "not callable")
    with pytest.raises(ValueError):
        factory.register("", Pet)


def test_register_class_uses_type_tag():
    """register_class keys on the class type_tag."""
    class Robot(LiveNode):
        type_tag = "Droid"

    factory = ObjectFactory()
    factory.register_class(Person)
    factory.register_class(Robot)
    assert factory.tags() == ["Person", "Droid"]
    assert isinstance(factory.create("Droid"), Robot)


def test_register_child_class_binds_parent():
    root = Person()
    factory = ObjectFactory()
    factory.register_child_class(Pet, root)
    pet = factory.create("Pet")
    assert pet.parent is root
    assert root.children == [pet]


def test_unregister_and_len():
    factory = ObjectFactory({"Pet": Pet, "Person": Person})
    assert len(factory) == 2
    factory.unregister("Pet")
    assert len(factory) == 1
    assert factory.get_creator("Pet") is None
    assert factory.get_creator("Person") is Person
    factory.unregister("Pet")  # missing tag is a no-op
