"""Pytest configuration and shared fixtures."""
import pytest
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import List, Optional

from proptree import LiveNode, ObjectFactory, node_field


@dataclass(eq=False)
class Person(LiveNode):
    """Test person node - a single writable property."""
    age: int = 0


@dataclass(eq=False)
class Pet(LiveNode):
    """Test pet node."""
    species: str = ""


class Color(Enum):
    RED = "red"
    GREEN = "green"


@dataclass(eq=False)
class Profile(LiveNode):
    """Test node covering the property kinds the adapter understands."""
    height: int = 0
    weight: float = 0.0
    active: bool = False
    born: Optional[date] = None
    color: Color = Color.RED
    tags: List[str] = field(default_factory=list)
    serial: str = node_field("S-1", read_only=True)
    best_friend: Optional[LiveNode] = None
    _label: str = ""

    @property
    def summary(self) -> str:
        return f"{self.height}cm"

    @property
    def label(self) -> str:
        return self._label

    @label.setter
    def label(self, value: str) -> None:
        self._label = value


def make_pet(species: str, name: str = "") -> Pet:
    pet = Pet(species=species)
    pet.object_name = name
    return pet


@pytest.fixture
def family():
    """Person (age 30) with two pets: dog 'Fido' and an unnamed cat."""
    root = Person(age=30)
    root.add_child(make_pet("dog", "Fido"))
    root.add_child(make_pet("cat"))
    return root


@pytest.fixture
def factory():
    """Factory able to create every test node kind."""
    f = ObjectFactory()
    f.register_class(Person)
    f.register_class(Pet)
    f.register_class(Profile)
    return f


@pytest.fixture
def profile():
    """Populated Profile node."""
    p = Profile(height=170, weight=61.5, active=True, born=date(1969, 7, 20),
                color=Color.GREEN, tags=["a", "b"])
    p.object_name = "Jane"
    p.label = "lead"
    return p
