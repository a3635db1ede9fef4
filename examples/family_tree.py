"""
Family tree example for proptree.

Defines a small household object model (people, pets and an address), saves
it as JSON and XML, then restores it into a fresh tree through an
ObjectFactory. Run it directly to see the serialized forms:

    python examples/family_tree.py
"""

import logging
import tempfile
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from pathlib import Path
from typing import List, Optional

from proptree import (
    LiveNode,
    ObjectFactory,
    deserialize,
    load_new_xml,
    node_field,
    read_json,
    save_xml,
    serialize,
    write_json,
)
from proptree.xml_codec import to_xml, to_xml_string

logger = logging.getLogger(__name__)


class Species(Enum):
    """Kinds of pet the household can keep."""
    DOG = "dog"
    CAT = "cat"
    FISH = "fish"


@dataclass(eq=False)
class Address(LiveNode):
    """Postal address, referenced from a Person rather than owned as a child."""
    street: str = ""
    city: str = ""


@dataclass(eq=False)
class Pet(LiveNode):
    species: Species = Species.DOG
    born: Optional[date] = None


@dataclass(eq=False)
class Person(LiveNode):
    """A household member. Children of a Person are its pets and dependants."""
    age: int = 0
    nicknames: List[str] = field(default_factory=list)
    member_id: str = node_field("", read_only=True)
    home: Address = field(default_factory=Address)

    @property
    def pet_count(self) -> int:
        return len(self.find_children(type_tag="Pet", recursive=False))


def build_household() -> Person:
    """Jane, her son John, and their pets."""
    jane = Person(age=52, nicknames=["J"], member_id="M-001",
                  home=Address(street="1 Elm Street", city="Springfield"))
    jane.object_name = "Jane"

    fido = jane.add_child(Pet(species=Species.DOG, born=date(2019, 4, 1)))
    fido.object_name = "Fido"
    jane.add_child(Pet(species=Species.CAT))

    john = jane.add_child(Person(age=20))
    john.object_name = "John"
    john.add_child(Pet(species=Species.FISH))
    return jane


def household_factory() -> ObjectFactory:
    factory = ObjectFactory()
    factory.register_class(Person)
    factory.register_class(Pet)
    # XML documents name their root after the root node's instance-name
    factory.register("Jane", Person)
    return factory


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(name)s %(levelname)s: %(message)s")
    jane = build_household()
    factory = household_factory()

    data = serialize(jane)
    logger.info(f"Serialized household: {data}")
    logger.info("As XML:\n" + to_xml_string(to_xml("Jane", data, attribute_keys=["species"])))

    with tempfile.TemporaryDirectory() as tmp:
        json_path = Path(tmp) / "household.json"
        xml_path = Path(tmp) / "household.xml"

        if not write_json(jane, json_path):
            raise SystemExit(f"Could not write {json_path}")
        restored = Person()
        read_json(restored, json_path, factory)
        logger.info(f"From JSON: {restored.object_name}, {restored.pet_count} pets, "
                    f"lives at {restored.home.street}")

        save_xml(jane, xml_path, attribute_keys=["species"])
        from_xml = load_new_xml(xml_path, factory)
        john = from_xml.find_child("John") if from_xml else None
        logger.info(f"From XML: John is {john.age if john else '?'}")

    # Merging is additive: a partial update only touches what it names
    deserialize(jane, {"Person": {"objectName": "John", "age": 21}})
    logger.info(f"After birthday: John is {jane.find_child('John').age}")


if __name__ == "__main__":
    main()
