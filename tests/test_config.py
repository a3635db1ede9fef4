"""Tests for serializer configuration and scoping."""
import dataclasses

import pytest

from proptree import DEFAULT_CONFIG, SerializerConfig, get_current_config, serialize, serializer_config
from proptree.config import resolve_config
from conftest import make_pet


def test_defaults():
    config = SerializerConfig()
    assert config.instance_name_key == "objectName"
    assert config.base_type_tag == "Node"
    assert config.unbounded_depth == -1
    assert config.include_read_only is True
    assert config.include_instance_name is True
    assert get_current_config() is DEFAULT_CONFIG


def test_config_is_frozen():
    with pytest.raises(dataclasses.FrozenInstanceError):
        DEFAULT_CONFIG.instance_name_key = "name"


def test_replace_returns_copy():
    changed = DEFAULT_CONFIG.replace(json_indent=2)
    assert changed.json_indent == 2
    assert DEFAULT_CONFIG.json_indent == 4


class TestScoping:
    """serializer_config() context manager."""

    def test_nested_scopes_restore(self):
        with serializer_config(instance_name_key="name") as outer:
            assert get_current_config() is outer
            with serializer_config(include_read_only=False) as inner:
                # Inner scope refines the outer one
                assert inner.instance_name_key == "name"
                assert inner.include_read_only is False
            assert get_current_config() is outer
        assert get_current_config() is DEFAULT_CONFIG

    def test_restored_after_exception(self):
        with pytest.raises(RuntimeError):
            with serializer_config(base_type_tag="Base"):
                raise RuntimeError("boom")
        assert get_current_config().base_type_tag == "Node"

    def test_explicit_config_wins(self):
        explicit = SerializerConfig(instance_name_key="id")
        with serializer_config(instance_name_key="name"):
            assert resolve_config(explicit) is explicit
            data = serialize(make_pet("dog", "Rex"), config=explicit)
        assert data == {"id": "Rex", "species": "dog"}

    def test_scoped_defaults_used_by_serialize(self):
        pet = make_pet("dog", "Rex")
        with serializer_config(include_instance_name=False):
            assert serialize(pet) == {"species": "dog"}
        assert serialize(pet) == {"objectName": "Rex", "species": "dog"}
