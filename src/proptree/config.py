"""
Serializer configuration.

Holds the policy knobs shared by the merge engine and the format codecs.
A configuration can be passed explicitly to every entry point, or scoped for
a block of code with serializer_config():

    >>> with serializer_config(instance_name_key="name"):
    ...     data = serialize(root)

Scoping uses contextvars, so nested scopes restore the outer configuration
on exit and nothing leaks across threads or tasks.
"""

import contextvars
import dataclasses
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SerializerConfig:
    """Immutable serializer settings.

    Attributes:
        instance_name_key: Reserved map key carrying a node's instance-name.
        base_type_tag: Type-tag of the universal base node kind, constructed
            without a factory entry.
        unbounded_depth: max_depth sentinel meaning "serialize all descendants".
        include_read_only: Default for serialize(include_read_only=...).
        include_instance_name: Default for serialize(include_instance_name=...).
        json_indent: Indentation used when writing JSON text.
        xml_indent: Indentation used when writing XML text.
        encoding: Text encoding of files written and read by the codecs.
    """
    instance_name_key: str = "objectName"
    base_type_tag: str = "Node"
    unbounded_depth: int = -1
    include_read_only: bool = True
    include_instance_name: bool = True
    json_indent: Optional[int] = 4
    xml_indent: str = "  "
    encoding: str = "utf-8"

    def replace(self, **changes) -> 'SerializerConfig':
        """Return a copy with the given fields changed."""
        return dataclasses.replace(self, **changes)


DEFAULT_CONFIG = SerializerConfig()

# Innermost configuration scoped by serializer_config()
current_config: contextvars.ContextVar[SerializerConfig] = contextvars.ContextVar(
    'current_serializer_config', default=DEFAULT_CONFIG
)


def get_current_config() -> SerializerConfig:
    """Return the scoped configuration, or the defaults outside any scope."""
    return current_config.get()


def resolve_config(config: Optional[SerializerConfig] = None) -> SerializerConfig:
    """An explicit configuration wins over the scoped one."""
    return config if config is not None else current_config.get()


@contextmanager
def serializer_config(config: Optional[SerializerConfig] = None, **overrides):
    """
    Scope a serializer configuration for the enclosed block.

    Args:
        config: Base configuration. Defaults to the currently scoped one, so
            nested scopes refine their parent.
        **overrides: Field values replacing those of the base configuration.

    Yields:
        The configuration in effect inside the block.
    """
    base = config if config is not None else current_config.get()
    scoped = base.replace(**overrides) if overrides else base
    token = current_config.set(scoped)
    logger.debug(f"Entered serializer config scope: {scoped}")
    try:
        yield scoped
    finally:
        current_config.reset(token)
