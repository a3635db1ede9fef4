"""
Object factory for creating nodes during deserialization.

Maps type-tags to zero-argument constructors. The merge engine asks the
factory for a new node whenever serialized data names a child that has no
matching live counterpart. The factory is an ordinary value owned by the
caller and passed into each deserialize call; there is no global registry.

Example:
    >>> factory = ObjectFactory()
    >>> factory.register_class(Person)
    >>> factory.register("Pet", Pet)
    >>> deserialize(root, data, factory)
"""

import logging
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

Constructor = Callable[[], Any]


class ObjectFactory:
    """Registry of type-tag -> zero-argument constructor."""

    def __init__(self, creators: Optional[Dict[str, Constructor]] = None):
        self._creators: Dict[str, Constructor] = {}
        for tag, constructor in (creators or {}).items():
            self.register(tag, constructor)

    def register(self, tag: str, constructor: Constructor) -> None:
        """Register (or replace) the constructor for tag."""
        if not tag:
            raise ValueError("Factory tag must be a non-empty string")
        if not callable(constructor):
            raise TypeError(f"Constructor for {tag!r} is not callable: {constructor!r}")
        if tag in self._creators:
            logger.debug(f"Replacing factory creator for {tag!r}")
        self._creators[tag] = constructor

    def register_class(self, cls: type, tag: Optional[str] = None) -> None:
        """Register cls under tag, defaulting to its type_tag (or class name)."""
        self.register(tag or getattr(cls, 'type_tag', cls.__name__), cls)

    def register_child_class(self, cls: type, parent: Any, tag: Optional[str] = None) -> None:
        """Register cls with a constructor that parents each new instance under parent."""
        def create_child():
            child = cls()
            child.set_parent(parent)
            return child
        self.register(tag or getattr(cls, 'type_tag', cls.__name__), create_child)

    def unregister(self, tag: str) -> None:
        self._creators.pop(tag, None)

    def has(self, tag: str) -> bool:
        return tag in self._creators

    def get_creator(self, tag: str) -> Optional[Constructor]:
        return self._creators.get(tag)

    def tags(self) -> List[str]:
        return list(self._creators)

    def create(self, tag: str) -> Optional[Any]:
        """
        Build a fresh node for tag.

        Calls the registered constructor exactly once; every call yields a new
        object. Returns None when no constructor is registered.
        """
        constructor = self._creators.get(tag)
        if constructor is None:
            return None
        return constructor()

    def __contains__(self, tag: str) -> bool:
        return self.has(tag)

    def __len__(self) -> int:
        return len(self._creators)

    def __repr__(self):
        return f"ObjectFactory({sorted(self._creators)})"
