"""Name-keyed registry of record types, shared by directives and preconditions."""

from __future__ import annotations

import logging
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class TypeRegistry(Generic[T]):
    """Registry of record types keyed by their DSL element name.

    Subclasses set :attr:`kind` (used in messages) and :attr:`name_attribute`
    (the class variable that holds a type's default DSL name).
    """

    kind = "element"
    name_attribute = "element_name"

    def __init__(self) -> None:
        self._types: dict[str, type[T]] = {}

    def register(self, record_type: type[T], name: str | None = None) -> None:
        """Register a record type.

        Parameters
        ----------
        record_type:
            The class to register.
        name:
            DSL name; defaults to the class's name attribute.

        Raises
        ------
        ValueError
            If the name is empty or already registered.
        """
        key = name or getattr(record_type, self.name_attribute, "")
        if not key:
            raise ValueError(f"{self.kind.capitalize()} type {record_type.__name__} has no {self.name_attribute}.")
        if key in self._types:
            raise ValueError(
                f"{self.kind.capitalize()} '{key}' is already registered. Unregister the existing {self.kind} first."
            )
        self._types[key] = record_type
        logger.debug("Registered %s type: %s", self.kind, key)

    def unregister(self, name: str) -> None:
        if name not in self._types:
            raise KeyError(f"{self.kind.capitalize()} '{name}' is not registered.")
        del self._types[name]
        logger.debug("Unregistered %s type: %s", self.kind, name)

    def get(self, name: str) -> type[T] | None:
        """Look up a record type by name.  Returns ``None`` if unknown."""
        return self._types.get(name)

    def create(self, name: str) -> T:
        """Instantiate an empty record of the named type."""
        record_type = self._types.get(name)
        if record_type is None:
            raise KeyError(f"{self.kind.capitalize()} '{name}' is not registered.")
        return record_type()

    def get_names(self) -> list[str]:
        """Return all registered names, sorted."""
        return sorted(self._types)

    def items(self) -> list[tuple[str, type[T]]]:
        return sorted(self._types.items())

    def __len__(self) -> int:
        return len(self._types)

    def __contains__(self, name: object) -> bool:
        return name in self._types
