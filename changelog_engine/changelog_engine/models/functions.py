"""Function-valued column values: computed expressions and sequence lookups."""

from __future__ import annotations


class DatabaseFunction:
    """A value computed by the database, e.g. ``NOW()``."""

    def __init__(self, value: str) -> None:
        self.value = value

    def __str__(self) -> str:
        return self.value

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.value!r})"

    def __eq__(self, other: object) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return self.value == other.value  # type: ignore[attr-defined]

    def __hash__(self) -> int:
        return hash((type(self).__name__, self.value))


class SequenceNextValueFunction(DatabaseFunction):
    """The next value of the named sequence."""


class SequenceCurrentValueFunction(DatabaseFunction):
    """The current value of the named sequence."""
