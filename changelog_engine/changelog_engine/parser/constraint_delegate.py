"""Delegate for the block nested inside a ``column``: its constraints."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, ClassVar

from changelog_engine.errors import ChangeLogParseError, PropertyBindingError
from changelog_engine.models.columns import ColumnConfig, ConstraintsConfig
from changelog_engine.parser.property_binder import bind_property, has_property
from changelog_engine.parser.script import Delegate, ScriptContext


class ConstraintDelegate(Delegate):
    """Builds the :class:`ConstraintsConfig` of one column.

    Constraints are given either as attributes of a ``constraints`` element
    or one per element, named after the attribute (``nullable(False)``).
    """

    elements: ClassVar[dict[str, str]] = {"constraints": "constraints"}

    def __init__(self, script: ScriptContext, owner: str, change_name: str, column: ColumnConfig) -> None:
        super().__init__(script, owner)
        self.change_name = change_name
        if column.constraints is None:
            column.constraints = ConstraintsConfig()
        self.constraint = column.constraints

    def constraints(self, **params: Any) -> None:
        for key, value in params.items():
            self._set(key, value)

    def resolve_dynamic(self, name: str) -> Callable[..., Any] | None:
        if not has_property(self.constraint, name):
            return None

        def _set_one(value: Any) -> None:
            self._set(name, value)

        return _set_one

    def _set(self, key: str, value: Any) -> None:
        try:
            bind_property(self.constraint, key, self.expand(value))
        except PropertyBindingError as exc:
            raise ChangeLogParseError(
                f"{self.owner}: '{key}' is not a valid constraint attribute for '{self.change_name}' changes."
            ) from exc

    def missing(self, name: str) -> ChangeLogParseError:
        return ChangeLogParseError(
            f"{self.owner}: '{name}' is not a valid child element of constraint closures in {self.change_name} changes"
        )
