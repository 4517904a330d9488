"""Delegate for ``whereParams`` blocks: positional parameters of a where clause."""

from __future__ import annotations

from typing import Any, ClassVar

from changelog_engine.errors import ChangeLogParseError, PropertyBindingError
from changelog_engine.models.changes import Change
from changelog_engine.models.columns import ColumnConfig
from changelog_engine.parser.property_binder import bind_property
from changelog_engine.parser.script import Delegate, ScriptContext


class WhereParamsDelegate(Delegate):
    elements: ClassVar[dict[str, str]] = {"param": "param"}

    def __init__(self, script: ScriptContext, owner: str, change_name: str, change: Change) -> None:
        super().__init__(script, owner)
        self.change_name = change_name
        self.change = change

    def param(self, **params: Any) -> ColumnConfig:
        """Build one where parameter and append it to the change."""
        column = ColumnConfig()
        for key, value in params.items():
            try:
                bind_property(column, key, self.expand(value))
            except PropertyBindingError as exc:
                raise ChangeLogParseError(
                    f"{self.owner}: '{key}' is not a valid whereParams attribute for '{self.change_name}' changes."
                ) from exc

        add_where_param = getattr(self.change, "add_where_param", None)
        if add_where_param is None:
            raise ChangeLogParseError(f"{self.owner}: whereParams are not allowed in '{self.change_name}' changes.")
        add_where_param(column)
        return column

    def missing(self, name: str) -> ChangeLogParseError:
        return ChangeLogParseError(
            f"{self.owner}: '{name}' is not a valid child element of whereParams closures in {self.change_name} changes"
        )
