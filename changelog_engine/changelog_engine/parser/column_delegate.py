"""Delegate for the block nested inside a change directive.

Handles ``column``, ``where`` and ``whereParams``.  Whether a directive
accepts columns or where clauses is decided by the directive record itself.
"""

from __future__ import annotations

from typing import Any, ClassVar

from changelog_engine.errors import ChangeLogParseError, PropertyBindingError
from changelog_engine.models.changes import Change
from changelog_engine.models.columns import ColumnConfig
from changelog_engine.parser.constraint_delegate import ConstraintDelegate
from changelog_engine.parser.property_binder import bind_property, has_property
from changelog_engine.parser.script import Block, Delegate, Handle, ScriptContext
from changelog_engine.parser.where_params_delegate import WhereParamsDelegate


class ColumnDelegate(Delegate):
    elements: ClassVar[dict[str, str]] = {
        "column": "column",
        "where": "where",
        "whereParams": "where_params",
    }

    def __init__(self, script: ScriptContext, owner: str, change_name: str, change: Change) -> None:
        super().__init__(script, owner)
        self.change_name = change_name
        self.change = change

    def column(self, **params: Any) -> Handle:
        """Build a column and attach it to the change.

        The column record type is the one the change asks for; entering the
        returned handle opens a block for the column's constraints.
        """
        column_class = getattr(self.change, "column_config_class", ColumnConfig)
        column = column_class()
        for key, value in params.items():
            try:
                bind_property(column, key, self.expand(value))
            except PropertyBindingError as exc:
                raise ChangeLogParseError(
                    f"{self.owner}: '{key}' is not a valid column attribute for '{self.change_name}' changes."
                ) from exc

        add_column = getattr(self.change, "add_column", None)
        if add_column is None:
            raise ChangeLogParseError(f"{self.owner}: columns are not allowed in '{self.change_name}' changes.")
        add_column(column)

        return self.script.handle(
            column,
            lambda: ConstraintDelegate(self.script, self.owner, self.change_name, column),
        )

    def where(self, clause: str) -> None:
        if not has_property(self.change, "where"):
            raise ChangeLogParseError(f"{self.owner}: a where clause is invalid for '{self.change_name}' changes.")
        try:
            bind_property(self.change, "where", self.expand(clause))
        except PropertyBindingError as exc:
            raise ChangeLogParseError(
                f"{self.owner}: a where clause is invalid for '{self.change_name}' changes."
            ) from exc

    def where_params(self) -> Block:
        return self.script.block(
            "whereParams",
            lambda: WhereParamsDelegate(self.script, self.owner, self.change_name, self.change),
        )

    def missing(self, name: str) -> ChangeLogParseError:
        return ChangeLogParseError(
            f"{self.owner}: '{name}' is not a valid child element of {self.change_name} changes"
        )
