"""Delegate for ``modifySql`` blocks inside a change set."""

from __future__ import annotations

from typing import Any, ClassVar

from changelog_engine.errors import ChangeLogParseError
from changelog_engine.models.change_set import ChangeSet
from changelog_engine.models.filters import ContextExpression, Labels, split_dbms
from changelog_engine.models.sql_visitors import SQL_VISITOR_TYPES, SqlVisitor
from changelog_engine.parser.delegate_util import parse_truth
from changelog_engine.parser.record_builder import populate_record
from changelog_engine.parser.script import Delegate, ScriptContext

MODIFY_SQL_ATTRIBUTES = ("dbms", "context", "contextFilter", "labels", "applyToRollback")


class ModifySqlDelegate(Delegate):
    """Creates SQL visitors that share the filters of their ``modifySql`` block."""

    elements: ClassVar[dict[str, str]] = {
        "prepend": "prepend",
        "append": "append",
        "replace": "replace",
        "regExpReplace": "reg_exp_replace",
    }

    def __init__(self, script: ScriptContext, owner: str, change_set: ChangeSet, params: dict[str, Any]) -> None:
        super().__init__(script, owner)
        self.change_set = change_set

        self.dbms = split_dbms(self.expand(params.get("dbms")))
        context = params.get("contextFilter") or params.get("context")
        self.context_filter = ContextExpression(str(self.expand(context))) if context else None
        labels = params.get("labels")
        self.labels = Labels(str(self.expand(labels))) if labels else None
        self.apply_to_rollback = parse_truth(params.get("applyToRollback"), False)

    def prepend(self, **params: Any) -> SqlVisitor:
        return self._add_visitor("prepend", params)

    def append(self, **params: Any) -> SqlVisitor:
        return self._add_visitor("append", params)

    def replace(self, **params: Any) -> SqlVisitor:
        return self._add_visitor("replace", params)

    def reg_exp_replace(self, **params: Any) -> SqlVisitor:
        return self._add_visitor("regExpReplace", params)

    def _add_visitor(self, visitor_name: str, params: dict[str, Any]) -> SqlVisitor:
        visitor = populate_record(
            SQL_VISITOR_TYPES[visitor_name](),
            visitor_name,
            self.owner,
            (),
            params,
            self.expand,
            lambda key: f"{self.owner}: '{key}' is not a valid attribute for '{visitor_name}' modifySql elements.",
        )
        if self.dbms:
            visitor.applicable_dbms = set(self.dbms)
        if self.context_filter is not None:
            visitor.context_filter = self.context_filter
        if self.labels is not None:
            visitor.labels = self.labels
        visitor.apply_to_rollback = self.apply_to_rollback
        self.change_set.add_sql_visitor(visitor)
        return visitor

    def missing(self, name: str) -> ChangeLogParseError:
        return ChangeLogParseError(f"{self.owner}: '{name}' is not a valid child element of modifySql closures.")
