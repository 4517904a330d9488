"""SQL visitors produced by ``modifySql`` blocks."""

from __future__ import annotations

from typing import ClassVar

from pydantic import Field

from changelog_engine.models.base import DslRecord
from changelog_engine.models.filters import ContextExpression, Labels


class SqlVisitor(DslRecord):
    """Rewrites the SQL generated for a change set before it runs.

    ``applicable_dbms``, ``context_filter``, ``labels`` and
    ``apply_to_rollback`` are copied from the enclosing ``modifySql`` block.
    """

    visitor_name: ClassVar[str] = ""

    applicable_dbms: set[str] | None = None
    context_filter: ContextExpression | None = None
    labels: Labels | None = None
    apply_to_rollback: bool = False


class PrependSqlVisitor(SqlVisitor):
    visitor_name: ClassVar[str] = "prepend"

    value: str | None = None


class AppendSqlVisitor(SqlVisitor):
    visitor_name: ClassVar[str] = "append"

    value: str | None = None


class ReplaceSqlVisitor(SqlVisitor):
    visitor_name: ClassVar[str] = "replace"

    replace: str | None = None
    with_: str | None = Field(default=None, alias="with")


class RegExpReplaceSqlVisitor(SqlVisitor):
    visitor_name: ClassVar[str] = "regExpReplace"

    replace: str | None = None
    with_: str | None = Field(default=None, alias="with")


SQL_VISITOR_TYPES: dict[str, type[SqlVisitor]] = {
    visitor.visitor_name: visitor
    for visitor in (PrependSqlVisitor, AppendSqlVisitor, ReplaceSqlVisitor, RegExpReplaceSqlVisitor)
}
