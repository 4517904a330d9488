"""Precondition records, the logical containers that nest them, and their registry."""

from __future__ import annotations

from typing import ClassVar

from pydantic import Field

from changelog_engine.models.base import DslRecord
from changelog_engine.models.options import (
    ErrorOption,
    FailOption,
    ObjectQuotingStrategy,
    OnSqlOutputOption,
)
from changelog_engine.models.registry import TypeRegistry


class Precondition(DslRecord):
    """Base class for a single precondition check."""

    precondition_name: ClassVar[str] = ""
    positional_attribute: ClassVar[str | None] = None


class PreconditionLogic(Precondition):
    """A precondition that combines nested preconditions."""

    nested_preconditions: list[Precondition] = Field(default_factory=list)

    def add_nested_precondition(self, precondition: Precondition) -> None:
        self.nested_preconditions.append(precondition)


class AndPrecondition(PreconditionLogic):
    precondition_name: ClassVar[str] = "and"


class OrPrecondition(PreconditionLogic):
    precondition_name: ClassVar[str] = "or"


class NotPrecondition(PreconditionLogic):
    precondition_name: ClassVar[str] = "not"


class PreconditionContainer(AndPrecondition):
    """The top-level ``preConditions`` element of a change log or change set.

    All nested preconditions must pass.  The options say what happens when
    one fails or errors.
    """

    attribute_aliases: ClassVar[dict[str, str]] = {"onUpdateSql": "on_sql_output"}

    on_fail: FailOption | None = None
    on_error: ErrorOption | None = None
    on_sql_output: OnSqlOutputOption | None = None
    on_fail_message: str | None = None
    on_error_message: str | None = None


# ---------------------------------------------------------------------------
# Checks
# ---------------------------------------------------------------------------


class DbmsPrecondition(Precondition):
    precondition_name: ClassVar[str] = "dbms"

    type: str | None = None


class RunningAsPrecondition(Precondition):
    precondition_name: ClassVar[str] = "runningAs"

    username: str | None = None


class ChangeSetExecutedPrecondition(Precondition):
    precondition_name: ClassVar[str] = "changeSetExecuted"

    id: str | None = None
    author: str | None = None
    change_log_file: str | None = None


class ColumnExistsPrecondition(Precondition):
    precondition_name: ClassVar[str] = "columnExists"

    catalog_name: str | None = None
    schema_name: str | None = None
    table_name: str | None = None
    column_name: str | None = None


class TableExistsPrecondition(Precondition):
    precondition_name: ClassVar[str] = "tableExists"

    catalog_name: str | None = None
    schema_name: str | None = None
    table_name: str | None = None


class ViewExistsPrecondition(Precondition):
    precondition_name: ClassVar[str] = "viewExists"

    catalog_name: str | None = None
    schema_name: str | None = None
    view_name: str | None = None


class IndexExistsPrecondition(Precondition):
    precondition_name: ClassVar[str] = "indexExists"

    catalog_name: str | None = None
    schema_name: str | None = None
    table_name: str | None = None
    index_name: str | None = None
    column_names: str | None = None


class SequenceExistsPrecondition(Precondition):
    precondition_name: ClassVar[str] = "sequenceExists"

    catalog_name: str | None = None
    schema_name: str | None = None
    sequence_name: str | None = None


class ForeignKeyExistsPrecondition(Precondition):
    precondition_name: ClassVar[str] = "foreignKeyConstraintExists"

    catalog_name: str | None = None
    schema_name: str | None = None
    foreign_key_table_name: str | None = None
    foreign_key_name: str | None = None


class PrimaryKeyExistsPrecondition(Precondition):
    precondition_name: ClassVar[str] = "primaryKeyExists"

    catalog_name: str | None = None
    schema_name: str | None = None
    table_name: str | None = None
    primary_key_name: str | None = None


class SqlPrecondition(Precondition):
    """``sqlCheck``; the query may be given positionally."""

    precondition_name: ClassVar[str] = "sqlCheck"
    positional_attribute: ClassVar[str | None] = "sql"

    expected_result: str | None = None
    sql: str | None = None


class ChangeLogPropertyDefinedPrecondition(Precondition):
    precondition_name: ClassVar[str] = "changeLogPropertyDefined"

    property: str | None = None
    value: str | None = None


class TableIsEmptyPrecondition(Precondition):
    precondition_name: ClassVar[str] = "tableIsEmpty"

    catalog_name: str | None = None
    schema_name: str | None = None
    table_name: str | None = None


class RowCountPrecondition(Precondition):
    precondition_name: ClassVar[str] = "rowCount"

    catalog_name: str | None = None
    schema_name: str | None = None
    table_name: str | None = None
    expected_rows: int | None = None


class ObjectQuotingStrategyPrecondition(Precondition):
    precondition_name: ClassVar[str] = "expectedQuotingStrategy"

    strategy: ObjectQuotingStrategy | None = None


DEFAULT_PRECONDITION_TYPES: tuple[type[Precondition], ...] = (
    DbmsPrecondition,
    RunningAsPrecondition,
    ChangeSetExecutedPrecondition,
    ColumnExistsPrecondition,
    TableExistsPrecondition,
    ViewExistsPrecondition,
    IndexExistsPrecondition,
    SequenceExistsPrecondition,
    ForeignKeyExistsPrecondition,
    PrimaryKeyExistsPrecondition,
    SqlPrecondition,
    ChangeLogPropertyDefinedPrecondition,
    TableIsEmptyPrecondition,
    RowCountPrecondition,
    ObjectQuotingStrategyPrecondition,
)


class PreconditionRegistry(TypeRegistry[Precondition]):
    """Registry of precondition check types keyed by their DSL name."""

    kind = "precondition"
    name_attribute = "precondition_name"


def create_default_precondition_registry() -> PreconditionRegistry:
    registry = PreconditionRegistry()
    for precondition_type in DEFAULT_PRECONDITION_TYPES:
        registry.register(precondition_type)
    return registry
