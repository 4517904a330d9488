"""Column, constraint and where-parameter records nested inside change directives."""

from __future__ import annotations

from datetime import datetime, time
from decimal import Decimal
from enum import Enum

from changelog_engine.models.base import DslRecord
from changelog_engine.models.functions import (
    DatabaseFunction,
    SequenceCurrentValueFunction,
    SequenceNextValueFunction,
)


class ForeignKeyConstraintType(str, Enum):
    """Referential actions for foreign keys.

    The constant names do not match the SQL spelling (``importedKeyCascade``
    vs ``CASCADE``), so the property binder never selects a writer typed with
    this enum.
    """

    importedKeyCascade = "CASCADE"
    importedKeySetNull = "SET NULL"
    importedKeySetDefault = "SET DEFAULT"
    importedKeyRestrict = "RESTRICT"
    importedKeyNoAction = "NO ACTION"


class ConstraintsConfig(DslRecord):
    """Constraints declared in a ``constraints`` element nested in a column."""

    nullable: bool | None = None
    not_null_constraint_name: str | None = None
    primary_key: bool | None = None
    primary_key_name: str | None = None
    primary_key_tablespace: str | None = None
    unique: bool | None = None
    unique_constraint_name: str | None = None
    check_constraint: str | None = None
    references: str | None = None
    referenced_table_catalog_name: str | None = None
    referenced_table_schema_name: str | None = None
    referenced_table_name: str | None = None
    referenced_column_names: str | None = None
    foreign_key_name: str | None = None
    delete_cascade: bool | None = None
    deferrable: bool | None = None
    initially_deferred: bool | None = None
    validate_nullable: bool | None = None
    validate_unique: bool | None = None
    validate_primary_key: bool | None = None
    validate_foreign_key: bool | None = None


class ColumnConfig(DslRecord):
    """A column as used by most change directives and by ``whereParams``."""

    name: str | None = None
    computed: bool | None = None
    type: str | None = None
    value: str | None = None
    value_numeric: Decimal | None = None
    value_date: datetime | time | DatabaseFunction | None = None
    value_boolean: bool | None = None
    value_computed: DatabaseFunction | None = None
    value_sequence_next: SequenceNextValueFunction | None = None
    value_sequence_current: SequenceCurrentValueFunction | None = None
    value_blob_file: str | None = None
    value_clob_file: str | None = None
    encoding: str | None = None
    default_value: str | None = None
    default_value_numeric: Decimal | None = None
    default_value_date: datetime | time | DatabaseFunction | None = None
    default_value_boolean: bool | None = None
    default_value_computed: DatabaseFunction | None = None
    default_value_sequence_next: SequenceNextValueFunction | None = None
    default_value_constraint_name: str | None = None
    auto_increment: bool | None = None
    start_with: int | None = None
    increment_by: int | None = None
    generation_type: str | None = None
    default_on_null: bool | None = None
    remarks: str | None = None
    descending: bool | None = None
    constraints: ConstraintsConfig | None = None


class AddColumnConfig(ColumnConfig):
    """A column of an ``addColumn`` change, which may be positioned."""

    before_column: str | None = None
    after_column: str | None = None
    position: int | None = None


class LoadDataColumnConfig(ColumnConfig):
    """A column mapping of a ``loadData``/``loadUpdateData`` change."""

    header: str | None = None
    index: int | None = None
    allow_update: bool | None = None
    null_placeholder: str | None = None
