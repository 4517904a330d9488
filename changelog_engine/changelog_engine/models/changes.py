"""Structural directive records and the registry that maps DSL names to them.

Each directive is a flat pydantic record populated attribute by attribute by
the property binder.  The compiler never interprets a directive; it only
checks whether a directive accepts nested columns (:meth:`add_column`) or
where parameters (:meth:`add_where_param`).
"""

from __future__ import annotations

from datetime import datetime, time
from decimal import Decimal
from typing import Any, ClassVar

from pydantic import Field, PrivateAttr

from changelog_engine.models.base import DslRecord
from changelog_engine.models.columns import (
    AddColumnConfig,
    ColumnConfig,
    ForeignKeyConstraintType,
    LoadDataColumnConfig,
)
from changelog_engine.models.functions import DatabaseFunction, SequenceNextValueFunction
from changelog_engine.models.registry import TypeRegistry


class Change(DslRecord):
    """Base class for all structural directives.

    ``positional_attribute`` names the attribute a script may pass as the
    directive's single positional argument.
    """

    change_name: ClassVar[str] = ""
    positional_attribute: ClassVar[str | None] = None


class ChangeWithColumns(Change):
    """A directive that accepts nested ``column`` elements."""

    column_config_class: ClassVar[type[ColumnConfig]] = ColumnConfig

    columns: list[ColumnConfig] = Field(default_factory=list)

    def add_column(self, column: ColumnConfig) -> None:
        self.columns.append(column)


class ResourceChange(Change):
    """A directive that reads a file through the resource accessor at run time."""

    _resource_accessor: Any = PrivateAttr(default=None)

    @property
    def resource_accessor(self) -> Any:
        return self._resource_accessor

    def bind_resource_accessor(self, resource_accessor: Any) -> None:
        self._resource_accessor = resource_accessor


# ---------------------------------------------------------------------------
# Structural refactorings
# ---------------------------------------------------------------------------


class CreateTableChange(ChangeWithColumns):
    change_name: ClassVar[str] = "createTable"

    catalog_name: str | None = None
    schema_name: str | None = None
    table_name: str | None = None
    tablespace: str | None = None
    remarks: str | None = None
    table_type: str | None = None
    if_not_exists: bool | None = None


class DropTableChange(Change):
    change_name: ClassVar[str] = "dropTable"

    catalog_name: str | None = None
    schema_name: str | None = None
    table_name: str | None = None
    cascade_constraints: bool | None = None


class RenameTableChange(Change):
    change_name: ClassVar[str] = "renameTable"

    catalog_name: str | None = None
    schema_name: str | None = None
    old_table_name: str | None = None
    new_table_name: str | None = None


class AddColumnChange(ChangeWithColumns):
    change_name: ClassVar[str] = "addColumn"
    column_config_class: ClassVar[type[ColumnConfig]] = AddColumnConfig

    catalog_name: str | None = None
    schema_name: str | None = None
    table_name: str | None = None


class DropColumnChange(ChangeWithColumns):
    change_name: ClassVar[str] = "dropColumn"

    catalog_name: str | None = None
    schema_name: str | None = None
    table_name: str | None = None
    column_name: str | None = None


class RenameColumnChange(Change):
    change_name: ClassVar[str] = "renameColumn"

    catalog_name: str | None = None
    schema_name: str | None = None
    table_name: str | None = None
    old_column_name: str | None = None
    new_column_name: str | None = None
    column_data_type: str | None = None
    remarks: str | None = None


class ModifyDataTypeChange(Change):
    change_name: ClassVar[str] = "modifyDataType"

    catalog_name: str | None = None
    schema_name: str | None = None
    table_name: str | None = None
    column_name: str | None = None
    new_data_type: str | None = None


class CreateViewChange(Change):
    change_name: ClassVar[str] = "createView"

    catalog_name: str | None = None
    schema_name: str | None = None
    view_name: str | None = None
    select_query: str | None = None
    replace_if_exists: bool | None = None
    full_definition: bool | None = None
    remarks: str | None = None


class DropViewChange(Change):
    change_name: ClassVar[str] = "dropView"

    catalog_name: str | None = None
    schema_name: str | None = None
    view_name: str | None = None
    if_exists: bool | None = None


class RenameViewChange(Change):
    change_name: ClassVar[str] = "renameView"

    catalog_name: str | None = None
    schema_name: str | None = None
    old_view_name: str | None = None
    new_view_name: str | None = None


class CreateIndexChange(ChangeWithColumns):
    change_name: ClassVar[str] = "createIndex"

    catalog_name: str | None = None
    schema_name: str | None = None
    table_name: str | None = None
    index_name: str | None = None
    unique: bool | None = None
    clustered: bool | None = None
    tablespace: str | None = None


class DropIndexChange(Change):
    change_name: ClassVar[str] = "dropIndex"

    catalog_name: str | None = None
    schema_name: str | None = None
    table_name: str | None = None
    index_name: str | None = None


# ---------------------------------------------------------------------------
# Referential integrity
# ---------------------------------------------------------------------------


class AddForeignKeyConstraintChange(Change):
    """``onDelete``/``onUpdate`` accept either spelling; the string writer wins."""

    change_name: ClassVar[str] = "addForeignKeyConstraint"

    base_table_catalog_name: str | None = None
    base_table_schema_name: str | None = None
    base_table_name: str | None = None
    base_column_names: str | None = None
    constraint_name: str | None = None
    referenced_table_catalog_name: str | None = None
    referenced_table_schema_name: str | None = None
    referenced_table_name: str | None = None
    referenced_column_names: str | None = None
    deferrable: bool | None = None
    initially_deferred: bool | None = None
    on_delete: ForeignKeyConstraintType | str | None = None
    on_update: ForeignKeyConstraintType | str | None = None
    delete_cascade: bool | None = None
    validate_: bool | None = Field(default=None, alias="validate")

    def __setattr__(self, name: str, value: Any) -> None:
        super().__setattr__(name, value)
        if name == "delete_cascade" and value:
            super().__setattr__("on_delete", "CASCADE")


class DropForeignKeyConstraintChange(Change):
    change_name: ClassVar[str] = "dropForeignKeyConstraint"

    base_table_catalog_name: str | None = None
    base_table_schema_name: str | None = None
    base_table_name: str | None = None
    constraint_name: str | None = None


class DropAllForeignKeyConstraintsChange(Change):
    change_name: ClassVar[str] = "dropAllForeignKeyConstraints"

    base_table_catalog_name: str | None = None
    base_table_schema_name: str | None = None
    base_table_name: str | None = None


class AddPrimaryKeyChange(Change):
    change_name: ClassVar[str] = "addPrimaryKey"

    catalog_name: str | None = None
    schema_name: str | None = None
    table_name: str | None = None
    column_names: str | None = None
    constraint_name: str | None = None
    tablespace: str | None = None
    clustered: bool | None = None
    for_index_name: str | None = None
    validate_: bool | None = Field(default=None, alias="validate")


class DropPrimaryKeyChange(Change):
    change_name: ClassVar[str] = "dropPrimaryKey"

    catalog_name: str | None = None
    schema_name: str | None = None
    table_name: str | None = None
    constraint_name: str | None = None
    drop_index: bool | None = None


# ---------------------------------------------------------------------------
# Data quality
# ---------------------------------------------------------------------------


class AddNotNullConstraintChange(Change):
    change_name: ClassVar[str] = "addNotNullConstraint"

    catalog_name: str | None = None
    schema_name: str | None = None
    table_name: str | None = None
    column_name: str | None = None
    column_data_type: str | None = None
    default_null_value: str | None = None
    constraint_name: str | None = None
    validate_: bool | None = Field(default=None, alias="validate")


class DropNotNullConstraintChange(Change):
    change_name: ClassVar[str] = "dropNotNullConstraint"

    catalog_name: str | None = None
    schema_name: str | None = None
    table_name: str | None = None
    column_name: str | None = None
    column_data_type: str | None = None


class AddUniqueConstraintChange(Change):
    change_name: ClassVar[str] = "addUniqueConstraint"

    catalog_name: str | None = None
    schema_name: str | None = None
    table_name: str | None = None
    column_names: str | None = None
    constraint_name: str | None = None
    tablespace: str | None = None
    deferrable: bool | None = None
    initially_deferred: bool | None = None
    disabled: bool | None = None
    clustered: bool | None = None
    for_index_name: str | None = None
    validate_: bool | None = Field(default=None, alias="validate")


class DropUniqueConstraintChange(Change):
    change_name: ClassVar[str] = "dropUniqueConstraint"

    catalog_name: str | None = None
    schema_name: str | None = None
    table_name: str | None = None
    constraint_name: str | None = None
    unique_columns: str | None = None


class AddDefaultValueChange(Change):
    change_name: ClassVar[str] = "addDefaultValue"

    catalog_name: str | None = None
    schema_name: str | None = None
    table_name: str | None = None
    column_name: str | None = None
    column_data_type: str | None = None
    default_value: str | None = None
    default_value_numeric: Decimal | None = None
    default_value_date: datetime | time | DatabaseFunction | None = None
    default_value_boolean: bool | None = None
    default_value_computed: DatabaseFunction | None = None
    default_value_sequence_next: SequenceNextValueFunction | None = None
    default_value_constraint_name: str | None = None


class DropDefaultValueChange(Change):
    change_name: ClassVar[str] = "dropDefaultValue"

    catalog_name: str | None = None
    schema_name: str | None = None
    table_name: str | None = None
    column_name: str | None = None
    column_data_type: str | None = None


class AddAutoIncrementChange(Change):
    change_name: ClassVar[str] = "addAutoIncrement"

    catalog_name: str | None = None
    schema_name: str | None = None
    table_name: str | None = None
    column_name: str | None = None
    column_data_type: str | None = None
    start_with: int | None = None
    increment_by: int | None = None
    default_on_null: bool | None = None
    generation_type: str | None = None


class AddLookupTableChange(Change):
    change_name: ClassVar[str] = "addLookupTable"

    existing_table_catalog_name: str | None = None
    existing_table_schema_name: str | None = None
    existing_table_name: str | None = None
    existing_column_name: str | None = None
    new_table_catalog_name: str | None = None
    new_table_schema_name: str | None = None
    new_table_name: str | None = None
    new_column_name: str | None = None
    new_column_data_type: str | None = None
    constraint_name: str | None = None


class CreateSequenceChange(Change):
    change_name: ClassVar[str] = "createSequence"

    catalog_name: str | None = None
    schema_name: str | None = None
    sequence_name: str | None = None
    data_type: str | None = None
    start_value: int | None = None
    increment_by: int | None = None
    min_value: int | None = None
    max_value: int | None = None
    cycle: bool | None = None
    ordered: bool | None = None
    cache_size: int | None = None


class AlterSequenceChange(Change):
    change_name: ClassVar[str] = "alterSequence"

    catalog_name: str | None = None
    schema_name: str | None = None
    sequence_name: str | None = None
    data_type: str | None = None
    increment_by: int | None = None
    min_value: int | None = None
    max_value: int | None = None
    cycle: bool | None = None
    ordered: bool | None = None
    cache_size: int | None = None


class DropSequenceChange(Change):
    change_name: ClassVar[str] = "dropSequence"

    catalog_name: str | None = None
    schema_name: str | None = None
    sequence_name: str | None = None


class RenameSequenceChange(Change):
    change_name: ClassVar[str] = "renameSequence"

    catalog_name: str | None = None
    schema_name: str | None = None
    old_sequence_name: str | None = None
    new_sequence_name: str | None = None


# ---------------------------------------------------------------------------
# Data changes
# ---------------------------------------------------------------------------


class InsertDataChange(ChangeWithColumns):
    change_name: ClassVar[str] = "insert"

    catalog_name: str | None = None
    schema_name: str | None = None
    table_name: str | None = None
    dbms: str | None = None


class UpdateDataChange(ChangeWithColumns):
    change_name: ClassVar[str] = "update"

    catalog_name: str | None = None
    schema_name: str | None = None
    table_name: str | None = None
    where: str | None = None
    where_params: list[ColumnConfig] = Field(default_factory=list)

    def add_where_param(self, param: ColumnConfig) -> None:
        self.where_params.append(param)


class DeleteDataChange(Change):
    change_name: ClassVar[str] = "delete"

    catalog_name: str | None = None
    schema_name: str | None = None
    table_name: str | None = None
    where: str | None = None
    where_params: list[ColumnConfig] = Field(default_factory=list)

    def add_where_param(self, param: ColumnConfig) -> None:
        self.where_params.append(param)


class LoadDataChange(ChangeWithColumns, ResourceChange):
    change_name: ClassVar[str] = "loadData"
    column_config_class: ClassVar[type[ColumnConfig]] = LoadDataColumnConfig

    catalog_name: str | None = None
    schema_name: str | None = None
    table_name: str | None = None
    file: str | None = None
    relative_to_changelog_file: bool | None = None
    encoding: str | None = None
    separator: str | None = None
    quotchar: str | None = None
    comment_line_start_with: str | None = None
    use_prepared_statements: bool | None = None


class LoadUpdateDataChange(LoadDataChange):
    change_name: ClassVar[str] = "loadUpdateData"

    primary_key: str | None = None
    only_update: bool | None = None


class RawSqlChange(Change):
    """A ``sql`` directive; the statement may be given positionally."""

    change_name: ClassVar[str] = "sql"
    positional_attribute: ClassVar[str | None] = "sql"

    sql: str | None = None
    comment: str | None = None
    dbms: str | None = None
    end_delimiter: str | None = None
    split_statements: bool | None = None
    strip_comments: bool | None = None


class SqlFileChange(ResourceChange):
    change_name: ClassVar[str] = "sqlFile"

    path: str | None = None
    relative_to_changelog_file: bool | None = None
    encoding: str | None = None
    dbms: str | None = None
    end_delimiter: str | None = None
    split_statements: bool | None = None
    strip_comments: bool | None = None


class TagDatabaseChange(Change):
    change_name: ClassVar[str] = "tagDatabase"

    tag: str | None = None


class EmptyChange(Change):
    change_name: ClassVar[str] = "empty"


class OutputChange(Change):
    change_name: ClassVar[str] = "output"

    message: str | None = None
    target: str | None = None


class StopChange(Change):
    change_name: ClassVar[str] = "stop"

    message: str | None = None


DEFAULT_CHANGE_TYPES: tuple[type[Change], ...] = (
    CreateTableChange,
    DropTableChange,
    RenameTableChange,
    AddColumnChange,
    DropColumnChange,
    RenameColumnChange,
    ModifyDataTypeChange,
    CreateViewChange,
    DropViewChange,
    RenameViewChange,
    CreateIndexChange,
    DropIndexChange,
    AddForeignKeyConstraintChange,
    DropForeignKeyConstraintChange,
    DropAllForeignKeyConstraintsChange,
    AddPrimaryKeyChange,
    DropPrimaryKeyChange,
    AddNotNullConstraintChange,
    DropNotNullConstraintChange,
    AddUniqueConstraintChange,
    DropUniqueConstraintChange,
    AddDefaultValueChange,
    DropDefaultValueChange,
    AddAutoIncrementChange,
    AddLookupTableChange,
    CreateSequenceChange,
    AlterSequenceChange,
    DropSequenceChange,
    RenameSequenceChange,
    InsertDataChange,
    UpdateDataChange,
    DeleteDataChange,
    LoadDataChange,
    LoadUpdateDataChange,
    RawSqlChange,
    SqlFileChange,
    TagDatabaseChange,
    EmptyChange,
    OutputChange,
    StopChange,
)


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


class ChangeRegistry(TypeRegistry[Change]):
    """Registry of change directive types keyed by their DSL name.

    The script delegates consult the registry to decide whether a name used
    inside a ``changeSet`` (or ``rollback``) block is a directive.  Hosts may
    register extension directives before compiling.
    """

    kind = "change"
    name_attribute = "change_name"


def create_default_change_registry() -> ChangeRegistry:
    """Return a registry holding every built-in directive."""
    registry = ChangeRegistry()
    for change_type in DEFAULT_CHANGE_TYPES:
        registry.register(change_type)
    return registry
