"""Document records produced by the change-log compiler."""

from changelog_engine.models.change_log import ChangeVisitor, DatabaseChangeLog
from changelog_engine.models.change_set import ChangeSet, RollbackContainer
from changelog_engine.models.changes import (
    Change,
    ChangeRegistry,
    ChangeWithColumns,
    ResourceChange,
    create_default_change_registry,
)
from changelog_engine.models.columns import (
    AddColumnConfig,
    ColumnConfig,
    ConstraintsConfig,
    ForeignKeyConstraintType,
    LoadDataColumnConfig,
)
from changelog_engine.models.filters import ContextExpression, LabelExpression, Labels
from changelog_engine.models.functions import (
    DatabaseFunction,
    SequenceCurrentValueFunction,
    SequenceNextValueFunction,
)
from changelog_engine.models.options import (
    ErrorOption,
    FailOption,
    ObjectQuotingStrategy,
    OnSqlOutputOption,
    ValidationFailOption,
)
from changelog_engine.models.parameters import ChangeLogParameters
from changelog_engine.models.preconditions import (
    Precondition,
    PreconditionContainer,
    PreconditionRegistry,
    create_default_precondition_registry,
)
from changelog_engine.models.sql_visitors import SqlVisitor

__all__ = [
    "AddColumnConfig",
    "Change",
    "ChangeLogParameters",
    "ChangeRegistry",
    "ChangeSet",
    "ChangeVisitor",
    "ChangeWithColumns",
    "ColumnConfig",
    "ConstraintsConfig",
    "ContextExpression",
    "DatabaseChangeLog",
    "DatabaseFunction",
    "ErrorOption",
    "FailOption",
    "ForeignKeyConstraintType",
    "LabelExpression",
    "Labels",
    "LoadDataColumnConfig",
    "ObjectQuotingStrategy",
    "OnSqlOutputOption",
    "Precondition",
    "PreconditionContainer",
    "PreconditionRegistry",
    "ResourceChange",
    "RollbackContainer",
    "SequenceCurrentValueFunction",
    "SequenceNextValueFunction",
    "SqlVisitor",
    "ValidationFailOption",
    "create_default_change_registry",
    "create_default_precondition_registry",
]
