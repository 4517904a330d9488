"""Change sets: identified, filterable groups of structural directives."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from changelog_engine.models.changes import Change
from changelog_engine.models.filters import ContextExpression, Labels
from changelog_engine.models.options import ObjectQuotingStrategy, ValidationFailOption
from changelog_engine.models.preconditions import PreconditionContainer
from changelog_engine.models.sql_visitors import SqlVisitor


class RollbackContainer(BaseModel):
    """Directives that undo a change set, run in the order given."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    changes: list[Change] = Field(default_factory=list)

    def add_change(self, change: Change) -> None:
        self.changes.append(change)


class ChangeSet(BaseModel):
    """One atomic, identified unit of migration steps.

    Run-policy defaults are applied at construction; the optional attributes
    (``fail_on_error``, ``on_validation_fail``, ``labels``, ``created``,
    ``run_order``) stay ``None`` unless the change log supplies them.
    ``change_log`` is a back-reference to the owning document.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    id: str | None = None
    author: str | None = None
    run_always: bool = False
    run_on_change: bool = False
    file_path: str | None = None
    context_filter: ContextExpression | None = None
    dbms: set[str] | None = None
    run_with: str | None = None
    run_with_spool_file: str | None = None
    run_in_transaction: bool = True
    object_quoting_strategy: ObjectQuotingStrategy | None = None
    fail_on_error: bool | None = None
    on_validation_fail: ValidationFailOption | None = None
    labels: Labels | None = None
    created: str | None = None
    run_order: str | None = None
    ignore: bool = False
    comments: str | None = None
    valid_check_sums: list[str] = Field(default_factory=list)
    preconditions: PreconditionContainer | None = None
    changes: list[Change] = Field(default_factory=list)
    rollback: RollbackContainer = Field(default_factory=RollbackContainer)
    sql_visitors: list[SqlVisitor] = Field(default_factory=list)

    change_log: Any = Field(default=None, repr=False, exclude=True)
    change_log_parameters: Any = Field(default=None, repr=False, exclude=True)

    # Change sets reference their document; compare by identity.
    def __eq__(self, other: object) -> bool:
        return self is other

    def __hash__(self) -> int:
        return id(self)

    def add_change(self, change: Change) -> None:
        self.changes.append(change)

    def add_sql_visitor(self, visitor: SqlVisitor) -> None:
        self.sql_visitors.append(visitor)

    def add_valid_check_sum(self, check_sum: str) -> None:
        self.valid_check_sums.append(check_sum)
