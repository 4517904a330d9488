"""The migration document a change-log script compiles into."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from changelog_engine.models.change_set import ChangeSet
from changelog_engine.models.filters import ContextExpression, Labels
from changelog_engine.models.options import ObjectQuotingStrategy
from changelog_engine.models.parameters import ChangeLogParameters
from changelog_engine.models.preconditions import PreconditionContainer


class ChangeVisitor(BaseModel):
    """A ``removeChangeSetProperty`` directive recorded for the execution engine."""

    change: str
    dbms: set[str]
    remove: str


class DatabaseChangeLog(BaseModel):
    """The root migration definition produced by compiling one script.

    ``physical_file_path`` is where the script was read from.  The
    ``logical_file_path`` (when set) replaces it as the identity path of the
    document and the default file path of its change sets.  The ``include_*``
    fields carry the filters of the ``include`` that pulled this document in.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    physical_file_path: str | None = None
    logical_file_path: str | None = None
    context_filter: ContextExpression | None = None
    object_quoting_strategy: ObjectQuotingStrategy | None = None
    change_sets: list[ChangeSet] = Field(default_factory=list)
    preconditions: PreconditionContainer = Field(default_factory=PreconditionContainer)
    change_visitors: list[ChangeVisitor] = Field(default_factory=list)

    include_context_filter: ContextExpression | None = None
    include_labels: Labels | None = None
    include_ignore: bool = False

    change_log_parameters: ChangeLogParameters | None = Field(default=None, repr=False, exclude=True)
    parent_change_log: Any = Field(default=None, repr=False, exclude=True)

    def __eq__(self, other: object) -> bool:
        return self is other

    def __hash__(self) -> int:
        return id(self)

    @property
    def file_path(self) -> str | None:
        return self.logical_file_path or self.physical_file_path

    def add_change_set(self, change_set: ChangeSet) -> None:
        self.change_sets.append(change_set)

    def get_change_set(self, path: str | None, author: str | None, change_set_id: str) -> ChangeSet | None:
        """Find a change set by id and author within *path* (``None`` means any path)."""
        for change_set in self.change_sets:
            if change_set.id != change_set_id:
                continue
            if author is not None and change_set.author != author:
                continue
            if path is not None and change_set.file_path != path:
                continue
            return change_set
        return None

    def add_change_visitor(self, visitor: ChangeVisitor) -> None:
        self.change_visitors.append(visitor)
