"""Change-set construction and the delegates for ``changeSet`` and ``rollback`` blocks."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, ClassVar

from changelog_engine.errors import ChangeLogParseError
from changelog_engine.models.change_log import DatabaseChangeLog
from changelog_engine.models.change_set import ChangeSet
from changelog_engine.models.changes import Change, RawSqlChange, ResourceChange
from changelog_engine.models.filters import ContextExpression, Labels, split_dbms
from changelog_engine.models.options import ObjectQuotingStrategy, ValidationFailOption
from changelog_engine.parser.column_delegate import ColumnDelegate
from changelog_engine.parser.delegate_util import (
    expand_expressions,
    parse_truth,
    validate_attributes,
)
from changelog_engine.parser.modify_sql_delegate import MODIFY_SQL_ATTRIBUTES, ModifySqlDelegate
from changelog_engine.parser.precondition_delegate import (
    PreconditionDelegate,
    build_precondition_container,
)
from changelog_engine.parser.record_builder import populate_record
from changelog_engine.parser.script import Block, Delegate, Handle, ScriptContext

logger = logging.getLogger(__name__)

CHANGE_SET_ATTRIBUTES = (
    "id",
    "author",
    "dbms",
    "runAlways",
    "runOnChange",
    "context",
    "contextFilter",
    "labels",
    "runInTransaction",
    "failOnError",
    "onValidationFail",
    "objectQuotingStrategy",
    "logicalFilePath",
    "filePath",
    "created",
    "runOrder",
    "ignore",
    "runWith",
    "runWithSpoolFile",
)

ROLLBACK_ATTRIBUTES = ("changeSetId", "changeSetAuthor", "changeSetPath")

RUN_ORDERS = ("first", "last")


def build_change_set(params: dict[str, Any], change_log: DatabaseChangeLog) -> ChangeSet:
    """Create a change set from the attributes of a ``changeSet`` element.

    The change set is not added to *change_log*; the caller appends it once
    its directives are in place.

    Parameters
    ----------
    params:
        The element's attributes, as written in the script.
    change_log:
        The document being compiled.  Supplies the default file path, the
        parameter table and the document-wide quoting strategy.

    Returns
    -------
    ChangeSet
        Run-policy flags default to ``False`` except ``run_in_transaction``.
        Optional attributes that were not supplied stay unset.

    Raises
    ------
    ChangeLogParseError
        For an unsupported or removed attribute, or an invalid
        ``objectQuotingStrategy``, ``onValidationFail`` or ``runOrder``.
    """
    owner = f"ChangeSet '{params.get('id')}'"
    validate_attributes("changeSet", params, CHANGE_SET_ATTRIBUTES, owner)

    def expand(value: Any) -> Any:
        return expand_expressions(value, change_log)

    object_quoting_strategy = change_log.object_quoting_strategy
    if "objectQuotingStrategy" in params:
        value = expand(params["objectQuotingStrategy"])
        try:
            object_quoting_strategy = ObjectQuotingStrategy[str(value)]
        except KeyError:
            raise ChangeLogParseError(f"{owner}: {value} is not a supported ChangeSet ObjectQuotingStrategy") from None

    file_path = change_log.file_path
    if "filePath" in params:
        file_path = expand(params["filePath"])
    if "logicalFilePath" in params:
        file_path = expand(params["logicalFilePath"])

    context = expand(params.get("contextFilter") or params.get("context"))

    change_set = ChangeSet(
        id=expand(params.get("id")),
        author=expand(params.get("author")),
        run_always=parse_truth(params.get("runAlways"), False),
        run_on_change=parse_truth(params.get("runOnChange"), False),
        file_path=file_path,
        context_filter=ContextExpression(str(context)) if context else None,
        dbms=split_dbms(expand(params.get("dbms"))),
        run_with=expand(params.get("runWith")),
        run_with_spool_file=expand(params.get("runWithSpoolFile")),
        run_in_transaction=parse_truth(params.get("runInTransaction"), True),
        object_quoting_strategy=object_quoting_strategy,
        change_log=change_log,
    )
    change_set.change_log_parameters = change_log.change_log_parameters

    if "failOnError" in params:
        change_set.fail_on_error = parse_truth(params["failOnError"], False)

    if params.get("onValidationFail"):
        value = expand(params["onValidationFail"])
        try:
            change_set.on_validation_fail = ValidationFailOption[str(value)]
        except KeyError:
            raise ChangeLogParseError(f"{owner}: {value} is not a supported onValidationFail option") from None

    if params.get("labels"):
        change_set.labels = Labels(str(expand(params["labels"])))

    if params.get("created"):
        change_set.created = str(expand(params["created"]))

    if params.get("runOrder"):
        run_order = str(expand(params["runOrder"])).lower()
        if run_order not in RUN_ORDERS:
            raise ChangeLogParseError(f"{owner}: runOrder must be 'first' or 'last', not '{run_order}'")
        change_set.run_order = run_order

    if params.get("ignore"):
        change_set.ignore = parse_truth(params["ignore"], False)

    logger.debug("Built change set %s (author=%s, path=%s)", change_set.id, change_set.author, change_set.file_path)
    return change_set


def change_handler(
    delegate: Delegate,
    name: str,
    add: Callable[[Change], None],
) -> Callable[..., Handle]:
    """Return the element handler that builds directive *name* and passes it to *add*."""

    def _change(*args: Any, **params: Any) -> Handle:
        change = populate_record(
            delegate.session.change_registry.create(name),
            name,
            delegate.owner,
            args,
            params,
            delegate.expand,
            lambda key: f"{delegate.owner}: '{key}' is not a valid attribute for '{name}' changes.",
        )
        if isinstance(change, ResourceChange):
            change.bind_resource_accessor(delegate.session.resource_accessor)
        add(change)
        return delegate.script.handle(change, lambda: ColumnDelegate(delegate.script, delegate.owner, name, change))

    return _change


def _find_change_set(
    change_log: DatabaseChangeLog | None,
    path: str | None,
    author: str | None,
    change_set_id: str,
) -> ChangeSet | None:
    while change_log is not None:
        found = change_log.get_change_set(path, author, change_set_id)
        if found is not None:
            return found
        change_log = change_log.parent_change_log
    return None


class ChangeSetDelegate(Delegate):
    """Handles the contents of a ``changeSet`` block."""

    elements: ClassVar[dict[str, str]] = {
        "comment": "comment",
        "validCheckSum": "valid_check_sum",
        "preConditions": "pre_conditions",
        "rollback": "rollback",
        "modifySql": "modify_sql",
    }

    def __init__(self, script: ScriptContext, change_set: ChangeSet) -> None:
        super().__init__(script, f"ChangeSet '{change_set.id}'")
        self.change_set = change_set

    def resolve_dynamic(self, name: str) -> Callable[..., Any] | None:
        if name in self.session.change_registry:
            return change_handler(self, name, self.change_set.add_change)
        return None

    def comment(self, text: str) -> None:
        self.change_set.comments = self.expand(text)

    def valid_check_sum(self, check_sum: str) -> None:
        self.change_set.add_valid_check_sum(self.expand(check_sum))

    def pre_conditions(self, **params: Any) -> Block:
        container = build_precondition_container(self.owner, params, self.expand)

        def _attach() -> None:
            self.change_set.preconditions = container

        return self.script.block(
            "preConditions",
            lambda: PreconditionDelegate(self.script, self.owner, container),
            on_exit=_attach,
            value=container,
        )

    def rollback(self, *args: Any, **params: Any) -> Block | None:
        """Declare how to undo the change set.

        ``rollback("sql")`` adds raw SQL, ``rollback(changeSetId=...)`` reuses
        the directives of an earlier change set, and ``with rollback():``
        opens a block of directives.
        """
        if args:
            if len(args) > 1 or params:
                raise ChangeLogParseError(f"{self.owner}: a rollback accepts either SQL text or attributes, not both.")
            self.change_set.rollback.add_change(RawSqlChange(sql=self.expand(args[0])))
            return None

        if params:
            validate_attributes("rollback", params, ROLLBACK_ATTRIBUTES, self.owner)
            change_set_id = self.expand(params.get("changeSetId"))
            if not change_set_id:
                raise ChangeLogParseError(f"{self.owner}: a rollback reference requires a changeSetId.")
            author = self.expand(params.get("changeSetAuthor"))
            path = self.expand(params.get("changeSetPath"))
            referenced = _find_change_set(self.change_log, path, author, change_set_id)
            if referenced is None:
                raise ChangeLogParseError(
                    f"{self.owner}: Could not find changeSet to use for rollback: {path}::{change_set_id}::{author}"
                )
            for change in referenced.changes:
                self.change_set.rollback.add_change(change)
            return None

        return self.script.block(
            "rollback",
            lambda: RollbackDelegate(self.script, self.owner, self.change_set),
            value=self.change_set.rollback,
        )

    def modify_sql(self, **params: Any) -> Block:
        validate_attributes("modifySql", params, MODIFY_SQL_ATTRIBUTES, self.owner)
        return self.script.block(
            "modifySql",
            lambda: ModifySqlDelegate(self.script, self.owner, self.change_set, params),
        )

    def missing(self, name: str) -> ChangeLogParseError:
        return ChangeLogParseError(f"{self.owner}: '{name}' is not a valid changeSet element")


class RollbackDelegate(Delegate):
    """Handles the directives of a ``rollback`` block."""

    def __init__(self, script: ScriptContext, owner: str, change_set: ChangeSet) -> None:
        super().__init__(script, owner)
        self.change_set = change_set

    def resolve_dynamic(self, name: str) -> Callable[..., Any] | None:
        if name in self.session.change_registry:
            return change_handler(self, name, self.change_set.rollback.add_change)
        return None

    def missing(self, name: str) -> ChangeLogParseError:
        return ChangeLogParseError(f"{self.owner}: '{name}' is not a valid element of a rollback")
