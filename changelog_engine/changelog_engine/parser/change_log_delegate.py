"""Delegates for the top of a change-log script and its ``databaseChangeLog`` block."""

from __future__ import annotations

import configparser
import io
import logging
from typing import Any, ClassVar

from changelog_engine.errors import ChangeLogParseError, ResourceNotFoundError
from changelog_engine.loader import inclusion
from changelog_engine.models.change_log import ChangeVisitor
from changelog_engine.models.filters import ContextExpression, database_matches, split_dbms
from changelog_engine.models.options import ObjectQuotingStrategy
from changelog_engine.parser.change_set_delegate import ChangeSetDelegate, build_change_set
from changelog_engine.parser.delegate_util import parse_truth, validate_attributes
from changelog_engine.parser.precondition_delegate import (
    PreconditionDelegate,
    build_precondition_container,
)
from changelog_engine.parser.script import Block, Delegate, ScriptContext

logger = logging.getLogger(__name__)

CHANGE_LOG_ATTRIBUTES = ("logicalFilePath", "context", "contextFilter", "objectQuotingStrategy")

PROPERTY_ATTRIBUTES = (
    "name",
    "value",
    "context",
    "contextFilter",
    "labels",
    "dbms",
    "global",
    "file",
    "relativeToChangelogFile",
    "errorIfMissing",
)

REMOVE_PROPERTY_ATTRIBUTES = ("change", "dbms", "remove")

_PROPERTIES_SECTION = "properties"


def read_properties(stream: io.TextIOBase | Any) -> dict[str, str]:
    """Parse ``key=value`` / ``key: value`` lines into a dict, keeping key case."""
    parser = configparser.ConfigParser(interpolation=None, strict=False)
    parser.optionxform = str  # type: ignore[assignment,method-assign]
    parser.read_string(f"[{_PROPERTIES_SECTION}]\n" + stream.read())
    return dict(parser.items(_PROPERTIES_SECTION))


class ScriptDelegate(Delegate):
    """The bottom of the delegate stack: only ``databaseChangeLog`` is allowed here."""

    elements: ClassVar[dict[str, str]] = {"databaseChangeLog": "database_change_log"}

    def database_change_log(self, **params: Any) -> Block:
        validate_attributes("databaseChangeLog", params, CHANGE_LOG_ATTRIBUTES, self.owner)
        change_log = self.change_log

        # An include's logicalFilePath override has already been applied.
        if params.get("logicalFilePath") and not change_log.logical_file_path:
            change_log.logical_file_path = str(self.expand(params["logicalFilePath"]))

        context = self.expand(params.get("contextFilter") or params.get("context"))
        if context:
            change_log.context_filter = ContextExpression(str(context))

        if params.get("objectQuotingStrategy"):
            value = self.expand(params["objectQuotingStrategy"])
            try:
                change_log.object_quoting_strategy = ObjectQuotingStrategy[str(value)]
            except KeyError:
                raise ChangeLogParseError(
                    f"{self.owner}: {value} is not a supported ObjectQuotingStrategy"
                ) from None

        return self.script.block("databaseChangeLog", lambda: DatabaseChangeLogDelegate(self.script))

    def missing(self, name: str) -> ChangeLogParseError:
        return ChangeLogParseError(f"Unrecognized root element {name}")


class DatabaseChangeLogDelegate(Delegate):
    """Handles the top-level elements of a change log."""

    elements: ClassVar[dict[str, str]] = {
        "property": "property_",
        "changeSet": "change_set",
        "include": "include",
        "includeAll": "include_all",
        "includeAllSql": "include_all_sql",
        "preConditions": "pre_conditions",
        "removeChangeSetProperty": "remove_change_set_property",
    }

    def __init__(self, script: ScriptContext) -> None:
        super().__init__(script, "DatabaseChangeLog")

    # -- property ------------------------------------------------------------

    def property_(self, **params: Any) -> None:
        """Add one parameter, or every entry of a properties file, to the parameter table."""
        validate_attributes("property", params, PROPERTY_ATTRIBUTES, self.owner)
        parameters = self.change_log.change_log_parameters
        if parameters is None:
            return

        context = self.expand(params.get("contextFilter") or params.get("context"))
        labels = self.expand(params.get("labels"))
        dbms = self.expand(params.get("dbms"))
        global_ = parse_truth(params.get("global"), True)

        if params.get("file"):
            values = self._read_property_file(params)
        else:
            name = self.expand(params.get("name"))
            if not name:
                raise ChangeLogParseError(f"{self.owner}: a property requires a name or a file")
            values = {str(name): self.expand(params.get("value"))}

        for key, value in values.items():
            parameters.set(
                key,
                value,
                context=str(context) if context else None,
                labels=str(labels) if labels else None,
                dbms=dbms,
                global_=global_,
                change_log=self.change_log,
            )

    def _read_property_file(self, params: dict[str, Any]) -> dict[str, str]:
        path = inclusion.expand_path(params["file"], self.change_log, "file", "property")
        relative = parse_truth(params.get("relativeToChangelogFile"), False)
        relative_to = self.change_log.physical_file_path if relative else None
        accessor = self.session.resource_accessor
        try:
            with accessor.open_stream(relative_to, path) as stream:
                text = stream.read().decode(self.session.settings.script_encoding)
        except ResourceNotFoundError:
            if parse_truth(params.get("errorIfMissing"), True):
                raise
            logger.warning("Properties file %s does not exist; skipping", path)
            return {}

        try:
            values = read_properties(io.StringIO(text))
        except configparser.Error as exc:
            raise ChangeLogParseError(f"{self.owner}: cannot read properties file {path}: {exc}") from exc
        logger.debug("Loaded %d properties from %s", len(values), path)
        return values

    # -- changeSet -----------------------------------------------------------

    def change_set(self, **params: Any) -> Block:
        change_set = build_change_set(params, self.change_log)

        def _append() -> None:
            self.change_log.add_change_set(change_set)
            logger.debug("Added change set %s with %d changes", change_set.id, len(change_set.changes))

        return self.script.block(
            "changeSet",
            lambda: ChangeSetDelegate(self.script, change_set),
            on_exit=_append,
            value=change_set,
        )

    # -- inclusion -----------------------------------------------------------

    def include(self, **params: Any) -> None:
        inclusion.include(self.session, self.change_log, params)

    def include_all(self, **params: Any) -> None:
        inclusion.include_all(self.session, self.change_log, params)

    def include_all_sql(self, **params: Any) -> None:
        inclusion.include_all_sql(self.session, self.change_log, params)

    # -- preConditions -------------------------------------------------------

    def pre_conditions(self, **params: Any) -> Block:
        container = build_precondition_container(self.owner, params, self.expand)

        def _attach() -> None:
            self.change_log.preconditions = container

        return self.script.block(
            "preConditions",
            lambda: PreconditionDelegate(self.script, self.owner, container),
            on_exit=_attach,
            value=container,
        )

    # -- removeChangeSetProperty ---------------------------------------------

    def remove_change_set_property(self, **params: Any) -> None:
        validate_attributes("removeChangeSetProperty", params, REMOVE_PROPERTY_ATTRIBUTES, self.owner)
        change = self.expand(params.get("change"))
        dbms = split_dbms(self.expand(params.get("dbms")))
        remove = self.expand(params.get("remove"))

        if not dbms:
            raise ChangeLogParseError(f"{self.owner}: removeChangeSetProperty requires a dbms attribute")
        if not remove:
            raise ChangeLogParseError(f"{self.owner}: removeChangeSetProperty requires a remove attribute")
        if change not in self.session.change_registry:
            raise ChangeLogParseError(f"{self.owner}: '{change}' is not a valid change for removeChangeSetProperty")

        database = self.session.parameters.database
        if database is None or not database_matches(dbms, database):
            return
        self.change_log.add_change_visitor(ChangeVisitor(change=str(change), dbms=dbms, remove=str(remove)))

    def missing(self, name: str) -> ChangeLogParseError:
        return ChangeLogParseError(f"DatabaseChangeLog: '{name}' is not a valid element of a DatabaseChangeLog")
