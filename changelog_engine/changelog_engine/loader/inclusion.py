"""Resolves ``include``, ``includeAll`` and ``includeAllSql`` directives.

``include`` compiles one file and merges its change sets and preconditions
into the including document.  ``includeAll`` discovers every file under a
directory, filters and sorts the paths, and includes each in turn.
``includeAllSql`` discovers files the same way but, instead of compiling
them, creates one change set per file that runs it as a SQL script.
"""

from __future__ import annotations

import functools
import logging
import posixpath
from typing import Any

from changelog_engine.errors import (
    ChangeLogParseError,
    ChangeLogResourceError,
    IncludeDepthError,
    PropertyBindingError,
    ResourceNotFoundError,
)
from changelog_engine.models.change_log import DatabaseChangeLog
from changelog_engine.models.changes import SqlFileChange
from changelog_engine.models.filters import ContextExpression, Labels
from changelog_engine.parser.change_set_delegate import build_change_set
from changelog_engine.parser.delegate_util import (
    expand_expressions,
    parse_truth,
    validate_attributes,
)
from changelog_engine.parser.property_binder import bind_property
from changelog_engine.parser.session import ParseSession

logger = logging.getLogger(__name__)

OWNER = "DatabaseChangeLog"

INCLUDE_ATTRIBUTES = (
    "file",
    "relativeToChangelogFile",
    "errorIfMissing",
    "context",
    "contextFilter",
    "labels",
    "ignore",
    "logicalFilePath",
)

INCLUDE_ALL_ATTRIBUTES = (
    "path",
    "relativeToChangelogFile",
    "errorIfMissingOrEmpty",
    "resourceComparator",
    "filter",
    "context",
    "contextFilter",
    "labels",
    "ignore",
    "logicalFilePath",
    "minDepth",
    "maxDepth",
    "endsWithFilter",
)

# includeAllSql splits its attributes between discovery, the change set and the sqlFile step.
DISCOVERY_ATTRIBUTES = (
    "path",
    "relativeToChangelogFile",
    "errorIfMissingOrEmpty",
    "resourceComparator",
    "filter",
    "minDepth",
    "maxDepth",
    "endsWithFilter",
)

SQL_CHANGE_SET_ATTRIBUTES = (
    "author",
    "dbms",
    "runAlways",
    "runOnChange",
    "context",
    "contextFilter",
    "labels",
    "failOnError",
    "onValidationFail",
    "objectQuotingStrategy",
    "created",
    "ignore",
    "runWith",
    "runWithSpoolFile",
    "logicalFilePath",
)

SQL_STEP_ATTRIBUTES = (
    "dbms",
    "encoding",
    "endDelimiter",
    "relativeToChangeLogFile",
    "splitStatements",
    "stripComments",
)

SQL_ID_ATTRIBUTES = ("idPrefix", "idSuffix", "idKeepsExtension")

INCLUDE_ALL_SQL_ATTRIBUTES = tuple(
    dict.fromkeys(DISCOVERY_ATTRIBUTES + SQL_CHANGE_SET_ATTRIBUTES + SQL_STEP_ATTRIBUTES + SQL_ID_ATTRIBUTES)
)


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------


def expand_path(value: Any, change_log: DatabaseChangeLog, attribute: str, element: str) -> str:
    """Expand the path given to *element*; an unresolved property is an error."""
    if value is None:
        raise ChangeLogParseError(f"{OWNER}: No {attribute} attribute for {element}")
    path = expand_expressions(str(value), change_log)
    if "$" in path:
        raise ChangeLogParseError(f"{OWNER}:  '{path}' contains an invalid property in an '{element}' element.")
    path = path.replace("\\", "/").strip()
    if not path:
        raise ChangeLogParseError(f"{OWNER}: The {attribute} attribute of {element} is empty")
    return path


def _context_filter(params: dict[str, Any], change_log: DatabaseChangeLog) -> ContextExpression | None:
    context = expand_expressions(params.get("contextFilter") or params.get("context"), change_log)
    return ContextExpression(str(context)) if context else None


def _labels(params: dict[str, Any], change_log: DatabaseChangeLog) -> Labels | None:
    labels = expand_expressions(params.get("labels"), change_log)
    return Labels(str(labels)) if labels else None


def _depth(value: Any, change_log: DatabaseChangeLog, attribute: str, element: str) -> int | None:
    if value is None:
        return None
    try:
        return int(str(expand_expressions(value, change_log)).strip())
    except ValueError:
        raise ChangeLogParseError(f"{OWNER}: '{value}' is not a valid {attribute} for {element}") from None


def merge_change_log(
    change_log: DatabaseChangeLog,
    child: DatabaseChangeLog,
    logical_file_path: str | None = None,
) -> None:
    """Merge an included document into *change_log*.

    The include's filters are tagged onto change sets that do not set their
    own, and a logical path override replaces every merged file path.
    """
    for change_set in child.change_sets:
        if child.include_context_filter is not None and (
            change_set.context_filter is None or change_set.context_filter.is_empty()
        ):
            change_set.context_filter = child.include_context_filter
        if child.include_labels is not None and (change_set.labels is None or change_set.labels.is_empty()):
            change_set.labels = child.include_labels
        if child.include_ignore:
            change_set.ignore = True
        if logical_file_path:
            change_set.file_path = logical_file_path
        change_log.add_change_set(change_set)

    if child.preconditions.nested_preconditions:
        change_log.preconditions.add_nested_precondition(child.preconditions)
    for visitor in child.change_visitors:
        change_log.add_change_visitor(visitor)


# ---------------------------------------------------------------------------
# include
# ---------------------------------------------------------------------------


def include_file(
    session: ParseSession,
    change_log: DatabaseChangeLog,
    path: str,
    relative_to: str | None = None,
    error_if_missing: bool = True,
    context_filter: ContextExpression | None = None,
    labels: Labels | None = None,
    ignore: bool = False,
    logical_file_path: str | None = None,
    skip_unknown_format: bool = False,
) -> bool:
    """Compile one file and merge it into *change_log*.

    Returns ``True`` when the file was included.  A file no registered parser
    supports fails the compile, or is skipped with a warning when
    *skip_unknown_format* is set.

    Raises
    ------
    IncludeDepthError
        The file is already being compiled further up the include chain,
        or the include depth limit was reached.
    ChangeLogResourceError
        The file does not exist and *error_if_missing* is set.
    """
    resolved = session.resource_accessor.resolve(relative_to, path)

    parser = session.parser_factory.get_parser(resolved, session.resource_accessor)
    if parser is None:
        if skip_unknown_format:
            logger.warning("Skipping %s: no change log parser supports this file", resolved)
            return False
        raise ChangeLogParseError(f"{OWNER}: Cannot find a parser that supports {resolved}")

    if resolved in session.include_stack:
        chain = " -> ".join([*session.include_stack, resolved])
        raise IncludeDepthError(f"{OWNER}: Circular include detected: {chain}")
    if len(session.include_stack) >= session.settings.max_include_depth:
        raise IncludeDepthError(
            f"{OWNER}: Include depth limit of {session.settings.max_include_depth} reached at {resolved}"
        )

    try:
        child = parser.parse(
            resolved,
            session.parameters,
            session.resource_accessor,
            session=session,
            parent=change_log,
            include_context_filter=context_filter,
            include_labels=labels,
            include_ignore=ignore,
            logical_file_path=logical_file_path,
        )
    except ResourceNotFoundError as exc:
        if exc.path != resolved:
            raise
        if not error_if_missing:
            logger.warning("Included change log %s does not exist; skipping", resolved)
            return False
        raise ChangeLogResourceError(f"{OWNER}: {resolved} does not exist", path=resolved) from exc

    merge_change_log(change_log, child, logical_file_path)
    logger.debug("Included %s (%d change sets)", resolved, len(child.change_sets))
    return True


def include(session: ParseSession, change_log: DatabaseChangeLog, params: dict[str, Any]) -> None:
    """Handle an ``include`` element."""
    validate_attributes("include", params, INCLUDE_ATTRIBUTES, OWNER)
    path = expand_path(params.get("file"), change_log, "file", "include")
    relative = parse_truth(params.get("relativeToChangelogFile"), False)

    include_file(
        session,
        change_log,
        path,
        relative_to=change_log.physical_file_path if relative else None,
        error_if_missing=parse_truth(params.get("errorIfMissing"), True),
        context_filter=_context_filter(params, change_log),
        labels=_labels(params, change_log),
        ignore=parse_truth(params.get("ignore"), False),
        logical_file_path=expand_expressions(params.get("logicalFilePath"), change_log),
    )


# ---------------------------------------------------------------------------
# Discovery
# ---------------------------------------------------------------------------


def discover_resources(
    session: ParseSession,
    change_log: DatabaseChangeLog,
    params: dict[str, Any],
    element: str,
) -> list[str]:
    """List, filter and sort the files an ``includeAll``-style element names.

    Depth is counted from the scanned directory: its direct children are at
    depth 1.  ``minDepth`` (default 1) and ``maxDepth`` (default unlimited)
    are inclusive.  Paths are sorted by full path unless a
    ``resourceComparator`` is named.

    Raises
    ------
    ChangeLogResourceError
        The directory is missing, or nothing survives filtering, and
        ``errorIfMissingOrEmpty`` is not false.
    ExtensionResolutionError
        A named filter or comparator cannot be resolved.
    """
    path = expand_path(params.get("path"), change_log, "path", element)
    relative = parse_truth(params.get("relativeToChangelogFile"), False)
    error_if_missing_or_empty = parse_truth(params.get("errorIfMissingOrEmpty"), True)
    min_depth = _depth(params.get("minDepth"), change_log, "minDepth", element) or 1
    max_depth = _depth(params.get("maxDepth"), change_log, "maxDepth", element)
    ends_with = expand_expressions(params.get("endsWithFilter"), change_log)

    resource_filter = None
    if params.get("filter"):
        name = expand_expressions(str(params["filter"]), change_log)
        resource_filter = session.extension_registry.resolve_filter(name)
    comparator = None
    if params.get("resourceComparator"):
        name = expand_expressions(str(params["resourceComparator"]), change_log)
        comparator = session.extension_registry.resolve_comparator(name)

    relative_to = change_log.physical_file_path if relative else None
    directory = session.resource_accessor.resolve(relative_to, path)
    try:
        listing = session.resource_accessor.list(relative_to, path, True)
    except ResourceNotFoundError as exc:
        if error_if_missing_or_empty:
            raise ChangeLogResourceError(
                f"{OWNER}: Could not find directory for {element} '{path}'", path=directory
            ) from exc
        logger.warning("Directory %s for %s does not exist; skipping", path, element)
        listing = []

    resources = []
    for resource in listing:
        depth = posixpath.relpath(resource, directory or ".").count("/") + 1
        if depth < min_depth or (max_depth is not None and depth > max_depth):
            continue
        if ends_with and not resource.lower().endswith(str(ends_with).lower()):
            continue
        if resource_filter is not None and not resource_filter.include(resource):
            continue
        resources.append(resource)

    if comparator is not None:
        resources.sort(key=functools.cmp_to_key(comparator.compare))
    else:
        resources.sort()

    if not resources:
        if error_if_missing_or_empty:
            raise ChangeLogResourceError(
                f"{OWNER}: Could not find directory or directory was empty for {element} '{path}'",
                path=directory,
            )
        logger.warning("No resources found for %s '%s'", element, path)
    logger.debug("%s '%s' matched %d resources", element, path, len(resources))
    return resources


# ---------------------------------------------------------------------------
# includeAll / includeAllSql
# ---------------------------------------------------------------------------


def include_all(session: ParseSession, change_log: DatabaseChangeLog, params: dict[str, Any]) -> None:
    """Handle an ``includeAll`` element."""
    validate_attributes("includeAll", params, INCLUDE_ALL_ATTRIBUTES, OWNER)
    resources = discover_resources(session, change_log, params, "includeAll")

    context_filter = _context_filter(params, change_log)
    labels = _labels(params, change_log)
    ignore = parse_truth(params.get("ignore"), False)
    logical_file_path = expand_expressions(params.get("logicalFilePath"), change_log)

    for resource in resources:
        include_file(
            session,
            change_log,
            resource,
            context_filter=context_filter,
            labels=labels,
            ignore=ignore,
            logical_file_path=logical_file_path,
            skip_unknown_format=True,
        )


def sql_change_set_id(path: str, prefix: str = "", suffix: str = "", keep_extension: bool = False) -> str:
    """Derive a change set id from a SQL file path."""
    name = posixpath.basename(path)
    if not keep_extension:
        name = posixpath.splitext(name)[0]
    return f"{prefix}{name}{suffix}"


def include_all_sql(session: ParseSession, change_log: DatabaseChangeLog, params: dict[str, Any]) -> None:
    """Handle an ``includeAllSql`` element: one ``sqlFile`` change set per discovered file."""
    validate_attributes("includeAllSql", params, INCLUDE_ALL_SQL_ATTRIBUTES, OWNER)

    discovery_params = {k: v for k, v in params.items() if k in DISCOVERY_ATTRIBUTES}
    change_set_params = {k: v for k, v in params.items() if k in SQL_CHANGE_SET_ATTRIBUTES}
    step_params = {
        k: v for k, v in params.items() if k in SQL_STEP_ATTRIBUTES and k != "relativeToChangeLogFile"
    }

    resources = discover_resources(session, change_log, discovery_params, "includeAllSql")
    if not resources:
        return

    prefix = str(expand_expressions(params.get("idPrefix"), change_log) or "")
    suffix = str(expand_expressions(params.get("idSuffix"), change_log) or "")
    keep_extension = parse_truth(params.get("idKeepsExtension"), False)

    for resource in resources:
        change_set_id = sql_change_set_id(resource, prefix, suffix, keep_extension)
        change_set = build_change_set({"id": change_set_id, **change_set_params}, change_log)

        step = SqlFileChange()
        for key, value in step_params.items():
            try:
                bind_property(step, key, expand_expressions(value, change_log))
            except PropertyBindingError as exc:
                raise ChangeLogParseError(
                    f"ChangeSet '{change_set_id}': '{key}' is not a valid attribute for 'sqlFile' changes."
                ) from exc
        # Discovered paths are already resolved against the resource root.
        step.path = resource
        step.relative_to_changelog_file = False
        step.bind_resource_accessor(session.resource_accessor)

        change_set.add_change(step)
        change_log.add_change_set(change_set)
        logger.debug("Created change set %s for SQL file %s", change_set_id, resource)
