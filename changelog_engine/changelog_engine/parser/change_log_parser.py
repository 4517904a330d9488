"""Change-log parsers and the factory that picks one per file.

Provides :func:`compile_change_log` -- the single entry point for host code.
The parser factory is a thread-safe singleton holding the registered
parsers; hosts add their own with :func:`register_parser`.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Protocol, runtime_checkable

from changelog_engine.config import Settings, load_settings
from changelog_engine.errors import ChangeLogParseError
from changelog_engine.loader.extensions import ExtensionRegistry, get_extension_registry
from changelog_engine.loader.resource_accessor import ResourceAccessor
from changelog_engine.models.change_log import DatabaseChangeLog
from changelog_engine.models.changes import ChangeRegistry, create_default_change_registry
from changelog_engine.models.columns import ConstraintsConfig
from changelog_engine.models.filters import ContextExpression, Labels
from changelog_engine.models.parameters import ChangeLogParameters
from changelog_engine.models.preconditions import (
    PreconditionRegistry,
    create_default_precondition_registry,
)
from changelog_engine.parser.change_log_delegate import DatabaseChangeLogDelegate, ScriptDelegate
from changelog_engine.parser.change_set_delegate import ChangeSetDelegate
from changelog_engine.parser.column_delegate import ColumnDelegate
from changelog_engine.parser.constraint_delegate import ConstraintDelegate
from changelog_engine.parser.modify_sql_delegate import ModifySqlDelegate
from changelog_engine.parser.precondition_delegate import PreconditionDelegate
from changelog_engine.parser.property_binder import get_accessor_table
from changelog_engine.parser.script import ScriptContext
from changelog_engine.parser.session import ParseSession
from changelog_engine.parser.where_params_delegate import WhereParamsDelegate

logger = logging.getLogger(__name__)

_DELEGATE_TYPES = (
    ScriptDelegate,
    DatabaseChangeLogDelegate,
    ChangeSetDelegate,
    ColumnDelegate,
    WhereParamsDelegate,
    ConstraintDelegate,
    PreconditionDelegate,
    ModifySqlDelegate,
)


@runtime_checkable
class ChangeLogParser(Protocol):
    """A parser the factory can hand a change-log file to."""

    def supports(self, identifier: str) -> bool: ...

    def parse(
        self,
        identifier: str,
        parameters: ChangeLogParameters,
        resource_accessor: ResourceAccessor,
        **options: Any,
    ) -> DatabaseChangeLog: ...


def script_vocabulary(
    change_registry: ChangeRegistry,
    precondition_registry: PreconditionRegistry,
) -> set[str]:
    """Return every name a change-log script may call as an element."""
    names: set[str] = set()
    for delegate_type in _DELEGATE_TYPES:
        names.update(delegate_type.elements)
    names.update(change_registry.get_names())
    names.update(precondition_registry.get_names())
    names.update(
        name
        for name, accessor in get_accessor_table(ConstraintsConfig).items()
        if accessor.target_type is not None and name.isidentifier()
    )
    return names


class ScriptChangeLogParser:
    """Compiles Python change-log scripts.

    Parameters
    ----------
    settings:
        Compiler settings; loaded from the environment when omitted.
    change_registry, precondition_registry:
        Element registries; the built-in catalogues when omitted.
    extension_registry:
        Where ``includeAll`` filter and comparator names are resolved.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        change_registry: ChangeRegistry | None = None,
        precondition_registry: PreconditionRegistry | None = None,
        extension_registry: ExtensionRegistry | None = None,
    ) -> None:
        self.settings = settings or load_settings()
        self.change_registry = change_registry or create_default_change_registry()
        self.precondition_registry = precondition_registry or create_default_precondition_registry()
        if extension_registry is None:
            if self.settings.allow_dotted_extensions:
                extension_registry = get_extension_registry()
            else:
                extension_registry = ExtensionRegistry(allow_imports=False)
        self.extension_registry = extension_registry

    def supports(self, identifier: str) -> bool:
        return identifier.lower().endswith(self.settings.script_suffix.lower())

    def new_session(
        self,
        parameters: ChangeLogParameters,
        resource_accessor: ResourceAccessor,
        parser_factory: ChangeLogParserFactory | None = None,
    ) -> ParseSession:
        return ParseSession(
            settings=self.settings,
            resource_accessor=resource_accessor,
            parameters=parameters,
            parser_factory=parser_factory or get_parser_factory(),
            change_registry=self.change_registry,
            precondition_registry=self.precondition_registry,
            extension_registry=self.extension_registry,
        )

    def parse(
        self,
        identifier: str,
        parameters: ChangeLogParameters,
        resource_accessor: ResourceAccessor,
        *,
        session: ParseSession | None = None,
        parent: DatabaseChangeLog | None = None,
        include_context_filter: ContextExpression | None = None,
        include_labels: Labels | None = None,
        include_ignore: bool = False,
        logical_file_path: str | None = None,
    ) -> DatabaseChangeLog:
        """Compile the script at *identifier* into a :class:`DatabaseChangeLog`.

        Raises
        ------
        ResourceNotFoundError
            The script does not exist.
        ChangeLogParseError
            The script is not valid Python or is not a valid change log.
        """
        if session is None:
            session = self.new_session(parameters, resource_accessor)

        path = resource_accessor.resolve(None, identifier)
        with resource_accessor.open_stream(None, path) as stream:
            raw = stream.read()
        try:
            source = raw.decode(session.settings.script_encoding)
        except UnicodeDecodeError as exc:
            raise ChangeLogParseError(f"Error compiling {path}: {exc}") from exc
        try:
            code = compile(source, path, "exec")
        except SyntaxError as exc:
            raise ChangeLogParseError(
                f"Error compiling {path}: invalid syntax at line {exc.lineno}: {exc.msg}"
            ) from exc

        change_log = DatabaseChangeLog(
            physical_file_path=path,
            logical_file_path=logical_file_path,
            include_context_filter=include_context_filter,
            include_labels=include_labels,
            include_ignore=include_ignore,
            change_log_parameters=parameters,
            parent_change_log=parent,
        )

        script = ScriptContext(session, change_log, path)
        session.include_stack.append(path)
        try:
            script.run(
                code,
                ScriptDelegate(script),
                script_vocabulary(session.change_registry, session.precondition_registry),
            )
        finally:
            session.include_stack.pop()

        logger.debug("Compiled %s: %d change sets", path, len(change_log.change_sets))
        return change_log


class ChangeLogParserFactory:
    """Holds the registered parsers, most recently registered first."""

    def __init__(self) -> None:
        self._parsers: list[ChangeLogParser] = []

    def register(self, parser: ChangeLogParser) -> None:
        if not isinstance(parser, ChangeLogParser):
            raise TypeError(f"{parser!r} does not implement supports() and parse()")
        self._parsers.insert(0, parser)
        logger.debug("Registered change log parser %s", type(parser).__name__)

    def unregister(self, parser: ChangeLogParser) -> None:
        self._parsers.remove(parser)

    @property
    def parsers(self) -> list[ChangeLogParser]:
        return list(self._parsers)

    def get_parser(self, identifier: str, resource_accessor: ResourceAccessor | None = None) -> ChangeLogParser | None:
        """Return the first parser that supports *identifier*, or ``None``."""
        for parser in self._parsers:
            if parser.supports(identifier):
                return parser
        return None


# ---------------------------------------------------------------------------
# Shared default factory
# ---------------------------------------------------------------------------

_lock = threading.Lock()
_instance: ChangeLogParserFactory | None = None


def get_parser_factory() -> ChangeLogParserFactory:
    """Return the process-wide :class:`ChangeLogParserFactory`.

    Thread-safe.  Lazily created on first call with the script parser
    registered.
    """
    global _instance
    if _instance is not None:
        return _instance

    with _lock:
        # Double-checked locking
        if _instance is not None:
            return _instance

        factory = ChangeLogParserFactory()
        factory.register(ScriptChangeLogParser())
        _instance = factory
        return _instance


def register_parser(parser: ChangeLogParser) -> None:
    """Add *parser* to the shared factory, ahead of the parsers already there."""
    get_parser_factory().register(parser)


def reset_parser_factory() -> None:
    """Reset the singleton.  **For testing only.**"""
    global _instance
    with _lock:
        _instance = None


def compile_change_log(
    path: str,
    resource_accessor: ResourceAccessor,
    parameters: ChangeLogParameters | None = None,
    parser_factory: ChangeLogParserFactory | None = None,
) -> DatabaseChangeLog:
    """Compile the root change log at *path* and everything it includes.

    Parameters
    ----------
    path:
        Path of the root change log, relative to the accessor's root.
    resource_accessor:
        Where the change log and its includes are read from.
    parameters:
        The parameter table, bound to the target database, runtime contexts
        and labels.  An unbound, empty table when omitted.
    parser_factory:
        The parsers to choose from; the shared factory when omitted.

    Returns
    -------
    DatabaseChangeLog
        The fully populated document.  Nothing is returned on failure.

    Raises
    ------
    ChangeLogError
        Any compile-format, resource or extension failure.
    """
    factory = parser_factory or get_parser_factory()
    parameters = parameters if parameters is not None else ChangeLogParameters()

    parser = factory.get_parser(path, resource_accessor)
    if parser is None:
        raise ChangeLogParseError(f"Cannot find a parser that supports {path}")

    options: dict[str, Any] = {}
    if isinstance(parser, ScriptChangeLogParser):
        options["session"] = parser.new_session(parameters, resource_accessor, factory)

    logger.info("Compiling change log %s", path)
    change_log = parser.parse(path, parameters, resource_accessor, **options)
    logger.info("Compiled change log %s: %d change sets", path, len(change_log.change_sets))
    return change_log
