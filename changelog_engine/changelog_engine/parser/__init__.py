"""Compilation of change-log scripts into migration documents."""

from changelog_engine.parser.change_log_parser import (
    ChangeLogParser,
    ChangeLogParserFactory,
    ScriptChangeLogParser,
    compile_change_log,
    get_parser_factory,
    register_parser,
    reset_parser_factory,
    script_vocabulary,
)
from changelog_engine.parser.delegate_util import expand_expressions, parse_truth, validate_attributes
from changelog_engine.parser.property_binder import bind_property, clear_accessor_cache
from changelog_engine.parser.session import ParseSession

__all__ = [
    "ChangeLogParser",
    "ChangeLogParserFactory",
    "ParseSession",
    "ScriptChangeLogParser",
    "bind_property",
    "clear_accessor_cache",
    "compile_change_log",
    "expand_expressions",
    "get_parser_factory",
    "parse_truth",
    "register_parser",
    "reset_parser_factory",
    "script_vocabulary",
    "validate_attributes",
]
