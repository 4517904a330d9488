"""Enumerations shared by change sets, change logs and preconditions.

Member names are the DSL spelling; the property binder resolves a raw value
with a case-sensitive ``Enum[name]`` lookup.
"""

from __future__ import annotations

from enum import Enum


class ObjectQuotingStrategy(str, Enum):
    """How object names are quoted when SQL is generated."""

    LEGACY = "LEGACY"
    QUOTE_ALL_OBJECTS = "QUOTE_ALL_OBJECTS"
    QUOTE_ONLY_RESERVED_WORDS = "QUOTE_ONLY_RESERVED_WORDS"


class ValidationFailOption(str, Enum):
    """What to do when a previously run change set's checksum no longer matches."""

    HALT = "HALT"
    MARK_RAN = "MARK_RAN"


class FailOption(str, Enum):
    HALT = "HALT"
    CONTINUE = "CONTINUE"
    MARK_RAN = "MARK_RAN"
    WARN = "WARN"


class ErrorOption(str, Enum):
    HALT = "HALT"
    CONTINUE = "CONTINUE"
    MARK_RAN = "MARK_RAN"
    WARN = "WARN"


class OnSqlOutputOption(str, Enum):
    """Precondition behaviour when SQL is only being generated, not run."""

    IGNORE = "IGNORE"
    TEST = "TEST"
    FAIL = "FAIL"
