"""Exception hierarchy shared by the change-log compiler.

Three families are kept apart so that callers can tell them apart:

* :class:`ChangeLogParseError` -- the script is malformed (unsupported or
  removed attribute, bad enum value, invalid nesting).
* :class:`ResourceNotFoundError` / :class:`ResourceAccessError` -- a file or
  directory could not be found or read.
* :class:`ExtensionResolutionError` -- a named custom filter or comparator
  could not be loaded, instantiated, or lacks the required capability.
"""

from __future__ import annotations


class ChangeLogError(Exception):
    """Base exception for all change-log compiler errors."""


class ChangeLogParseError(ChangeLogError):
    """The change-log script could not be compiled into a document."""


class IncludeDepthError(ChangeLogParseError):
    """An inclusion cycle was found or the inclusion depth limit was hit."""


class ChangeLogResourceError(ChangeLogError):
    """A resource referenced by the change log is missing or unreadable."""

    def __init__(self, message: str, path: str | None = None) -> None:
        super().__init__(message)
        self.path = path


class ResourceAccessError(ChangeLogResourceError):
    """A resource exists but could not be listed or read."""


class ResourceNotFoundError(ChangeLogResourceError):
    """A resource does not exist."""


class ExtensionResolutionError(ChangeLogError):
    """A custom resource filter or comparator could not be resolved."""

    def __init__(self, message: str, name: str | None = None) -> None:
        super().__init__(message)
        self.name = name


class PropertyBindingError(Exception):
    """Raised by the property binder when an attribute cannot be set.

    Never escapes the compiler: delegates translate it into a
    :class:`ChangeLogParseError` that names the change set and element.
    """
