"""Populates a directive or precondition record from an element call."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, TypeVar

from changelog_engine.errors import ChangeLogParseError, PropertyBindingError
from changelog_engine.parser.property_binder import bind_property

R = TypeVar("R")


def populate_record(
    record: R,
    element: str,
    owner: str,
    args: tuple[Any, ...],
    params: dict[str, Any],
    expand: Callable[[Any], Any],
    describe_error: Callable[[str], str],
) -> R:
    """Bind the attributes of one element call onto *record*.

    A single positional argument is accepted when the record declares a
    ``positional_attribute``.  Every value is expanded before binding.

    Raises
    ------
    ChangeLogParseError
        A positional argument is not accepted, or an attribute cannot be
        bound (message from *describe_error*).
    """
    if args:
        positional = getattr(record, "positional_attribute", None)
        if positional is None:
            raise ChangeLogParseError(f"{owner}: '{element}' does not accept positional arguments.")
        if len(args) > 1:
            raise ChangeLogParseError(f"{owner}: '{element}' accepts a single positional argument.")
        if positional in params:
            raise ChangeLogParseError(f"{owner}: '{element}' was given '{positional}' twice.")
        params = {positional: args[0], **params}

    for key, value in params.items():
        try:
            bind_property(record, key, expand(value))
        except PropertyBindingError as exc:
            raise ChangeLogParseError(describe_error(key)) from exc
    return record
