"""Helpers shared by every DSL delegate: truth coercion, expansion, whitelists."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from changelog_engine.errors import ChangeLogParseError

# Text values that parse as true; everything else is false.
TRUTHY_STRINGS = frozenset({"true", "1", "y"})

# Attributes that were removed from an element, with the attribute that replaced them.
REMOVED_ATTRIBUTES: dict[str, dict[str, str]] = {
    "changeSet": {"alwaysRun": "runAlways"},
}


def parse_truth(value: Any, default: bool) -> bool:
    """Return the truth of a loosely typed value.

    ``None`` gives *default*.  Text is true only for ``"true"``, ``"1"`` and
    ``"y"`` (case-insensitive), so ``"false"`` and ``"0"`` are false.  Any
    other value uses its own truthiness.
    """
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() in TRUTHY_STRINGS
    return bool(value)


def expand_expressions(expression: Any, change_log: Any) -> Any:
    """Expand ``${name}`` placeholders in *expression* using the change log's parameters.

    ``None`` stays ``None``.  Without a parameter table, and for values that
    are not text, the expression is returned unchanged.
    """
    if expression is None:
        return None
    parameters = getattr(change_log, "change_log_parameters", None)
    if parameters is None or not isinstance(expression, str):
        return expression
    return parameters.expand_expressions(expression, change_log)


def unsupported_attribute(supplied: Iterable[str], allowed: Iterable[str]) -> str | None:
    """Return the first supplied key that is not in *allowed*, or ``None``."""
    allowed_keys = set(allowed)
    for key in supplied:
        if key not in allowed_keys:
            return key
    return None


def validate_attributes(
    element: str,
    params: Mapping[str, Any],
    allowed: Iterable[str],
    owner: str,
) -> None:
    """Fail unless every key of *params* is whitelisted for *element*.

    Parameters
    ----------
    element:
        DSL element name, used in the message.
    params:
        The attributes supplied by the script.
    allowed:
        The element's attribute whitelist.
    owner:
        Prefix naming where the element appears, e.g. ``"ChangeSet 'abc'"``.

    Raises
    ------
    ChangeLogParseError
        Naming a removed attribute and its replacement, or the first
        unsupported attribute.
    """
    for removed, replacement in REMOVED_ATTRIBUTES.get(element, {}).items():
        if removed in params:
            raise ChangeLogParseError(
                f"{owner}: the {removed} attribute of a {element} has been removed.  "
                f"Please use '{replacement}' instead."
            )
    key = unsupported_attribute(params, allowed)
    if key is not None:
        raise ChangeLogParseError(f"{owner}: '{key}' is not a supported attribute of the '{element}' element.")
