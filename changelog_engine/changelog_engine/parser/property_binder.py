"""Sets DSL attributes on pydantic records, coercing raw values to the field type.

Every record type gets an accessor table built once from its
``model_fields``: each DSL spelling (camelCase alias, snake_case field name
and any ``attribute_aliases``) maps to the field and the type its value is
coerced to.  For a union-typed field the first member that is a recognized
binder type wins, so a field declared ``ForeignKeyConstraintType | str`` is
always written as a string.  Date fields accept a date, a time or a
timestamp, and take any other text as a database function.
"""

from __future__ import annotations

import threading
import types
from dataclasses import dataclass
from datetime import datetime, time
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Union, get_args, get_origin

from pydantic.alias_generators import to_camel

from changelog_engine.errors import PropertyBindingError
from changelog_engine.models.columns import ForeignKeyConstraintType
from changelog_engine.models.functions import (
    DatabaseFunction,
    SequenceCurrentValueFunction,
    SequenceNextValueFunction,
)
from changelog_engine.parser.delegate_util import parse_truth

# Scalar types a DSL attribute can be written as, besides enums.
RECOGNIZED_TYPES: tuple[type, ...] = (
    bool,
    int,
    Decimal,
    datetime,
    DatabaseFunction,
    SequenceNextValueFunction,
    SequenceCurrentValueFunction,
    str,
)

# Enums whose member names do not match the values scripts use.
EXCLUDED_ENUMS: tuple[type[Enum], ...] = (ForeignKeyConstraintType,)


@dataclass(frozen=True)
class Accessor:
    """How one DSL attribute is written to a record."""

    field_name: str
    target_type: type | None


_cache_lock = threading.Lock()
_accessor_cache: dict[type, dict[str, Accessor]] = {}


def _is_recognized(candidate: Any) -> bool:
    if not isinstance(candidate, type):
        return False
    if issubclass(candidate, Enum):
        return candidate not in EXCLUDED_ENUMS
    return candidate in RECOGNIZED_TYPES


def _writer_type(annotation: Any) -> type | None:
    if get_origin(annotation) in (Union, types.UnionType):
        candidates = [arg for arg in get_args(annotation) if arg is not type(None)]
    else:
        candidates = [annotation]
    for candidate in candidates:
        if _is_recognized(candidate):
            return candidate
    return None


def _build_accessor_table(record_type: type) -> dict[str, Accessor]:
    table: dict[str, Accessor] = {}
    for field_name, field_info in record_type.model_fields.items():
        accessor = Accessor(field_name, _writer_type(field_info.annotation))
        table[field_name] = accessor
        table.setdefault(field_info.alias or to_camel(field_name), accessor)
    for alias, field_name in getattr(record_type, "attribute_aliases", {}).items():
        if field_name in table:
            table[alias] = table[field_name]
    return table


def get_accessor_table(record_type: type) -> dict[str, Accessor]:
    """Return the cached accessor table for *record_type*, building it on first use."""
    table = _accessor_cache.get(record_type)
    if table is not None:
        return table
    with _cache_lock:
        table = _accessor_cache.get(record_type)
        if table is None:
            table = _build_accessor_table(record_type)
            _accessor_cache[record_type] = table
        return table


def clear_accessor_cache() -> None:
    """Drop every cached accessor table.  **For testing only.**"""
    with _cache_lock:
        _accessor_cache.clear()


def has_property(target: Any, name: str) -> bool:
    accessor = get_accessor_table(type(target)).get(name)
    return accessor is not None and accessor.target_type is not None


def _parse_date_value(text: str) -> datetime | time | DatabaseFunction:
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        pass
    try:
        return time.fromisoformat(text)
    except ValueError:
        return DatabaseFunction(text)


def coerce_value(value: Any, target_type: type) -> Any:
    """Convert a raw script value to *target_type*.

    Raises
    ------
    PropertyBindingError
        The value cannot be converted.
    """
    if value is None:
        return None
    if target_type is bool:
        return parse_truth(value, False)
    if target_type is str:
        if isinstance(value, bool):
            return "true" if value else "false"
        return str(value)
    if issubclass(target_type, Enum):
        if isinstance(value, target_type):
            return value
        try:
            return target_type[str(value)]
        except KeyError:
            raise PropertyBindingError(
                f"'{value}' is not a valid {target_type.__name__} value"
            ) from None
    if isinstance(value, target_type) and not isinstance(value, bool):
        return value
    try:
        if target_type is int:
            return int(str(value).strip())
        if target_type is Decimal:
            return Decimal(str(value).strip())
        if target_type is datetime:
            return _parse_date_value(str(value).strip())
        return target_type(str(value))
    except (ValueError, InvalidOperation) as exc:
        raise PropertyBindingError(f"Cannot convert '{value}' to {target_type.__name__}") from exc


def bind_property(target: Any, name: str, value: Any) -> None:
    """Set DSL attribute *name* on *target* to *value*, coerced to the field's type.

    Raises
    ------
    PropertyBindingError
        *target* has no such attribute, the attribute cannot be written
        from a script, or the value does not convert.
    """
    accessor = get_accessor_table(type(target)).get(name)
    if accessor is None:
        raise PropertyBindingError(f"Property '{name}' not found on object type {type(target).__name__}")
    if accessor.target_type is None:
        raise PropertyBindingError(
            f"Property '{name}' on object type {type(target).__name__} cannot be set from a change log"
        )
    setattr(target, accessor.field_name, coerce_value(value, accessor.target_type))
