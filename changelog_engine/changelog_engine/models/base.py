"""Base class for every record the DSL populates attribute by attribute."""

from __future__ import annotations

from typing import ClassVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class DslRecord(BaseModel):
    """A pydantic record whose fields are addressed by their camelCase DSL names.

    Field names are snake_case in Python and exposed to scripts under their
    camelCase alias (``table_name`` is written ``tableName`` in a change log).
    Assignment is not re-validated: the property binder coerces values to the
    declared field type before setting them.

    ``attribute_aliases`` maps additional DSL spellings onto field names.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        arbitrary_types_allowed=True,
        validate_assignment=False,
    )

    attribute_aliases: ClassVar[dict[str, str]] = {}
