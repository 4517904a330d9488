"""The parameter table used for ``${name}`` placeholder expansion."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from changelog_engine.models.filters import (
    ContextExpression,
    LabelExpression,
    Labels,
    database_matches,
    split_dbms,
)

logger = logging.getLogger(__name__)

_PLACEHOLDER_RE = re.compile(r"\$\{([^{}]+)\}")


class ChangeLogParameter(BaseModel):
    """One named value with its applicability filters."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    key: str
    value: Any = None
    valid_contexts: ContextExpression | None = None
    labels: Labels | None = None
    valid_databases: set[str] | None = None
    global_: bool = True
    change_log: Any = Field(default=None, repr=False, exclude=True)


class ChangeLogParameters:
    """Named, filterable values visible to placeholder expansion.

    The table is bound to the host's runtime: the target engine
    (``database``), the runtime contexts and the runtime label expression.
    A parameter whose filters do not match that runtime is treated as absent.
    When a name is set more than once, the most recent applicable write wins.
    """

    def __init__(
        self,
        database: str | None = None,
        contexts: str | Iterable[str] | None = None,
        labels: str | LabelExpression | None = None,
    ) -> None:
        self.database = database
        if contexts is None:
            self.contexts: list[str] = []
        elif isinstance(contexts, str):
            self.contexts = ContextExpression(contexts).contexts
        else:
            self.contexts = [c for c in contexts if c]
        self.label_expression = labels if isinstance(labels, LabelExpression) else LabelExpression(labels)
        self._parameters: list[ChangeLogParameter] = []

    def set(
        self,
        key: str,
        value: Any,
        context: ContextExpression | str | None = None,
        labels: Labels | str | None = None,
        dbms: str | Iterable[str] | None = None,
        global_: bool = True,
        change_log: Any = None,
    ) -> None:
        """Record a parameter.

        Non-global parameters are only visible while expanding inside
        *change_log*.
        """
        if isinstance(context, str):
            context = ContextExpression(context)
        if isinstance(labels, str):
            labels = Labels(labels)
        self._parameters.append(
            ChangeLogParameter(
                key=key,
                value=value,
                valid_contexts=context,
                labels=labels,
                valid_databases=split_dbms(dbms),
                global_=global_,
                change_log=change_log,
            )
        )
        logger.debug("Set change log parameter %s (global=%s)", key, global_)

    def _applies(self, parameter: ChangeLogParameter, change_log: Any) -> bool:
        if not parameter.global_ and parameter.change_log is not change_log:
            return False
        if parameter.valid_contexts is not None and not parameter.valid_contexts.matches(self.contexts):
            return False
        if not self.label_expression.matches(parameter.labels):
            return False
        return database_matches(parameter.valid_databases, self.database)

    def find_parameter(self, key: str, change_log: Any = None) -> ChangeLogParameter | None:
        for parameter in reversed(self._parameters):
            if parameter.key == key and self._applies(parameter, change_log):
                return parameter
        return None

    def has_value(self, key: str, change_log: Any = None) -> bool:
        return self.find_parameter(key, change_log) is not None

    def get_value(self, key: str, change_log: Any = None) -> Any:
        parameter = self.find_parameter(key, change_log)
        return parameter.value if parameter is not None else None

    def expand_expressions(self, text: str | None, change_log: Any = None) -> str | None:
        """Replace every ``${name}`` with its applicable value.

        Placeholders without an applicable parameter are left as written.
        """
        if text is None:
            return None

        def _replace(match: re.Match[str]) -> str:
            parameter = self.find_parameter(match.group(1).strip(), change_log)
            if parameter is None or parameter.value is None:
                return match.group(0)
            return str(parameter.value)

        return _PLACEHOLDER_RE.sub(_replace, text)

    def __len__(self) -> int:
        return len(self._parameters)
