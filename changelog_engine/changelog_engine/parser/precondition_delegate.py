"""Delegates for ``preConditions`` blocks and the logical blocks nested in them."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, ClassVar

from changelog_engine.errors import ChangeLogParseError, PropertyBindingError
from changelog_engine.models.preconditions import (
    AndPrecondition,
    NotPrecondition,
    OrPrecondition,
    PreconditionContainer,
    PreconditionLogic,
)
from changelog_engine.parser.property_binder import bind_property
from changelog_engine.parser.record_builder import populate_record
from changelog_engine.parser.script import Delegate, Handle, LeafDelegate, ScriptContext


def build_precondition_container(
    owner: str,
    params: dict[str, Any],
    expand: Callable[[Any], Any],
) -> PreconditionContainer:
    """Create a container from the attributes of a ``preConditions`` element."""
    container = PreconditionContainer()
    for key, value in params.items():
        try:
            bind_property(container, key, expand(value))
        except PropertyBindingError as exc:
            raise ChangeLogParseError(f"{owner}: '{key}' is not a valid attribute for preConditions") from exc
    return container


class PreconditionDelegate(Delegate):
    """Adds preconditions to a container or to an ``and_``/``or_``/``not_`` group."""

    elements: ClassVar[dict[str, str]] = {
        "and_": "and_",
        "or_": "or_",
        "not_": "not_",
    }

    def __init__(self, script: ScriptContext, owner: str, logic: PreconditionLogic) -> None:
        super().__init__(script, owner)
        self.logic = logic

    def and_(self) -> Handle:
        return self._nest(AndPrecondition())

    def or_(self) -> Handle:
        return self._nest(OrPrecondition())

    def not_(self) -> Handle:
        return self._nest(NotPrecondition())

    def _nest(self, logic: PreconditionLogic) -> Handle:
        self.logic.add_nested_precondition(logic)
        return self.script.handle(logic, lambda: PreconditionDelegate(self.script, self.owner, logic))

    def resolve_dynamic(self, name: str) -> Callable[..., Any] | None:
        if name not in self.session.precondition_registry:
            return None

        def _precondition(*args: Any, **params: Any) -> Handle:
            precondition = populate_record(
                self.session.precondition_registry.create(name),
                name,
                self.owner,
                args,
                params,
                self.expand,
                lambda key: f"{self.owner}: '{key}' is not a valid attribute for '{name}' preconditions.",
            )
            self.logic.add_nested_precondition(precondition)
            return self.script.handle(precondition, lambda: LeafDelegate(self.script, self.owner, name))

        return _precondition

    def missing(self, name: str) -> ChangeLogParseError:
        return ChangeLogParseError(f"{self.owner}: '{name}' is not a valid precondition")
