"""Executes change-log scripts against a stack of DSL delegates.

A script is Python source run with every DSL element name bound to a
dispatcher.  Calling an element hands the call to the delegate on top of
the stack, so the same name can mean different things in different blocks.
``with`` blocks push the delegate for their contents and pop it on exit.

Block-only elements (``changeSet`` and friends) return a :class:`Block`
that must be entered; one that never is fails the compile when the script
ends.  Directives that may be used bare or as a block take effect
immediately and return a :class:`Handle`.
"""

from __future__ import annotations

import builtins
import inspect
import keyword
import logging
from collections.abc import Callable, Iterable
from types import CodeType
from typing import Any, ClassVar

from changelog_engine.errors import ChangeLogError, ChangeLogParseError
from changelog_engine.parser.delegate_util import expand_expressions

logger = logging.getLogger(__name__)


def dsl_keyword(name: str) -> str:
    """Map the Python spelling of a reserved-word attribute back to its DSL name.

    ``global_`` becomes ``global`` and ``with_`` becomes ``with``.
    """
    if name.endswith("_") and keyword.iskeyword(name[:-1]):
        return name[:-1]
    return name


# ---------------------------------------------------------------------------
# Delegates
# ---------------------------------------------------------------------------


class Delegate:
    """Handles the elements that may appear directly inside one kind of block.

    ``elements`` maps DSL element names to method names.  Subclasses may
    also answer names dynamically through :meth:`resolve_dynamic`.
    """

    elements: ClassVar[dict[str, str]] = {}

    def __init__(self, script: ScriptContext, owner: str = "DatabaseChangeLog") -> None:
        self.script = script
        self.owner = owner

    @property
    def change_log(self) -> Any:
        return self.script.change_log

    @property
    def session(self) -> Any:
        return self.script.session

    def expand(self, value: Any) -> Any:
        return expand_expressions(value, self.script.change_log)

    def resolve(self, name: str) -> Callable[..., Any] | None:
        method_name = self.elements.get(name)
        if method_name is not None:
            return getattr(self, method_name)
        return self.resolve_dynamic(name)

    def resolve_dynamic(self, name: str) -> Callable[..., Any] | None:
        return None

    def missing(self, name: str) -> ChangeLogParseError:
        return ChangeLogParseError(f"{self.owner}: '{name}' is not a valid element here")


class LeafDelegate(Delegate):
    """The contents of a block that accepts no child elements."""

    def __init__(self, script: ScriptContext, owner: str, element: str) -> None:
        super().__init__(script, owner)
        self.element = element

    def missing(self, name: str) -> ChangeLogParseError:
        return ChangeLogParseError(f"{self.owner}: '{name}' is not a valid child element of '{self.element}'")


# ---------------------------------------------------------------------------
# Scopes
# ---------------------------------------------------------------------------


class _Scope:
    def __init__(self, script: ScriptContext, nested: Callable[[], Delegate], value: Any = None) -> None:
        self.script = script
        self.value = value
        self._nested = nested
        self._delegate: Delegate | None = None

    def __enter__(self) -> Any:
        self._delegate = self._nested()
        self.script.push(self._delegate)
        return self.value

    def __exit__(self, exc_type: Any, exc: BaseException | None, tb: Any) -> bool:
        delegate = self._delegate
        self.script.pop(delegate)
        if exc is None:
            self.finish()
            return False
        if isinstance(exc, NameError) and delegate is not None:
            raise delegate.missing(exc.name or str(exc)) from exc
        return False

    def finish(self) -> None:
        pass


class Block(_Scope):
    """An element that only makes sense as a ``with`` block.

    *on_exit* runs when the block completes without an error.
    """

    def __init__(
        self,
        script: ScriptContext,
        name: str,
        nested: Callable[[], Delegate],
        on_exit: Callable[[], None] | None = None,
        value: Any = None,
    ) -> None:
        super().__init__(script, nested, value)
        self.name = name
        self._on_exit = on_exit
        script.add_pending(self)

    def __enter__(self) -> Any:
        self.script.remove_pending(self)
        return super().__enter__()

    def finish(self) -> None:
        if self._on_exit is not None:
            self._on_exit()


class Handle(_Scope):
    """The result of an element that has already taken effect.

    Entering it opens a block for the element's optional children.
    """

    @property
    def target(self) -> Any:
        return self.value


# ---------------------------------------------------------------------------
# Namespace
# ---------------------------------------------------------------------------


class _Element:
    __slots__ = ("name", "_script")

    def __init__(self, name: str, script: ScriptContext) -> None:
        self.name = name
        self._script = script

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        return self._script.dispatch(self.name, args, kwargs)

    def __repr__(self) -> str:
        return f"<change log element {self.name}>"


class ScriptBuiltins(dict):
    """Builtins of a running script.

    Names found neither in the script's globals nor among the Python
    builtins resolve to the change log parameter of that name, if one
    applies.  Functions defined in the script see the same lookup.
    """

    def __init__(self, script: ScriptContext) -> None:
        super().__init__(vars(builtins))
        self._script = script

    def __missing__(self, key: str) -> Any:
        change_log = self._script.change_log
        parameters = change_log.change_log_parameters
        if parameters is not None and parameters.has_value(key, change_log):
            return parameters.get_value(key, change_log)
        raise KeyError(key)


# ---------------------------------------------------------------------------
# Script context
# ---------------------------------------------------------------------------


class ScriptContext:
    """The delegate stack and pending blocks of one script being compiled."""

    def __init__(self, session: Any, change_log: Any, path: str) -> None:
        self.session = session
        self.change_log = change_log
        self.path = path
        self._stack: list[Delegate] = []
        self._pending: list[Block] = []

    @property
    def current(self) -> Delegate:
        return self._stack[-1]

    def push(self, delegate: Delegate) -> None:
        self._stack.append(delegate)

    def pop(self, delegate: Delegate | None) -> None:
        if not self._stack or self._stack[-1] is not delegate:
            raise ChangeLogParseError(f"{self.path}: change log blocks were closed out of order")
        self._stack.pop()

    def add_pending(self, block: Block) -> None:
        self._pending.append(block)

    def remove_pending(self, block: Block) -> None:
        if block in self._pending:
            self._pending.remove(block)

    def block(
        self,
        name: str,
        nested: Callable[[], Delegate],
        on_exit: Callable[[], None] | None = None,
        value: Any = None,
    ) -> Block:
        return Block(self, name, nested, on_exit, value)

    def handle(self, target: Any, nested: Callable[[], Delegate]) -> Handle:
        return Handle(self, nested, target)

    def dispatch(self, name: str, args: tuple[Any, ...], kwargs: dict[str, Any]) -> Any:
        """Call element *name* on the current delegate."""
        delegate = self.current
        handler = delegate.resolve(name)
        if handler is None:
            raise delegate.missing(name)

        params = {dsl_keyword(key): value for key, value in kwargs.items()}
        try:
            inspect.signature(handler).bind(*args, **params)
        except TypeError as exc:
            raise ChangeLogParseError(f"{delegate.owner}: invalid arguments for '{name}': {exc}") from exc
        return handler(*args, **params)

    def run(self, code: CodeType, root: Delegate, names: Iterable[str]) -> None:
        """Execute a compiled script with *root* as the bottom of the delegate stack.

        The script runs in a single namespace, so functions it defines see its
        top-level names.

        Raises
        ------
        ChangeLogParseError
            The script failed, or left a block-only element unentered.
        """
        self.push(root)
        script_globals: dict[str, Any] = {name: _Element(name, self) for name in names}
        script_globals.update(
            {
                "__builtins__": ScriptBuiltins(self),
                "__name__": "__changelog__",
                "__file__": self.path,
            }
        )
        try:
            exec(code, script_globals)
        except ChangeLogError:
            raise
        except NameError as exc:
            raise root.missing(exc.name or str(exc)) from exc
        except Exception as exc:
            raise ChangeLogParseError(f"Error compiling {self.path}: {type(exc).__name__}: {exc}") from exc
        finally:
            self._stack.clear()

        if self._pending:
            names_left = ", ".join(block.name for block in self._pending)
            raise ChangeLogParseError(f"{self.path}: '{names_left}' must be used as a 'with' block")
        logger.debug("Executed change log script %s", self.path)
