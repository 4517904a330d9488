"""Applicability filter value types: context expressions, labels and label expressions.

A filter expression is a boolean expression over bare words::

    test and !prod
    (qa or dev), nightly

``and``, ``or``, ``not`` (or ``!``) and parentheses have their usual
meaning; a top-level ``,`` is a low-precedence ``or``.  Words are compared
case-insensitively.  An empty expression matches everything.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable

_TOKEN_RE = re.compile(r"\s*(\(|\)|,|!|[^\s(),!]+)")


class FilterExpressionError(ValueError):
    """Raised when a context or label expression is malformed."""


def _tokenize(expression: str) -> list[str]:
    tokens: list[str] = []
    pos = 0
    stripped = expression.rstrip()
    while pos < len(stripped):
        match = _TOKEN_RE.match(stripped, pos)
        if match is None:
            raise FilterExpressionError(f"Cannot parse filter expression '{expression}'.")
        tokens.append(match.group(1))
        pos = match.end()
    return tokens


class _ExpressionEvaluator:
    """Recursive-descent evaluator for a tokenized filter expression."""

    def __init__(self, expression: str, predicate: Callable[[str], bool]) -> None:
        self._expression = expression
        self._tokens = _tokenize(expression)
        self._pos = 0
        self._predicate = predicate

    def evaluate(self) -> bool:
        result = self._or()
        if self._pos != len(self._tokens):
            raise FilterExpressionError(
                f"Unexpected '{self._tokens[self._pos]}' in filter expression '{self._expression}'."
            )
        return result

    def _peek(self) -> str | None:
        if self._pos < len(self._tokens):
            return self._tokens[self._pos]
        return None

    def _next(self) -> str:
        token = self._peek()
        if token is None:
            raise FilterExpressionError(f"Unexpected end of filter expression '{self._expression}'.")
        self._pos += 1
        return token

    def _or(self) -> bool:
        result = self._and()
        while (token := self._peek()) is not None and (token == "," or token.lower() == "or"):
            self._pos += 1
            rhs = self._and()
            result = result or rhs
        return result

    def _and(self) -> bool:
        result = self._unary()
        while (token := self._peek()) is not None and token.lower() == "and":
            self._pos += 1
            rhs = self._unary()
            result = result and rhs
        return result

    def _unary(self) -> bool:
        token = self._next()
        if token == "!" or token.lower() == "not":
            return not self._unary()
        if token == "(":
            result = self._or()
            if self._next() != ")":
                raise FilterExpressionError(f"Unbalanced parentheses in filter expression '{self._expression}'.")
            return result
        if token in (")", ","):
            raise FilterExpressionError(f"Unexpected '{token}' in filter expression '{self._expression}'.")
        return self._predicate(token.lower())


def evaluate_filter(expression: str, words: Iterable[str]) -> bool:
    """Evaluate *expression* against a set of runtime *words*."""
    available = {w.lower() for w in words}
    return _ExpressionEvaluator(expression, lambda word: word in available).evaluate()


def _split_list(value: str | Iterable[str] | None) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    return [str(part).strip() for part in value if str(part).strip()]


class ContextExpression:
    """The context filter of a change set, include or parameter.

    ``contexts`` holds the comma-separated top-level alternatives exactly as
    written; :meth:`matches` evaluates the full expression.
    """

    def __init__(self, value: str | None = None) -> None:
        self.value = value.strip() if value else None
        self.contexts: list[str] = _split_list(self.value)

    def is_empty(self) -> bool:
        return not self.contexts

    def matches(self, runtime_contexts: Iterable[str] | None) -> bool:
        """Return ``True`` when the runtime contexts satisfy this expression.

        An empty expression or an empty runtime set always matches.
        """
        runtime = [c for c in (runtime_contexts or []) if c]
        if self.is_empty() or not runtime:
            return True
        return evaluate_filter(self.value or "", runtime)

    def __str__(self) -> str:
        return ",".join(self.contexts)

    def __repr__(self) -> str:
        return f"ContextExpression({str(self)!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ContextExpression):
            return NotImplemented
        return self.contexts == other.contexts

    def __hash__(self) -> int:
        return hash(tuple(self.contexts))


class Labels:
    """The set of labels attached to a change set or parameter."""

    def __init__(self, value: str | Iterable[str] | None = None) -> None:
        self.labels: list[str] = _split_list(value)

    def is_empty(self) -> bool:
        return not self.labels

    def __str__(self) -> str:
        return ",".join(self.labels)

    def __repr__(self) -> str:
        return f"Labels({str(self)!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Labels):
            return NotImplemented
        return self.labels == other.labels

    def __hash__(self) -> int:
        return hash(tuple(self.labels))


class LabelExpression:
    """A runtime label filter evaluated against :class:`Labels`."""

    def __init__(self, value: str | None = None) -> None:
        self.value = value.strip() if value else None

    def is_empty(self) -> bool:
        return not self.value

    def matches(self, labels: Labels | None) -> bool:
        """Return ``True`` when *labels* satisfy this expression.

        Unlabelled targets always match, as does an empty expression.
        """
        if self.is_empty() or labels is None or labels.is_empty():
            return True
        return evaluate_filter(self.value or "", labels.labels)

    def __str__(self) -> str:
        return self.value or ""

    def __repr__(self) -> str:
        return f"LabelExpression({str(self)!r})"


def split_dbms(value: str | Iterable[str] | None) -> set[str] | None:
    """Parse a ``dbms`` attribute (``"h2, postgresql"``) into a set, or ``None``."""
    parts = _split_list(value)
    return set(parts) if parts else None


def database_matches(definition: Iterable[str] | None, database: str | None) -> bool:
    """Return ``True`` when *database* satisfies a ``dbms`` definition.

    ``all`` matches every engine and ``none`` matches none; ``!name`` excludes
    an engine.  An empty definition, or no bound engine, always matches.
    """
    entries = [d.strip().lower() for d in (definition or []) if d and d.strip()]
    if not entries or database is None:
        return True
    database = database.lower()
    if "none" in entries:
        return False
    if f"!{database}" in entries:
        return False
    positives = [d for d in entries if not d.startswith("!")]
    if not positives or "all" in positives:
        return True
    return database in positives
