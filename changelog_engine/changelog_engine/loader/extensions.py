"""Custom ``includeAll`` resource filters and comparators.

A change log names a filter or comparator by string.  The name is resolved
through an :class:`ExtensionRegistry`: registered names first, then (when
allowed) a ``module:attr`` or dotted import path.  Every failure along the
way is an :class:`ExtensionResolutionError`.
"""

from __future__ import annotations

import importlib
import logging
import threading
from typing import Any, Callable, Protocol, runtime_checkable

from changelog_engine.errors import ExtensionResolutionError

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Capability protocols
# ---------------------------------------------------------------------------


@runtime_checkable
class ResourceFilter(Protocol):
    """Decides whether a discovered resource path is included."""

    def include(self, path: str) -> bool: ...


@runtime_checkable
class ResourceComparator(Protocol):
    """Orders discovered resource paths; ``compare`` returns <0, 0 or >0."""

    def compare(self, left: str, right: str) -> int: ...


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


class ExtensionRegistry:
    """Resolves filter and comparator names to instances.

    Parameters
    ----------
    allow_imports:
        When ``True``, names that are not registered are imported as
        ``module:attr`` or ``module.attr``.
    """

    def __init__(self, allow_imports: bool = True) -> None:
        self.allow_imports = allow_imports
        self._filters: dict[str, Callable[[], Any]] = {}
        self._comparators: dict[str, Callable[[], Any]] = {}

    def register_filter(self, name: str, factory: Callable[[], Any]) -> None:
        self._filters[name] = factory
        logger.debug("Registered resource filter: %s", name)

    def register_comparator(self, name: str, factory: Callable[[], Any]) -> None:
        self._comparators[name] = factory
        logger.debug("Registered resource comparator: %s", name)

    def resolve_filter(self, name: str) -> ResourceFilter:
        instance = self._resolve(name, self._filters, "resource filter")
        if not isinstance(instance, ResourceFilter):
            raise ExtensionResolutionError(
                f"'{name}' is not a valid resource filter.  Does it exist, and does it implement include(path)?",
                name=name,
            )
        return instance

    def resolve_comparator(self, name: str) -> ResourceComparator:
        instance = self._resolve(name, self._comparators, "resource comparator")
        if not isinstance(instance, ResourceComparator):
            raise ExtensionResolutionError(
                f"'{name}' is not a valid resource comparator.  "
                "Does it exist, and does it implement compare(left, right)?",
                name=name,
            )
        return instance

    def _resolve(self, name: str, registered: dict[str, Callable[[], Any]], kind: str) -> Any:
        factory = registered.get(name)
        if factory is None:
            if not self.allow_imports:
                raise ExtensionResolutionError(f"'{name}' is not a registered {kind}.", name=name)
            factory = _import_object(name, kind)

        if not callable(factory):
            return factory
        try:
            return factory()
        except Exception as exc:
            raise ExtensionResolutionError(f"Cannot instantiate {kind} '{name}': {exc}", name=name) from exc


def _import_object(name: str, kind: str) -> Any:
    if ":" in name:
        module_name, _, attr = name.partition(":")
    else:
        module_name, _, attr = name.rpartition(".")
    if not module_name or not attr:
        raise ExtensionResolutionError(f"'{name}' is not an importable {kind} name.", name=name)

    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise ExtensionResolutionError(f"Cannot import module '{module_name}' for {kind} '{name}'.", name=name) from exc

    obj: Any = module
    for part in attr.split("."):
        try:
            obj = getattr(obj, part)
        except AttributeError as exc:
            raise ExtensionResolutionError(f"Module '{module_name}' has no {kind} '{attr}'.", name=name) from exc
    return obj


# ---------------------------------------------------------------------------
# Shared default registry
# ---------------------------------------------------------------------------

_lock = threading.Lock()
_default_registry: ExtensionRegistry | None = None


def get_extension_registry() -> ExtensionRegistry:
    """Return the process-wide :class:`ExtensionRegistry`.

    Thread-safe.  Lazily created on first call.
    """
    global _default_registry
    if _default_registry is not None:
        return _default_registry

    with _lock:
        # Double-checked locking
        if _default_registry is None:
            _default_registry = ExtensionRegistry()
        return _default_registry


def reset_extension_registry() -> None:
    """Reset the shared registry.  **For testing only.**"""
    global _default_registry
    with _lock:
        _default_registry = None
