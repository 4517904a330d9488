"""Resource access and the ``includeAll`` extension slots."""

from changelog_engine.loader.extensions import (
    ExtensionRegistry,
    ResourceComparator,
    ResourceFilter,
    get_extension_registry,
    reset_extension_registry,
)
from changelog_engine.loader.resource_accessor import DirectoryResourceAccessor, ResourceAccessor

__all__ = [
    "DirectoryResourceAccessor",
    "ExtensionRegistry",
    "ResourceAccessor",
    "ResourceComparator",
    "ResourceFilter",
    "get_extension_registry",
    "reset_extension_registry",
]
