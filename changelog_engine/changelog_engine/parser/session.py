"""State shared by a top-level compile and every file it includes."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from changelog_engine.config import Settings
from changelog_engine.loader.extensions import ExtensionRegistry
from changelog_engine.loader.resource_accessor import ResourceAccessor
from changelog_engine.models.changes import ChangeRegistry
from changelog_engine.models.parameters import ChangeLogParameters
from changelog_engine.models.preconditions import PreconditionRegistry


@dataclass
class ParseSession:
    """Collaborators and the include chain for one compile.

    ``parser_factory`` is used to re-enter compilation for included files.
    ``include_stack`` holds the physical paths currently being compiled,
    outermost first.
    """

    settings: Settings
    resource_accessor: ResourceAccessor
    parameters: ChangeLogParameters
    parser_factory: Any
    change_registry: ChangeRegistry
    precondition_registry: PreconditionRegistry
    extension_registry: ExtensionRegistry
    include_stack: list[str] = field(default_factory=list)
