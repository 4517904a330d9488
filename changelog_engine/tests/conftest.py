"""Shared fixtures for changelog_engine tests.

Change-log trees are written under ``tmp_path`` and compiled through the
filesystem resource accessor with a private parser factory, so tests never
touch the shared singletons.
"""

from __future__ import annotations

import textwrap
from collections.abc import Callable
from pathlib import Path

import pytest

from changelog_engine.config import load_settings
from changelog_engine.loader.extensions import ExtensionRegistry
from changelog_engine.loader.resource_accessor import DirectoryResourceAccessor
from changelog_engine.models.change_log import DatabaseChangeLog
from changelog_engine.models.parameters import ChangeLogParameters
from changelog_engine.parser.change_log_parser import (
    ChangeLogParserFactory,
    ScriptChangeLogParser,
    compile_change_log,
)


@pytest.fixture()
def write_tree(tmp_path: Path) -> Callable[[dict[str, str]], Path]:
    """Write ``{relative path: content}`` under ``tmp_path`` and return the root."""

    def _write(files: dict[str, str]) -> Path:
        for relative, content in files.items():
            path = tmp_path / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(textwrap.dedent(content).lstrip("\n"), encoding="utf-8")
        return tmp_path

    return _write


@pytest.fixture()
def extension_registry() -> ExtensionRegistry:
    return ExtensionRegistry()


@pytest.fixture()
def compile_tree(
    write_tree: Callable[[dict[str, str]], Path],
    extension_registry: ExtensionRegistry,
) -> Callable[..., DatabaseChangeLog]:
    """Write a tree of files and compile one of them (``changelog.py`` by default)."""

    def _compile(
        files: dict[str, str],
        root: str = "changelog.py",
        parameters: ChangeLogParameters | None = None,
        **settings_overrides: object,
    ) -> DatabaseChangeLog:
        root_dir = write_tree(files)
        settings = load_settings(**settings_overrides)
        factory = ChangeLogParserFactory()
        factory.register(ScriptChangeLogParser(settings, extension_registry=extension_registry))
        return compile_change_log(
            root,
            DirectoryResourceAccessor(root_dir),
            parameters if parameters is not None else ChangeLogParameters(),
            factory,
        )

    return _compile

