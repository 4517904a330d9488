"""Shared fixtures for CLI tests."""

from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from changelog_engine.loader.extensions import reset_extension_registry
from changelog_engine.parser.change_log_parser import reset_parser_factory

MAIN_CHANGE_LOG = """
with databaseChangeLog(logicalFilePath="db/main"):
    property(name="table", value="orders")
    with changeSet(id="create-${table}", author="alice", context="test"):
        with createTable(tableName="${table}"):
            column(name="id", type="int")
        rollback("drop table ${table}")
    include(file="parts/extra.py", relativeToChangelogFile=True)
"""

EXTRA_CHANGE_LOG = """
with databaseChangeLog():
    with changeSet(id="tag", author="bob", labels="release"):
        tagDatabase(tag="v1")
"""


@pytest.fixture()
def change_log_dir(tmp_path: Path) -> Path:
    """A small two-file change-log tree rooted at ``tmp_path``."""
    files = {
        "db/main.py": MAIN_CHANGE_LOG,
        "db/parts/extra.py": EXTRA_CHANGE_LOG,
    }
    for relative, content in files.items():
        path = tmp_path / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(textwrap.dedent(content).lstrip("\n"), encoding="utf-8")
    return tmp_path


@pytest.fixture(autouse=True)
def _reset_shared_registries():
    yield
    reset_parser_factory()
    reset_extension_registry()
