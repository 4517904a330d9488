"""Resource access: the narrow list/open contract the compiler reads files through.

Paths handed to and returned by an accessor are POSIX-style and relative to
the accessor's root.  ``relative_to`` names a resource (normally the change
log being compiled) whose parent directory is the base for *path*.
"""

from __future__ import annotations

import logging
import posixpath
from pathlib import Path
from typing import BinaryIO, Protocol, runtime_checkable

from changelog_engine.errors import ResourceAccessError, ResourceNotFoundError

logger = logging.getLogger(__name__)


@runtime_checkable
class ResourceAccessor(Protocol):
    """List and open change-log resources."""

    def resolve(self, relative_to: str | None, path: str) -> str:
        """Return the normalized path of *path*, optionally based on *relative_to*."""
        ...

    def list(self, relative_to: str | None, path: str, recursive: bool = True) -> list[str]:
        """List the files under directory *path*.

        Raises
        ------
        ResourceNotFoundError
            The directory does not exist.
        ResourceAccessError
            The directory could not be read.
        """
        ...

    def open_stream(self, relative_to: str | None, path: str) -> BinaryIO:
        """Open a file for binary reading.

        Raises
        ------
        ResourceNotFoundError
            The file does not exist.
        ResourceAccessError
            The file could not be read.
        """
        ...


class DirectoryResourceAccessor:
    """A :class:`ResourceAccessor` backed by a directory on the local filesystem."""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root).resolve()

    def __repr__(self) -> str:
        return f"DirectoryResourceAccessor({str(self.root)!r})"

    def resolve(self, relative_to: str | None, path: str) -> str:
        path = path.replace("\\", "/").lstrip("/")
        if relative_to:
            base = posixpath.dirname(relative_to.replace("\\", "/").lstrip("/"))
            path = posixpath.join(base, path)
        normalized = posixpath.normpath(path) if path else "."
        if normalized == ".." or normalized.startswith("../"):
            raise ResourceAccessError(f"Resource '{path}' is outside of {self.root}", path=path)
        return "" if normalized == "." else normalized

    def _filesystem_path(self, resource_path: str) -> Path:
        return self.root / resource_path if resource_path else self.root

    def list(self, relative_to: str | None, path: str, recursive: bool = True) -> list[str]:
        directory = self.resolve(relative_to, path)
        fs_dir = self._filesystem_path(directory)
        if not fs_dir.is_dir():
            raise ResourceNotFoundError(f"Directory not found: {directory or '/'}", path=directory)

        pattern = "**/*" if recursive else "*"
        try:
            files = [p for p in fs_dir.glob(pattern) if p.is_file()]
        except OSError as exc:
            raise ResourceAccessError(f"Cannot list {directory or '/'}: {exc}", path=directory) from exc

        results = sorted(p.relative_to(self.root).as_posix() for p in files)
        logger.debug("Listed %d resources under %s", len(results), directory or "/")
        return results

    def open_stream(self, relative_to: str | None, path: str) -> BinaryIO:
        resource_path = self.resolve(relative_to, path)
        fs_path = self._filesystem_path(resource_path)
        if not fs_path.is_file():
            raise ResourceNotFoundError(f"Resource not found: {resource_path}", path=resource_path)
        try:
            return fs_path.open("rb")
        except OSError as exc:
            raise ResourceAccessError(f"Cannot read {resource_path}: {exc}", path=resource_path) from exc
