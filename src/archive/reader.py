"""Archive metadata reader.

The staging code only needs two capabilities from an archive: open it and
fetch the bytes of the first entry matching a path pattern. ``ArchiveReader``
names that capability set so tests can substitute in-memory fakes;
``ZipArchiveReader`` is the implementation for JAR/ZIP files.
"""
from __future__ import annotations

import fnmatch
import logging
import zipfile
from pathlib import Path
from typing import ContextManager, Optional, Protocol, Union, runtime_checkable

from common.errors import ArchiveReadError

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


@runtime_checkable
class ArchiveReader(Protocol):
    """Minimal archive interface required by the staging pipeline."""

    def open_archive(self, path: PathLike) -> ContextManager:
        ...

    def find_entry(self, handle, pattern: str) -> Optional[bytes]:
        ...


class ZipArchiveReader:
    """Read entries from ZIP-format archives (JARs included)."""

    def open_archive(self, path: PathLike) -> zipfile.ZipFile:
        """Open ``path`` for reading.

        Raises:
            ArchiveReadError: the file is missing, unreadable or not a ZIP.
        """
        try:
            return zipfile.ZipFile(path)
        except (zipfile.BadZipFile, OSError) as exc:
            raise ArchiveReadError(f"Cannot open archive '{path}': {exc}", subject=str(path)) from exc

    def find_entry(self, handle: zipfile.ZipFile, pattern: str) -> Optional[bytes]:
        """Return the bytes of the first entry whose name matches ``pattern``.

        Exact names win over glob matches; glob matches are taken in archive
        order.
        """
        names = handle.namelist()
        if pattern in names:
            match = pattern
        else:
            match = next((name for name in names if fnmatch.fnmatchcase(name, pattern)), None)
        if match is None:
            return None
        try:
            return handle.read(match)
        except (zipfile.BadZipFile, OSError, RuntimeError, EOFError) as exc:
            raise ArchiveReadError(
                f"Cannot read entry '{match}' of '{handle.filename}': {exc}",
                subject=str(handle.filename),
            ) from exc
