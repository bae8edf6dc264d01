"""Error kinds raised across the staging pipeline.

Every failure the pipeline isolates (per coordinate, per archive, per
dependency node, per component) is one of these, so callers can tell an
expected, recoverable failure apart from a programming error.
"""
from __future__ import annotations

from typing import Optional


class StageError(Exception):
    """Base class for all plugstage errors."""

    kind = "stage"

    def __init__(self, message: str, subject: Optional[str] = None):
        super().__init__(message)
        self.subject = subject


class ConfigError(StageError):
    """Configuration file or CLI values could not be used."""

    kind = "config"


class CoordinateParseError(StageError):
    """A coordinate string is malformed."""

    kind = "coordinate"


class ResolutionError(StageError):
    """A coordinate could not be located in any configured repository."""

    kind = "resolution"


class DescriptorError(StageError):
    """A component's own dependency descriptor could not be read."""

    kind = "descriptor"


class CollectionError(StageError):
    """Transitive dependency collection failed."""

    kind = "collection"


class ArchiveReadError(StageError):
    """An archive is unreadable or corrupt."""

    kind = "archive"


class FilesystemError(StageError):
    """Directory creation, move or copy under the plugins root failed."""

    kind = "filesystem"


class LockError(StageError):
    """Another run holds the plugins root."""

    kind = "lock"
