"""Coordinate sources: loose archives in the plugins root and the plugins.txt manifest."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, List, Optional

from archive.reader import ArchiveReader, ZipArchiveReader
from common.errors import CoordinateParseError, DescriptorError, FilesystemError
from common.logging_utils import extra_context, is_debug_enabled
from constants import Constants
from registry.maven.pom import parse_pom, to_declaration
from resolution.coordinates import parse_coordinate
from resolution.models import Coordinate, DependencyDeclaration

logger = logging.getLogger(__name__)


def list_loose_archives(root: Path) -> List[Path]:
    """Archive files directly inside ``root`` (non-recursive), sorted by name."""
    root = Path(root)
    if not root.is_dir():
        return []
    archives = sorted(
        entry for entry in root.iterdir()
        if entry.is_file() and entry.suffix.lower() in Constants.ARCHIVE_SUFFIXES
    )
    if is_debug_enabled(logger):
        logger.debug("Loose archives listed", extra=extra_context(
            event="function_exit", component="sources", action="list_loose_archives",
            target=str(root), count=len(archives)
        ))
    return archives


def read_embedded_dependencies(archive_path: Path,
                               reader: Optional[ArchiveReader] = None) -> Optional[DependencyDeclaration]:
    """Read the build descriptor embedded at META-INF/maven/<group>/<artifact>/pom.xml.

    Returns:
        The declaration, or None when the archive has no descriptor or the
        descriptor cannot be parsed.

    Raises:
        ArchiveReadError: the archive itself cannot be opened.
    """
    reader = reader or ZipArchiveReader()
    with reader.open_archive(archive_path) as handle:
        data = reader.find_entry(handle, Constants.EMBEDDED_POM_PATTERN)
    if data is None:
        logger.info("No embedded pom.xml in '%s'", archive_path)
        return None
    try:
        declaration = to_declaration(parse_pom(data))
    except DescriptorError as exc:
        logger.warning("Cannot parse embedded pom.xml of '%s': %s", archive_path, exc)
        return None
    logger.info(
        "Embedded pom.xml of '%s' declares %d dependencies", archive_path.name, len(declaration.dependencies)
    )
    return declaration


def read_manifest_coordinates(manifest_path: Path,
                              on_error: Optional[Callable[[CoordinateParseError], None]] = None) -> List[Coordinate]:
    """Read coordinates from a newline-delimited manifest.

    Blank lines and lines starting with ``#`` are ignored. A missing manifest
    yields an empty list. Malformed lines are logged, passed to ``on_error``
    and skipped.
    """
    manifest_path = Path(manifest_path)
    if not manifest_path.is_file():
        logger.debug("No manifest at '%s'", manifest_path)
        return []

    try:
        with open(manifest_path, encoding="utf-8") as file:
            lines = [line.strip() for line in file]
    except (OSError, UnicodeDecodeError) as exc:
        raise FilesystemError(f"Cannot read manifest '{manifest_path}': {exc}", subject=str(manifest_path)) from exc

    coordinates: List[Coordinate] = []
    for number, line in enumerate(lines, start=1):
        if not line or line.startswith("#"):
            continue
        try:
            coordinates.append(parse_coordinate(line))
        except CoordinateParseError as exc:
            logger.error("%s:%d: %s", manifest_path, number, exc)
            if on_error is not None:
                on_error(exc)
    return coordinates
