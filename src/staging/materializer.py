"""Filesystem materializer: the only writer under the plugins root.

Every operation is idempotent. Existing files are never overwritten, which
is what makes re-running the pipeline safe and what preserves dependency
sets a user placed by hand.
"""
from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path
from typing import Optional

from common.errors import FilesystemError
from constants import Constants
from resolution.models import ResolvedArtifact

logger = logging.getLogger(__name__)


def _copy_atomic(source: Path, target: Path) -> None:
    partial = target.with_name(target.name + Constants.PART_SUFFIX)
    try:
        shutil.copy2(source, partial)
        os.replace(partial, target)
    except BaseException:
        if partial.exists():
            partial.unlink()
        raise


class FilesystemMaterializer:
    """Creates component directories and places artifacts into them."""

    def __init__(self, root: Path):
        self.root = Path(root)

    def ensure_root(self) -> Path:
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise FilesystemError(f"Cannot create plugins root '{self.root}': {exc}", subject=str(self.root)) from exc
        return self.root

    def ensure_component_directory(self, component_id: str) -> Path:
        """Create ``<root>/<component_id>`` if absent."""
        if not component_id or component_id in (".", "..") or "/" in component_id or "\\" in component_id:
            raise FilesystemError(f"Invalid component id '{component_id}'", subject=component_id)
        component_dir = self.root / component_id
        if component_dir.is_dir():
            return component_dir
        try:
            component_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise FilesystemError(
                f"Cannot create plugin directory '{component_dir}': {exc}", subject=component_id
            ) from exc
        logger.info("Plugin directory created '%s'", component_dir)
        return component_dir

    def place_primary_artifact(self, archive_path: Path, component_dir: Path, move: bool = False) -> Path:
        """Put the component's own archive into its directory.

        Loose archives are moved (``move=True``); artifacts from a shared
        repository are copied. An existing target is left untouched.
        """
        archive_path = Path(archive_path)
        target = component_dir / archive_path.name
        if target.exists():
            logger.debug("Plugin artifact already present at '%s'", target)
            if move and archive_path.exists() and archive_path.resolve() != target.resolve():
                logger.warning(
                    "'%s' left in place: '%s' already holds an artifact with the same name",
                    archive_path, component_dir,
                )
            return target
        try:
            if move:
                shutil.move(str(archive_path), str(target))
            else:
                _copy_atomic(archive_path, target)
        except OSError as exc:
            raise FilesystemError(
                f"Cannot place plugin artifact '{archive_path}' into '{component_dir}': {exc}",
                subject=str(archive_path),
            ) from exc
        logger.info("Plugin artifact %s to '%s'", "moved" if move else "copied", target)
        return target

    def dependency_directory(self, component_dir: Path) -> Path:
        return component_dir / Constants.LIB_DIR

    def ensure_dependency_directory(self, component_dir: Path) -> Path:
        lib_dir = self.dependency_directory(component_dir)
        if lib_dir.is_dir():
            return lib_dir
        try:
            lib_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise FilesystemError(
                f"Cannot create plugin '{Constants.LIB_DIR}' directory '{lib_dir}': {exc}", subject=str(lib_dir)
            ) from exc
        logger.info("Plugin '%s' directory created '%s'", Constants.LIB_DIR, lib_dir)
        return lib_dir

    def has_existing_dependencies(self, component_dir: Path) -> bool:
        """True iff the dependency subdirectory exists and is non-empty."""
        lib_dir = self.dependency_directory(component_dir)
        if not lib_dir.is_dir():
            return False
        return any(lib_dir.iterdir())

    def has_dependency(self, lib_dir: Path, filename: str) -> bool:
        return (lib_dir / filename).exists()

    def copy_dependency_artifact(self, artifact: ResolvedArtifact, lib_dir: Path) -> Optional[Path]:
        """Copy ``artifact`` into ``lib_dir`` unless a file of that name exists.

        Returns:
            The new file, or None when nothing was copied.
        """
        if artifact.path is None:
            raise FilesystemError(f"Dependency '{artifact}' has no resolved file", subject=str(artifact))
        target = lib_dir / artifact.path.name
        if target.exists():
            return None
        try:
            _copy_atomic(artifact.path, target)
        except OSError as exc:
            raise FilesystemError(
                f"Cannot copy plugin dependency artifact '{artifact.path}': {exc}", subject=str(artifact)
            ) from exc
        logger.info("Dependency '%s' copied to '%s'", artifact, target)
        return target


def find_primary_artifact(component_dir: Path) -> Path:
    """First archive file (by name) directly inside ``component_dir``.

    Raises:
        FilesystemError: the directory holds no archive.
    """
    component_dir = Path(component_dir)
    candidates = []
    if component_dir.is_dir():
        candidates = sorted(
            entry for entry in component_dir.iterdir()
            if entry.is_file() and entry.suffix.lower() in Constants.ARCHIVE_SUFFIXES
        )
    if not candidates:
        raise FilesystemError(f"Cannot find JAR file in plugin path {component_dir}", subject=str(component_dir))
    return candidates[0]
