"""Staging pipeline: loose archives first, then the plugins manifest.

Each coordinate source is processed in order, one component at a time.
Failures are isolated to the archive, coordinate or dependency branch that
caused them and recorded in the run report; the run itself only fails when
the plugins root cannot be prepared or is locked by another run.
"""
from __future__ import annotations

import contextlib
import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from archive.reader import ArchiveReader, ZipArchiveReader
from cli_config import StageConfig
from common.errors import (
    ArchiveReadError,
    CollectionError,
    DescriptorError,
    FilesystemError,
    ResolutionError,
    StageError,
)
from common.logging_utils import extra_context, is_debug_enabled, Timer
from constants import EXCLUDED_SCOPES
from resolution.classifier import ComponentClassifier
from resolution.gateway import ArtifactResolutionGateway, format_tree
from resolution.models import (
    ClassificationResult,
    ComponentDirectory,
    Dependency,
    DependencyDeclaration,
    DependencyNode,
    Origin,
)
from resolution.walker import DependencyGraphWalker
from .lock import RunLock
from .materializer import FilesystemMaterializer, find_primary_artifact
from .report import RunReport
from .sources import list_loose_archives, read_embedded_dependencies, read_manifest_coordinates

logger = logging.getLogger(__name__)


def prune_excluded(node: DependencyNode, dependency: Dependency) -> DependencyNode:
    """Drop the subtrees of ``node`` that ``dependency`` excludes."""
    if not dependency.exclusions:
        return node
    children = tuple(
        prune_excluded(child, dependency)
        for child in node.children
        if not dependency.excludes(child.artifact.coordinate)
    )
    return DependencyNode(node.artifact, children)


class StagePipeline:
    """Materializes every declared plugin under the configured plugins root."""

    def __init__(self, config: StageConfig, gateway: ArtifactResolutionGateway,
                 classifier: Optional[ComponentClassifier] = None,
                 materializer: Optional[FilesystemMaterializer] = None,
                 reader: Optional[ArchiveReader] = None):
        self.config = config
        self.gateway = gateway
        self.reader = reader or ZipArchiveReader()
        self.classifier = classifier or ComponentClassifier(self.reader)
        self.materializer = materializer or FilesystemMaterializer(config.plugins_root)
        self.walker = DependencyGraphWalker(
            gateway, self.classifier, self.materializer,
            on_component=self._install_dependency_component,
            on_failure=self._record_failure,
        )
        self.report = RunReport()
        # Components staged (or being staged) during the current run, by id.
        self._components: Dict[str, ComponentDirectory] = {}

    def run(self) -> RunReport:
        """Run the loose-archive pass, then the manifest pass.

        Raises:
            FilesystemError: the plugins root cannot be created.
            LockError: another run holds the plugins root.
        """
        self.report = RunReport()
        self._components = {}
        root = self.materializer.ensure_root()
        lock = RunLock(root) if self.config.use_lock else contextlib.nullcontext()
        with lock, Timer() as t:
            if self.config.process_loose_archives:
                self.stage_loose_archives()
            if self.config.manifest_path is not None:
                self.stage_manifest(self.config.manifest_path)
        logger.info(
            "Staged %d plugin(s) under '%s' with %d failure(s) in %d ms",
            len(self.report.components), root, len(self.report.failures), t.duration_ms(),
        )
        return self.report

    def _record_failure(self, error: StageError) -> None:
        self.report.record_failure(error)

    # Loose archives

    def stage_loose_archives(self) -> None:
        for archive_path in list_loose_archives(self.materializer.root):
            try:
                self._stage_loose_archive(archive_path)
            except (ArchiveReadError, FilesystemError) as exc:
                logger.error("Skipping archive '%s': %s", archive_path.name, exc)
                self._record_failure(exc)

    def _loose_component_id(self, archive_path: Path, declaration: Optional[DependencyDeclaration]) -> str:
        plugin_id = self.classifier.identity_of(archive_path)
        if plugin_id:
            return plugin_id
        if declaration is not None and declaration.project is not None:
            return declaration.project.artifact
        return archive_path.stem

    def _stage_loose_archive(self, archive_path: Path) -> None:
        declaration = read_embedded_dependencies(archive_path, self.reader)
        component_id = self._loose_component_id(archive_path, declaration)
        if component_id in self._components:
            logger.warning("'%s' left in place: plugin '%s' was already staged in this run",
                           archive_path.name, component_id)
            return

        component_dir = self.materializer.ensure_component_directory(component_id)
        component = ComponentDirectory(component_id, component_dir)
        self._components[component_id] = component
        self._warn_on_second_archive(component_dir, archive_path.name)
        component.primary_artifact = self.materializer.place_primary_artifact(archive_path, component_dir, move=True)

        if declaration is None or not declaration.dependencies:
            logger.info("Nothing to resolve for '%s'", component_id)
        elif not self._skip_dependencies(component):
            nodes = self._collect_declared(declaration.dependencies)
            component.copied.extend(self.walker.walk_nodes(nodes, component_dir))
        self.report.record_component(component, Origin.LOOSE_ARCHIVE)

    def _collect_declared(self, dependencies: Iterable[Dependency]) -> List[DependencyNode]:
        nodes = []
        for dependency in dependencies:
            if dependency.scope in EXCLUDED_SCOPES:
                continue
            try:
                node = self.gateway.collect_dependency_tree(dependency.coordinate, dependency.scope)
            except (DescriptorError, CollectionError) as exc:
                logger.error("Skipping dependency '%s': %s", dependency.coordinate, exc)
                self._record_failure(exc)
                continue
            nodes.append(prune_excluded(node, dependency))
        return nodes

    # Manifest

    def stage_manifest(self, manifest_path: Path) -> None:
        try:
            coordinates = read_manifest_coordinates(manifest_path, on_error=self._record_failure)
        except FilesystemError as exc:
            logger.error("%s", exc)
            self._record_failure(exc)
            return

        for coordinate in coordinates:
            logger.info("Resolving plugin '%s'", coordinate)
            try:
                artifact = self.gateway.resolve_artifact(coordinate)
            except ResolutionError as exc:
                logger.error("Cannot resolve plugin '%s': %s", coordinate, exc)
                self._record_failure(exc)
                continue
            logger.info("'%s' resolved to '%s'", coordinate, artifact.path)
            self._install_artifact(self.classifier.classify(artifact), Origin.MANIFEST)

    # Shared

    def _install_dependency_component(self, classification: ClassificationResult) -> None:
        self._install_artifact(classification, Origin.DEPENDENCY)

    def _install_artifact(self, classification: ClassificationResult, origin: Origin) -> None:
        """Stage a resolved artifact as its own component and walk its dependencies.

        A filesystem failure ends this component only.
        """
        artifact = classification.artifact
        component_id = classification.component_id or artifact.coordinate.artifact
        staged = self._components.get(component_id)
        if staged is not None:
            staged_name = staged.primary_artifact.name if staged.primary_artifact is not None else None
            if artifact.path is not None and artifact.path.name != staged_name:
                logger.warning("'%s' not installed: plugin '%s' was already staged in this run from '%s'",
                               artifact.coordinate, component_id, staged_name)
            elif is_debug_enabled(logger):
                logger.debug("Plugin already staged", extra=extra_context(
                    event="decision", component="pipeline", action="install",
                    target=component_id, outcome="already_staged"
                ))
            return

        try:
            component_dir = self.materializer.ensure_component_directory(component_id)
            component = ComponentDirectory(component_id, component_dir)
            self._components[component_id] = component
            self._warn_on_second_archive(component_dir, artifact.path.name)
            component.primary_artifact = self.materializer.place_primary_artifact(artifact.path, component_dir)

            if not self._skip_dependencies(component):
                root = self._collect_tree(artifact)
                if root is not None:
                    component.copied.extend(self.walker.walk(root, component_dir))
        except FilesystemError as exc:
            logger.error("Staging of plugin '%s' failed: %s", component_id, exc)
            self._record_failure(exc)
            return
        self.report.record_component(component, origin)

    def _collect_tree(self, artifact) -> Optional[DependencyNode]:
        try:
            root = self.gateway.collect_dependency_tree(artifact.coordinate, artifact.scope)
        except (DescriptorError, CollectionError) as exc:
            logger.error("Cannot collect dependencies of plugin '%s': %s", artifact.coordinate, exc)
            self._record_failure(exc)
            return None
        if is_debug_enabled(logger):
            logger.debug("Dependency tree of '%s':\n%s", artifact.coordinate, format_tree(root))
        return root

    def _skip_dependencies(self, component: ComponentDirectory) -> bool:
        if self.config.skip_existing_dependencies and self.materializer.has_existing_dependencies(component.path):
            logger.info("Plugin '%s' already has dependencies in '%s'; skipping resolution",
                        component.component_id, component.lib_dir)
            component.dependencies_skipped = True
            return True
        return False

    def _warn_on_second_archive(self, component_dir: Path, incoming: str) -> None:
        try:
            existing = find_primary_artifact(component_dir)
        except FilesystemError:
            return
        if existing.name != incoming:
            logger.warning(
                "Plugin directory '%s' already holds '%s'; '%s' is added next to it",
                component_dir, existing.name, incoming,
            )
