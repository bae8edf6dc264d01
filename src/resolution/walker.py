"""Dependency graph walker.

Walks a collected dependency tree depth-first (pre-order), starting at the
root's children, and copies every runtime library into the owning
component's ``lib`` directory. Libraries' transitive dependencies land in
the same ``lib`` directory; there is no further nesting. A dependency that is
itself a component is handed to ``on_component`` and not descended into:
its own materialization owns that part of the graph.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Set

from common.errors import ResolutionError, StageError
from common.logging_utils import extra_context, is_debug_enabled
from constants import EXCLUDED_SCOPES
from .classifier import ComponentClassifier
from .gateway import ArtifactResolutionGateway
from .models import ClassificationResult, Coordinate, DependencyNode

logger = logging.getLogger(__name__)

ComponentCallback = Callable[[ClassificationResult], None]
FailureCallback = Callable[[StageError], None]


class DependencyGraphWalker:
    """Projects dependency trees onto a component's lib directory."""

    def __init__(self, gateway: ArtifactResolutionGateway, classifier: ComponentClassifier, materializer,
                 on_component: ComponentCallback, on_failure: Optional[FailureCallback] = None):
        self.gateway = gateway
        self.classifier = classifier
        self.materializer = materializer
        self.on_component = on_component
        self.on_failure = on_failure

    def walk(self, root: DependencyNode, component_dir: Path) -> List[Path]:
        """Walk the children of ``root`` on behalf of the component at ``component_dir``.

        Returns:
            Files newly copied into the component's lib directory.
        """
        return self.walk_nodes(root.children, component_dir)

    def walk_nodes(self, nodes: Iterable[DependencyNode], component_dir: Path) -> List[Path]:
        """Walk several top-level dependency nodes into one component.

        Raises:
            FilesystemError: a copy into the lib directory failed; fatal for
                this component only.
        """
        lib_dir = self.materializer.ensure_dependency_directory(component_dir)
        copied: List[Path] = []
        seen: Set[Coordinate] = set()
        for node in nodes:
            self._visit(node, lib_dir, copied, seen)
        return copied

    def _visit(self, node: DependencyNode, lib_dir: Path, copied: List[Path], seen: Set[Coordinate]) -> None:
        artifact = node.artifact
        coordinate = artifact.coordinate
        if artifact.scope in EXCLUDED_SCOPES:
            if is_debug_enabled(logger):
                logger.debug("Dependency skipped", extra=extra_context(
                    event="decision", component="walker", action="visit",
                    target=str(coordinate), outcome=f"scope_{artifact.scope.value}"
                ))
            return
        if coordinate in seen:
            return
        seen.add(coordinate)

        filename = artifact.path.name if artifact.path is not None else coordinate.filename
        if self.materializer.has_dependency(lib_dir, filename):
            logger.debug("Dependency '%s' already present in '%s'", coordinate, lib_dir)
            self._visit_children(node, lib_dir, copied, seen)
            return

        try:
            resolved = self.gateway.resolve_artifact(artifact)
        except ResolutionError as exc:
            logger.error("Abandoning dependency branch at '%s': %s", coordinate, exc)
            if self.on_failure is not None:
                self.on_failure(exc)
            return
        logger.info("Dependency '%s' resolved to '%s'", coordinate, resolved.path)

        classification = self.classifier.classify(resolved)
        if classification.is_component:
            logger.info("Dependency '%s' is plugin '%s'; installing it separately",
                        coordinate, classification.component_id)
            self.on_component(classification)
            return

        target = self.materializer.copy_dependency_artifact(resolved, lib_dir)
        if target is not None:
            copied.append(target)

        self._visit_children(node, lib_dir, copied, seen)

    def _visit_children(self, node: DependencyNode, lib_dir: Path, copied: List[Path], seen: Set[Coordinate]) -> None:
        for child in node.children:
            self._visit(child, lib_dir, copied, seen)
