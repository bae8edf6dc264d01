"""Artifact resolution gateway.

Thin adapter over a resolver oracle. The oracle is anything that offers
``resolve_artifact``, ``read_descriptor`` and ``collect_tree`` for a
coordinate and a repository list; the gateway binds the configured
repositories and turns oracle failures into the pipeline's error kinds.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Protocol, Sequence, Union, runtime_checkable

from common.errors import CollectionError, DescriptorError, ResolutionError
from common.logging_utils import extra_context, is_debug_enabled, Timer
from constants import Scope
from .models import Coordinate, Dependency, DependencyNode, RemoteRepository, ResolvedArtifact

logger = logging.getLogger(__name__)


@runtime_checkable
class ResolverOracle(Protocol):
    """Capability set of an external dependency resolver."""

    def resolve_artifact(self, coordinate: Coordinate, repositories: Sequence[RemoteRepository]) -> Path:
        ...

    def read_descriptor(self, coordinate: Coordinate, repositories: Sequence[RemoteRepository]) -> List[Dependency]:
        ...

    def collect_tree(self, coordinate: Coordinate, repositories: Sequence[RemoteRepository]) -> DependencyNode:
        ...


class ArtifactResolutionGateway:
    """Resolve coordinates and collect dependency trees against fixed repositories."""

    def __init__(self, oracle: ResolverOracle, repositories: Sequence[RemoteRepository]):
        self.oracle = oracle
        self.repositories = tuple(repositories)

    def resolve_artifact(self, target: Union[Coordinate, ResolvedArtifact]) -> ResolvedArtifact:
        """Locate ``target`` as a local file.

        A ResolvedArtifact keeps its scope; a bare Coordinate gets none.

        Raises:
            ResolutionError: the oracle could not locate the artifact.
        """
        artifact = target if isinstance(target, ResolvedArtifact) else ResolvedArtifact(target)
        coordinate = artifact.coordinate
        with Timer() as t:
            try:
                path = self.oracle.resolve_artifact(coordinate, self.repositories)
            except Exception as exc:  # pylint: disable=broad-exception-caught
                raise ResolutionError(f"Cannot resolve '{coordinate}': {exc}", subject=str(coordinate)) from exc
        if path is None:
            raise ResolutionError(f"Cannot resolve '{coordinate}': no location returned", subject=str(coordinate))

        if is_debug_enabled(logger):
            logger.debug("Artifact resolved", extra=extra_context(
                event="function_exit", component="gateway", action="resolve_artifact",
                target=str(coordinate), outcome="resolved", duration_ms=t.duration_ms()
            ))
        return artifact.with_path(Path(path))

    def collect_dependency_tree(self, coordinate: Coordinate, scope: Optional[Scope] = None) -> DependencyNode:
        """Collect the dependency tree rooted at ``coordinate``.

        The root node carries ``scope``; paths in the tree may be unresolved.

        Raises:
            DescriptorError: the coordinate's own descriptor cannot be read.
            CollectionError: transitive collection failed.
        """
        try:
            declared = self.oracle.read_descriptor(coordinate, self.repositories)
        except Exception as exc:  # pylint: disable=broad-exception-caught
            raise DescriptorError(
                f"Cannot read descriptor of '{coordinate}': {exc}", subject=str(coordinate)
            ) from exc

        with Timer() as t:
            try:
                root = self.oracle.collect_tree(coordinate, self.repositories)
            except Exception as exc:  # pylint: disable=broad-exception-caught
                raise CollectionError(
                    f"Cannot collect dependencies of '{coordinate}': {exc}", subject=str(coordinate)
                ) from exc

        if is_debug_enabled(logger):
            logger.debug("Dependency tree collected", extra=extra_context(
                event="function_exit", component="gateway", action="collect_dependency_tree",
                target=str(coordinate), count=len(declared), duration_ms=t.duration_ms()
            ))
        if scope is not None and root.artifact.scope != scope:
            root = DependencyNode(
                ResolvedArtifact(root.artifact.coordinate, root.artifact.path, scope, root.artifact.optional),
                root.children,
            )
        return root


def format_tree(node: DependencyNode) -> str:
    """Render a tree one node per line, indented by depth."""
    lines: List[str] = []

    def _visit(current: DependencyNode, depth: int) -> None:
        scope = current.artifact.scope.value if current.artifact.scope else ""
        suffix = f" [{scope}]" if scope else ""
        lines.append(f"{'  ' * depth}{current.artifact.coordinate}{suffix}")
        for child in current.children:
            _visit(child, depth + 1)

    _visit(node, 0)
    return "\n".join(lines)
