"""Maven repository client: the default resolver behind the resolution gateway.

Resolves artifacts from the local repository first and then from each
remote repository in configured order, storing downloads in the local
repository layout. Dependency trees are collected breadth-first; the first
group:artifact encountered wins, which keeps the tree finite even when the
coordinate graph has cycles.
"""
from __future__ import annotations

import logging
from collections import deque
from dataclasses import replace
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import requests

from common import http_client
from common.logging_utils import extra_context, is_debug_enabled, safe_url, Timer
from constants import Constants, Scope
from resolution.models import Coordinate, Dependency, DependencyNode, RemoteRepository, ResolvedArtifact
from .metadata import parse_metadata_versions, pick_latest
from .pom import PomModel, RawDependency, interpolate, parse_pom, to_dependency

logger = logging.getLogger(__name__)


class RepositoryError(Exception):
    """Base class for repository lookups that failed."""


class ArtifactNotFoundError(RepositoryError):
    """No configured repository holds the artifact."""


class _EffectiveModel:
    """A POM merged with its parent chain."""

    def __init__(self, model: PomModel, properties: Dict[str, str],
                 managed: Dict[str, RawDependency], dependencies: List[RawDependency]):
        self.model = model
        self.properties = properties
        self.managed = managed
        self.dependencies = dependencies

    def resolved_dependencies(self) -> List[Dependency]:
        out = []
        for raw in self.dependencies:
            dep = to_dependency(raw, self.properties, self.managed)
            if dep is None:
                logger.warning("Dropping dependency %s of %s: version unresolved", raw.key, self.model.artifact)
                continue
            out.append(dep)
        return out


def transitive_scope(parent: Optional[Scope], child: Optional[Scope]) -> Optional[Scope]:
    """Scope a transitive dependency takes under its parent's scope."""
    parent = parent or Scope.COMPILE
    child = child or Scope.COMPILE
    if parent in (Scope.PROVIDED, Scope.TEST):
        return parent
    if parent is Scope.RUNTIME and child is Scope.COMPILE:
        return Scope.RUNTIME
    return child


class MavenRepositoryOracle:
    """Local-first Maven resolver implementing the gateway's oracle protocol."""

    def __init__(self, local_repository: Path):
        self.local_repository = Path(local_repository)
        self._models: Dict[Coordinate, _EffectiveModel] = {}
        self._pinned: Dict[Coordinate, Coordinate] = {}

    def local_path(self, coordinate: Coordinate) -> Path:
        """Location of ``coordinate`` in the local repository."""
        group_path = Path(*coordinate.group.split("."))
        return self.local_repository / group_path / coordinate.artifact / coordinate.version / coordinate.filename

    def pin_version(self, coordinate: Coordinate, repositories: Sequence[RemoteRepository]) -> Coordinate:
        """Replace a LATEST or RELEASE meta-version with a concrete version.

        Candidates come from version directories in the local repository and
        from each remote's maven-metadata.xml. LATEST admits snapshots,
        RELEASE does not. Other coordinates are returned unchanged.

        Raises:
            ArtifactNotFoundError: no candidate version exists anywhere.
        """
        if coordinate.version not in Constants.META_VERSIONS:
            return coordinate
        pinned = self._pinned.get(coordinate)
        if pinned is not None:
            return pinned

        candidates = set()
        artifact_dir = self.local_path(coordinate).parent.parent
        if artifact_dir.is_dir():
            candidates.update(entry.name for entry in artifact_dir.iterdir() if entry.is_dir())
        for repo in repositories:
            res = http_client.safe_get(repo.metadata_url(coordinate), context=repo.id, auth=repo.auth)
            if res is not None and res.status_code == 200:
                candidates.update(parse_metadata_versions(res.content))

        picked = pick_latest(candidates, include_snapshots=coordinate.version == "LATEST")
        if picked is None:
            raise ArtifactNotFoundError(f"No versions available for {coordinate}")
        pinned = replace(coordinate, version=picked)
        logger.info("%s pinned to version %s", coordinate, picked)
        self._pinned[coordinate] = pinned
        return pinned

    def resolve_artifact(self, coordinate: Coordinate, repositories: Sequence[RemoteRepository]) -> Path:
        """Return a local file for ``coordinate``, downloading it when needed.

        Raises:
            ArtifactNotFoundError: not in the local repository nor any remote.
        """
        coordinate = self.pin_version(coordinate, repositories)
        path = self.local_path(coordinate)
        if path.is_file():
            if is_debug_enabled(logger):
                logger.debug("Local repository hit", extra=extra_context(
                    event="cache_hit", component="repository", action="resolve_artifact",
                    target=str(coordinate)
                ))
            return path

        failures = []
        for repo in repositories:
            url = repo.artifact_url(coordinate)
            with Timer() as t:
                try:
                    found = http_client.download_file(url, str(path), context=repo.id, auth=repo.auth)
                except requests.RequestException as exc:
                    logger.warning("Repository '%s' unreachable for %s: %s", repo.id, coordinate, exc)
                    failures.append(f"{repo.id}: {exc}")
                    continue
            if found:
                logger.info("Downloaded %s from %s (%d ms)", coordinate, safe_url(url), t.duration_ms())
                return path
            failures.append(f"{repo.id}: not found")

        detail = "; ".join(failures) if failures else "no remote repositories configured"
        raise ArtifactNotFoundError(f"Could not find artifact {coordinate} ({detail})")

    def _effective_model(self, coordinate: Coordinate, repositories: Sequence[RemoteRepository],
                         depth: int = 0) -> _EffectiveModel:
        coordinate = self.pin_version(coordinate, repositories)
        pom_coordinate = coordinate.pom()
        cached = self._models.get(pom_coordinate)
        if cached is not None:
            return cached
        if depth > Constants.MAX_PARENT_DEPTH:
            raise RepositoryError(f"Parent chain of {coordinate} is deeper than {Constants.MAX_PARENT_DEPTH}")

        pom_path = self.resolve_artifact(pom_coordinate, repositories)
        model = parse_pom(pom_path.read_bytes())

        properties: Dict[str, str] = {}
        managed: Dict[str, RawDependency] = {}
        dependencies: Dict[str, RawDependency] = {}
        if model.parent is not None:
            parent = self._effective_model(model.parent, repositories, depth + 1)
            properties.update(parent.properties)
            managed.update(parent.managed)
            dependencies.update({raw.key: raw for raw in parent.dependencies})
        properties.update(model.properties)
        properties.update(model.builtin_properties())

        for raw in model.managed:
            group = interpolate(raw.group, properties)
            artifact = interpolate(raw.artifact, properties)
            if not group or not artifact:
                continue
            if (raw.scope or "").lower() == Scope.IMPORT.value and (raw.type or "") == "pom":
                version = interpolate(raw.version, properties)
                if not version:
                    continue
                bom = self._effective_model(Coordinate(group, artifact, version, "pom"), repositories, depth + 1)
                for key, entry in bom.managed.items():
                    managed.setdefault(key, entry)
                continue
            managed[f"{group}:{artifact}"] = RawDependency(
                group=group, artifact=artifact, version=raw.version, type=raw.type,
                classifier=raw.classifier, scope=raw.scope, optional=raw.optional,
                exclusions=raw.exclusions,
            )
        for raw in model.dependencies:
            dependencies[raw.key] = raw

        effective = _EffectiveModel(model, properties, managed, list(dependencies.values()))
        self._models[pom_coordinate] = effective
        return effective

    def read_descriptor(self, coordinate: Coordinate, repositories: Sequence[RemoteRepository]) -> List[Dependency]:
        """Declared dependencies of ``coordinate`` with parents and managed versions applied."""
        return self._effective_model(coordinate, repositories).resolved_dependencies()

    def collect_tree(self, coordinate: Coordinate, repositories: Sequence[RemoteRepository]) -> DependencyNode:
        """Collect the dependency tree rooted at ``coordinate``.

        Artifact paths in the returned tree are left unresolved.
        """
        root = _Pending(ResolvedArtifact(coordinate), frozenset())
        root.declared = self.read_descriptor(coordinate, repositories)
        seen = {coordinate.key}
        queue = deque([root])

        while queue:
            entry = queue.popleft()
            is_root = entry is root
            for dep in entry.declared:
                if not is_root and (dep.optional or dep.scope in (Scope.PROVIDED, Scope.TEST)):
                    continue
                if any(_matches(pattern, dep.coordinate) for pattern in entry.exclusions):
                    continue
                if dep.coordinate.key in seen:
                    continue
                seen.add(dep.coordinate.key)

                scope = dep.scope if is_root else transitive_scope(entry.artifact.scope, dep.scope)
                child = _Pending(
                    ResolvedArtifact(dep.coordinate, scope=scope, optional=dep.optional),
                    entry.exclusions | dep.exclusions,
                )
                entry.children.append(child)
                if scope not in (Scope.PROVIDED, Scope.TEST, Scope.SYSTEM):
                    child.declared = self.read_descriptor(dep.coordinate, repositories)
                    queue.append(child)

        return root.freeze()


def _matches(pattern: str, coordinate: Coordinate) -> bool:
    group, _, artifact = pattern.partition(":")
    return group in ("*", coordinate.group) and artifact in ("*", coordinate.artifact)


class _Pending:
    """Mutable tree node used while collecting."""

    def __init__(self, artifact: ResolvedArtifact, exclusions):
        self.artifact = artifact
        self.exclusions = frozenset(exclusions)
        self.declared: List[Dependency] = []
        self.children: List["_Pending"] = []

    def freeze(self) -> DependencyNode:
        return DependencyNode(self.artifact, tuple(child.freeze() for child in self.children))


def describe_repositories(repositories: Sequence[RemoteRepository]) -> str:
    """One-line, credential-free summary for logs."""
    return ", ".join(f"{repo.id}={safe_url(repo.url)}" for repo in repositories) or "<none>"
