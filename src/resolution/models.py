"""Data models for coordinates, resolved artifacts and dependency trees."""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import FrozenSet, Optional, Tuple

from constants import Constants, Scope


@dataclass(frozen=True)
class Coordinate:
    """Identity of a resolvable artifact (groupId:artifactId[:type[:classifier]]:version)."""
    group: str
    artifact: str
    version: str
    extension: str = Constants.DEFAULT_ARTIFACT_TYPE
    classifier: str = ""

    @property
    def key(self) -> str:
        """Version-less identity used for conflict and exclusion matching."""
        return f"{self.group}:{self.artifact}"

    @property
    def filename(self) -> str:
        """File name the artifact has in a Maven repository layout."""
        suffix = f"-{self.classifier}" if self.classifier else ""
        return f"{self.artifact}-{self.version}{suffix}.{self.extension}"

    def pom(self) -> "Coordinate":
        """Coordinate of this artifact's POM descriptor."""
        return Coordinate(self.group, self.artifact, self.version, "pom", "")

    def __str__(self) -> str:
        if self.classifier:
            return f"{self.group}:{self.artifact}:{self.extension}:{self.classifier}:{self.version}"
        if self.extension != Constants.DEFAULT_ARTIFACT_TYPE:
            return f"{self.group}:{self.artifact}:{self.extension}:{self.version}"
        return f"{self.group}:{self.artifact}:{self.version}"


@dataclass(frozen=True)
class RemoteRepository:
    """A remote Maven repository in the default layout."""
    id: str
    url: str
    username: Optional[str] = None
    password: Optional[str] = field(default=None, repr=False)

    @property
    def auth(self) -> Optional[Tuple[str, str]]:
        if self.username is None:
            return None
        return self.username, self.password or ""

    def artifact_url(self, coordinate: "Coordinate") -> str:
        base = self.url.rstrip("/")
        group_path = coordinate.group.replace(".", "/")
        return f"{base}/{group_path}/{coordinate.artifact}/{coordinate.version}/{coordinate.filename}"

    def metadata_url(self, coordinate: "Coordinate") -> str:
        base = self.url.rstrip("/")
        group_path = coordinate.group.replace(".", "/")
        return f"{base}/{group_path}/{coordinate.artifact}/{Constants.METADATA_FILE}"


@dataclass(frozen=True)
class ResolvedArtifact:
    """A coordinate bound to a local file and a declared scope.

    ``path`` is None for nodes of a collected tree whose file has not been
    resolved yet.
    """
    coordinate: Coordinate
    path: Optional[Path] = None
    scope: Optional[Scope] = None
    optional: bool = False

    def with_path(self, path: Path) -> "ResolvedArtifact":
        return replace(self, path=path)

    def __str__(self) -> str:
        return str(self.coordinate)


@dataclass(frozen=True)
class DependencyNode:
    """A resolved artifact and its own (ordered) dependencies."""
    artifact: ResolvedArtifact
    children: Tuple["DependencyNode", ...] = ()


@dataclass(frozen=True)
class Dependency:
    """A dependency as declared in a descriptor."""
    coordinate: Coordinate
    scope: Optional[Scope] = None
    optional: bool = False
    exclusions: FrozenSet[str] = frozenset()

    def excludes(self, coordinate: Coordinate) -> bool:
        """Return True when ``coordinate`` matches one of the exclusions (``*`` wildcards allowed)."""
        for pattern in self.exclusions:
            group, _, artifact = pattern.partition(":")
            if group in ("*", coordinate.group) and artifact in ("*", coordinate.artifact):
                return True
        return False


@dataclass(frozen=True)
class DependencyDeclaration:
    """Dependencies listed in an archive's embedded build descriptor."""
    project: Optional[Coordinate]
    dependencies: Tuple[Dependency, ...] = ()


class Classification(Enum):
    """Whether an artifact becomes its own component or a copied library."""
    COMPONENT = "component"
    LIBRARY = "library"


@dataclass(frozen=True)
class ClassificationResult:
    """Outcome of inspecting an artifact's identity metadata."""
    artifact: ResolvedArtifact
    kind: Classification
    component_id: Optional[str] = None

    @property
    def is_component(self) -> bool:
        return self.kind is Classification.COMPONENT


class Origin(Enum):
    """Where a component's primary artifact came from."""
    LOOSE_ARCHIVE = "loose-archive"
    MANIFEST = "manifest"
    DEPENDENCY = "dependency"


@dataclass
class ComponentDirectory:
    """A materialized component: one primary artifact plus its lib/ folder."""
    component_id: str
    path: Path
    primary_artifact: Optional[Path] = None
    copied: list = field(default_factory=list)
    dependencies_skipped: bool = False

    @property
    def lib_dir(self) -> Path:
        return self.path / Constants.LIB_DIR
