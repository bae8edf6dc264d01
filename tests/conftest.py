"""Shared fixtures: real JAR files built with zipfile and an in-memory resolver."""
from __future__ import annotations

import zipfile
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import pytest

from cli_config import StageConfig
from constants import Scope
from resolution.coordinates import parse_coordinate
from resolution.gateway import ArtifactResolutionGateway
from resolution.models import Coordinate, Dependency, DependencyNode, RemoteRepository, ResolvedArtifact
from staging.pipeline import StagePipeline


def write_jar(path: Path, plugin_id: Optional[str] = None, pom: Optional[str] = None,
              pom_location: str = "META-INF/maven/org.example/plugin/pom.xml",
              plugin_properties: Optional[str] = None) -> Path:
    """Write a minimal JAR, optionally carrying a Plugin-Id, an embedded POM or plugin.properties."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    manifest = "Manifest-Version: 1.0\r\nCreated-By: tests\r\n"
    if plugin_id:
        manifest += f"Plugin-Id: {plugin_id}\r\nPlugin-Version: 1.0.0\r\n"
    with zipfile.ZipFile(path, "w") as jar:
        jar.writestr("META-INF/MANIFEST.MF", manifest + "\r\n")
        jar.writestr("org/example/Placeholder.class", b"\xca\xfe\xba\xbe")
        if pom is not None:
            jar.writestr(pom_location, pom)
        if plugin_properties is not None:
            jar.writestr("plugin.properties", plugin_properties)
    return path


def pom_xml(group: str, artifact: str, version: str,
            dependencies: Sequence[Tuple] = (), extra: str = "") -> str:
    """Render a namespaced POM. Dependencies are (group, artifact, version[, scope[, optional]])."""
    deps = []
    for dep in dependencies:
        g, a, v = dep[0], dep[1], dep[2]
        scope = dep[3] if len(dep) > 3 and dep[3] else None
        optional = dep[4] if len(dep) > 4 else False
        lines = [f"<groupId>{g}</groupId>", f"<artifactId>{a}</artifactId>"]
        if v:
            lines.append(f"<version>{v}</version>")
        if scope:
            lines.append(f"<scope>{scope}</scope>")
        if optional:
            lines.append("<optional>true</optional>")
        deps.append("<dependency>" + "".join(lines) + "</dependency>")
    body = f"<dependencies>{''.join(deps)}</dependencies>" if deps else ""
    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        '<project xmlns="http://maven.apache.org/POM/4.0.0">'
        "<modelVersion>4.0.0</modelVersion>"
        f"<groupId>{group}</groupId><artifactId>{artifact}</artifactId><version>{version}</version>"
        f"{extra}{body}</project>"
    )


def dep(text: str, scope: Optional[str] = None, *children: DependencyNode) -> DependencyNode:
    """Tree node for ``text`` with an optional scope and children."""
    return DependencyNode(ResolvedArtifact(parse_coordinate(text), scope=Scope.parse(scope)), tuple(children))


class FakeOracle:
    """Resolver oracle backed by dictionaries; records every call."""

    def __init__(self):
        self.artifacts: Dict[Coordinate, Path] = {}
        self.trees: Dict[Coordinate, DependencyNode] = {}
        self.broken_descriptors = set()
        self.broken_trees = set()
        self.resolve_calls: List[Coordinate] = []
        self.collect_calls: List[Coordinate] = []

    def resolve_artifact(self, coordinate: Coordinate, repositories: Sequence[RemoteRepository]) -> Path:
        self.resolve_calls.append(coordinate)
        try:
            return self.artifacts[coordinate]
        except KeyError:
            raise LookupError(f"Could not find artifact {coordinate}") from None

    def read_descriptor(self, coordinate: Coordinate, repositories: Sequence[RemoteRepository]) -> List[Dependency]:
        if coordinate in self.broken_descriptors:
            raise ValueError(f"Malformed POM for {coordinate}")
        node = self.trees.get(coordinate)
        if node is None:
            return []
        return [Dependency(child.artifact.coordinate, child.artifact.scope) for child in node.children]

    def collect_tree(self, coordinate: Coordinate, repositories: Sequence[RemoteRepository]) -> DependencyNode:
        self.collect_calls.append(coordinate)
        if coordinate in self.broken_trees:
            raise RuntimeError(f"Could not collect {coordinate}")
        return self.trees.get(coordinate, DependencyNode(ResolvedArtifact(coordinate)))

    def resolved(self, text: str) -> int:
        """How often ``text`` was resolved."""
        coordinate = parse_coordinate(text)
        return sum(1 for call in self.resolve_calls if call == coordinate)


class StagingEnv:
    """A plugins root, an artifact store and a FakeOracle wired together."""

    def __init__(self, tmp_path: Path):
        self.root = tmp_path / "plugins"
        self.store = tmp_path / "store"
        self.manifest = tmp_path / "plugins.txt"
        self.oracle = FakeOracle()

    def publish(self, text: str, plugin_id: Optional[str] = None,
                dependencies: Iterable[DependencyNode] = ()) -> Coordinate:
        """Make ``text`` resolvable, with ``dependencies`` as its collected tree."""
        coordinate = parse_coordinate(text)
        path = write_jar(self.store / coordinate.filename, plugin_id=plugin_id)
        self.oracle.artifacts[coordinate] = path
        self.oracle.trees[coordinate] = DependencyNode(ResolvedArtifact(coordinate), tuple(dependencies))
        return coordinate

    def write_manifest(self, *lines: str) -> None:
        self.manifest.write_text("\n".join(lines) + "\n", encoding="utf-8")

    def config(self, **overrides) -> StageConfig:
        values = dict(
            plugins_root=self.root,
            manifest_path=self.manifest,
            local_repository=self.store,
            remote_repositories=(),
        )
        values.update(overrides)
        return StageConfig(**values)

    def pipeline(self, **overrides) -> StagePipeline:
        config = self.config(**overrides)
        return StagePipeline(config, ArtifactResolutionGateway(self.oracle, config.remote_repositories))

    def run(self, **overrides):
        return self.pipeline(**overrides).run()

    def files(self) -> List[str]:
        """Every file under the plugins root, relative and sorted."""
        if not self.root.exists():
            return []
        return sorted(p.relative_to(self.root).as_posix() for p in self.root.rglob("*") if p.is_file())


@pytest.fixture
def fake_oracle():
    return FakeOracle()


@pytest.fixture
def env(tmp_path):
    return StagingEnv(tmp_path)
