"""Tests for the artifact resolution gateway."""
from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from common.errors import CollectionError, DescriptorError, ResolutionError
from constants import Scope
from resolution.coordinates import parse_coordinate
from resolution.gateway import ArtifactResolutionGateway, ResolverOracle, format_tree
from resolution.models import RemoteRepository, ResolvedArtifact

from conftest import dep

REPOS = (RemoteRepository("central", "https://repo.example.com/maven2"),)


class TestResolveArtifact:
    """resolve_artifact error mapping and scope handling."""

    def test_binds_path_and_keeps_scope(self, fake_oracle, tmp_path):
        coordinate = parse_coordinate("g:a:1.0")
        fake_oracle.artifacts[coordinate] = tmp_path / "a-1.0.jar"
        gateway = ArtifactResolutionGateway(fake_oracle, REPOS)

        resolved = gateway.resolve_artifact(ResolvedArtifact(coordinate, scope=Scope.RUNTIME))

        assert resolved.path == tmp_path / "a-1.0.jar"
        assert resolved.scope is Scope.RUNTIME

    def test_repositories_passed_through(self):
        oracle = MagicMock()
        oracle.resolve_artifact.return_value = Path("/tmp/a.jar")
        gateway = ArtifactResolutionGateway(oracle, list(REPOS))

        gateway.resolve_artifact(parse_coordinate("g:a:1.0"))

        oracle.resolve_artifact.assert_called_once_with(parse_coordinate("g:a:1.0"), REPOS)

    def test_oracle_failure_becomes_resolution_error(self, fake_oracle):
        gateway = ArtifactResolutionGateway(fake_oracle, REPOS)

        with pytest.raises(ResolutionError) as excinfo:
            gateway.resolve_artifact(parse_coordinate("g:missing:1.0"))
        assert excinfo.value.subject == "g:missing:1.0"
        assert isinstance(excinfo.value.__cause__, LookupError)

    def test_no_location_is_a_resolution_error(self):
        oracle = MagicMock()
        oracle.resolve_artifact.return_value = None

        with pytest.raises(ResolutionError):
            ArtifactResolutionGateway(oracle, REPOS).resolve_artifact(parse_coordinate("g:a:1.0"))


class TestCollectDependencyTree:
    """collect_dependency_tree error mapping."""

    def test_root_takes_requested_scope(self, fake_oracle):
        coordinate = parse_coordinate("g:a:1.0")
        fake_oracle.trees[coordinate] = dep("g:a:1.0", None, dep("g:b:1.0"))

        root = ArtifactResolutionGateway(fake_oracle, REPOS).collect_dependency_tree(coordinate, Scope.RUNTIME)

        assert root.artifact.scope is Scope.RUNTIME
        assert [c.artifact.coordinate.artifact for c in root.children] == ["b"]

    def test_descriptor_failure(self, fake_oracle):
        coordinate = parse_coordinate("g:a:1.0")
        fake_oracle.broken_descriptors.add(coordinate)

        with pytest.raises(DescriptorError):
            ArtifactResolutionGateway(fake_oracle, REPOS).collect_dependency_tree(coordinate)
        assert fake_oracle.collect_calls == []

    def test_collection_failure(self, fake_oracle):
        coordinate = parse_coordinate("g:a:1.0")
        fake_oracle.broken_trees.add(coordinate)

        with pytest.raises(CollectionError) as excinfo:
            ArtifactResolutionGateway(fake_oracle, REPOS).collect_dependency_tree(coordinate)
        assert excinfo.value.subject == "g:a:1.0"


def test_fake_oracle_satisfies_protocol(fake_oracle):
    assert isinstance(fake_oracle, ResolverOracle)


def test_format_tree_indents_by_depth():
    tree = dep("g:a:1.0", None, dep("g:b:1.0", "runtime", dep("g:c:1.0", "runtime")), dep("g:d:1.0", "test"))

    assert format_tree(tree) == "\n".join([
        "g:a:1.0",
        "  g:b:1.0 [runtime]",
        "    g:c:1.0 [runtime]",
        "  g:d:1.0 [test]",
    ])
