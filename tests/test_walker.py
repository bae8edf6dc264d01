"""Tests for the dependency graph walker."""
from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from common.errors import FilesystemError
from resolution.classifier import ComponentClassifier
from resolution.gateway import ArtifactResolutionGateway
from resolution.walker import DependencyGraphWalker
from staging.materializer import FilesystemMaterializer

from conftest import dep, write_jar
from resolution.coordinates import parse_coordinate


@pytest.fixture
def setup(tmp_path, fake_oracle):
    store = tmp_path / "store"

    def publish(text, plugin_id=None):
        coordinate = parse_coordinate(text)
        fake_oracle.artifacts[coordinate] = write_jar(store / coordinate.filename, plugin_id=plugin_id)

    materializer = FilesystemMaterializer(tmp_path / "plugins")
    component_dir = materializer.ensure_component_directory("owner")
    on_component = MagicMock()
    on_failure = MagicMock()
    walker = DependencyGraphWalker(
        ArtifactResolutionGateway(fake_oracle, ()), ComponentClassifier(), materializer,
        on_component=on_component, on_failure=on_failure,
    )
    return walker, publish, component_dir, on_component, on_failure


def _lib(component_dir):
    return sorted(p.name for p in (component_dir / "lib").iterdir())


class TestDependencyGraphWalker:
    """Walk semantics: scope filter, dedup, plugin branching, failure isolation."""

    def test_root_itself_is_not_copied(self, setup):
        walker, publish, component_dir, _, _ = setup
        publish("g:root:1.0")
        publish("g:b:1.0")

        copied = walker.walk(dep("g:root:1.0", None, dep("g:b:1.0")), component_dir)

        assert [p.name for p in copied] == ["b-1.0.jar"]
        assert _lib(component_dir) == ["b-1.0.jar"]

    def test_excluded_scopes_are_not_resolved(self, setup, fake_oracle):
        walker, publish, component_dir, _, _ = setup
        publish("g:p:1.0")
        publish("g:t:1.0")
        publish("g:r:1.0")

        walker.walk(dep("g:root:1.0", None,
                        dep("g:p:1.0", "provided", dep("g:r:1.0")),
                        dep("g:t:1.0", "test")), component_dir)

        assert _lib(component_dir) == []
        assert fake_oracle.resolve_calls == []

    def test_present_file_skips_resolution(self, setup, fake_oracle):
        walker, publish, component_dir, _, _ = setup
        publish("g:b:1.0")
        lib = component_dir / "lib"
        lib.mkdir()
        (lib / "b-1.0.jar").write_bytes(b"already here")

        copied = walker.walk(dep("g:root:1.0", None, dep("g:b:1.0")), component_dir)

        assert copied == []
        assert fake_oracle.resolve_calls == []
        assert (lib / "b-1.0.jar").read_bytes() == b"already here"

    def test_present_file_still_descends_into_children(self, setup, fake_oracle):
        walker, publish, component_dir, _, _ = setup
        publish("g:b:1.0")
        publish("g:e:1.0")
        lib = component_dir / "lib"
        lib.mkdir()
        (lib / "b-1.0.jar").write_bytes(b"already here")

        copied = walker.walk(dep("g:root:1.0", None, dep("g:b:1.0", None, dep("g:e:1.0"))), component_dir)

        assert [p.name for p in copied] == ["e-1.0.jar"]
        assert fake_oracle.resolve_calls == [parse_coordinate("g:e:1.0")]
        assert _lib(component_dir) == ["b-1.0.jar", "e-1.0.jar"]

    def test_plugin_dependency_is_handed_off_and_not_descended(self, setup, fake_oracle):
        walker, publish, component_dir, on_component, _ = setup
        publish("g:c:1.0", plugin_id="c")
        publish("g:inner:1.0")

        walker.walk(dep("g:root:1.0", None, dep("g:c:1.0", None, dep("g:inner:1.0"))), component_dir)

        assert _lib(component_dir) == []
        on_component.assert_called_once()
        result = on_component.call_args[0][0]
        assert result.component_id == "c"
        assert result.artifact.path.name == "c-1.0.jar"
        assert fake_oracle.resolved("g:inner:1.0") == 0

    def test_failure_abandons_branch_but_not_siblings(self, setup):
        walker, publish, component_dir, _, on_failure = setup
        publish("g:child:1.0")
        publish("g:sibling:1.0")

        walker.walk(dep("g:root:1.0", None,
                        dep("g:missing:1.0", None, dep("g:child:1.0")),
                        dep("g:sibling:1.0")), component_dir)

        assert _lib(component_dir) == ["sibling-1.0.jar"]
        on_failure.assert_called_once()
        assert on_failure.call_args[0][0].kind == "resolution"

    def test_repeated_coordinate_visited_once(self, setup, fake_oracle):
        walker, publish, component_dir, _, _ = setup
        publish("g:a:1.0")
        publish("g:d:1.0")

        walker.walk_nodes([dep("g:a:1.0", None, dep("g:d:1.0")), dep("g:d:1.0")], component_dir)

        assert _lib(component_dir) == ["a-1.0.jar", "d-1.0.jar"]
        assert fake_oracle.resolved("g:d:1.0") == 1

    def test_walk_nodes_visits_given_nodes(self, setup):
        walker, publish, component_dir, _, _ = setup
        publish("g:x:1.0")
        publish("g:y:1.0")

        copied = walker.walk_nodes([dep("g:x:1.0"), dep("g:y:1.0", "runtime")], component_dir)

        assert [p.name for p in copied] == ["x-1.0.jar", "y-1.0.jar"]

    def test_filesystem_error_propagates(self, setup):
        walker, publish, component_dir, _, _ = setup
        publish("g:b:1.0")
        walker.materializer.copy_dependency_artifact = MagicMock(side_effect=FilesystemError("read-only"))

        with pytest.raises(FilesystemError):
            walker.walk(dep("g:root:1.0", None, dep("g:b:1.0")), component_dir)
