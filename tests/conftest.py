"""Pytest configuration and fixtures."""

import json

import pytest

from modmap.appearance import status_color
from modmap.lockfile import parse_lock_document
from modmap.manifest import parse_package_json
from modmap.models import CONFLICT


class StaticManifestSource:
    """In-memory ManifestSource: root -> (package.json dict, package-lock.json dict)."""

    def __init__(self, workspaces: dict[str, tuple[dict | None, dict | None]]):
        self.workspaces = workspaces

    async def list_workspace_roots(self) -> list[str]:
        return list(self.workspaces)

    async def read_manifest(self, root: str):
        manifest, _ = self.workspaces[root]
        if manifest is None:
            return None
        return parse_package_json(json.dumps(manifest))

    async def read_lockfile(self, root: str):
        _, lock = self.workspaces[root]
        if lock is None:
            return None
        return parse_lock_document(lock)


class StaticRegistry:
    """In-memory registry double recording every lookup."""

    def __init__(self, latest: dict[str, str] | None = None, failing: tuple[str, ...] = ()):
        self.latest = latest or {}
        self.failing = failing
        self.calls: list[str] = []

    async def latest_version(self, package_name: str) -> str | None:
        self.calls.append(package_name)
        if package_name in self.failing:
            raise RuntimeError(f"registry unavailable for {package_name}")
        return self.latest.get(package_name)


async def no_sleep(_delay: float) -> None:
    return None


def assert_graph_invariants(graph):
    """Structural properties every finished graph must satisfy."""
    node_ids = {node.id for node in graph.nodes}
    assert len(node_ids) == len(graph.nodes)

    for node in graph.nodes:
        assert node.color == status_color(node.status)
        assert node.depth >= 0
        assert node.size > 0

    for edge in graph.edges:
        assert edge.source != edge.target
        assert edge.target in node_ids
        assert edge.id == f"{edge.source}->{edge.target}"

    meta = graph.metadata
    assert meta.total_packages == len(graph.nodes)
    assert meta.total_dependencies == len(graph.edges)
    assert meta.conflicts == sum(1 for n in graph.nodes if n.status == CONFLICT)
    assert meta.outdated == sum(1 for n in graph.nodes if n.status == "outdated")
    assert meta.vulnerabilities == sum(1 for n in graph.nodes if n.status == "vulnerable")


@pytest.fixture
def sample_package_json():
    """package.json declaring every kind of dependency."""
    return {
        "name": "test-project",
        "version": "1.0.0",
        "dependencies": {
            "express": "^4.18.0",
            "lodash": "~4.17.21",
        },
        "devDependencies": {"jest": "^29.0.0"},
        "peerDependencies": {"react": "^18.0.0"},
        "optionalDependencies": {"fsevents": "^2.3.0"},
    }


@pytest.fixture
def modern_lock():
    """lockfileVersion 3 document for sample_package_json (fsevents not installed)."""
    return {
        "name": "test-project",
        "version": "1.0.0",
        "lockfileVersion": 3,
        "packages": {
            "": {
                "name": "test-project",
                "version": "1.0.0",
                "dependencies": {"express": "^4.18.0", "lodash": "~4.17.21"},
            },
            "node_modules/express": {
                "version": "4.18.2",
                "dependencies": {"body-parser": "1.20.1", "debug": "2.6.9"},
            },
            "node_modules/body-parser": {
                "version": "1.20.1",
                "dependencies": {"debug": "2.6.9", "bytes": "3.1.2"},
            },
            "node_modules/debug": {
                "version": "2.6.9",
                "dependencies": {"ms": "2.0.0"},
            },
            "node_modules/ms": {"version": "2.0.0"},
            "node_modules/bytes": {"version": "3.1.2"},
            "node_modules/lodash": {"version": "4.17.21"},
            "node_modules/jest": {"version": "29.7.0"},
            "node_modules/react": {
                "version": "18.2.0",
                "dependencies": {"loose-envify": "^1.1.0"},
            },
            "node_modules/loose-envify": {"version": "1.4.0"},
        },
    }


@pytest.fixture
def legacy_package_json():
    return {
        "name": "legacy-project",
        "version": "0.1.0",
        "dependencies": {"express": "^4.18.0", "lodash": "^4.17.0"},
    }


@pytest.fixture
def legacy_lock():
    """lockfileVersion 1 document with a nested install."""
    return {
        "name": "legacy-project",
        "version": "0.1.0",
        "lockfileVersion": 1,
        "dependencies": {
            "express": {"version": "4.18.2", "requires": {"debug": "2.6.9"}},
            "debug": {"version": "2.6.9", "requires": {"ms": "2.0.0"}},
            "ms": {"version": "2.0.0"},
            "lodash": {"version": "4.17.21"},
            "left-pad": {
                "version": "1.3.0",
                "dependencies": {"nested-thing": {"version": "0.1.0"}},
            },
        },
    }


@pytest.fixture
def workspace_dir(tmp_path, sample_package_json, modern_lock):
    """A workspace root on disk with package.json and package-lock.json."""
    root = tmp_path / "app"
    root.mkdir()
    (root / "package.json").write_text(json.dumps(sample_package_json))
    (root / "package-lock.json").write_text(json.dumps(modern_lock))
    return root
