"""Tests for dependency scanning."""

import pytest

from conftest import StaticManifestSource, StaticRegistry, assert_graph_invariants, no_sleep
from modmap.exceptions import NoWorkspaceError
from modmap.graph import LEGACY_ROOT_ID
from modmap.models import (
    CONFLICT,
    DEPENDENCY,
    DEV_DEPENDENCY,
    OUTDATED,
    UP_TO_DATE,
    BatchPolicy,
    DependencyNode,
    ScanOptions,
)
from modmap.scanner import DependencyScanner

NO_VERSIONS = ScanOptions(enable_version_checking=False)


def scanner_for(workspaces, registry=None, policy=None, sleep=no_sleep):
    return DependencyScanner(
        StaticManifestSource(workspaces), registry=registry, policy=policy, sleep=sleep
    )


def by_name(graph):
    return {node.name: node for node in graph.nodes}


class TestScanWorkspace:
    """Test whole-workspace scans against in-memory sources."""

    @pytest.mark.asyncio
    async def test_modern_lockfile_scan(self, sample_package_json, modern_lock):
        scanner = scanner_for({"/ws/app": (sample_package_json, modern_lock)})

        graph = await scanner.scan_workspace(NO_VERSIONS)

        assert_graph_invariants(graph)
        nodes = by_name(graph)
        assert set(nodes) == {
            "express", "lodash", "jest", "react", "fsevents",
            "body-parser", "debug", "loose-envify", "bytes", "ms",
        }
        assert len(graph.edges) == 6
        assert {name: n.depth for name, n in nodes.items()} == {
            "express": 0, "lodash": 0, "jest": 0, "react": 0, "fsevents": 0,
            "body-parser": 1, "debug": 1, "loose-envify": 1, "bytes": 2, "ms": 2,
        }
        assert nodes["express"].version == "4.18.2"
        assert nodes["express"].id == "express@4.18.2-app"
        assert nodes["jest"].kind == DEV_DEPENDENCY
        assert nodes["ms"].kind == DEPENDENCY
        # Declared but not installed: keeps the declared range
        assert nodes["fsevents"].version == "^2.3.0"
        assert graph.metadata.workspace_roots == ["/ws/app"]

    @pytest.mark.asyncio
    async def test_max_depth_limits_discovery(self, sample_package_json, modern_lock):
        scanner = scanner_for({"/ws/app": (sample_package_json, modern_lock)})

        graph = await scanner.scan_workspace(ScanOptions(max_depth=2, enable_version_checking=False))

        assert_graph_invariants(graph)
        assert len(graph.nodes) == 8
        assert len(graph.edges) == 4
        assert "ms" not in by_name(graph)
        assert "bytes" not in by_name(graph)

    @pytest.mark.parametrize("max_depth", [1, 0, -1])
    @pytest.mark.asyncio
    async def test_shallow_depth_keeps_only_declared(self, max_depth, sample_package_json, modern_lock):
        scanner = scanner_for({"/ws/app": (sample_package_json, modern_lock)})

        graph = await scanner.scan_workspace(
            ScanOptions(max_depth=max_depth, enable_version_checking=False)
        )

        assert_graph_invariants(graph)
        assert len(graph.nodes) == 5
        assert graph.edges == []
        assert all(node.depth == 0 for node in graph.nodes)

    @pytest.mark.asyncio
    async def test_excluded_sections_are_skipped(self, sample_package_json, modern_lock):
        scanner = scanner_for({"/ws/app": (sample_package_json, modern_lock)})
        options = ScanOptions(
            max_depth=1,
            include_dev_dependencies=False,
            include_peer_dependencies=False,
            include_optional_dependencies=False,
            enable_version_checking=False,
        )

        graph = await scanner.scan_workspace(options)

        assert sorted(by_name(graph)) == ["express", "lodash"]

    @pytest.mark.asyncio
    async def test_legacy_lockfile_scan(self, legacy_package_json, legacy_lock):
        scanner = scanner_for({"/ws/old": (legacy_package_json, legacy_lock)})

        graph = await scanner.scan_workspace(NO_VERSIONS)

        assert_graph_invariants(graph)
        nodes = by_name(graph)
        assert {name: n.depth for name, n in nodes.items()} == {
            "express": 0, "lodash": 0, "debug": 1, "ms": 2,
        }
        assert len(graph.edges) == 6
        assert sum(1 for e in graph.edges if e.source == LEGACY_ROOT_ID) == 4
        assert LEGACY_ROOT_ID not in {n.id for n in graph.nodes}

    @pytest.mark.asyncio
    async def test_manifest_only_scan_uses_direct_edges(self, sample_package_json):
        scanner = scanner_for({"/ws/app": (sample_package_json, None)})

        graph = await scanner.scan_workspace(NO_VERSIONS)

        assert_graph_invariants(graph)
        assert len(graph.nodes) == 5
        assert len(graph.edges) == 5
        assert all(e.source == "root-app" and e.kind == "direct" for e in graph.edges)
        assert by_name(graph)["express"].version == "^4.18.0"

    @pytest.mark.asyncio
    async def test_conflicting_versions_across_roots(self):
        scanner = scanner_for(
            {
                "/ws/alpha": ({"dependencies": {"p": "1.0.0", "shared": "2.0.0"}}, None),
                "/ws/beta": ({"dependencies": {"p": "2.0.0", "shared": "2.0.0"}}, None),
            }
        )

        graph = await scanner.scan_workspace(NO_VERSIONS)

        assert_graph_invariants(graph)
        nodes = by_name(graph)
        assert len(graph.nodes) == 2
        assert nodes["p"].id == "p@1.0.0-alpha"
        assert nodes["p"].status == CONFLICT
        assert nodes["shared"].status == UP_TO_DATE
        assert graph.metadata.conflicts == 1
        assert len(graph.edges) == 4
        assert {e.target for e in graph.edges} == {"p@1.0.0-alpha", "shared@2.0.0-alpha"}

    @pytest.mark.asyncio
    async def test_scan_is_idempotent(self, sample_package_json, modern_lock):
        scanner = scanner_for({"/ws/app": (sample_package_json, modern_lock)})

        first = await scanner.scan_workspace(NO_VERSIONS)
        second = await scanner.scan_workspace(NO_VERSIONS)

        assert first.nodes == second.nodes
        assert [e.id for e in first.edges] == [e.id for e in second.edges]

    @pytest.mark.asyncio
    async def test_no_roots_raises(self):
        with pytest.raises(NoWorkspaceError, match="No workspace folders found"):
            await scanner_for({}).scan_workspace(NO_VERSIONS)

    @pytest.mark.asyncio
    async def test_unreadable_root_is_skipped(self, sample_package_json):
        scanner = scanner_for(
            {"/ws/broken": (None, None), "/ws/app": (sample_package_json, None)}
        )

        graph = await scanner.scan_workspace(NO_VERSIONS)

        assert graph.metadata.workspace_roots == ["/ws/app"]
        assert len(graph.nodes) == 5

    @pytest.mark.asyncio
    async def test_all_roots_unreadable_gives_empty_graph(self):
        graph = await scanner_for({"/ws/broken": (None, None)}).scan_workspace(NO_VERSIONS)

        assert graph.nodes == []
        assert graph.edges == []
        assert graph.metadata.total_packages == 0
        assert graph.metadata.workspace_roots == []

    @pytest.mark.asyncio
    async def test_failing_root_is_skipped(self, sample_package_json):
        class ExplodingSource(StaticManifestSource):
            async def read_lockfile(self, root):
                if root == "/ws/bad":
                    raise OSError("disk on fire")
                return await super().read_lockfile(root)

        source = ExplodingSource(
            {"/ws/bad": (sample_package_json, None), "/ws/app": (sample_package_json, None)}
        )
        graph = await DependencyScanner(source).scan_workspace(NO_VERSIONS)

        assert graph.metadata.workspace_roots == ["/ws/app"]

    @pytest.mark.asyncio
    async def test_node_sizes_shrink_with_depth(self, sample_package_json, modern_lock):
        graph = await scanner_for({"/ws/app": (sample_package_json, modern_lock)}).scan_workspace(
            NO_VERSIONS
        )
        nodes = by_name(graph)
        assert nodes["express"].size == 20
        assert nodes["debug"].size == 17
        assert nodes["ms"].size == 14
        assert nodes["jest"].size == 16
        assert nodes["react"].size == 14


class TestVersionChecking:
    """Test the registry staleness pass."""

    @pytest.mark.asyncio
    async def test_outdated_nodes_are_marked(self, sample_package_json, modern_lock):
        registry = StaticRegistry({"express": "4.19.2", "lodash": "4.17.21", "ms": "2.1.3"})
        scanner = scanner_for({"/ws/app": (sample_package_json, modern_lock)}, registry=registry)

        graph = await scanner.scan_workspace()

        assert_graph_invariants(graph)
        nodes = by_name(graph)
        assert nodes["express"].status == OUTDATED
        assert nodes["express"].latest_version == "4.19.2"
        assert nodes["express"].color == "#FF9800"
        assert nodes["ms"].status == OUTDATED
        assert nodes["lodash"].status == UP_TO_DATE
        assert nodes["lodash"].latest_version is None
        assert graph.metadata.outdated == 2

    @pytest.mark.asyncio
    async def test_declared_ranges_are_cleaned_before_comparing(self, sample_package_json):
        registry = StaticRegistry({"express": "4.18.0", "jest": "30.0.0"})
        scanner = scanner_for({"/ws/app": (sample_package_json, None)}, registry=registry)

        nodes = by_name(await scanner.scan_workspace())

        assert nodes["express"].status == UP_TO_DATE
        assert nodes["jest"].status == OUTDATED

    @pytest.mark.asyncio
    async def test_non_version_specs_are_not_compared(self):
        registry = StaticRegistry({"anything": "9.9.9"})
        scanner = scanner_for({"/ws/app": ({"dependencies": {"anything": "*"}}, None)}, registry=registry)

        nodes = by_name(await scanner.scan_workspace())

        assert nodes["anything"].status == UP_TO_DATE

    @pytest.mark.asyncio
    async def test_lookup_failures_are_ignored(self, sample_package_json, modern_lock):
        registry = StaticRegistry({"lodash": "5.0.0"}, failing=("express", "debug"))
        scanner = scanner_for({"/ws/app": (sample_package_json, modern_lock)}, registry=registry)

        graph = await scanner.scan_workspace()

        nodes = by_name(graph)
        assert nodes["express"].status == UP_TO_DATE
        assert nodes["lodash"].status == OUTDATED
        assert "express" in registry.calls

    @pytest.mark.asyncio
    async def test_disabled_version_checking_makes_no_lookups(self, sample_package_json):
        registry = StaticRegistry({"express": "99.0.0"})
        scanner = scanner_for({"/ws/app": (sample_package_json, None)}, registry=registry)

        graph = await scanner.scan_workspace(NO_VERSIONS)

        assert registry.calls == []
        assert graph.metadata.outdated == 0

    @pytest.mark.asyncio
    async def test_conflicted_nodes_are_not_looked_up(self):
        registry = StaticRegistry({"p": "3.0.0"})
        scanner = scanner_for(
            {
                "/ws/alpha": ({"dependencies": {"p": "1.0.0"}}, None),
                "/ws/beta": ({"dependencies": {"p": "2.0.0"}}, None),
            },
            registry=registry,
        )

        graph = await scanner.scan_workspace()

        assert registry.calls == []
        assert graph.nodes[0].status == CONFLICT

    @pytest.mark.asyncio
    async def test_lookups_are_batched(self):
        delays = []

        async def record_sleep(delay):
            delays.append(delay)

        registry = StaticRegistry()
        scanner = DependencyScanner(
            StaticManifestSource({}),
            registry=registry,
            policy=BatchPolicy(batch_size=10, delay=0.25),
            sleep=record_sleep,
        )
        nodes = [
            DependencyNode(id=f"pkg{i}@1.0.0-app", name=f"pkg{i}", version="1.0.0")
            for i in range(25)
        ]

        checked = await scanner.check_outdated(nodes)

        assert len(registry.calls) == 25
        assert delays == [0.25, 0.25]
        assert [n.id for n in checked] == [n.id for n in nodes]

    @pytest.mark.asyncio
    async def test_single_batch_does_not_sleep(self):
        delays = []

        async def record_sleep(delay):
            delays.append(delay)

        scanner = DependencyScanner(
            StaticManifestSource({}), registry=StaticRegistry(), sleep=record_sleep
        )
        nodes = [DependencyNode(id="a@1.0.0-app", name="a", version="1.0.0")]

        await scanner.check_outdated(nodes)

        assert delays == []


class TestQueries:
    """Test convenience lookups over a fresh scan."""

    @pytest.mark.asyncio
    async def test_get_dependency(self, sample_package_json, modern_lock):
        scanner = scanner_for({"/ws/app": (sample_package_json, modern_lock)})
        node = await scanner.get_dependency("debug", NO_VERSIONS)
        assert node.version == "2.6.9"
        assert await scanner.get_dependency("missing", NO_VERSIONS) is None

    @pytest.mark.asyncio
    async def test_get_dependencies_by_kind(self, sample_package_json, modern_lock):
        scanner = scanner_for({"/ws/app": (sample_package_json, modern_lock)})
        dev = await scanner.get_dependencies_by_kind(DEV_DEPENDENCY, NO_VERSIONS)
        assert [n.name for n in dev] == ["jest"]

    @pytest.mark.asyncio
    async def test_get_outdated_and_vulnerable(self, sample_package_json):
        registry = StaticRegistry({"express": "5.0.0"})
        scanner = scanner_for({"/ws/app": (sample_package_json, None)}, registry=registry)
        outdated = await scanner.get_outdated_dependencies()
        assert [n.name for n in outdated] == ["express"]
        assert await scanner.get_vulnerable_dependencies() == []
