"""Dependency scanning: manifests in, annotated dependency graph out."""

import asyncio
import time
from collections import deque
from dataclasses import replace
from typing import Protocol

import structlog

from .exceptions import NoWorkspaceError
from .graph import (
    build_lockfile_edges,
    build_manifest_edges,
    build_metadata,
    compute_depths,
    dependencies_by_kind,
    find_dependency,
    make_node_id,
    outdated_dependencies,
    remap_edges,
    resolve_conflicts,
    root_basename,
    vulnerable_dependencies,
)
from .lockfile import LockfileRecord
from .manifest import ManifestSource
from .models import (
    CONFLICT,
    DEPENDENCY,
    MANIFEST_SECTIONS,
    OUTDATED,
    BatchPolicy,
    DependencyEdge,
    DependencyGraph,
    DependencyNode,
    ManifestRecord,
    ScanOptions,
    WorkspaceInfo,
)
from .versions import clean_version, is_outdated, looks_like_version

log = structlog.get_logger("modmap.scanner")


class VersionSource(Protocol):
    """Anything that can tell the latest published version of a package."""

    async def latest_version(self, package_name: str) -> str | None: ...


class DependencyScanner:
    """Builds a DependencyGraph from the workspace roots of a ManifestSource."""

    def __init__(
        self,
        source: ManifestSource,
        registry: VersionSource | None = None,
        policy: BatchPolicy | None = None,
        sleep=asyncio.sleep,
    ):
        """Initialize scanner.

        Args:
            source: Provides workspace roots, manifests and lockfiles
            registry: Latest-version lookups; None disables the staleness pass
            policy: Batch size and pause used for registry lookups
            sleep: Coroutine used to pause between batches
        """
        self.source = source
        self.registry = registry
        self.policy = policy or BatchPolicy()
        self._sleep = sleep

    async def scan_workspace(self, options: ScanOptions | None = None) -> DependencyGraph:
        """Scan every workspace root and build the combined graph.

        Raises:
            NoWorkspaceError: If the source lists no workspace roots
        """
        options = options or ScanOptions()
        started = time.perf_counter()

        roots = await self.source.list_workspace_roots()
        if not roots:
            raise NoWorkspaceError()

        log.info("scan.started", roots=len(roots), max_depth=options.max_depth)

        workspaces: list[WorkspaceInfo] = []
        for root in roots:
            workspace = await self.scan_workspace_root(root, options)
            if workspace is not None:
                workspaces.append(workspace)

        graph = await self.build_dependency_graph(workspaces, options)

        log.info(
            "scan.completed",
            packages=graph.metadata.total_packages,
            dependencies=graph.metadata.total_dependencies,
            conflicts=graph.metadata.conflicts,
            outdated=graph.metadata.outdated,
            elapsed_ms=round((time.perf_counter() - started) * 1000),
        )
        return graph

    async def scan_workspace_root(
        self, root: str, options: ScanOptions
    ) -> WorkspaceInfo | None:
        """Read and parse one workspace root. Returns None if it has to be skipped."""
        try:
            manifest = await self.source.read_manifest(root)
            if manifest is None:
                log.warning("scan.root_skipped", root=root, reason="package.json unreadable")
                return None

            lockfile = await self.source.read_lockfile(root)
            dependencies = self.parse_dependencies(manifest, lockfile, root, options)
        except Exception:
            log.warning("scan.root_failed", root=root, exc_info=True)
            return None

        return WorkspaceInfo(
            root=root,
            name=manifest.name or root_basename(root),
            manifest=manifest,
            lockfile=lockfile,
            dependencies=dependencies,
        )

    def parse_dependencies(
        self,
        manifest: ManifestRecord,
        lockfile: LockfileRecord | None,
        root: str,
        options: ScanOptions,
    ) -> list[DependencyNode]:
        """Create nodes for declared dependencies, then for locked transitive ones."""
        nodes: dict[str, DependencyNode] = {}

        for section, kind in MANIFEST_SECTIONS.items():
            if not options.includes(kind):
                continue
            for name, spec in manifest.declared(section).items():
                version = lockfile.resolved_version(name, spec) if lockfile else spec
                node_id = make_node_id(name, version, root)
                if node_id in nodes:
                    continue
                nodes[node_id] = DependencyNode(
                    id=node_id,
                    name=name,
                    version=version,
                    kind=kind,
                    source=root,
                    depth=0,
                )

        if lockfile is not None and options.max_depth > 1:
            self._walk_lockfile(nodes, lockfile, root, options.max_depth)

        return list(nodes.values())

    def _walk_lockfile(
        self,
        nodes: dict[str, DependencyNode],
        lockfile: LockfileRecord,
        root: str,
        max_depth: int,
    ) -> None:
        """Breadth-first discovery of locked dependencies below max_depth."""
        queue: deque[DependencyNode] = deque(nodes.values())
        while queue:
            node = queue.popleft()
            if node.depth + 1 >= max_depth:
                continue
            for name, spec in lockfile.requirements_of(node.name).items():
                version = lockfile.resolved_version(name, spec)
                node_id = make_node_id(name, version, root)
                if node_id in nodes:
                    continue
                child = DependencyNode(
                    id=node_id,
                    name=name,
                    version=version,
                    kind=DEPENDENCY,
                    source=root,
                    depth=node.depth + 1,
                )
                nodes[node_id] = child
                queue.append(child)

    async def build_dependency_graph(
        self, workspaces: list[WorkspaceInfo], options: ScanOptions
    ) -> DependencyGraph:
        all_nodes: list[DependencyNode] = []
        all_edges: list[DependencyEdge] = []

        for workspace in workspaces:
            all_nodes.extend(workspace.dependencies)
            if workspace.lockfile is not None and workspace.lockfile.shapes:
                edges = build_lockfile_edges(workspace.lockfile, workspace.dependencies)
            else:
                edges = build_manifest_edges(
                    workspace.manifest, workspace.root, workspace.dependencies
                )
            all_edges.extend(edges)

        resolution = resolve_conflicts(all_nodes)
        if resolution.conflicting:
            log.info("scan.conflicts", packages=sorted(resolution.conflicting))

        node_ids = {node.id for node in resolution.nodes}
        edges = remap_edges(all_edges, resolution.aliases, node_ids)
        nodes = compute_depths(resolution.nodes, edges)

        if options.enable_version_checking and self.registry is not None:
            nodes = await self.check_outdated(nodes)

        metadata = build_metadata(nodes, edges, [w.root for w in workspaces])
        return DependencyGraph(nodes=nodes, edges=edges, metadata=metadata)

    async def check_outdated(self, nodes: list[DependencyNode]) -> list[DependencyNode]:
        """Mark nodes whose registry latest version is newer as outdated.

        Lookups go out in batches of ``policy.batch_size`` with a pause of
        ``policy.delay`` between batches. Conflicted nodes are not looked up.
        """
        updated = list(nodes)
        pending = [i for i, node in enumerate(nodes) if node.status != CONFLICT]
        size = max(1, self.policy.batch_size)

        for start in range(0, len(pending), size):
            if start:
                await self._sleep(self.policy.delay)
            batch = pending[start:start + size]
            results = await asyncio.gather(
                *(self._latest_version(updated[i].name) for i in batch)
            )
            for i, latest in zip(batch, results):
                node = updated[i]
                current = clean_version(node.version)
                if not latest or not looks_like_version(current):
                    continue
                if is_outdated(current, latest):
                    updated[i] = replace(node, status=OUTDATED, latest_version=latest)

        return updated

    async def _latest_version(self, name: str) -> str | None:
        try:
            return await self.registry.latest_version(name)
        except Exception:
            log.warning("scan.version_check_failed", package=name, exc_info=True)
            return None

    async def get_dependency(
        self, name: str, options: ScanOptions | None = None
    ) -> DependencyNode | None:
        return find_dependency(await self.scan_workspace(options), name)

    async def get_dependencies_by_kind(
        self, kind: str, options: ScanOptions | None = None
    ) -> list[DependencyNode]:
        return dependencies_by_kind(await self.scan_workspace(options), kind)

    async def get_outdated_dependencies(
        self, options: ScanOptions | None = None
    ) -> list[DependencyNode]:
        return outdated_dependencies(await self.scan_workspace(options))

    async def get_vulnerable_dependencies(
        self, options: ScanOptions | None = None
    ) -> list[DependencyNode]:
        return vulnerable_dependencies(await self.scan_workspace(options))
