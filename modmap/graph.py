"""Graph construction algorithms.

Everything here is pure: functions take node and edge lists and return new
ones, never mutating their inputs.
"""

import os
from collections import defaultdict, deque
from dataclasses import dataclass, replace
from datetime import datetime, timezone

from .lockfile import LockfileRecord
from .models import (
    CONFLICT,
    DEPENDENCY,
    DEV_DEPENDENCY,
    DIRECT,
    MANIFEST_SECTIONS,
    OPTIONAL_DEPENDENCY,
    OUTDATED,
    PEER_DEPENDENCY,
    TRANSITIVE,
    VULNERABLE,
    DependencyEdge,
    DependencyGraph,
    DependencyNode,
    GraphMetadata,
    ManifestRecord,
)

LEGACY_ROOT_ID = "legacy-root"


def root_basename(root: str) -> str:
    return os.path.basename(os.path.normpath(root))


def make_node_id(name: str, version: str, root: str) -> str:
    return f"{name}@{version}-{root_basename(root)}"


def make_edge_id(source: str, target: str) -> str:
    return f"{source}->{target}"


def root_node_id(root: str) -> str:
    """Synthetic id standing in for a workspace root's own package.json."""
    return f"root-{root_basename(root)}"


def _index_by_name(nodes: list[DependencyNode]) -> dict[str, DependencyNode]:
    index: dict[str, DependencyNode] = {}
    for node in nodes:
        index.setdefault(node.name, node)
    return index


def build_lockfile_edges(
    lockfile: LockfileRecord, nodes: list[DependencyNode]
) -> list[DependencyEdge]:
    """Edges for every lockfile requirement between two known packages.

    Requirements naming a package with no node are skipped. Links whose
    declaring package cannot be told from the lock data hang off
    LEGACY_ROOT_ID, which is never a node.
    """
    index = _index_by_name(nodes)
    edges: dict[str, DependencyEdge] = {}

    for shape in lockfile.shapes:
        for link in shape.iter_links():
            target = index.get(link.child)
            if target is None:
                continue
            if link.parent is None:
                source_id = LEGACY_ROOT_ID
            else:
                parent = index.get(link.parent)
                if parent is None:
                    continue
                source_id = parent.id
            if source_id == target.id:
                continue

            edge_id = make_edge_id(source_id, target.id)
            if edge_id not in edges:
                edges[edge_id] = DependencyEdge(
                    id=edge_id,
                    source=source_id,
                    target=target.id,
                    kind=TRANSITIVE,
                    required_version=link.required,
                )

    return list(edges.values())


def build_manifest_edges(
    manifest: ManifestRecord, root: str, nodes: list[DependencyNode]
) -> list[DependencyEdge]:
    """Direct edges from a synthetic root id to each declared dependency."""
    index = _index_by_name(nodes)
    source_id = root_node_id(root)
    edges: dict[str, DependencyEdge] = {}

    for section, kind in MANIFEST_SECTIONS.items():
        for name, spec in manifest.declared(section).items():
            target = index.get(name)
            if target is None:
                continue
            edge_id = make_edge_id(source_id, target.id)
            if edge_id not in edges:
                edges[edge_id] = DependencyEdge(
                    id=edge_id,
                    source=source_id,
                    target=target.id,
                    kind=DIRECT,
                    required_version=spec,
                    dependency_kind=kind,
                )

    return list(edges.values())


@dataclass
class ConflictResolution:
    """Outcome of merging per-root node lists by package name."""

    nodes: list[DependencyNode]  # one representative per name
    aliases: dict[str, str]  # every aggregated node id -> representative id
    conflicting: dict[str, list[str]]  # name -> distinct versions seen


def resolve_conflicts(nodes: list[DependencyNode]) -> ConflictResolution:
    """Group nodes by name; names seen at more than one version are conflicts.

    The first node seen for each name represents the group. It is marked
    ``conflict`` when the group holds more than one distinct version.
    """
    groups: dict[str, list[DependencyNode]] = {}
    for node in nodes:
        groups.setdefault(node.name, []).append(node)

    unique: list[DependencyNode] = []
    aliases: dict[str, str] = {}
    conflicting: dict[str, list[str]] = {}

    for name, group in groups.items():
        representative = group[0]
        versions = list(dict.fromkeys(node.version for node in group))
        if len(versions) > 1:
            representative = replace(representative, status=CONFLICT)
            conflicting[name] = versions
        unique.append(representative)
        for node in group:
            aliases[node.id] = representative.id

    return ConflictResolution(nodes=unique, aliases=aliases, conflicting=conflicting)


def remap_edges(
    edges: list[DependencyEdge], aliases: dict[str, str], node_ids: set[str]
) -> list[DependencyEdge]:
    """Point edges at representative nodes.

    Edges whose target is not a node, edges that collapse into a self-loop,
    and repeats of an already seen edge id are dropped.
    """
    remapped: dict[str, DependencyEdge] = {}
    for edge in edges:
        source = aliases.get(edge.source, edge.source)
        target = aliases.get(edge.target, edge.target)
        if source == target or target not in node_ids:
            continue
        edge_id = make_edge_id(source, target)
        if edge_id in remapped:
            continue
        remapped[edge_id] = replace(edge, id=edge_id, source=source, target=target)
    return list(remapped.values())


def compute_depths(
    nodes: list[DependencyNode], edges: list[DependencyEdge]
) -> list[DependencyNode]:
    """Assign each node its BFS distance from the nearest root.

    Roots are nodes no other node points at; edges from synthetic sources do
    not count. Nodes not reachable from any root get depth 0.
    """
    node_ids = {node.id for node in nodes}
    adjacency: dict[str, list[str]] = defaultdict(list)
    targeted: set[str] = set()
    for edge in edges:
        adjacency[edge.source].append(edge.target)
        if edge.source in node_ids:
            targeted.add(edge.target)

    depths: dict[str, int] = {}
    queue: deque[str] = deque()
    for node in nodes:
        if node.id not in targeted:
            depths[node.id] = 0
            queue.append(node.id)

    while queue:
        current = queue.popleft()
        for child in adjacency.get(current, ()):
            if child not in depths:
                depths[child] = depths[current] + 1
                queue.append(child)

    return [replace(node, depth=depths.get(node.id, 0)) for node in nodes]


def build_metadata(
    nodes: list[DependencyNode],
    edges: list[DependencyEdge],
    workspace_roots: list[str],
    scan_time: datetime | None = None,
) -> GraphMetadata:
    """Summary counts, always taken from the final node and edge lists."""
    return GraphMetadata(
        total_packages=len(nodes),
        total_dependencies=len(edges),
        conflicts=sum(1 for node in nodes if node.status == CONFLICT),
        vulnerabilities=sum(1 for node in nodes if node.status == VULNERABLE),
        outdated=sum(1 for node in nodes if node.status == OUTDATED),
        scan_time=scan_time or datetime.now(timezone.utc),
        workspace_roots=list(workspace_roots),
    )


def find_dependency(graph: DependencyGraph, name: str) -> DependencyNode | None:
    return next((node for node in graph.nodes if node.name == name), None)


def dependencies_by_kind(graph: DependencyGraph, kind: str) -> list[DependencyNode]:
    return [node for node in graph.nodes if node.kind == kind]


def outdated_dependencies(graph: DependencyGraph) -> list[DependencyNode]:
    return [node for node in graph.nodes if node.status == OUTDATED]


def vulnerable_dependencies(graph: DependencyGraph) -> list[DependencyNode]:
    return [node for node in graph.nodes if node.status == VULNERABLE]


@dataclass
class GraphFilter:
    """What a viewer chooses to show."""

    max_depth: int = 3
    show_dependencies: bool = True
    show_dev_dependencies: bool = True
    show_peer_dependencies: bool = True
    show_optional_dependencies: bool = True
    show_outdated: bool = True
    show_conflicts: bool = True
    show_vulnerable: bool = True
    search_term: str = ""

    def accepts(self, node: DependencyNode) -> bool:
        if node.depth > self.max_depth:
            return False
        shown_kinds = {
            DEPENDENCY: self.show_dependencies,
            DEV_DEPENDENCY: self.show_dev_dependencies,
            PEER_DEPENDENCY: self.show_peer_dependencies,
            OPTIONAL_DEPENDENCY: self.show_optional_dependencies,
        }
        if not shown_kinds.get(node.kind, True):
            return False
        if node.status == OUTDATED and not self.show_outdated:
            return False
        if node.status == CONFLICT and not self.show_conflicts:
            return False
        if node.status == VULNERABLE and not self.show_vulnerable:
            return False
        if self.search_term and self.search_term.lower() not in node.name.lower():
            return False
        return True


def filter_graph(graph: DependencyGraph, graph_filter: GraphFilter) -> DependencyGraph:
    """Keep the accepted nodes and the edges between them."""
    nodes = [node for node in graph.nodes if graph_filter.accepts(node)]
    kept = {node.id for node in nodes}
    edges = [edge for edge in graph.edges if edge.source in kept and edge.target in kept]
    metadata = build_metadata(
        nodes,
        edges,
        graph.metadata.workspace_roots,
        scan_time=graph.metadata.scan_time,
    )
    return DependencyGraph(nodes=nodes, edges=edges, metadata=metadata)


def analysis_summary(graph: DependencyGraph) -> dict:
    """Issue counts for a scanned graph."""
    outdated = len(outdated_dependencies(graph))
    conflicts = sum(1 for node in graph.nodes if node.status == CONFLICT)
    vulnerable = len(vulnerable_dependencies(graph))
    return {
        "total_packages": len(graph.nodes),
        "total_dependencies": len(graph.edges),
        "outdated": outdated,
        "conflicts": conflicts,
        "vulnerable": vulnerable,
        "all_up_to_date": outdated == 0 and conflicts == 0 and vulnerable == 0,
    }
