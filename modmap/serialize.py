"""Plain-data and JSON encoding of dependency graphs."""

import json
from datetime import datetime

from .models import DependencyEdge, DependencyGraph, DependencyNode, GraphMetadata


def node_to_dict(node: DependencyNode) -> dict:
    return {
        "id": node.id,
        "name": node.name,
        "version": node.version,
        "latest_version": node.latest_version,
        "kind": node.kind,
        "status": node.status,
        "source": node.source,
        "depth": node.depth,
        "size": node.size,
        "color": node.color,
        "metadata": dict(node.metadata),
    }


def edge_to_dict(edge: DependencyEdge) -> dict:
    return {
        "id": edge.id,
        "source": edge.source,
        "target": edge.target,
        "kind": edge.kind,
        "required_version": edge.required_version,
        "dependency_kind": edge.dependency_kind,
        "width": edge.width,
        "color": edge.color,
    }


def metadata_to_dict(metadata: GraphMetadata) -> dict:
    return {
        "total_packages": metadata.total_packages,
        "total_dependencies": metadata.total_dependencies,
        "conflicts": metadata.conflicts,
        "vulnerabilities": metadata.vulnerabilities,
        "outdated": metadata.outdated,
        "scan_time": metadata.scan_time.isoformat(),
        "workspace_roots": list(metadata.workspace_roots),
    }


def graph_to_dict(graph: DependencyGraph) -> dict:
    """Encode a graph as plain dicts and lists.

    ``size``, ``color`` and ``width`` are included for consumers but are
    recomputed, not read back, by :func:`graph_from_dict`.
    """
    return {
        "nodes": [node_to_dict(node) for node in graph.nodes],
        "edges": [edge_to_dict(edge) for edge in graph.edges],
        "metadata": metadata_to_dict(graph.metadata),
    }


def graph_from_dict(data: dict) -> DependencyGraph:
    """Decode the output of :func:`graph_to_dict`."""
    nodes = [
        DependencyNode(
            id=item["id"],
            name=item["name"],
            version=item["version"],
            latest_version=item.get("latest_version"),
            kind=item["kind"],
            status=item["status"],
            source=item.get("source", ""),
            depth=int(item.get("depth", 0)),
            metadata=dict(item.get("metadata") or {}),
        )
        for item in data.get("nodes", [])
    ]
    edges = [
        DependencyEdge(
            id=item["id"],
            source=item["source"],
            target=item["target"],
            kind=item["kind"],
            required_version=item["required_version"],
            dependency_kind=item.get("dependency_kind", "dependency"),
        )
        for item in data.get("edges", [])
    ]
    meta = data["metadata"]
    metadata = GraphMetadata(
        total_packages=int(meta["total_packages"]),
        total_dependencies=int(meta["total_dependencies"]),
        conflicts=int(meta["conflicts"]),
        vulnerabilities=int(meta["vulnerabilities"]),
        outdated=int(meta["outdated"]),
        scan_time=datetime.fromisoformat(meta["scan_time"]),
        workspace_roots=list(meta.get("workspace_roots", [])),
    )
    return DependencyGraph(nodes=nodes, edges=edges, metadata=metadata)


def dumps(graph: DependencyGraph, indent: int | None = 2) -> str:
    return json.dumps(graph_to_dict(graph), indent=indent)


def loads(text: str) -> DependencyGraph:
    return graph_from_dict(json.loads(text))
