"""Colors and sizes used by graph consumers."""

STATUS_COLORS = {
    "up-to-date": "#4CAF50",
    "outdated": "#FF9800",
    "vulnerable": "#F44336",
    "conflict": "#2196F3",
}

KIND_COLORS = {
    "dependency": "#4CAF50",
    "devDependency": "#FF9800",
    "peerDependency": "#2196F3",
    "optionalDependency": "#9C27B0",
}

TRANSITIVE_EDGE_COLOR = "#999999"
UNKNOWN_COLOR = "#9E9E9E"

BASE_NODE_SIZE = 20
MIN_NODE_SIZE = 8
DEPTH_STEP = 3

# Scale relative to runtime dependencies
KIND_SCALE = {
    "dependency": 1.0,
    "devDependency": 0.8,
    "peerDependency": 0.7,
    "optionalDependency": 0.7,
}


def status_color(status: str) -> str:
    """Return the canonical color for a node status."""
    return STATUS_COLORS.get(status, UNKNOWN_COLOR)


def edge_color(edge_kind: str, dependency_kind: str) -> str:
    """Direct edges are colored by manifest section, transitive ones are grey."""
    if edge_kind == "transitive":
        return TRANSITIVE_EDGE_COLOR
    return KIND_COLORS.get(dependency_kind, TRANSITIVE_EDGE_COLOR)


def edge_width(edge_kind: str) -> int:
    return 2 if edge_kind == "direct" else 1


def node_size(depth: int, kind: str) -> float:
    """Shrink nodes with depth, floored at MIN_NODE_SIZE, then scale by kind."""
    size = max(MIN_NODE_SIZE, BASE_NODE_SIZE - DEPTH_STEP * max(depth, 0))
    return round(size * KIND_SCALE.get(kind, 1.0), 1)
