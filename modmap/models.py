"""Core data models for modmap."""

from dataclasses import dataclass, field
from datetime import datetime

from .appearance import edge_color, edge_width, node_size, status_color

DEPENDENCY = "dependency"
DEV_DEPENDENCY = "devDependency"
PEER_DEPENDENCY = "peerDependency"
OPTIONAL_DEPENDENCY = "optionalDependency"

# package.json section -> node kind
MANIFEST_SECTIONS = {
    "dependencies": DEPENDENCY,
    "devDependencies": DEV_DEPENDENCY,
    "peerDependencies": PEER_DEPENDENCY,
    "optionalDependencies": OPTIONAL_DEPENDENCY,
}

UP_TO_DATE = "up-to-date"
OUTDATED = "outdated"
VULNERABLE = "vulnerable"
CONFLICT = "conflict"

DIRECT = "direct"
TRANSITIVE = "transitive"


@dataclass(frozen=True)
class DependencyNode:
    """One resolved package occurrence inside a workspace root."""

    id: str
    name: str
    version: str
    kind: str = DEPENDENCY  # dependency, devDependency, peerDependency, optionalDependency
    status: str = UP_TO_DATE  # up-to-date, outdated, vulnerable, conflict
    source: str = ""  # owning workspace root
    depth: int = 0
    latest_version: str | None = None
    metadata: dict = field(default_factory=dict, compare=False)

    @property
    def color(self) -> str:
        return status_color(self.status)

    @property
    def size(self) -> float:
        return node_size(self.depth, self.kind)


@dataclass(frozen=True)
class DependencyEdge:
    """A requirement from one package (or a synthetic root) on another."""

    id: str
    source: str
    target: str
    kind: str  # direct, transitive
    required_version: str
    dependency_kind: str = DEPENDENCY  # manifest section that declared it

    @property
    def color(self) -> str:
        return edge_color(self.kind, self.dependency_kind)

    @property
    def width(self) -> int:
        return edge_width(self.kind)


@dataclass
class GraphMetadata:
    """Summary counts for a finished graph."""

    total_packages: int
    total_dependencies: int
    conflicts: int
    vulnerabilities: int
    outdated: int
    scan_time: datetime
    workspace_roots: list[str]


@dataclass
class DependencyGraph:
    """Nodes, edges and their summary."""

    nodes: list[DependencyNode]
    edges: list[DependencyEdge]
    metadata: GraphMetadata


@dataclass
class ManifestRecord:
    """The parts of a package.json the scanner reads."""

    name: str | None
    version: str | None
    sections: dict[str, dict[str, str]]  # section key -> {package: range}

    def declared(self, section: str) -> dict[str, str]:
        return self.sections.get(section, {})


@dataclass
class WorkspaceInfo:
    """A parsed workspace root and the nodes discovered in it."""

    root: str
    name: str
    manifest: ManifestRecord
    lockfile: object | None  # LockfileRecord
    dependencies: list[DependencyNode]


@dataclass
class VersionInfo:
    """Registry view of a package relative to an installed version."""

    current: str
    latest: str
    is_outdated: bool
    update_type: str = "none"  # none, patch, minor, major
    published_date: datetime | None = None


@dataclass
class BatchPolicy:
    """How registry lookups are spread out during the staleness pass."""

    batch_size: int = 10
    delay: float = 0.1  # seconds between batches


@dataclass
class ScanOptions:
    """Options accepted by a scan request."""

    max_depth: int = 3
    include_dev_dependencies: bool = True
    include_peer_dependencies: bool = True
    include_optional_dependencies: bool = True
    enable_version_checking: bool = True

    @classmethod
    def from_settings(cls, settings) -> "ScanOptions":
        return cls(
            max_depth=settings.max_depth,
            include_dev_dependencies=settings.include_dev_dependencies,
            include_peer_dependencies=settings.include_peer_dependencies,
            include_optional_dependencies=settings.include_optional_dependencies,
            enable_version_checking=settings.enable_version_checking,
        )

    def includes(self, kind: str) -> bool:
        """Whether a manifest section of this kind is scanned."""
        if kind == DEV_DEPENDENCY:
            return self.include_dev_dependencies
        if kind == PEER_DEPENDENCY:
            return self.include_peer_dependencies
        if kind == OPTIONAL_DEPENDENCY:
            return self.include_optional_dependencies
        return True
