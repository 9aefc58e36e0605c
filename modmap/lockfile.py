"""package-lock.json shapes.

A lock document can carry two shapes of dependency data:

* the modern flat ``packages`` map keyed by install path
  (``node_modules/a/node_modules/b``), lockfileVersion 2 and 3;
* the legacy nested ``dependencies`` map keyed by package name, where each
  entry may hold its own nested ``dependencies`` map, lockfileVersion 1 and 2.

Both are exposed through :class:`LockfileShape` so traversal code never has to
know which one it is looking at.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterator
from dataclasses import dataclass, field

NODE_MODULES = "node_modules/"


@dataclass
class LockEntry:
    """A single installed package as recorded in a lock document."""

    name: str
    version: str
    dependencies: dict[str, str] = field(default_factory=dict)
    resolved: str | None = None


@dataclass
class LockLink:
    """A requirement recorded in a lock document.

    ``parent`` is None when the shape does not say which package declared it.
    """

    parent: str | None
    child: str
    required: str


def _string_map(value) -> dict[str, str]:
    """Keep only the str -> str pairs of a mapping."""
    if not isinstance(value, dict):
        return {}
    return {k: v for k, v in value.items() if isinstance(k, str) and isinstance(v, str)}


def package_name_from_path(path: str) -> str:
    """``node_modules/a/node_modules/@s/b`` -> ``@s/b``."""
    idx = path.rfind(NODE_MODULES)
    if idx == -1:
        return path
    return path[idx + len(NODE_MODULES):]


class LockfileShape(ABC):
    """Common traversal interface for one shape of lock data."""

    kind: str = ""

    @abstractmethod
    def find_package(self, name: str) -> LockEntry | None:
        """Return the hoisted (top-level) entry for a package name."""

    @abstractmethod
    def requirements_of(self, name: str) -> dict[str, str]:
        """Return the packages required by ``name`` mapped to their ranges."""

    @abstractmethod
    def iter_links(self) -> Iterator[LockLink]:
        """Yield every requirement relationship in the shape."""


class ModernLockfile(LockfileShape):
    """Flat ``packages`` map (npm 7+)."""

    kind = "modern"

    def __init__(self, packages: dict[str, LockEntry]):
        self.packages = packages

    @classmethod
    def parse(cls, raw: dict) -> "ModernLockfile":
        packages: dict[str, LockEntry] = {}
        for path, info in raw.items():
            if not isinstance(path, str) or not isinstance(info, dict):
                continue  # malformed entry
            version = info.get("version")
            name = info.get("name") if path == "" else package_name_from_path(path)
            # Linked workspace entries carry no version
            packages[path] = LockEntry(
                name=name if isinstance(name, str) else "",
                version=version if isinstance(version, str) else "",
                dependencies=_string_map(info.get("dependencies")),
                resolved=info.get("resolved") if isinstance(info.get("resolved"), str) else None,
            )
        return cls(packages)

    def find_package(self, name: str) -> LockEntry | None:
        entry = self.packages.get(NODE_MODULES + name)
        if entry is None or not entry.version:
            return None
        return entry

    def requirements_of(self, name: str) -> dict[str, str]:
        entry = self.find_package(name)
        return dict(entry.dependencies) if entry else {}

    def iter_links(self) -> Iterator[LockLink]:
        for path, entry in self.packages.items():
            # The "" entry is the project itself
            if path == "" or not entry.dependencies or not entry.name:
                continue
            for child, required in entry.dependencies.items():
                yield LockLink(parent=entry.name, child=child, required=required)


class LegacyLockfile(LockfileShape):
    """Nested ``dependencies`` map (npm 5/6)."""

    kind = "legacy"

    def __init__(self, tree: dict[str, dict]):
        self.tree = tree

    @classmethod
    def parse(cls, raw: dict) -> "LegacyLockfile":
        return cls(cls._clean(raw))

    @classmethod
    def _clean(cls, raw) -> dict[str, dict]:
        tree = {}
        if not isinstance(raw, dict):
            return tree
        for name, info in raw.items():
            if not isinstance(info, dict) or not isinstance(info.get("version"), str):
                continue  # malformed entry
            tree[name] = {
                "version": info["version"],
                "resolved": info.get("resolved") if isinstance(info.get("resolved"), str) else None,
                "requires": _string_map(info.get("requires")),
                "dependencies": cls._clean(info.get("dependencies")),
            }
        return tree

    def find_package(self, name: str) -> LockEntry | None:
        info = self.tree.get(name)
        if info is None:
            return None
        return LockEntry(
            name=name,
            version=info["version"],
            dependencies=self._declared(info),
            resolved=info["resolved"],
        )

    @staticmethod
    def _declared(info: dict) -> dict[str, str]:
        if info["requires"]:
            return dict(info["requires"])
        return {child: sub["version"] for child, sub in info["dependencies"].items()}

    def requirements_of(self, name: str) -> dict[str, str]:
        info = self.tree.get(name)
        return self._declared(info) if info else {}

    def iter_links(self) -> Iterator[LockLink]:
        yield from self._walk(self.tree, None)

    def _walk(self, tree: dict[str, dict], parent: str | None) -> Iterator[LockLink]:
        for name, info in tree.items():
            # Top-level entries have no parent; nested ones hang off the entry
            # they are installed under.
            yield LockLink(parent=parent, child=name, required=info["version"])
            for child, required in info["requires"].items():
                yield LockLink(parent=name, child=child, required=required)
            yield from self._walk(info["dependencies"], name)


@dataclass
class LockfileRecord:
    """A parsed package-lock.json: every shape it carries, searched in order."""

    name: str | None
    version: str | None
    lockfile_version: int | None
    shapes: list[LockfileShape]

    def find_package(self, name: str) -> LockEntry | None:
        for shape in self.shapes:
            entry = shape.find_package(name)
            if entry is not None:
                return entry
        return None

    def requirements_of(self, name: str) -> dict[str, str]:
        for shape in self.shapes:
            requirements = shape.requirements_of(name)
            if requirements:
                return requirements
        return {}

    def resolved_version(self, name: str, fallback: str) -> str:
        entry = self.find_package(name)
        return entry.version if entry else fallback


def parse_lock_document(data: dict) -> LockfileRecord:
    """Build a LockfileRecord from a decoded package-lock.json object."""
    shapes: list[LockfileShape] = []
    if isinstance(data.get("packages"), dict):
        shapes.append(ModernLockfile.parse(data["packages"]))
    if isinstance(data.get("dependencies"), dict):
        shapes.append(LegacyLockfile.parse(data["dependencies"]))

    lockfile_version = data.get("lockfileVersion")
    return LockfileRecord(
        name=data.get("name") if isinstance(data.get("name"), str) else None,
        version=data.get("version") if isinstance(data.get("version"), str) else None,
        lockfile_version=lockfile_version if isinstance(lockfile_version, int) else None,
        shapes=shapes,
    )
