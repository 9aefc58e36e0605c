"""package.json and package-lock.json reading."""

import asyncio
import json
from pathlib import Path
from typing import Protocol

import structlog

from .exceptions import ManifestError
from .lockfile import LockfileRecord, parse_lock_document
from .models import MANIFEST_SECTIONS, ManifestRecord

log = structlog.get_logger("modmap.manifest")

MANIFEST_FILENAME = "package.json"
LOCKFILE_FILENAME = "package-lock.json"


def _load_object(content: str, filename: str) -> dict:
    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise ManifestError(filename, f"invalid JSON ({e.msg} at line {e.lineno})") from e
    if not isinstance(data, dict):
        raise ManifestError(filename, "top-level value is not an object")
    return data


def parse_package_json(content: str) -> ManifestRecord:
    """Parse package.json content into a ManifestRecord.

    Args:
        content: The package.json file content

    Returns:
        Parsed ManifestRecord

    Raises:
        ManifestError: If the content is not a JSON object
    """
    data = _load_object(content, MANIFEST_FILENAME)

    sections: dict[str, dict[str, str]] = {}
    for key in MANIFEST_SECTIONS:
        declared = data.get(key)
        if not isinstance(declared, dict):
            continue
        sections[key] = {
            name: spec for name, spec in declared.items() if isinstance(spec, str)
        }

    name = data.get("name")
    version = data.get("version")
    return ManifestRecord(
        name=name if isinstance(name, str) else None,
        version=version if isinstance(version, str) else None,
        sections=sections,
    )


def parse_package_lock(content: str) -> LockfileRecord:
    """Parse package-lock.json content into a LockfileRecord.

    Raises:
        ManifestError: If the content is not a JSON object
    """
    return parse_lock_document(_load_object(content, LOCKFILE_FILENAME))


class ManifestSource(Protocol):
    """Where the scanner gets workspace roots and their manifests from."""

    async def list_workspace_roots(self) -> list[str]: ...

    async def read_manifest(self, root: str) -> ManifestRecord | None: ...

    async def read_lockfile(self, root: str) -> LockfileRecord | None: ...


class FileManifestSource:
    """Read manifests from workspace directories on disk."""

    def __init__(self, roots: list[str | Path]):
        self.roots = [str(Path(root).resolve()) for root in roots]

    async def list_workspace_roots(self) -> list[str]:
        return [root for root in self.roots if Path(root).is_dir()]

    async def read_manifest(self, root: str) -> ManifestRecord | None:
        content = await self._read(Path(root) / MANIFEST_FILENAME)
        if content is None:
            return None
        try:
            return parse_package_json(content)
        except ManifestError as e:
            log.warning("manifest.parse_failed", root=root, reason=e.reason)
            return None

    async def read_lockfile(self, root: str) -> LockfileRecord | None:
        path = Path(root) / LOCKFILE_FILENAME
        if not path.exists():
            return None
        content = await self._read(path)
        if content is None:
            return None
        try:
            return parse_package_lock(content)
        except ManifestError as e:
            log.warning("lockfile.parse_failed", root=root, reason=e.reason)
            return None

    async def _read(self, path: Path) -> str | None:
        try:
            return await asyncio.to_thread(path.read_text, encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            log.warning("manifest.read_failed", path=str(path), error=str(e))
            return None
