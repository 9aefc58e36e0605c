"""Workspace discovery."""

from pathlib import Path

SKIP_DIRS = {"node_modules", ".git"}


def find_workspace_roots(base: str | Path) -> list[str]:
    """Find every directory under ``base`` that holds a package.json.

    node_modules and .git trees are never descended into. The result is
    sorted so repeated scans see roots in the same order.
    """
    base = Path(base)
    if not base.is_dir():
        return []

    roots = []
    for manifest in base.rglob("package.json"):
        relative = manifest.relative_to(base)
        if any(part in SKIP_DIRS for part in relative.parts[:-1]):
            continue
        roots.append(str(manifest.parent.resolve()))
    return sorted(roots)
