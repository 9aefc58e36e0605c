"""Semantic-version-like string comparison."""

import re

LESS = -1
EQUAL = 0
GREATER = 1

_LEADING_DIGITS = re.compile(r"\d+")
_RANGE_PREFIX = re.compile(r"^[\s^~=<>]+")


def _strip_v(version: str) -> str:
    """Remove a single leading v/V."""
    if version[:1] in ("v", "V"):
        return version[1:]
    return version


def _split(version: str) -> tuple[list[int], bool]:
    """Split a version into numeric components and a pre-release flag.

    Everything after the first ``-`` is the pre-release suffix and is ignored
    for the numeric components. Components that do not start with digits
    count as 0.
    """
    core, sep, _suffix = _strip_v(version.strip()).partition("-")
    parts = []
    for piece in core.split("."):
        match = _LEADING_DIGITS.match(piece)
        parts.append(int(match.group()) if match else 0)
    return parts, bool(sep)


def compare_versions(a: str, b: str) -> int:
    """Compare two version strings.

    Args:
        a: Left-hand version
        b: Right-hand version

    Returns:
        LESS, EQUAL or GREATER
    """
    a_parts, a_pre = _split(a)
    b_parts, b_pre = _split(b)

    # A pre-release sorts below the same version without one
    if a_pre and not b_pre:
        return LESS
    if b_pre and not a_pre:
        return GREATER

    width = max(len(a_parts), len(b_parts))
    a_parts += [0] * (width - len(a_parts))
    b_parts += [0] * (width - len(b_parts))

    for left, right in zip(a_parts, b_parts):
        if left > right:
            return GREATER
        if left < right:
            return LESS
    return EQUAL


def is_outdated(current: str, latest: str) -> bool:
    """True when ``latest`` is strictly greater than ``current``."""
    return compare_versions(current, latest) == LESS


def update_kind(current: str, latest: str) -> str:
    """Classify the difference between two versions.

    Returns:
        "none", "patch", "minor" or "major"
    """
    if compare_versions(current, latest) == EQUAL:
        return "none"

    current_parts, _ = _split(current)
    latest_parts, _ = _split(latest)
    width = max(len(current_parts), len(latest_parts), 2)
    current_parts += [0] * (width - len(current_parts))
    latest_parts += [0] * (width - len(latest_parts))

    if current_parts[0] != latest_parts[0]:
        return "major"
    if current_parts[1] != latest_parts[1]:
        return "minor"
    return "patch"


def clean_version(spec: str) -> str:
    """Reduce a declared range such as ``^1.2.0`` or ``>= 2.0`` to its base version."""
    cleaned = _RANGE_PREFIX.sub("", spec)
    # Only the lower bound of a compound range is kept
    return cleaned.split()[0] if cleaned.split() else cleaned


def looks_like_version(version: str) -> bool:
    """True when the string starts with a number once any v prefix is gone."""
    return bool(_LEADING_DIGITS.match(_strip_v(version.strip())))
