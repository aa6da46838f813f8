"""Ordering of version strings, newest first.

Strict semver strings are compared by ``semantic_version`` precedence. Anything
else (``v1.2``, ``2020-01-01``, ``latest``) falls back to its leading numeric
components, then to plain string comparison. Every string maps to a sort key
of the same shape, so the ordering is total and never raises.
"""
from __future__ import annotations

import re
from typing import Iterable, List, Tuple

import semantic_version

_NUMERIC_PREFIX = re.compile(r"^[vV=]?(\d+(?:\.\d+)*)(.*)$", re.DOTALL)

# (numeric components, is_release, prerelease identifiers, raw string)
VersionKey = Tuple[Tuple[int, ...], int, Tuple[Tuple[int, int, str], ...], str]


def _identifier(part: str) -> Tuple[int, int, str]:
    # Numeric identifiers sort before alphanumeric ones.
    if part.isdigit():
        return (0, int(part), "")
    return (1, 0, part)


def version_key(version: str) -> VersionKey:
    """Sort key for a version string; larger keys are newer versions."""
    text = version.strip()
    try:
        parsed = semantic_version.Version(text[1:] if text[:1] in ("v", "V") else text)
    except ValueError:
        parsed = None

    if parsed is not None:
        prerelease = tuple(_identifier(p) for p in parsed.prerelease)
        return (
            (parsed.major, parsed.minor, parsed.patch),
            0 if prerelease else 1,
            prerelease,
            version,
        )

    match = _NUMERIC_PREFIX.match(text)
    if match is None:
        return ((), 0, (), version)
    numbers = tuple(int(n) for n in match.group(1).split("."))
    rest = match.group(2).lstrip("-.+")
    if not rest:
        return (numbers, 1, (), version)
    return (numbers, 0, tuple(_identifier(p) for p in re.split(r"[.\-+]", rest) if p), version)


def compare_versions(a: str, b: str) -> int:
    """Return -1, 0 or 1 as ``a`` is older than, equal to, or newer than ``b``."""
    key_a, key_b = version_key(a), version_key(b)
    if key_a < key_b:
        return -1
    if key_a > key_b:
        return 1
    return 0


def sort_versions(versions: Iterable[str]) -> List[str]:
    """Sort versions newest first. Duplicates are kept."""
    return sorted(versions, key=version_key, reverse=True)
