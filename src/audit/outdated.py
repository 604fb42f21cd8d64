"""Outdated-status normalization.

The payload maps package name -> ``{current, wanted, latest}``. A list value
(one entry per installed location) uses its first entry.
"""

from __future__ import annotations

import re
from typing import Any

from artifacts.models.artifacts.dependencies import OutdatedInfo, OutdatedStatus

_VERSION = re.compile(r"^\s*v?(\d+)(?:\.(\d+))?(?:\.(\d+))?")


def parse_version(version: Any) -> tuple[int, int, int] | None:
    """Parse the leading ``major.minor.patch`` of a version string.

    Examples:
        >>> parse_version("1.2.3-beta.1")
        (1, 2, 3)
        >>> parse_version("v4")
        (4, 0, 0)
        >>> parse_version("git+https://x") is None
        True
    """
    if not isinstance(version, str):
        return None
    match = _VERSION.match(version)
    if match is None:
        return None
    major, minor, patch = match.groups()
    return int(major), int(minor or 0), int(patch or 0)


def compare_versions(current: Any, latest: Any) -> OutdatedStatus:
    """Classify the gap between an installed and the latest version."""
    parsed_current = parse_version(current)
    parsed_latest = parse_version(latest)
    if parsed_current is None or parsed_latest is None:
        return "unknown"
    if parsed_latest <= parsed_current:
        return "current"
    if parsed_latest[0] != parsed_current[0]:
        return "major"
    if parsed_latest[1] != parsed_current[1]:
        return "minor"
    return "patch"


def normalize_outdated(payload: Any) -> dict[str, OutdatedInfo]:
    """Normalize an outdated payload into per-name status.

    Names absent from a valid payload are up to date; callers decide that
    by checking membership.
    """
    if not isinstance(payload, dict):
        return {}

    result: dict[str, OutdatedInfo] = {}
    for name, raw in sorted(payload.items()):
        entry = raw[0] if isinstance(raw, list) and raw else raw
        if not isinstance(entry, dict):
            result[name] = OutdatedInfo()
            continue
        latest = entry.get("latest")
        result[name] = OutdatedInfo(
            status=compare_versions(entry.get("current"), latest),
            latest_version=latest if isinstance(latest, str) else None,
        )
    return result


__all__ = ["compare_versions", "normalize_outdated", "parse_version"]
