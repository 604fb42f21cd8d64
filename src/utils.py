"""Shared utilities for dependency-radar-core."""

from __future__ import annotations

import os
import re
from pathlib import Path


def to_posix_relative(base: str | Path, target: str | Path) -> str:
    """Return ``target`` relative to ``base`` using forward slashes.

    Examples:
        >>> to_posix_relative("/repo", "/repo/src/index.ts")
        'src/index.ts'
    """
    rel = os.path.relpath(os.fspath(target), os.fspath(base))
    return Path(rel).as_posix()


def make_key(name: str, version: str) -> str:
    """Build the ``name@version`` identity key for an installed package."""
    return f"{name}@{version}"


def name_from_key(key: str) -> str:
    """Recover the package name from an identity key.

    Scoped names keep their leading ``@``.

    Examples:
        >>> name_from_key("lodash@4.17.21")
        'lodash'
        >>> name_from_key("@babel/core@7.24.0")
        '@babel/core'
        >>> name_from_key("left-pad")
        'left-pad'
    """
    at = key.rfind("@")
    if at <= 0:
        return key
    return key[:at]


def prefix_path(prefix: str, path: str) -> str:
    """Prefix a project-relative path with a workspace directory."""
    if not prefix:
        return path
    return f"{prefix.rstrip('/')}/{path}"


_SHORTHAND_REPO = re.compile(r"^(github:|gitlab:|bitbucket:)?[\w-]+/[\w.-]+$")
_SHORTHAND_HOSTS = {
    "gitlab:": "gitlab.com",
    "bitbucket:": "bitbucket.org",
}


def normalize_repo_url(url: str) -> str:
    """Normalize a repository reference to a browsable HTTPS URL.

    Handles ``git+https://``, ``git://``, ``git@host:user/repo.git`` and the
    ``github:user/repo`` / ``user/repo`` shorthands.

    Examples:
        >>> normalize_repo_url("git+https://github.com/a/b.git")
        'https://github.com/a/b'
        >>> normalize_repo_url("gitlab:a/b")
        'https://gitlab.com/a/b'
        >>> normalize_repo_url("git@github.com:a/b.git")
        'https://github.com/a/b'
    """
    if not url:
        return url

    if _SHORTHAND_REPO.match(url):
        host = "github.com"
        for shorthand, shorthand_host in _SHORTHAND_HOSTS.items():
            if url.startswith(shorthand):
                host = shorthand_host
        cleaned = re.sub(r"^(github:|gitlab:|bitbucket:)", "", url)
        return f"https://{host}/{cleaned}"

    normalized = re.sub(r"^git\+", "", url)
    normalized = re.sub(r"^git://", "https://", normalized)
    normalized = re.sub(r"^git@([^:]+):(.+)$", r"https://\1/\2", normalized)
    return re.sub(r"\.git$", "", normalized)


__all__ = [
    "make_key",
    "name_from_key",
    "normalize_repo_url",
    "prefix_path",
    "to_posix_relative",
]
