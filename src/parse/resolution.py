"""Static resolution of import specifiers.

Each specifier lands in exactly one category: a project file, a package
name, a runtime builtin, or unresolved.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Literal

from utils import to_posix_relative

if TYPE_CHECKING:
    from collections.abc import Sequence

SpecifierKind = Literal["file", "package", "builtin", "unresolved"]

NODE_BUILTIN_MODULES = frozenset(
    {
        "assert",
        "async_hooks",
        "buffer",
        "child_process",
        "cluster",
        "console",
        "constants",
        "crypto",
        "dgram",
        "diagnostics_channel",
        "dns",
        "domain",
        "events",
        "fs",
        "http",
        "http2",
        "https",
        "inspector",
        "module",
        "net",
        "os",
        "path",
        "perf_hooks",
        "process",
        "punycode",
        "querystring",
        "readline",
        "repl",
        "stream",
        "string_decoder",
        "sys",
        "timers",
        "tls",
        "trace_events",
        "tty",
        "url",
        "util",
        "v8",
        "vm",
        "wasi",
        "worker_threads",
        "zlib",
    }
)

# Only addressable with the ``node:`` scheme.
NODE_PREFIX_ONLY_MODULES = frozenset({"sea", "sqlite", "test"})


def is_builtin_module(specifier: str) -> bool:
    """Return True when ``specifier`` names a runtime builtin.

    Subpaths (``fs/promises``) and the ``node:`` scheme are accepted.

    Examples:
        >>> is_builtin_module("node:fs/promises")
        True
        >>> is_builtin_module("test")
        False
    """
    has_scheme = specifier.startswith("node:")
    normalized = specifier[len("node:") :] if has_scheme else specifier
    root = normalized.split("/", 1)[0]
    if root in NODE_BUILTIN_MODULES:
        return True
    return has_scheme and root in NODE_PREFIX_ONLY_MODULES


def to_package_name(specifier: str) -> str:
    """Reduce a bare specifier to its package name.

    Examples:
        >>> to_package_name("@scope/pkg/sub/path")
        '@scope/pkg'
        >>> to_package_name("lodash/fp")
        'lodash'
    """
    parts = specifier.split("/")
    if specifier.startswith("@"):
        return "/".join(parts[:2])
    return parts[0]


def is_path_specifier(specifier: str) -> bool:
    return specifier.startswith((".", "/"))


def resolve_file(base_path: Path, extensions: Sequence[str]) -> Path | None:
    """Resolve a base path using the fixed candidate order.

    Exact path, then ``base + ext`` per extension, then ``base/index.ext``
    per extension when ``base`` is a directory. First hit wins.
    """
    if base_path.is_file():
        return base_path

    for ext in extensions:
        candidate = Path(f"{base_path}{ext}")
        if candidate.is_file():
            return candidate

    if base_path.is_dir():
        for ext in extensions:
            candidate = base_path / f"index{ext}"
            if candidate.is_file():
                return candidate

    return None


def resolve_file_target(
    specifier: str,
    importer_dir: Path,
    project_root: Path,
    extensions: Sequence[str],
) -> str | None:
    """Resolve a relative or absolute specifier to a project-relative path.

    A leading ``/`` is anchored at ``project_root``.
    """
    if specifier.startswith("/"):
        base = project_root / specifier.lstrip("/")
    else:
        base = importer_dir / specifier

    resolved = resolve_file(Path(os.path.normpath(base)), extensions)
    if resolved is None:
        return None
    return to_posix_relative(project_root, resolved)


@dataclass(frozen=True)
class ResolvedSpecifier:
    kind: SpecifierKind
    target: str


def classify_specifier(
    specifier: str,
    importer_dir: Path,
    project_root: Path,
    extensions: Sequence[str],
) -> ResolvedSpecifier:
    """Place one specifier into exactly one category.

    For ``file`` the target is the project-relative path; for ``package`` it
    is the package name; otherwise it is the raw specifier.
    """
    if is_path_specifier(specifier):
        target = resolve_file_target(specifier, importer_dir, project_root, extensions)
        if target is None:
            return ResolvedSpecifier("unresolved", specifier)
        return ResolvedSpecifier("file", target)

    if is_builtin_module(specifier):
        return ResolvedSpecifier("builtin", specifier)

    return ResolvedSpecifier("package", to_package_name(specifier))


__all__ = [
    "NODE_BUILTIN_MODULES",
    "NODE_PREFIX_ONLY_MODULES",
    "ResolvedSpecifier",
    "SpecifierKind",
    "classify_specifier",
    "is_builtin_module",
    "is_path_specifier",
    "resolve_file",
    "resolve_file_target",
    "to_package_name",
]
