"""Workspace (monorepo) merging.

Each sub-package is scanned on its own; the per-package results are then
merged into one view. File identities are prefixed with the sub-package's
directory relative to the workspace root so that same-named files in
different sub-packages never collide.
"""

from __future__ import annotations

import logging
import re
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from aggregate.context import CollaboratorResult, usable
from artifacts.generators.imports import run_import_graph
from artifacts.models.artifacts.imports import ImportGraph, UnresolvedImport
from artifacts.models.artifacts.vulnerabilities import VulnerabilityIndex
from audit.vulnerabilities import index_vulnerabilities, merge_vulnerability_indexes
from contract.artifacts import WORKSPACE_ROOT_NAME, WORKSPACE_ROOT_VERSION
from utils import prefix_path, to_posix_relative

if TYPE_CHECKING:
    from pathlib import Path

    from rules.config import RadarConfig
    from scan.manifest import Manifest

logger = logging.getLogger(__name__)

_UNSAFE_NAME_CHARS = re.compile(r"[^a-zA-Z0-9._-]")


@dataclass(frozen=True)
class WorkspacePackage:
    """One sub-package of a workspace."""

    name: str
    path: Path
    rel_dir: str
    manifest: Manifest

    @property
    def safe_name(self) -> str:
        """Filesystem-safe form of the package name."""
        return sanitize_package_name(self.name)


def sanitize_package_name(name: str) -> str:
    """Replace characters unsafe in directory names.

    Examples:
        >>> sanitize_package_name("@scope/pkg")
        '_scope_pkg'
    """
    return _UNSAFE_NAME_CHARS.sub("_", name)


def workspace_package(root: Path, path: Path, manifest: Manifest) -> WorkspacePackage:
    """Describe a sub-package; unnamed manifests fall back to the directory name."""
    rel_dir = to_posix_relative(root, path)
    if rel_dir == ".":
        rel_dir = ""
    return WorkspacePackage(
        name=manifest.name or path.name,
        path=path,
        rel_dir=rel_dir,
        manifest=manifest,
    )


def _coerce_graph(data: Any) -> ImportGraph | None:
    if isinstance(data, ImportGraph):
        return data
    if isinstance(data, dict):
        try:
            return ImportGraph.model_validate(data)
        except ValidationError as e:
            logger.warning("Ignoring malformed import graph: %s", e)
    return None


def merge_import_graphs(
    packages: list[WorkspacePackage],
    results: list[CollaboratorResult | None],
) -> ImportGraph:
    """Merge per-package import graphs, prefixing every file identity.

    Package names are left untouched; unresolved specifiers keep their raw
    text while their importer is prefixed.
    """
    files: dict[str, list[str]] = {}
    packages_by_file: dict[str, list[str]] = {}
    package_counts: dict[str, dict[str, int]] = {}
    builtins: dict[str, list[str]] = {}
    unresolved: list[UnresolvedImport] = []

    for package, result in zip(packages, results, strict=True):
        if not usable(result):
            continue
        graph = _coerce_graph(result.data)  # type: ignore[union-attr]
        if graph is None:
            continue
        prefix = package.rel_dir

        for file_key, targets in graph.files.items():
            files[prefix_path(prefix, file_key)] = [
                prefix_path(prefix, target) for target in targets
            ]
        for file_key, names in graph.packages.items():
            packages_by_file[prefix_path(prefix, file_key)] = list(names)
        for file_key, counts in graph.package_counts.items():
            package_counts[prefix_path(prefix, file_key)] = dict(counts)
        for file_key, names in graph.builtins.items():
            builtins[prefix_path(prefix, file_key)] = list(names)
        unresolved.extend(
            UnresolvedImport(
                importer=prefix_path(prefix, entry.importer),
                specifier=entry.specifier,
            )
            for entry in graph.unresolved_imports
        )

    return ImportGraph(
        files=dict(sorted(files.items())),
        packages=dict(sorted(packages_by_file.items())),
        package_counts=dict(sorted(package_counts.items())),
        builtins=dict(sorted(builtins.items())),
        unresolved_imports=sorted(
            unresolved, key=lambda entry: (entry.importer, entry.specifier)
        ),
    )


def merge_audit_payloads(payloads: list[Any]) -> VulnerabilityIndex | None:
    """Index each sub-package audit payload, then union the indexes.

    Every payload is indexed on its own, so findings for the same package
    name in different sub-packages are all counted: counts are summed and
    the highest severity is taken over the sum.

    Returns:
        The merged index, or None when no payload was usable.
    """
    defined = [payload for payload in payloads if isinstance(payload, dict)]
    if not defined:
        return None

    return VulnerabilityIndex(
        packages=merge_vulnerability_indexes(
            [index_vulnerabilities(payload) for payload in defined]
        )
    )


def build_combined_tree(
    packages: list[WorkspacePackage],
    trees: list[CollaboratorResult | None],
) -> dict[str, Any]:
    """Stitch per-package installed trees under one synthetic root.

    Each sub-package becomes a top-level node pointing at its own resolved
    dependencies. A failed or missing tree leaves the sub-package node with
    no dependencies.
    """
    dependencies: dict[str, Any] = {}
    for package, result in zip(packages, trees, strict=True):
        data = result.data if usable(result) else None  # type: ignore[union-attr]
        node_deps = data.get("dependencies") if isinstance(data, dict) else None
        dependencies[package.name] = {
            "name": package.name,
            "version": package.manifest.version or "workspace",
            "dependencies": node_deps if isinstance(node_deps, dict) else {},
        }
    return {
        "name": WORKSPACE_ROOT_NAME,
        "version": WORKSPACE_ROOT_VERSION,
        "dependencies": dependencies,
    }


def _walk_tree_names(node: Any, found: set[str], on_path: set[int]) -> None:
    if not isinstance(node, dict) or id(node) in on_path:
        return
    name = node.get("name")
    if isinstance(name, str) and name:
        found.add(name)
    dependencies = node.get("dependencies")
    if not isinstance(dependencies, dict):
        return
    on_path.add(id(node))
    for dep_name, child in dependencies.items():
        found.add(dep_name)
        _walk_tree_names(child, found, on_path)
    on_path.discard(id(node))


def build_workspace_usage_map(
    packages: list[WorkspacePackage],
    trees: list[CollaboratorResult | None],
) -> dict[str, list[str]]:
    """Map each dependency name to the sub-packages that declare or require it."""
    usage: dict[str, set[str]] = {}

    for package, result in zip(packages, trees, strict=True):
        names: set[str] = set(package.manifest.direct_names)
        data = result.data if usable(result) else None  # type: ignore[union-attr]
        if isinstance(data, dict) and isinstance(data.get("dependencies"), dict):
            for dep_name, child in data["dependencies"].items():
                names.add(dep_name)
                _walk_tree_names(child, names, set())
        for name in names:
            usage.setdefault(name, set()).add(package.name)

    return {name: sorted(members) for name, members in sorted(usage.items())}


def scan_workspace(
    packages: list[WorkspacePackage],
    config: RadarConfig,
    out_dir: Path | None = None,
) -> list[CollaboratorResult]:
    """Run the import scan for every sub-package on a thread pool.

    All scans are joined before returning; results keep the order of
    ``packages``.
    """
    if not packages:
        return []

    def _scan(package: WorkspacePackage) -> CollaboratorResult:
        package_out = out_dir / package.safe_name if out_dir is not None else None
        return run_import_graph(package.path, config, out_dir=package_out)

    with ThreadPoolExecutor(max_workers=config.workers) as executor:
        results = list(executor.map(_scan, packages))

    failed = [pkg.name for pkg, result in zip(packages, results, strict=True) if not result.ok]
    if failed:
        logger.warning("Import scan failed for: %s", ", ".join(failed))
    return results


def first_failure(results: list[CollaboratorResult | None]) -> CollaboratorResult | None:
    """Return the first failed result, if any."""
    for result in results:
        if result is not None and not result.ok:
            return result
    return None


__all__ = [
    "WorkspacePackage",
    "build_combined_tree",
    "build_workspace_usage_map",
    "first_failure",
    "merge_audit_payloads",
    "merge_import_graphs",
    "sanitize_package_name",
    "scan_workspace",
    "workspace_package",
]
