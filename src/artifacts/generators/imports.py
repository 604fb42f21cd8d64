"""Static import graph generator."""

from __future__ import annotations

import logging
from pathlib import Path  # noqa: TC003
from typing import TYPE_CHECKING, Any

from aggregate.context import CollaboratorResult
from artifacts.models.artifacts.imports import ImportGraph, UnresolvedImport
from artifacts.utils import _write_json
from parse.js_imports import extract_file_specifiers
from parse.resolution import classify_specifier
from scan.files import find_source_files
from utils import to_posix_relative

if TYPE_CHECKING:
    from rules.config import RadarConfig

logger = logging.getLogger(__name__)

IMPORT_GRAPH_JSON = "import-graph.json"


def _scan_root(root: Path) -> Path:
    src = root / "src"
    return src if src.is_dir() else root


class ImportGraphGenerator:
    """Generator for the file-level static import graph."""

    @property
    def name(self) -> str:
        """Generator name for logging and identification."""
        return "import-graph"

    def generate(
        self,
        root: Path,
        out_dir: Path | None = None,
        **kwargs: Any,
    ) -> ImportGraph:
        """Scan ``root/src`` (or ``root``) and resolve every specifier.

        File keys and file targets are relative to ``root``. When ``out_dir``
        is given the graph is also written there as ``import-graph.json``.
        """
        extensions: list[str] = kwargs["extensions"]
        ignored_dirs: list[str] = kwargs["ignored_dirs"]
        exclude_patterns: list[str] | None = kwargs.get("exclude_patterns")
        respect_gitignore: bool = kwargs.get("respect_gitignore", True)

        files: dict[str, list[str]] = {}
        packages: dict[str, list[str]] = {}
        package_counts: dict[str, dict[str, int]] = {}
        builtins: dict[str, list[str]] = {}
        unresolved: list[UnresolvedImport] = []

        for file_path in find_source_files(
            _scan_root(root),
            extensions=extensions,
            ignored_dirs=ignored_dirs,
            exclude_patterns=exclude_patterns,
            gitignore_root=root if respect_gitignore else None,
        ):
            rel = to_posix_relative(root, file_path)
            file_targets: set[str] = set()
            package_targets: set[str] = set()
            builtin_targets: set[str] = set()
            counts: dict[str, int] = {}
            unresolved_specs: set[str] = set()

            for specifier in extract_file_specifiers(file_path):
                resolved = classify_specifier(
                    specifier, file_path.parent, root, extensions
                )
                if resolved.kind == "file":
                    file_targets.add(resolved.target)
                elif resolved.kind == "package":
                    package_targets.add(resolved.target)
                    counts[resolved.target] = counts.get(resolved.target, 0) + 1
                elif resolved.kind == "builtin":
                    builtin_targets.add(resolved.target)
                else:
                    unresolved_specs.add(resolved.target)

            files[rel] = sorted(file_targets)
            packages[rel] = sorted(package_targets)
            package_counts[rel] = dict(sorted(counts.items()))
            builtins[rel] = sorted(builtin_targets)
            unresolved.extend(
                UnresolvedImport(importer=rel, specifier=spec)
                for spec in sorted(unresolved_specs)
            )

        graph = ImportGraph(
            files=files,
            packages=packages,
            package_counts=package_counts,
            builtins=builtins,
            unresolved_imports=unresolved,
        )
        logger.debug(
            "%s: %d file(s), %d unresolved import(s)",
            root,
            len(files),
            len(unresolved),
        )

        if out_dir is not None:
            _write_json(out_dir / IMPORT_GRAPH_JSON, graph)

        return graph


def run_import_graph(
    root: Path,
    config: RadarConfig,
    out_dir: Path | None = None,
) -> CollaboratorResult:
    """Run the generator, reporting filesystem errors as a failed result."""
    try:
        graph = ImportGraphGenerator().generate(
            root=root,
            out_dir=out_dir,
            extensions=config.source_extensions,
            ignored_dirs=config.ignored_dirs,
            exclude_patterns=config.exclude,
            respect_gitignore=config.respect_gitignore,
        )
    except OSError as e:
        logger.warning("Import graph failed for %s: %s", root, e)
        return CollaboratorResult.failure(f"import graph failed: {e}")
    return CollaboratorResult.success(graph)


__all__ = ["IMPORT_GRAPH_JSON", "ImportGraphGenerator", "run_import_graph"]
