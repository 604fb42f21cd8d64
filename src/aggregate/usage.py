"""Static import usage signals."""

from __future__ import annotations

from typing import TYPE_CHECKING

from artifacts.models.artifacts.dependencies import UsageInfo
from artifacts.models.artifacts.report import ImportAnalysis

if TYPE_CHECKING:
    from collections.abc import Collection, Mapping

    from artifacts.models.artifacts.imports import ImportGraph


def build_import_analysis(
    graph: ImportGraph | None, declared_names: Collection[str]
) -> ImportAnalysis:
    """Project-level usage: hotness per package, undeclared and unresolved imports.

    Hotness counts distinct importing files.
    """
    if graph is None:
        return ImportAnalysis()

    importers = graph.package_importers()
    declared = set(declared_names)
    return ImportAnalysis(
        available=True,
        package_hotness={name: len(files) for name, files in importers.items()},
        undeclared_imports=sorted(name for name in importers if name not in declared),
        unresolved_imports=list(graph.unresolved_imports),
    )


def _plural(count: int, word: str) -> str:
    return f"{count} {word}" if count == 1 else f"{count} {word}s"


def build_usage_info(
    name: str,
    *,
    declared: bool,
    importers: Mapping[str, list[str]] | None,
    files_with_unresolved: Collection[str],
    max_top_files: int,
) -> UsageInfo:
    """Usage status for one package name.

    ``importers`` is None when no import graph is available, in which case
    the status is ``unknown``.
    """
    if importers is None:
        return UsageInfo(status="unknown", reason="Import graph unavailable")

    files = importers.get(name, [])
    unresolved_in_importers = any(path in files_with_unresolved for path in files)

    if files:
        common = {
            "file_count": len(files),
            "top_files": files[:max_top_files],
            "unresolved_in_importers": unresolved_in_importers,
        }
        if declared:
            return UsageInfo(
                status="imported",
                reason=f"Imported by {_plural(len(files), 'file')} (static analysis)",
                **common,
            )
        return UsageInfo(
            status="undeclared",
            reason=(
                "Imported but not declared (may rely on transitive resolution; "
                "strict installers will usually break this)"
            ),
            undeclared=True,
            **common,
        )

    if declared:
        return UsageInfo(
            status="not-imported",
            reason=(
                "Declared but never statically imported (may be used via tooling, "
                "scripts, or runtime plugins)"
            ),
        )

    return UsageInfo(
        status="unknown",
        reason="Not statically imported; package is likely transitive or used dynamically",
    )


__all__ = ["build_import_analysis", "build_usage_info"]
