from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import orjson

from aggregate.aggregator import AggregateInput, aggregate
from aggregate.context import CollaboratorResult, usable
from artifacts.generators.imports import run_import_graph
from artifacts.utils import _load_json, _write_json
from rules.config import load_config
from contract.artifacts import TOOL_WORKSPACE_MANIFEST
from scan.manifest import Manifest, ManifestError, load_manifest, merge_manifests
from workspace.merge import (
    build_combined_tree,
    build_workspace_usage_map,
    first_failure,
    merge_audit_payloads,
    merge_import_graphs,
    scan_workspace,
    workspace_package,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from pathlib import Path

    from artifacts.models.artifacts.report import AggregatedReport
    from rules.config import RadarConfig
    from workspace.merge import WorkspacePackage

logger = logging.getLogger(__name__)

PAYLOAD_DIR = ".dependency-radar"
NPM_LS_JSON = "npm-ls.json"
NPM_AUDIT_JSON = "npm-audit.json"
NPM_OUTDATED_JSON = "npm-outdated.json"

_RAW_OUTPUT_KEYS = frozenset({"stdout", "stderr", "code"})


def load_payload(path: Path, tool: str) -> CollaboratorResult | None:
    """Read a pre-fetched collaborator payload.

    Returns None when the file does not exist. A file holding only an
    ``error`` message, or the raw ``stdout``/``stderr``/``code`` of a tool
    whose output could not be parsed, is a failed result.
    """
    if not path.is_file():
        return None

    try:
        data = _load_json(path)
    except (OSError, orjson.JSONDecodeError) as e:
        return CollaboratorResult.failure(f"{tool}: cannot read {path.name}: {e}")

    if isinstance(data, dict):
        keys = set(data)
        if keys == {"error"}:
            return CollaboratorResult.failure(f"{tool} failed: {data['error']}")
        if "stdout" in keys and keys <= _RAW_OUTPUT_KEYS:
            code = data.get("code")
            if isinstance(code, int) and code != 0:
                return CollaboratorResult.failure(f"{tool} exited with code {code}")
            return CollaboratorResult.failure(f"Failed to parse {tool} output")

    return CollaboratorResult.success(data)


def _combine(
    results: Sequence[CollaboratorResult | None],
    merge: Callable[[], Any],
) -> CollaboratorResult | None:
    """Fold per-package results into one, keeping partial data when any succeeded."""
    if all(result is None for result in results):
        return None

    failure = first_failure(list(results))
    if not any(usable(result) for result in results):
        return failure

    merged = merge()
    if failure is not None and failure.error is not None:
        return CollaboratorResult.partial(merged, failure.error)
    return CollaboratorResult.success(merged)


def _build_workspace_input(
    root: Path,
    config: RadarConfig,
    payload_dir: Path,
    workspace: Sequence[Path],
) -> AggregateInput:
    members: list[WorkspacePackage] = []
    manifest_errors: list[str] = []
    for path in workspace:
        try:
            manifest = load_manifest(path)
        except ManifestError as e:
            logger.warning("Treating workspace package as empty: %s", e)
            manifest_errors.append(str(e))
            manifest = Manifest()
        members.append(workspace_package(root, path, manifest))

    trees = [
        load_payload(payload_dir / member.safe_name / NPM_LS_JSON, "npm ls")
        for member in members
    ]
    audits = [
        load_payload(payload_dir / member.safe_name / NPM_AUDIT_JSON, "npm audit")
        for member in members
    ]
    graphs: list[CollaboratorResult | None] = list(
        scan_workspace(members, config, out_dir=payload_dir)
    )

    return AggregateInput(
        project_path=root,
        manifest=merge_manifests([member.manifest for member in members]),
        config=config,
        tree=_combine(trees, lambda: build_combined_tree(members, trees)),
        audit=_combine(
            audits,
            lambda: merge_audit_payloads(
                [result.data for result in audits if usable(result)]  # type: ignore[union-attr]
            ),
        ),
        import_graph=_combine(graphs, lambda: merge_import_graphs(members, graphs)),
        outdated=load_payload(payload_dir / NPM_OUTDATED_JSON, "npm outdated"),
        search_paths=[member.path for member in members] + [root],
        workspace_enabled=True,
        workspace_members=frozenset(member.name for member in members),
        workspace_usage=build_workspace_usage_map(members, trees),
        tool_errors=(
            {TOOL_WORKSPACE_MANIFEST: "; ".join(manifest_errors)}
            if manifest_errors
            else {}
        ),
    )


def build_report(
    *,
    root: Path,
    config: RadarConfig | None = None,
    payload_dir: Path | None = None,
    workspace: Sequence[Path] | None = None,
    generated_at: str | None = None,
) -> AggregatedReport:
    """Aggregate a project or workspace into an in-memory report.

    The import graph of each scanned root is written to ``payload_dir``.

    Raises:
        ManifestError: If the project manifest at ``root`` cannot be read.
            Unreadable sub-package manifests are recorded under
            ``tool_errors`` instead.
        ConfigError: If the config file is invalid.
    """
    if config is None:
        config = load_config(root)

    root_manifest = load_manifest(root)

    if payload_dir is None:
        payload_dir = root / PAYLOAD_DIR

    if workspace:
        agg_input = _build_workspace_input(root, config, payload_dir, workspace)
    else:
        agg_input = AggregateInput(
            project_path=root,
            manifest=root_manifest,
            config=config,
            tree=load_payload(payload_dir / NPM_LS_JSON, "npm ls"),
            audit=load_payload(payload_dir / NPM_AUDIT_JSON, "npm audit"),
            import_graph=run_import_graph(root, config, out_dir=payload_dir),
            outdated=load_payload(payload_dir / NPM_OUTDATED_JSON, "npm outdated"),
            search_paths=[root],
        )

    return aggregate(agg_input, generated_at=generated_at)


def generate_report(
    *,
    root: Path,
    out_dir: Path | None = None,
    config: RadarConfig | None = None,
    payload_dir: Path | None = None,
    workspace: Sequence[Path] | None = None,
) -> dict[str, object]:
    """Generate the aggregated dependency report for a project.

    Args:
        root: Project root holding ``package.json``
        out_dir: Optional output directory (default: ``root``)
        config: Optional configuration (default: loaded from ``root``)
        payload_dir: Directory of pre-fetched collaborator payloads
            (default: ``root/.dependency-radar``)
        workspace: Optional sub-package directories to scan and merge

    Returns:
        Dictionary with counts, tool errors and the generated artifact path.
    """
    if config is None:
        config = load_config(root)

    report = build_report(
        root=root,
        config=config,
        payload_dir=payload_dir,
        workspace=workspace,
    )

    output_path = (out_dir or root) / config.output_file
    _write_json(output_path, report)
    logger.info("Wrote %s", output_path)

    return {
        "dependency_count": report.summary.dependency_count,
        "direct_count": report.summary.direct_count,
        "cycle_count": report.summary.cycle_count,
        "tool_errors": dict(report.tool_errors),
        "artifacts": [str(output_path)],
    }


__all__ = [
    "NPM_AUDIT_JSON",
    "NPM_LS_JSON",
    "NPM_OUTDATED_JSON",
    "PAYLOAD_DIR",
    "build_report",
    "generate_report",
    "load_payload",
]
