"""Aggregation of collaborator payloads into per-package dependency records.

Every record is keyed by its ``name@version`` identity. A missing or failed
collaborator never aborts the run: its error is recorded under
``tool_errors`` and the fields it feeds degrade to explicit ``unknown``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from aggregate.context import AggregationContext, CollaboratorResult, usable
from aggregate.usage import build_import_analysis, build_usage_info
from artifacts.models.artifacts.dependencies import (
    BuildInfo,
    Classification,
    DependencyRecord,
    GraphInfo,
    KnownStatus,
    Origins,
    OutdatedInfo,
    Scope,
    TypesAvailability,
    UpgradeInfo,
    VulnerabilityInfo,
)
from artifacts.models.artifacts.imports import ImportGraph
from artifacts.models.artifacts.report import (
    AggregatedReport,
    EnvironmentInfo,
    ReportSummary,
)
from artifacts.models.artifacts.vulnerabilities import VulnerabilityIndex
from audit.outdated import normalize_outdated
from audit.vulnerabilities import index_vulnerabilities
from contract.artifacts import (
    COLLABORATOR_SPECS,
    TOOL_IMPORT_GRAPH,
    TOOL_NPM_AUDIT,
    TOOL_NPM_LS,
    TOOL_NPM_OUTDATED,
)
from graph.algos import (
    RuntimeClassifier,
    build_adjacency,
    find_cycles,
    find_root_causes,
)
from graph.builder import build_node_map, has_installed_tree
from insights.packages import InsightCache, registry_links
from rules.engines import derive_min_required_major
from rules.risk import (
    IntroductionRules,
    blocks_node_major,
    build_risk,
    classify_introduction,
    classify_runtime_impact,
    license_risk,
    upgrade_blockers,
    vuln_risk,
)
from utils import name_from_key

if TYPE_CHECKING:
    from pathlib import Path

    from artifacts.models.artifacts.vulnerabilities import VulnerabilitySummary
    from graph.builder import PackageNode
    from insights.packages import PackageInsights
    from rules.config import RadarConfig
    from scan.manifest import Manifest

logger = logging.getLogger(__name__)


@dataclass
class AggregateInput:
    """Everything one aggregation run consumes.

    A collaborator left as None was not run; its fields degrade to
    ``unknown`` without an entry in ``tool_errors``. Errors found before any
    collaborator ran (unreadable workspace manifests) go in ``tool_errors``.
    """

    project_path: Path
    manifest: Manifest
    config: RadarConfig
    tree: CollaboratorResult | None = None
    audit: CollaboratorResult | None = None
    import_graph: CollaboratorResult | None = None
    outdated: CollaboratorResult | None = None
    search_paths: list[Path] = field(default_factory=list)
    workspace_enabled: bool = False
    workspace_members: frozenset[str] = frozenset()
    workspace_usage: dict[str, list[str]] | None = None
    tool_errors: dict[str, str] = field(default_factory=dict)


def _collect_tool_errors(agg_input: AggregateInput) -> dict[str, str]:
    errors: dict[str, str] = dict(agg_input.tool_errors)
    for tool, result in (
        (TOOL_NPM_LS, agg_input.tree),
        (TOOL_NPM_AUDIT, agg_input.audit),
        (TOOL_IMPORT_GRAPH, agg_input.import_graph),
        (TOOL_NPM_OUTDATED, agg_input.outdated),
    ):
        if result is None or result.error is None:
            continue
        errors[tool] = result.error
        spec = COLLABORATOR_SPECS[tool]
        if result.ok:
            logger.warning("%s returned partial data: %s", tool, result.error)
        else:
            logger.warning(
                "%s failed (%s); degraded fields: %s; expected payload: %s",
                tool,
                result.error,
                ", ".join(spec.degraded_fields),
                spec.payload,
            )
    return errors


def _import_graph(result: CollaboratorResult | None) -> ImportGraph | None:
    if not usable(result):
        return None
    data = result.data  # type: ignore[union-attr]
    if isinstance(data, ImportGraph):
        return data
    if isinstance(data, dict):
        try:
            return ImportGraph.model_validate(data)
        except ValidationError as e:
            logger.warning("Ignoring malformed import graph: %s", e)
    return None


def _vulnerability_index(
    result: CollaboratorResult | None,
) -> dict[str, VulnerabilitySummary]:
    if not usable(result):
        return {}
    data = result.data  # type: ignore[union-attr]
    if isinstance(data, VulnerabilityIndex):
        return data.packages
    return index_vulnerabilities(data)


def _vulnerability_info(
    summary: VulnerabilitySummary | None, audit_available: bool
) -> VulnerabilityInfo:
    if not audit_available:
        return VulnerabilityInfo()
    if summary is None:
        return VulnerabilityInfo(status="known")
    return VulnerabilityInfo(
        status="known",
        critical=summary.counts.critical,
        high=summary.counts.high,
        moderate=summary.counts.moderate,
        low=summary.counts.low,
        highest=summary.highest_severity,
        advisory_count=len(summary.items),
    )


def definitely_typed_name(name: str) -> str:
    """Name of the external type-definition package for ``name``.

    Examples:
        >>> definitely_typed_name("@babel/core")
        '@types/babel__core'
    """
    if name.startswith("@") and "/" in name:
        scope, pkg = name[1:].split("/", 1)
        return f"@types/{scope}__{pkg}"
    return f"@types/{name}"


def _ts_types(
    name: str, insights: PackageInsights | None, installed_names: frozenset[str]
) -> TypesAvailability:
    if insights is not None and insights.bundled_types:
        return "bundled"
    if definitely_typed_name(name) in installed_names:
        return "definitelyTyped"
    if insights is None:
        return "unknown"
    return "none"


class _RecordBuilder:
    """Builds records for one run; holds the run's derived lookups."""

    def __init__(
        self,
        agg_input: AggregateInput,
        nodes: dict[str, PackageNode],
        context: AggregationContext,
        hidden_keys: frozenset[str],
        graph_status: KnownStatus,
    ) -> None:
        manifest = agg_input.manifest
        config = agg_input.config

        self._input = agg_input
        self._config = config
        self._manifest = manifest
        self._nodes = nodes
        self._context = context
        self._hidden_keys = hidden_keys
        self._depth_offset = 1 if agg_input.workspace_enabled else 0
        self._graph_status = graph_status
        self._direct_names = manifest.direct_names
        self._installed_names = frozenset(node.name for node in nodes.values())
        self._rules = IntroductionRules.from_config(config)
        self._classifier = RuntimeClassifier(
            nodes,
            runtime_names=manifest.dependencies,
            dev_names=manifest.dev_dependencies,
            memo=context.runtime_memo,
            optional_names=manifest.optional_dependencies,
        )

        self._audit_available = usable(agg_input.audit)
        self._vulnerabilities = _vulnerability_index(agg_input.audit)

        self._outdated_available = usable(agg_input.outdated)
        self._outdated = (
            normalize_outdated(agg_input.outdated.data)  # type: ignore[union-attr]
            if self._outdated_available
            else {}
        )

        self.graph = _import_graph(agg_input.import_graph)
        self._importers: dict[str, list[str]] | None = None
        self._files_with_unresolved: set[str] = set()
        if self.graph is not None:
            self._importers = self.graph.package_importers()
            self._files_with_unresolved = self.graph.files_with_unresolved()

    def _outdated_info(self, name: str, direct: bool) -> OutdatedInfo:
        if not self._outdated_available:
            return OutdatedInfo()
        info = self._outdated.get(name)
        if info is not None:
            return info
        # Outdated payloads only list direct packages that have updates.
        return OutdatedInfo(status="current" if direct else "unknown")

    def _visible(self, keys: set[str]) -> list[str]:
        return sorted(key for key in keys if key not in self._hidden_keys)

    def _names(self, keys: list[str]) -> list[str]:
        names = {
            self._nodes[key].name if key in self._nodes else name_from_key(key)
            for key in keys
        }
        return sorted(names)

    def build(self, node: PackageNode) -> DependencyRecord:
        config = self._config
        name = node.name
        direct = self._manifest.is_direct(name)

        runtime = self._classifier.classify(node.key)
        root_causes = find_root_causes(node, self._nodes, self._direct_names)

        scope: Scope
        declared_scope = self._manifest.scope_of(name)
        if declared_scope is not None:
            scope = declared_scope
        else:
            scope = "runtime" if runtime.classification == "runtime" else "dev"

        introduction = classify_introduction(
            name, direct=direct, root_causes=root_causes, rules=self._rules
        )
        importer_files = self._importers.get(name, []) if self._importers else []
        runtime_impact = classify_runtime_impact(
            importer_files,
            runtime_class=runtime.classification,
            introduction=introduction,
        )

        parents = self._visible(node.parents)
        children = self._visible(node.children)
        insights = self._context.insight_cache.get(name)
        if insights is not None:
            license_id = insights.license
            license_tier = license_risk(
                license_id, green=config.license_green, amber=config.license_amber
            )
            build = BuildInfo(
                native=insights.native,
                install_scripts=insights.install_scripts,
                risk=build_risk(
                    native=insights.native, install_scripts=insights.install_scripts
                ),
            )
            blockers = upgrade_blockers(
                node_engine=insights.node_engine,
                has_peer_dependencies=insights.dependency_surface.has_peer_dependencies,
                native=insights.native,
                deprecated=insights.deprecated,
            )
        else:
            license_id = None
            license_tier = "unknown"
            build = BuildInfo()
            blockers = []

        audit_summary = self._vulnerabilities.get(name)
        vulnerabilities = _vulnerability_info(audit_summary, self._audit_available)

        record = DependencyRecord(
            key=node.key,
            name=name,
            version=node.version,
            depth=max(1, node.depth - self._depth_offset),
            parents=parents,
            classification=Classification(
                direct=direct,
                transitive=not direct,
                scope=scope,
                runtime_class=runtime.classification,
                runtime_reason=runtime.reason,
                introduction=introduction,
                runtime_impact=runtime_impact,
            ),
            origins=Origins(
                root_causes=root_causes[: config.max_root_causes],
                root_cause_count=len(root_causes),
                workspace_packages=list(
                    (self._input.workspace_usage or {}).get(name, [])
                ),
            ),
            graph=GraphInfo(
                fan_in=len(parents),
                fan_out=len(children),
                depended_on_by=self._names(parents),
                depends_on=self._names(children),
            ),
            graph_status=self._graph_status,
            license=license_id,
            license_risk=license_tier,
            vulnerabilities=vulnerabilities,
            vuln_risk=(
                vuln_risk(audit_summary.counts)
                if audit_summary is not None
                else ("green" if self._audit_available else "unknown")
            ),
            build=build,
            ts_types=_ts_types(name, insights, self._installed_names),
            links=insights.links if insights is not None else registry_links(name),
            usage=build_usage_info(
                name,
                declared=direct,
                importers=self._importers,
                files_with_unresolved=self._files_with_unresolved,
                max_top_files=config.max_top_files,
            ),
            upgrade=UpgradeInfo(
                blocks_node_major=blocks_node_major(blockers), blockers=blockers
            ),
            outdated=self._outdated_info(name, direct),
        )

        if insights is not None:
            record.dependency_surface = insights.dependency_surface
            record.module_system = insights.module_system
            record.size = insights.size
            record.deprecated = insights.deprecated
            record.node_engine = insights.node_engine
            record.insights_status = "known"

        return record


def _hidden_member_keys(
    nodes: dict[str, PackageNode], agg_input: AggregateInput
) -> frozenset[str]:
    """Synthetic workspace member nodes that are not themselves dependencies."""
    if not agg_input.workspace_enabled:
        return frozenset()
    return frozenset(
        key
        for key, node in nodes.items()
        if node.name in agg_input.workspace_members
        and not agg_input.manifest.is_direct(node.name)
    )


def aggregate(
    agg_input: AggregateInput,
    context: AggregationContext | None = None,
    *,
    generated_at: str | None = None,
) -> AggregatedReport:
    """Join graph, vulnerability, import and insight data into one report.

    Args:
        agg_input: Manifest, config and collaborator results for this run
        context: Per-run caches; a fresh one is created when omitted
        generated_at: Optional fixed timestamp (ISO 8601)

    Returns:
        The aggregated report with records keyed and sorted by identity.
    """
    if context is None:
        search_paths = agg_input.search_paths or [agg_input.project_path]
        context = AggregationContext(insight_cache=InsightCache(search_paths))

    tool_errors = _collect_tool_errors(agg_input)

    tree: Any = agg_input.tree.data if usable(agg_input.tree) else None  # type: ignore[union-attr]
    nodes = build_node_map(tree, agg_input.manifest)
    hidden_keys = _hidden_member_keys(nodes, agg_input)

    graph_status: KnownStatus = "known" if has_installed_tree(tree) else "unknown"
    if graph_status == "unknown":
        logger.info("No installed tree; graph fields come from the flat manifest")
    builder = _RecordBuilder(agg_input, nodes, context, hidden_keys, graph_status)

    records: dict[str, DependencyRecord] = {}
    for key in sorted(nodes):
        if key in hidden_keys:
            continue
        records[key] = builder.build(nodes[key])

    adjacency = {
        key: {child for child in children if child not in hidden_keys}
        for key, children in build_adjacency(nodes).items()
        if key not in hidden_keys
    }
    cycles = find_cycles(adjacency)

    engine_ranges = sorted(
        {record.node_engine for record in records.values() if record.node_engine}
    )
    min_major = derive_min_required_major(engine_ranges)

    direct_count = sum(1 for record in records.values() if record.classification.direct)

    logger.info(
        "Aggregated %d dependencies (%d direct), %d tool error(s)",
        len(records),
        direct_count,
        len(tool_errors),
    )

    return AggregatedReport(
        generated_at=generated_at or datetime.now(timezone.utc).isoformat(),
        project_path=str(agg_input.project_path),
        workspace_enabled=agg_input.workspace_enabled,
        summary=ReportSummary(
            dependency_count=len(records),
            direct_count=direct_count,
            transitive_count=len(records) - direct_count,
            cycle_count=len(cycles),
        ),
        dependencies=records,
        tool_errors=tool_errors,
        import_analysis=build_import_analysis(
            builder.graph, agg_input.manifest.direct_names
        ),
        environment=EnvironmentInfo(
            min_required_node_major=min_major,
            source="dependency-engines" if min_major is not None else "unknown",
        ),
        cycles=cycles,
    )


__all__ = ["AggregateInput", "aggregate", "definitely_typed_name"]
