"""Report contract definitions.

This module defines the stable identifiers shared between the aggregation
core and its consumers (report renderer, CLI, external collaborators).
"""

from __future__ import annotations

from dataclasses import dataclass

# Schema version for the aggregated report.
REPORT_SCHEMA_VERSION = 1

# Default artifact filename.
REPORT_JSON = "dependency-radar.json"

# Collaborator identities used as keys in ``tool_errors``.
TOOL_NPM_LS = "npm-ls"
TOOL_NPM_AUDIT = "npm-audit"
TOOL_IMPORT_GRAPH = "import-graph"
TOOL_NPM_OUTDATED = "npm-outdated"
# Unreadable sub-package manifests in workspace mode.
TOOL_WORKSPACE_MANIFEST = "workspace-manifest"

# Synthetic root used when several workspace trees are stitched together.
WORKSPACE_ROOT_NAME = "dependency-radar-workspace"
WORKSPACE_ROOT_VERSION = "0.0.0"

UNKNOWN_VERSION = "unknown"

STATIC_ONLY_NOTES = (
    "Import analysis is static only.",
    "Dynamic imports, runtime plugin loading, and tooling usage are not evaluated.",
)

REGISTRY_URL = "https://www.npmjs.com/package/{name}"


@dataclass(frozen=True)
class CollaboratorSpec:
    """Description of an external collaborator payload."""

    tool: str
    payload: str
    degraded_fields: tuple[str, ...]


COLLABORATOR_SPECS: dict[str, CollaboratorSpec] = {
    TOOL_NPM_LS: CollaboratorSpec(
        tool=TOOL_NPM_LS,
        payload="Installed dependency tree ({name, version, dev?, dependencies}).",
        degraded_fields=("depth", "root_causes", "graph"),
    ),
    TOOL_NPM_AUDIT: CollaboratorSpec(
        tool=TOOL_NPM_AUDIT,
        payload="Audit payload (name-keyed vulnerabilities or legacy advisories).",
        degraded_fields=("vulnerabilities", "vuln_risk"),
    ),
    TOOL_IMPORT_GRAPH: CollaboratorSpec(
        tool=TOOL_IMPORT_GRAPH,
        payload="Static import graph (files, packages, package_counts, unresolved).",
        degraded_fields=("usage",),
    ),
    TOOL_NPM_OUTDATED: CollaboratorSpec(
        tool=TOOL_NPM_OUTDATED,
        payload="Outdated map ({name: {current, wanted, latest}}).",
        degraded_fields=("outdated",),
    ),
}


__all__ = [
    "COLLABORATOR_SPECS",
    "REGISTRY_URL",
    "REPORT_JSON",
    "REPORT_SCHEMA_VERSION",
    "STATIC_ONLY_NOTES",
    "TOOL_IMPORT_GRAPH",
    "TOOL_NPM_AUDIT",
    "TOOL_NPM_LS",
    "TOOL_NPM_OUTDATED",
    "TOOL_WORKSPACE_MANIFEST",
    "UNKNOWN_VERSION",
    "WORKSPACE_ROOT_NAME",
    "WORKSPACE_ROOT_VERSION",
    "CollaboratorSpec",
]
