"""Stable report contract surface for dependency-radar-core.

Treat these exports as the authoritative boundary between the aggregation
core and the report renderer.
"""

from contract.artifacts import (
    COLLABORATOR_SPECS,
    REPORT_JSON,
    REPORT_SCHEMA_VERSION,
    STATIC_ONLY_NOTES,
    TOOL_IMPORT_GRAPH,
    TOOL_NPM_AUDIT,
    TOOL_NPM_LS,
    TOOL_NPM_OUTDATED,
    CollaboratorSpec,
)


def __getattr__(name: str) -> object:
    if name in {"AggregatedReport", "DependencyRecord"}:
        from artifacts.models.artifacts.dependencies import DependencyRecord
        from artifacts.models.artifacts.report import AggregatedReport

        return {
            "AggregatedReport": AggregatedReport,
            "DependencyRecord": DependencyRecord,
        }[name]

    msg = f"module 'contract' has no attribute {name!r}"
    raise AttributeError(msg)


__all__ = [
    "COLLABORATOR_SPECS",
    "REPORT_JSON",
    "REPORT_SCHEMA_VERSION",
    "STATIC_ONLY_NOTES",
    "TOOL_IMPORT_GRAPH",
    "TOOL_NPM_AUDIT",
    "TOOL_NPM_LS",
    "TOOL_NPM_OUTDATED",
    "AggregatedReport",
    "CollaboratorSpec",
    "DependencyRecord",
]
