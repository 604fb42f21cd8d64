"""Aggregated report models.

This module contains the project-level envelope that wraps all dependency
records together with summary counts and partial-failure notices.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

from artifacts.models.artifacts.dependencies import DependencyRecord
from artifacts.models.artifacts.imports import UnresolvedImport


def _report_schema_version() -> int:
    from contract.artifacts import REPORT_SCHEMA_VERSION

    return REPORT_SCHEMA_VERSION


def _static_only_notes() -> list[str]:
    from contract.artifacts import STATIC_ONLY_NOTES

    return list(STATIC_ONLY_NOTES)


class ReportSummary(BaseModel):
    dependency_count: int = 0
    direct_count: int = 0
    transitive_count: int = 0
    cycle_count: int = 0


class ImportAnalysis(BaseModel):
    """Project-level import usage; always static-only."""

    static_only: bool = True
    available: bool = False
    notes: list[str] = Field(default_factory=_static_only_notes)
    package_hotness: dict[str, int] = Field(default_factory=dict)
    undeclared_imports: list[str] = Field(default_factory=list)
    unresolved_imports: list[UnresolvedImport] = Field(default_factory=list)


class EnvironmentInfo(BaseModel):
    min_required_node_major: int | None = None
    source: Literal["dependency-engines", "unknown"] = "unknown"


class AggregatedReport(BaseModel):
    """Schema for the dependency-radar.json artifact."""

    schema_version: int = Field(default_factory=_report_schema_version)
    generated_at: str
    project_path: str
    workspace_enabled: bool = False
    summary: ReportSummary = Field(default_factory=ReportSummary)
    dependencies: dict[str, DependencyRecord] = Field(default_factory=dict)
    tool_errors: dict[str, str] = Field(default_factory=dict)
    import_analysis: ImportAnalysis = Field(default_factory=ImportAnalysis)
    environment: EnvironmentInfo = Field(default_factory=EnvironmentInfo)
    cycles: list[list[str]] = Field(default_factory=list)


__all__ = ["AggregatedReport", "EnvironmentInfo", "ImportAnalysis", "ReportSummary"]
