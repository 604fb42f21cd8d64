"""Model namespace for dependency-radar report schemas."""

from artifacts.models.artifacts.dependencies import DependencyRecord
from artifacts.models.artifacts.imports import ImportGraph, UnresolvedImport
from artifacts.models.artifacts.report import (
    AggregatedReport,
    EnvironmentInfo,
    ImportAnalysis,
    ReportSummary,
)
from artifacts.models.artifacts.vulnerabilities import (
    SeverityCounts,
    VulnerabilityIndex,
    VulnerabilityItem,
    VulnerabilitySummary,
)

__all__ = [
    "AggregatedReport",
    "DependencyRecord",
    "EnvironmentInfo",
    "ImportAnalysis",
    "ImportGraph",
    "ReportSummary",
    "SeverityCounts",
    "UnresolvedImport",
    "VulnerabilityIndex",
    "VulnerabilityItem",
    "VulnerabilitySummary",
]
