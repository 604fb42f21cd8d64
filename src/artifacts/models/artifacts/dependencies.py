"""Dependency record models.

This module contains the canonical per-package record emitted by the
aggregator, one per installed ``name@version`` identity.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

from artifacts.models.artifacts.vulnerabilities import HighestSeverity

RiskLevel = Literal["green", "amber", "red"]
RiskTier = Literal["green", "amber", "red", "unknown"]
Scope = Literal["runtime", "dev", "optional", "peer"]
RuntimeClass = Literal["runtime", "build-time", "dev-only"]
Introduction = Literal[
    "direct", "tooling", "framework", "testing", "transitive", "unknown"
]
RuntimeImpact = Literal["runtime", "build", "testing", "tooling", "mixed"]
UpgradeBlocker = Literal["nodeEngine", "peerDependency", "nativeBindings", "deprecated"]
UsageStatus = Literal["imported", "undeclared", "not-imported", "unknown"]
OutdatedStatus = Literal["current", "patch", "minor", "major", "unknown"]
TypesAvailability = Literal["bundled", "definitelyTyped", "none", "unknown"]
ModuleFormat = Literal["esm", "commonjs", "dual", "unknown"]
KnownStatus = Literal["known", "unknown"]


class Classification(BaseModel):
    """How the package entered the tree and how it reaches the running system.

    ``introduction`` and ``runtime_impact`` are static heuristics.
    """

    direct: bool
    transitive: bool
    scope: Scope
    runtime_class: RuntimeClass
    runtime_reason: str
    introduction: Introduction
    runtime_impact: RuntimeImpact
    heuristic: bool = True


class Origins(BaseModel):
    """Direct dependencies that cause this package to be installed."""

    root_causes: list[str] = Field(default_factory=list)
    root_cause_count: int = 0
    workspace_packages: list[str] = Field(default_factory=list)


class GraphInfo(BaseModel):
    fan_in: int = 0
    fan_out: int = 0
    depended_on_by: list[str] = Field(default_factory=list)
    depends_on: list[str] = Field(default_factory=list)


class VulnerabilityInfo(BaseModel):
    """Vulnerability counts for the record; ``unknown`` when no audit ran."""

    status: KnownStatus = "unknown"
    critical: int = 0
    high: int = 0
    moderate: int = 0
    low: int = 0
    highest: HighestSeverity = "none"
    advisory_count: int = 0


class BuildInfo(BaseModel):
    native: bool = False
    install_scripts: bool = False
    risk: RiskTier = "unknown"


class DependencySurface(BaseModel):
    """Counts of the package's own declared dependencies by kind."""

    dependencies: int = 0
    dev_dependencies: int = 0
    peer_dependencies: int = 0
    optional_dependencies: int = 0
    has_peer_dependencies: bool = False


class ModuleSystem(BaseModel):
    format: ModuleFormat = "unknown"
    conditional_exports: bool = False


class SizeFootprint(BaseModel):
    installed_size: int = 0
    file_count: int = 0


class Links(BaseModel):
    registry: str
    repository: str | None = None
    bugs: str | None = None
    homepage: str | None = None


class UsageInfo(BaseModel):
    """Static-only import usage signal for a package."""

    status: UsageStatus = "unknown"
    reason: str = ""
    file_count: int = 0
    top_files: list[str] = Field(default_factory=list)
    undeclared: bool = False
    unresolved_in_importers: bool = False
    static_only: bool = True


class UpgradeInfo(BaseModel):
    """Heuristic signals that the package may complicate runtime upgrades."""

    blocks_node_major: bool = False
    blockers: list[UpgradeBlocker] = Field(default_factory=list)


class OutdatedInfo(BaseModel):
    status: OutdatedStatus = "unknown"
    latest_version: str | None = None


class DependencyRecord(BaseModel):
    """Canonical per-package record keyed by ``name@version``."""

    key: str
    name: str
    version: str
    depth: int
    parents: list[str] = Field(default_factory=list)
    classification: Classification
    origins: Origins = Field(default_factory=Origins)
    graph: GraphInfo = Field(default_factory=GraphInfo)
    # ``unknown`` when depth, origins and graph come from the flat manifest.
    graph_status: KnownStatus = "unknown"
    license: str | None = None
    license_risk: RiskTier = "unknown"
    vulnerabilities: VulnerabilityInfo = Field(default_factory=VulnerabilityInfo)
    vuln_risk: RiskTier = "unknown"
    build: BuildInfo = Field(default_factory=BuildInfo)
    dependency_surface: DependencySurface = Field(default_factory=DependencySurface)
    module_system: ModuleSystem = Field(default_factory=ModuleSystem)
    ts_types: TypesAvailability = "unknown"
    size: SizeFootprint = Field(default_factory=SizeFootprint)
    deprecated: bool = False
    node_engine: str | None = None
    insights_status: KnownStatus = "unknown"
    links: Links
    usage: UsageInfo = Field(default_factory=UsageInfo)
    upgrade: UpgradeInfo = Field(default_factory=UpgradeInfo)
    outdated: OutdatedInfo = Field(default_factory=OutdatedInfo)


__all__ = [
    "BuildInfo",
    "Classification",
    "DependencyRecord",
    "DependencySurface",
    "GraphInfo",
    "Introduction",
    "KnownStatus",
    "Links",
    "ModuleFormat",
    "ModuleSystem",
    "Origins",
    "OutdatedInfo",
    "OutdatedStatus",
    "RiskLevel",
    "RiskTier",
    "RuntimeClass",
    "RuntimeImpact",
    "Scope",
    "SizeFootprint",
    "TypesAvailability",
    "UpgradeBlocker",
    "UpgradeInfo",
    "UsageInfo",
    "UsageStatus",
    "VulnerabilityInfo",
]
