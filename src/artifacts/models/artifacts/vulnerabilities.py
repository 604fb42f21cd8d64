"""Vulnerability models derived from audit payloads.

Summaries are recomputed from raw advisory entries on every run and are
never edited by hand.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field

Severity = Literal["low", "moderate", "high", "critical"]
HighestSeverity = Literal["low", "moderate", "high", "critical", "none"]

# Highest first.
SEVERITY_ORDER: tuple[Severity, ...] = ("critical", "high", "moderate", "low")


class SeverityCounts(BaseModel):
    """Finding counts per severity tier."""

    critical: int = 0
    high: int = 0
    moderate: int = 0
    low: int = 0

    def increment(self, severity: Severity) -> None:
        setattr(self, severity, getattr(self, severity) + 1)

    def add(self, other: SeverityCounts) -> None:
        for severity in SEVERITY_ORDER:
            setattr(self, severity, getattr(self, severity) + getattr(other, severity))

    def highest(self) -> HighestSeverity:
        for severity in SEVERITY_ORDER:
            if getattr(self, severity) > 0:
                return severity
        return "none"


class VulnerabilityItem(BaseModel):
    """One advisory detail attached to a finding."""

    title: str | None = None
    severity: Severity
    url: str | None = None
    vulnerable_range: str | None = None
    fix_available: Any = None
    paths: list[str] = Field(default_factory=list)


class VulnerabilitySummary(BaseModel):
    """Per-package-name vulnerability summary."""

    counts: SeverityCounts = Field(default_factory=SeverityCounts)
    highest_severity: HighestSeverity = "none"
    items: list[VulnerabilityItem] = Field(default_factory=list)


class VulnerabilityIndex(BaseModel):
    """Summaries already indexed per package name, e.g. merged across a workspace."""

    packages: dict[str, VulnerabilitySummary] = Field(default_factory=dict)


__all__ = [
    "SEVERITY_ORDER",
    "HighestSeverity",
    "Severity",
    "SeverityCounts",
    "VulnerabilityIndex",
    "VulnerabilityItem",
    "VulnerabilitySummary",
]
