"""Vulnerability indexing over audit payloads.

Two payload shapes are accepted and normalized into one summary per package
name:

- current: ``{"vulnerabilities": {key: {name, severity, via, fixAvailable, nodes}}}``
- legacy: ``{"advisories": {id: {module_name, severity, title, url, findings}}}``

One count is recorded per entry (current) or per advisory (legacy). Nested
``via`` details become items but are never counted again.
"""

from __future__ import annotations

import logging
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from artifacts.models.artifacts.vulnerabilities import (
    Severity,
    VulnerabilityItem,
    VulnerabilitySummary,
)

logger = logging.getLogger(__name__)

_KNOWN_SEVERITIES: frozenset[str] = frozenset({"low", "moderate", "high", "critical"})


def normalize_severity(value: Any) -> Severity:
    """Lowercase a raw severity; anything unrecognized maps to ``low``.

    Examples:
        >>> normalize_severity("HIGH")
        'high'
        >>> normalize_severity("info")
        'low'
    """
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _KNOWN_SEVERITIES:
            return lowered  # type: ignore[return-value]
    return "low"


def _optional_str(value: Any) -> str | None:
    return value if isinstance(value, str) and value else None


class _Lenient(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class CurrentAuditEntry(_Lenient):
    name: str | None = None
    severity: Any = None
    title: str | None = None
    via: list[Any] = Field(default_factory=list)
    fix_available: Any = Field(default=None, alias="fixAvailable")
    nodes: list[str] = Field(default_factory=list)

    @field_validator("name", "title", mode="before")
    @classmethod
    def coerce_str(cls, v: Any) -> str | None:
        return _optional_str(v)

    @field_validator("via", mode="before")
    @classmethod
    def coerce_via(cls, v: Any) -> list[Any]:
        return v if isinstance(v, list) else []

    @field_validator("nodes", mode="before")
    @classmethod
    def coerce_nodes(cls, v: Any) -> list[str]:
        if not isinstance(v, list):
            return []
        return [item for item in v if isinstance(item, str)]


class LegacyFinding(_Lenient):
    paths: list[str] = Field(default_factory=list)

    @field_validator("paths", mode="before")
    @classmethod
    def coerce_paths(cls, v: Any) -> list[str]:
        if not isinstance(v, list):
            return []
        return [item for item in v if isinstance(item, str)]


class LegacyAdvisory(_Lenient):
    module_name: str | None = None
    module: str | None = None
    severity: Any = None
    title: str | None = None
    url: str | None = None
    vulnerable_versions: str | None = None
    fix_available: Any = None
    findings: list[LegacyFinding] = Field(default_factory=list)

    @field_validator(
        "module_name", "module", "title", "url", "vulnerable_versions", mode="before"
    )
    @classmethod
    def coerce_str(cls, v: Any) -> str | None:
        return _optional_str(v)

    @field_validator("findings", mode="before")
    @classmethod
    def coerce_findings(cls, v: Any) -> list[Any]:
        if not isinstance(v, list):
            return []
        return [item for item in v if isinstance(item, dict)]


class CurrentAuditPayload(BaseModel):
    kind: Literal["current"] = "current"
    entries: list[CurrentAuditEntry] = Field(default_factory=list)


class LegacyAuditPayload(BaseModel):
    kind: Literal["legacy"] = "legacy"
    advisories: list[LegacyAdvisory] = Field(default_factory=list)


AuditPayload = CurrentAuditPayload | LegacyAuditPayload


def _dict_values(value: Any) -> list[dict[str, Any]]:
    if isinstance(value, dict):
        items = list(value.values())
    elif isinstance(value, list):
        items = value
    else:
        return []
    return [item for item in items if isinstance(item, dict)]


def parse_audit_payload(payload: Any) -> AuditPayload | None:
    """Recognize the payload shape.

    The name-keyed ``vulnerabilities`` shape takes precedence when both keys
    are present. Returns None for anything else.
    """
    if not isinstance(payload, dict):
        return None

    if isinstance(payload.get("vulnerabilities"), dict):
        entries = [
            CurrentAuditEntry.model_validate(raw)
            for raw in _dict_values(payload["vulnerabilities"])
        ]
        return CurrentAuditPayload(entries=entries)

    if isinstance(payload.get("advisories"), (dict, list)):
        advisories = [
            LegacyAdvisory.model_validate(raw)
            for raw in _dict_values(payload["advisories"])
        ]
        return LegacyAuditPayload(advisories=advisories)

    return None


def _index_current(
    payload: CurrentAuditPayload, summaries: dict[str, VulnerabilitySummary]
) -> None:
    for entry in payload.entries:
        name = entry.name or "unknown"
        severity = normalize_severity(entry.severity)
        summary = summaries.setdefault(name, VulnerabilitySummary())
        summary.counts.increment(severity)

        for via in entry.via:
            if not isinstance(via, dict):
                continue
            summary.items.append(
                VulnerabilityItem(
                    title=_optional_str(via.get("title"))
                    or entry.title
                    or _optional_str(via.get("name"))
                    or name,
                    severity=normalize_severity(via.get("severity", entry.severity)),
                    url=_optional_str(via.get("url")),
                    vulnerable_range=_optional_str(via.get("range")),
                    fix_available=entry.fix_available,
                    paths=list(entry.nodes),
                )
            )


def _index_legacy(
    payload: LegacyAuditPayload, summaries: dict[str, VulnerabilitySummary]
) -> None:
    for advisory in payload.advisories:
        name = advisory.module_name or advisory.module or "unknown"
        severity = normalize_severity(advisory.severity)
        summary = summaries.setdefault(name, VulnerabilitySummary())
        summary.counts.increment(severity)
        summary.items.append(
            VulnerabilityItem(
                title=advisory.title,
                severity=severity,
                url=advisory.url,
                vulnerable_range=advisory.vulnerable_versions,
                fix_available=advisory.fix_available,
                paths=[path for finding in advisory.findings for path in finding.paths],
            )
        )


def index_vulnerabilities(payload: Any) -> dict[str, VulnerabilitySummary]:
    """Build the per-package-name vulnerability index.

    Args:
        payload: Raw audit payload in either supported shape

    Returns:
        Package name -> summary, sorted by name. Unrecognized payloads yield
        an empty index.
    """
    parsed = parse_audit_payload(payload)
    if parsed is None:
        logger.debug("Audit payload shape not recognized; no vulnerabilities indexed")
        return {}

    summaries: dict[str, VulnerabilitySummary] = {}
    if isinstance(parsed, CurrentAuditPayload):
        _index_current(parsed, summaries)
    else:
        _index_legacy(parsed, summaries)

    for summary in summaries.values():
        summary.highest_severity = summary.counts.highest()

    return dict(sorted(summaries.items()))


def merge_vulnerability_indexes(
    indexes: list[dict[str, VulnerabilitySummary]],
) -> dict[str, VulnerabilitySummary]:
    """Union several indexes; counts for the same package name are summed.

    Items are concatenated in input order and the highest severity is
    recomputed from the summed counts.
    """
    merged: dict[str, VulnerabilitySummary] = {}
    for index in indexes:
        for name, summary in index.items():
            target = merged.setdefault(name, VulnerabilitySummary())
            target.counts.add(summary.counts)
            target.items.extend(item.model_copy() for item in summary.items)

    for summary in merged.values():
        summary.highest_severity = summary.counts.highest()

    return dict(sorted(merged.items()))


__all__ = [
    "AuditPayload",
    "CurrentAuditPayload",
    "LegacyAuditPayload",
    "index_vulnerabilities",
    "merge_vulnerability_indexes",
    "normalize_severity",
    "parse_audit_payload",
]
