"""Per-run aggregation state and collaborator outcomes."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from graph.algos import RuntimeClassification
    from insights.packages import InsightCache


@dataclass(frozen=True)
class CollaboratorResult:
    """Outcome of one external collaborator (tree, audit, import graph, outdated).

    A result with ``ok`` set carries usable data; an ``error`` on it marks
    the data as partial.
    """

    ok: bool
    data: Any = None
    error: str | None = None

    @classmethod
    def success(cls, data: Any) -> CollaboratorResult:
        return cls(ok=True, data=data)

    @classmethod
    def failure(cls, error: str) -> CollaboratorResult:
        return cls(ok=False, error=error)

    @classmethod
    def partial(cls, data: Any, error: str) -> CollaboratorResult:
        """Usable data that is known to be incomplete."""
        return cls(ok=True, data=data, error=error)


def usable(result: CollaboratorResult | None) -> bool:
    return result is not None and result.ok


@dataclass
class AggregationContext:
    """Caches owned by a single aggregation run.

    ``runtime_memo`` is never shared between runs. ``insight_cache`` is keyed
    by package name and may be shared between workspace sub-packages.
    """

    insight_cache: InsightCache
    runtime_memo: dict[str, RuntimeClassification] = field(default_factory=dict)


__all__ = ["AggregationContext", "CollaboratorResult", "usable"]
