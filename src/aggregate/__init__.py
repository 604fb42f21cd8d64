"""Aggregation of collaborator payloads into the dependency report."""

from aggregate.aggregator import AggregateInput, aggregate
from aggregate.context import AggregationContext, CollaboratorResult

__all__ = ["AggregateInput", "AggregationContext", "CollaboratorResult", "aggregate"]
