"""Aggregation engine, analytical profile and group-by query tool."""

from .aggregation import AggregationBucket, AggregationEngine, DatasetAggregates, aggregate
from .profile import AnalyticalProfile, build_profile
from .query import (
    MAX_QUERY_GROUPS,
    QueryDispatcher,
    QueryFilters,
    QueryRequest,
    QueryResult,
    run_query,
)

__all__ = [
    "AggregationBucket",
    "AggregationEngine",
    "AnalyticalProfile",
    "DatasetAggregates",
    "MAX_QUERY_GROUPS",
    "QueryDispatcher",
    "QueryFilters",
    "QueryRequest",
    "QueryResult",
    "aggregate",
    "build_profile",
    "run_query",
]
