"""
Lexical analysis of Datadog metric queries: simple/composite classification,
default_zero() unwrapping and per-metric extraction.
"""
from dql_core.analysis.analyzer import analyze_query
from dql_core.analysis.classify import count_aggregation_prefixes, has_combining_operator, is_composite
from dql_core.analysis.delimiters import find_matching_paren
from dql_core.analysis.extract import (
    extract_all_metrics,
    extract_bare_metrics,
    extract_wrapped_metrics,
    match_bare_metric,
)
from dql_core.analysis.spans import SpanSet
from dql_core.analysis.types import (
    AGGREGATION_PREFIXES,
    DEFAULT_WRAPPER,
    METRIC_ORDERS,
    ORDER_DISCOVERY,
    ORDER_POSITION,
    MetricSpan,
    QueryAnalysis,
)
from dql_core.analysis.unwrap import unwrap, wrapper_call_at

__all__ = [
    "analyze_query",
    "count_aggregation_prefixes",
    "has_combining_operator",
    "is_composite",
    "find_matching_paren",
    "extract_all_metrics",
    "extract_bare_metrics",
    "extract_wrapped_metrics",
    "match_bare_metric",
    "SpanSet",
    "AGGREGATION_PREFIXES",
    "DEFAULT_WRAPPER",
    "METRIC_ORDERS",
    "ORDER_DISCOVERY",
    "ORDER_POSITION",
    "MetricSpan",
    "QueryAnalysis",
    "unwrap",
    "wrapper_call_at",
]
