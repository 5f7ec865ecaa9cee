"""
Query analysis entry point: classify, then unwrap (simple) or extract (composite).
"""
from dql_core.analysis.classify import count_aggregation_prefixes, is_composite
from dql_core.analysis.extract import extract_all_metrics
from dql_core.analysis.types import (
    DEFAULT_WRAPPER,
    METRIC_ORDERS,
    ORDER_POSITION,
    MetricSpan,
    QueryAnalysis,
)
from dql_core.analysis.unwrap import unwrap


def _whole_query_span(query: str, wrapper: str) -> MetricSpan:
    clean, depth = unwrap(query, wrapper)
    return MetricSpan(
        original_text=query,
        clean_text=clean,
        has_wrapper=depth > 0,
        wrapper_depth=depth,
        start=0,
        end=len(query),
    )


def analyze_query(query: str, wrapper: str = DEFAULT_WRAPPER, order: str = ORDER_POSITION) -> QueryAnalysis:
    """
    Analyze one query string. Never raises on malformed input.

    order="position" sorts composite metrics by offset; order="discovery" keeps
    wrapped metrics ahead of bare ones, the way they are extracted.
    """
    if order not in METRIC_ORDERS:
        raise ValueError(f"order must be one of: {', '.join(METRIC_ORDERS)}")
    query = query or ""
    composite = is_composite(query)
    if not composite:
        return QueryAnalysis.build(query, False, [_whole_query_span(query, wrapper)])

    metrics = extract_all_metrics(query, wrapper)
    if not metrics:
        # Nothing recognisable: hand the raw query to the backend as a single metric.
        composite = count_aggregation_prefixes(query) > 0
        return QueryAnalysis.build(query, composite, [_whole_query_span(query, wrapper)])
    if order == ORDER_POSITION:
        metrics.sort(key=lambda m: m.start)
    return QueryAnalysis.build(query, True, metrics)
