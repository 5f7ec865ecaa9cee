"""
Result types for query analysis. Both are immutable; one analysis call builds them once.
"""
from dataclasses import dataclass, field, asdict
from typing import Any

DEFAULT_WRAPPER = "default_zero"

AGGREGATION_PREFIXES = ("avg", "sum", "count", "min", "max", "rate", "gauge")

ORDER_POSITION = "position"
ORDER_DISCOVERY = "discovery"
METRIC_ORDERS = (ORDER_POSITION, ORDER_DISCOVERY)


@dataclass(frozen=True)
class MetricSpan:
    """One metric reference inside a query; [start, end) are str offsets into the original query."""
    original_text: str
    clean_text: str
    has_wrapper: bool
    wrapper_depth: int
    start: int
    end: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class QueryAnalysis:
    original_query: str
    is_composite: bool
    metrics: tuple[MetricSpan, ...] = field(default_factory=tuple)
    # Legacy single-metric view, taken from metrics[0].
    has_wrapper: bool = False
    inner_query: str = ""
    wrapper_depth: int = 0

    @classmethod
    def build(cls, query: str, is_composite: bool, metrics) -> "QueryAnalysis":
        metrics = tuple(metrics)
        if not metrics:
            return cls(original_query=query, is_composite=is_composite)
        first = metrics[0]
        return cls(
            original_query=query,
            is_composite=is_composite,
            metrics=metrics,
            has_wrapper=first.has_wrapper,
            inner_query=first.clean_text,
            wrapper_depth=first.wrapper_depth,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "original_query": self.original_query,
            "is_composite": self.is_composite,
            "has_wrapper": self.has_wrapper,
            "inner_query": self.inner_query,
            "wrapper_depth": self.wrapper_depth,
            "metrics": [m.to_dict() for m in self.metrics],
        }
