"""
Simple vs composite classification.

This is a lexical heuristic, not a grammar. Known false positives: a '-' in a metric
name outside any tag filter, and a prefix like `sum:` appearing inside a tag value
(e.g. `{checksum:abc}`).
"""
from dql_core.analysis.types import AGGREGATION_PREFIXES

OPERATORS = frozenset("+-*/")


def has_combining_operator(query: str) -> bool:
    """An arithmetic operator outside every `{...}` tag filter, not at either end."""
    brace_depth = 0
    last = len(query) - 1
    for i, ch in enumerate(query):
        if ch == "{":
            brace_depth += 1
        elif ch == "}":
            brace_depth -= 1
        elif ch in OPERATORS and brace_depth == 0 and 0 < i < last:
            return True
    return False


def count_aggregation_prefixes(query: str) -> int:
    return sum(query.count(f"{prefix}:") for prefix in AGGREGATION_PREFIXES)


def is_composite(query: str) -> bool:
    return has_combining_operator(query) or count_aggregation_prefixes(query) > 1
