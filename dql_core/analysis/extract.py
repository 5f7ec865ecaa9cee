"""
Multi-metric extraction for composite queries.

Pass 1 finds top-level wrapper calls and unwraps them; pass 2 finds bare
`<agg>:<metric>{tags}.fn(...)` references outside anything pass 1 covered.
Spans from the two passes never overlap.

An unbalanced wrapper call is skipped by pass 1; the metric inside it can still be
picked up by pass 2 as a bare metric.
"""
from dql_core.analysis.delimiters import find_matching_paren
from dql_core.analysis.spans import SpanSet
from dql_core.analysis.types import AGGREGATION_PREFIXES, DEFAULT_WRAPPER, MetricSpan
from dql_core.analysis.unwrap import is_identifier_char, unwrap, wrapper_call_at


def _is_name_char(ch: str) -> bool:
    return ch.isascii() and (ch.isalnum() or ch in "._")


def _is_suffix_char(ch: str) -> bool:
    return ch.isascii() and (ch.isalnum() or ch == "_")


def _match_prefix(query: str, pos: int) -> int | None:
    """End of `<agg>:` at pos, or None."""
    if pos > 0 and is_identifier_char(query[pos - 1]):
        return None
    for prefix in AGGREGATION_PREFIXES:
        token = prefix + ":"
        if query.startswith(token, pos):
            return pos + len(token)
    return None


def _skip_tag_filter(query: str, pos: int) -> int:
    if pos < len(query) and query[pos] == "{":
        close = query.find("}", pos + 1)
        if close != -1:
            return close + 1
    return pos


def _skip_suffixes(query: str, pos: int) -> int:
    """Consume `.ident` / `.ident(args)` suffixes such as `.fill(null)` or `.as_count()`."""
    n = len(query)
    while pos < n and query[pos] == ".":
        end = pos + 1
        while end < n and _is_suffix_char(query[end]):
            end += 1
        if end == pos + 1:
            break
        if end < n and query[end] == "(":
            close_end = find_matching_paren(query, end)
            if close_end is not None:
                end = close_end
        pos = end
    return pos


def match_bare_metric(query: str, pos: int) -> int | None:
    """End offset of a bare metric reference starting exactly at pos, or None."""
    end = _match_prefix(query, pos)
    if end is None:
        return None
    name_start = end
    while end < len(query) and _is_name_char(query[end]):
        end += 1
    if end == name_start:
        return None
    end = _skip_tag_filter(query, end)
    return _skip_suffixes(query, end)


def extract_wrapped_metrics(query: str, wrapper: str = DEFAULT_WRAPPER,
                            covered: SpanSet | None = None) -> list[MetricSpan]:
    covered = covered if covered is not None else SpanSet()
    metrics = []
    pos = query.find(wrapper)
    while pos != -1:
        open_index = wrapper_call_at(query, pos, wrapper)
        if open_index is not None and not covered.covers(pos):
            end = find_matching_paren(query, open_index)
            if end is not None:
                original = query[pos:end]
                clean, depth = unwrap(original, wrapper)
                metrics.append(MetricSpan(
                    original_text=original,
                    clean_text=clean,
                    has_wrapper=depth > 0,
                    wrapper_depth=depth,
                    start=pos,
                    end=end,
                ))
                covered.add(pos, end)
        pos = query.find(wrapper, pos + 1)
    return metrics


def extract_bare_metrics(query: str, covered: SpanSet | None = None) -> list[MetricSpan]:
    covered = covered if covered is not None else SpanSet()
    metrics = []
    pos = 0
    n = len(query)
    while pos < n:
        end = match_bare_metric(query, pos)
        if end is None:
            pos += 1
            continue
        if not covered.overlaps(pos, end):
            text = query[pos:end]
            metrics.append(MetricSpan(
                original_text=text,
                clean_text=text,
                has_wrapper=False,
                wrapper_depth=0,
                start=pos,
                end=end,
            ))
        pos = end
    return metrics


def extract_all_metrics(query: str, wrapper: str = DEFAULT_WRAPPER) -> list[MetricSpan]:
    """Wrapped spans first, then bare spans (discovery order)."""
    covered = SpanSet()
    wrapped = extract_wrapped_metrics(query, wrapper, covered)
    return wrapped + extract_bare_metrics(query, covered)
