"""
Validation driver: load each manifest's query, analyze it, and check the query and every
metric inside it against the backend.

Outcomes per check:
- ok: backend returned at least one data point
- no_data: query accepted but returned nothing (warning; the metric may not exist)
- error: backend rejected the query or the call failed (counts as a failure)
"""
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol

from dql.datadog import MetricQueryError
from dql.log import get_logger
from dql.manifest import ManifestError, extract_query
from dql_core.analysis import DEFAULT_WRAPPER, ORDER_POSITION, QueryAnalysis, analyze_query

OUTCOME_OK = "ok"
OUTCOME_NO_DATA = "no_data"
OUTCOME_ERROR = "error"

log = get_logger("dql.linter")


class MetricFetcher(Protocol):
    def fetch_metric(self, query: str) -> Optional[float]:
        ...


@dataclass
class MetricCheck:
    query: str
    outcome: str
    value: Optional[float] = None
    error: Optional[str] = None
    metric_index: Optional[int] = None
    original_text: Optional[str] = None
    has_wrapper: bool = False
    wrapper_depth: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "query": self.query,
            "outcome": self.outcome,
            "value": self.value,
            "error": self.error,
            "metric_index": self.metric_index,
            "original_text": self.original_text,
            "has_wrapper": self.has_wrapper,
            "wrapper_depth": self.wrapper_depth,
        }


@dataclass
class FileResult:
    path: str
    query: str = ""
    analysis: Optional[QueryAnalysis] = None
    skipped: bool = False
    error: Optional[str] = None
    checks: list[MetricCheck] = field(default_factory=list)

    @property
    def failures(self) -> int:
        count = 1 if self.error else 0
        return count + sum(1 for c in self.checks if c.outcome == OUTCOME_ERROR)

    @property
    def warnings(self) -> int:
        return sum(1 for c in self.checks if c.outcome == OUTCOME_NO_DATA)

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "query": self.query,
            "skipped": self.skipped,
            "error": self.error,
            "failures": self.failures,
            "warnings": self.warnings,
            "analysis": self.analysis.to_dict() if self.analysis else None,
            "checks": [c.to_dict() for c in self.checks],
        }


@dataclass
class LintSummary:
    results: list[FileResult] = field(default_factory=list)

    @property
    def failures(self) -> int:
        return sum(r.failures for r in self.results)

    @property
    def warnings(self) -> int:
        return sum(r.warnings for r in self.results)

    def to_dict(self) -> dict[str, Any]:
        return {
            "files": len(self.results),
            "failures": self.failures,
            "warnings": self.warnings,
            "results": [r.to_dict() for r in self.results],
        }


def _check(fetcher: MetricFetcher, query: str, **extra) -> MetricCheck:
    try:
        value = fetcher.fetch_metric(query)
    except MetricQueryError as exc:
        return MetricCheck(query=query, outcome=OUTCOME_ERROR, error=str(exc), **extra)
    if value is None:
        return MetricCheck(query=query, outcome=OUTCOME_NO_DATA, **extra)
    return MetricCheck(query=query, outcome=OUTCOME_OK, value=value, **extra)


def _check_metrics(fetcher: MetricFetcher, path: str, analysis: QueryAnalysis) -> list[MetricCheck]:
    log.debug(
        "Complex query detected, validating individual metrics",
        file=path,
        original_query=analysis.original_query,
        metric_count=len(analysis.metrics),
    )
    checks = []
    for i, metric in enumerate(analysis.metrics):
        fields = {"file": path, "metric_index": i, "clean_metric": metric.clean_text}
        if metric.has_wrapper:
            fields.update(original_metric=metric.original_text, nesting_level=metric.wrapper_depth)
        log.debug(
            "Validating default_zero wrapped metric" if metric.has_wrapper else "Validating metric",
            **fields,
        )
        check = _check(
            fetcher,
            metric.clean_text,
            metric_index=i,
            original_text=metric.original_text,
            has_wrapper=metric.has_wrapper,
            wrapper_depth=metric.wrapper_depth,
        )
        if check.outcome == OUTCOME_ERROR:
            msg = "Individual metric validation failed"
            if metric.has_wrapper:
                msg += " - default_zero() is masking an invalid metric"
            log.error(msg, err=check.error, **fields)
        elif check.outcome == OUTCOME_NO_DATA:
            msg = "Individual metric returns no data - metric may not exist"
            if metric.has_wrapper:
                msg += " but default_zero() masks this"
            log.warning(msg, **fields)
        checks.append(check)
    return checks


def _check_inner_query(fetcher: MetricFetcher, path: str, analysis: QueryAnalysis) -> MetricCheck:
    fields = {
        "file": path,
        "original_query": analysis.original_query,
        "inner_query": analysis.inner_query,
    }
    log.debug("Query uses default_zero, validating inner query", nesting_level=analysis.wrapper_depth, **fields)
    check = _check(
        fetcher,
        analysis.inner_query,
        metric_index=0,
        original_text=analysis.original_query,
        has_wrapper=True,
        wrapper_depth=analysis.wrapper_depth,
    )
    if check.outcome == OUTCOME_ERROR:
        log.error("Inner query validation failed - default_zero() is masking an invalid metric", err=check.error, **fields)
    elif check.outcome == OUTCOME_NO_DATA:
        log.warning("Inner query returns no data - metric may not exist but default_zero() masks this", **fields)
    return check


def lint_file(path: str, fetcher: Optional[MetricFetcher], wrapper: str = DEFAULT_WRAPPER,
              order: str = ORDER_POSITION) -> FileResult:
    """Lint one manifest. fetcher=None analyzes only (offline)."""
    result = FileResult(path=path)
    try:
        query = extract_query(path)
    except ManifestError as exc:
        log.error("Error extracting query from file", filename=path, err=str(exc))
        result.error = str(exc)
        return result

    # Valid YAML without spec.query: not a lint failure, just nothing to check.
    if query == "":
        log.warning("File didn't contain a metric query, skipping it", filename=path)
        result.skipped = True
        return result

    result.query = query
    analysis = analyze_query(query, wrapper=wrapper, order=order)
    result.analysis = analysis

    if fetcher is None:
        log.info(
            "Query analyzed",
            file=path,
            query=query,
            is_composite=analysis.is_composite,
            metric_count=len(analysis.metrics),
            has_wrapper=analysis.has_wrapper,
        )
        return result

    top = _check(fetcher, query)
    result.checks.append(top)
    if top.outcome == OUTCOME_ERROR:
        log.error("Error calling metrics query API", file=path, query=query, err=top.error)
        return result

    if analysis.is_composite:
        result.checks.extend(_check_metrics(fetcher, path, analysis))
    elif analysis.has_wrapper:
        result.checks.append(_check_inner_query(fetcher, path, analysis))

    if top.outcome == OUTCOME_NO_DATA:
        log.warning(
            "Query returned no data; the metric might not be real or there may not be any datapoints",
            file=path,
            query=query,
        )
    else:
        log.info("Query result", file=path, query=query, value=top.value)
    return result


def lint_files(paths, fetcher: Optional[MetricFetcher], wrapper: str = DEFAULT_WRAPPER,
               order: str = ORDER_POSITION) -> LintSummary:
    summary = LintSummary()
    for path in paths:
        summary.results.append(lint_file(path, fetcher, wrapper=wrapper, order=order))
    return summary
