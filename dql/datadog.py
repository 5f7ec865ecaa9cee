"""
Minimal Datadog metrics query client (GET /api/v1/query).
"""
import http.client
import json
import time
import urllib.error
import urllib.parse
import urllib.request

from dql.resilience import CircuitBreaker, CircuitOpenError, retry_call

QUERY_PATH = "/api/v1/query"
RETRYABLE_STATUS = frozenset({429, 500, 502, 503, 504})


class MetricQueryError(Exception):
    """A query the backend rejected, or a call that never got a usable response."""
    def __init__(self, message, status=None, nested=None):
        super().__init__(message)
        self.status = status
        self.nested = nested

    @property
    def transient(self) -> bool:
        if self.status is None:
            return isinstance(self.nested, (OSError, http.client.HTTPException))
        return self.status in RETRYABLE_STATUS


def _error_detail(body: bytes) -> str:
    text = body.decode("utf-8", errors="replace").strip()
    try:
        payload = json.loads(text)
    except json.JSONDecodeError:
        return text[:300]
    if isinstance(payload, dict):
        errors = payload.get("errors") or payload.get("error")
        if isinstance(errors, list):
            return "; ".join(str(e) for e in errors)
        if errors:
            return str(errors)
    return text[:300]


def latest_value(payload: dict) -> float | None:
    """Latest non-null point of the first series, or None when there is no data."""
    series = payload.get("series") or []
    if not series:
        return None
    for point in reversed(series[0].get("pointlist") or []):
        if len(point) > 1 and point[1] is not None:
            try:
                return float(point[1])
            except (TypeError, ValueError) as exc:
                raise MetricQueryError(f"invalid response: non-numeric point {point[1]!r}", nested=exc) from exc
    return None


class DatadogClient:
    def __init__(
        self,
        api_key: str,
        app_key: str,
        site: str = "datadoghq.com",
        timeout_sec: float = 10.0,
        window_sec: int = 60,
        retries: int = 2,
        backoff_sec: float = 0.5,
        breaker: CircuitBreaker | None = None,
        opener=None,
        clock=time.time,
        sleep=time.sleep,
    ):
        self.api_key = api_key
        self.app_key = app_key
        self.base_url = f"https://api.{site.strip().strip('/')}"
        self.timeout_sec = timeout_sec
        self.window_sec = window_sec
        self.retries = retries
        self.backoff_sec = backoff_sec
        self.breaker = breaker or CircuitBreaker(failure_threshold=3, window_sec=60.0, open_sec=30.0)
        self._open = opener or urllib.request.urlopen
        self._clock = clock
        self._sleep = sleep

    @classmethod
    def from_config(cls, config: dict) -> "DatadogClient":
        return cls(
            api_key=config["api_key"],
            app_key=config["app_key"],
            site=config["site"],
            timeout_sec=float(config["timeout_sec"]),
            window_sec=int(config["window_sec"]),
            retries=int(config["retries"]),
            backoff_sec=float(config["backoff_sec"]),
        )

    def _request(self, query: str, start: int, end: int) -> dict:
        params = urllib.parse.urlencode({"from": start, "to": end, "query": query})
        req = urllib.request.Request(
            f"{self.base_url}{QUERY_PATH}?{params}",
            method="GET",
            headers={
                "Accept": "application/json",
                "DD-API-KEY": self.api_key,
                "DD-APPLICATION-KEY": self.app_key,
            },
        )
        try:
            with self._open(req, timeout=self.timeout_sec) as resp:
                body = resp.read()
        except urllib.error.HTTPError as exc:
            detail = _error_detail(exc.read() or b"") or exc.reason
            raise MetricQueryError(f"HTTP {exc.code}: {detail}", status=exc.code, nested=exc) from exc
        except (OSError, http.client.HTTPException) as exc:
            raise MetricQueryError(f"request failed: {exc}", nested=exc) from exc
        try:
            payload = json.loads(body)
        except json.JSONDecodeError as exc:
            raise MetricQueryError(f"invalid JSON response: {exc}", nested=exc) from exc
        if not isinstance(payload, dict):
            raise MetricQueryError("invalid response: expected a JSON object")
        return payload

    def query_metrics(self, query: str, start: int, end: int) -> dict:
        def attempt():
            return retry_call(
                lambda: self._request(query, start, end),
                retries=self.retries,
                backoff_sec=self.backoff_sec,
                retry_on=lambda exc: isinstance(exc, MetricQueryError) and exc.transient,
                sleep=self._sleep,
            )

        try:
            payload = self.breaker.call(
                attempt, is_failure=lambda exc: isinstance(exc, MetricQueryError) and exc.transient
            )
        except CircuitOpenError as exc:
            raise MetricQueryError("backend unavailable: too many failed requests", nested=exc) from exc
        if payload.get("status") == "error":
            raise MetricQueryError(f"MetricResponseError: {payload.get('error')}")
        return payload

    def fetch_metric(self, query: str) -> float | None:
        """
        Query the last window_sec seconds. Returns the latest value, or None when the
        query is valid but returned no data (missing metric, or no recent points).
        """
        end = int(self._clock())
        payload = self.query_metrics(query, end - self.window_sec, end)
        return latest_value(payload)
