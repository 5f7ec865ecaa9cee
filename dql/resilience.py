"""
Resilience for backend calls: retry with exponential backoff, and a circuit breaker so a
run against an unreachable API fails fast instead of waiting out every timeout.
"""
import time
from typing import Any, Callable, Optional


class CircuitOpenError(RuntimeError):
    pass


class CircuitBreaker:
    """
    Open circuit after failure_threshold failures within window_sec; stay open for open_sec.
    """
    def __init__(self, failure_threshold: int = 5, window_sec: float = 60.0, open_sec: float = 30.0,
                 clock: Callable[[], float] = time.monotonic):
        self.failure_threshold = failure_threshold
        self.window_sec = window_sec
        self.open_sec = open_sec
        self._clock = clock
        self._failures: list[float] = []
        self._opened_at: Optional[float] = None

    def record_success(self) -> None:
        now = self._clock()
        self._failures = [t for t in self._failures if now - t < self.window_sec]

    def record_failure(self) -> None:
        now = self._clock()
        self._failures.append(now)
        self._failures = [t for t in self._failures if now - t < self.window_sec]
        if len(self._failures) >= self.failure_threshold:
            self._opened_at = now

    def is_open(self) -> bool:
        if self._opened_at is None:
            return False
        if self._clock() - self._opened_at >= self.open_sec:
            self._opened_at = None
            self._failures = []
            return False
        return True

    def call(self, fn: Callable[[], Any], is_failure: Callable[[Exception], bool] = lambda exc: True) -> Any:
        """Run fn; exceptions for which is_failure() is true count toward opening the circuit."""
        if self.is_open():
            raise CircuitOpenError("circuit breaker is open")
        try:
            out = fn()
        except Exception as exc:
            if is_failure(exc):
                self.record_failure()
            raise
        self.record_success()
        return out


def retry_call(
    fn: Callable[[], Any],
    retries: int = 2,
    backoff_sec: float = 0.5,
    retry_on: Callable[[Exception], bool] = lambda exc: True,
    sleep: Callable[[float], None] = time.sleep,
) -> Any:
    """Call fn, retrying up to `retries` more times on errors accepted by retry_on."""
    attempt = 0
    while True:
        try:
            return fn()
        except Exception as exc:
            if attempt >= retries or not retry_on(exc):
                raise
            sleep(backoff_sec * (2 ** attempt))
            attempt += 1
