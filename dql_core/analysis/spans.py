"""
Covered regions of a query as a sorted list of merged half-open intervals.
"""
from bisect import bisect_right


class SpanSet:
    def __init__(self):
        self._starts: list[int] = []
        self._ends: list[int] = []

    def __len__(self):
        return len(self._starts)

    def spans(self) -> list[tuple[int, int]]:
        return list(zip(self._starts, self._ends))

    def add(self, start: int, end: int) -> None:
        """Cover [start, end), merging with any touching or overlapping interval."""
        if end <= start:
            return
        lo = bisect_right(self._ends, start - 1)
        # first interval whose end >= start (touching counts)
        hi = bisect_right(self._starts, end)
        if lo < hi:
            start = min(start, self._starts[lo])
            end = max(end, self._ends[hi - 1])
        self._starts[lo:hi] = [start]
        self._ends[lo:hi] = [end]

    def covers(self, pos: int) -> bool:
        i = bisect_right(self._starts, pos) - 1
        return i >= 0 and pos < self._ends[i]

    def overlaps(self, start: int, end: int) -> bool:
        """True if any offset in [start, end) is covered."""
        if end <= start:
            return False
        i = bisect_right(self._starts, end - 1) - 1
        return i >= 0 and self._ends[i] > start
