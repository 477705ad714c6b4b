# booking_engine/services/availability/conflict.py
"""
Half-open interval arithmetic.

Every overlap decision in the engine (slot marking, booking re-validation,
closure and break subtraction) goes through `overlaps`.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List


@dataclass(frozen=True, order=True)
class Interval:
    """[start, end) with timezone-aware UTC endpoints"""
    start: datetime
    end: datetime

    @property
    def is_empty(self) -> bool:
        return self.end <= self.start


def overlaps(a: Interval, b: Interval) -> bool:
    """True when the half-open intervals share at least one instant."""
    return a.start < b.end and b.start < a.end


def is_free(candidate: Interval, occupied: Iterable[Interval]) -> bool:
    return not any(overlaps(candidate, other) for other in occupied)


def find_conflicts(candidate: Interval, occupied: Iterable) -> List:
    """
    Occupied entries that overlap the candidate.

    Entries only need `start` and `end` attributes, so occupancy records carrying
    an appointment id can be passed directly.
    """
    return [other for other in occupied if overlaps(candidate, other)]


def subtract(window: Interval, cut: Interval) -> List[Interval]:
    """window minus cut: zero, one or two residual intervals"""
    if not overlaps(window, cut):
        return [window]
    result = []
    if window.start < cut.start:
        result.append(Interval(window.start, cut.start))
    if cut.end < window.end:
        result.append(Interval(cut.end, window.end))
    return result


def subtract_all(windows: Iterable[Interval], cuts: Iterable[Interval]) -> List[Interval]:
    result = sorted(windows)
    for cut in cuts:
        next_result = []
        for window in result:
            next_result.extend(subtract(window, cut))
        result = next_result
    return [w for w in result if not w.is_empty]


def intersect(a: Iterable[Interval], b: Iterable[Interval]) -> List[Interval]:
    """Pairwise intersection of two interval lists, ordered by start."""
    result = []
    b = list(b)
    for x in a:
        for y in b:
            if overlaps(x, y):
                result.append(Interval(max(x.start, y.start), min(x.end, y.end)))
    return sorted(result)
