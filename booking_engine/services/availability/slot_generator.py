# booking_engine/services/availability/slot_generator.py
"""Candidate slot enumeration over open sub-windows"""
from datetime import timedelta
from typing import Iterable, List

from booking_engine.services.availability.conflict import Interval


def generate_candidates(
        windows: Iterable[Interval],
        duration: int,
        buffer_time: int,
        granularity: int,
        align_last_to_close: bool = True,
) -> List[Interval]:
    """
    Walk each window from its open instant in `granularity` steps and emit
    (start, start + duration) while start + duration + buffer_time <= close.

    With `align_last_to_close`, a final candidate ending its buffer exactly at
    close is added when it starts later than the last grid candidate.
    Windows are handled independently; candidates are never merged.
    """
    if duration <= 0:
        raise ValueError(f"duration must be positive, got {duration}")
    if buffer_time < 0:
        raise ValueError(f"buffer_time must not be negative, got {buffer_time}")
    if granularity <= 0:
        raise ValueError(f"granularity must be positive, got {granularity}")

    service_length = timedelta(minutes=duration)
    occupied_length = timedelta(minutes=duration + buffer_time)
    step = timedelta(minutes=granularity)

    candidates = []
    for window in windows:
        last_start = None
        start = window.start
        while start + occupied_length <= window.end:
            candidates.append(Interval(start, start + service_length))
            last_start = start
            start += step

        if align_last_to_close:
            tail_start = window.end - occupied_length
            if tail_start >= window.start and (last_start is None or tail_start > last_start):
                candidates.append(Interval(tail_start, tail_start + service_length))

    return candidates
