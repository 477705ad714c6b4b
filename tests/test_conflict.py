"""Tests for half-open interval arithmetic."""
from datetime import datetime, timedelta, timezone

from booking_engine.services.availability.conflict import (
    Interval,
    find_conflicts,
    intersect,
    is_free,
    overlaps,
    subtract,
    subtract_all,
)
from booking_engine.services.availability.occupancy import OccupiedInterval

BASE = datetime(2026, 10, 19, 0, 0, tzinfo=timezone.utc)


def span(start_minute, end_minute):
    return Interval(BASE + timedelta(minutes=start_minute), BASE + timedelta(minutes=end_minute))


class TestOverlaps:

    def test_touching_intervals_do_not_overlap(self):
        """[0,10) and [10,20) share no instant."""
        assert not overlaps(span(0, 10), span(10, 20))
        assert not overlaps(span(10, 20), span(0, 10))

    def test_partial_overlap(self):
        assert overlaps(span(0, 10), span(5, 15))

    def test_containment(self):
        assert overlaps(span(0, 60), span(10, 20))
        assert overlaps(span(10, 20), span(0, 60))

    def test_interval_overlaps_itself(self):
        assert overlaps(span(30, 45), span(30, 45))

    def test_symmetric(self):
        pairs = [
            (span(0, 10), span(10, 20)),
            (span(0, 10), span(9, 20)),
            (span(5, 6), span(0, 100)),
            (span(50, 60), span(0, 10)),
        ]
        for a, b in pairs:
            assert overlaps(a, b) == overlaps(b, a)


class TestIsFreeAndFindConflicts:

    def test_free_when_nothing_occupied(self):
        assert is_free(span(0, 30), [])

    def test_free_between_neighbours(self):
        assert is_free(span(30, 60), [span(0, 30), span(60, 90)])

    def test_conflicts_listed_in_input_order(self):
        occupied = [span(0, 20), span(40, 50), span(25, 35)]
        assert find_conflicts(span(10, 45), occupied) == [span(0, 20), span(40, 50), span(25, 35)]

    def test_accepts_occupancy_records(self):
        record = OccupiedInterval(start=BASE, end=BASE + timedelta(minutes=30), appointment_id=None, staff_id=None)
        assert find_conflicts(span(20, 40), [record]) == [record]
        assert not is_free(span(20, 40), [record])


class TestWindowArithmetic:

    def test_subtract_middle_leaves_two_parts(self):
        assert subtract(span(0, 100), span(40, 60)) == [span(0, 40), span(60, 100)]

    def test_subtract_edge_leaves_one_part(self):
        assert subtract(span(0, 100), span(0, 30)) == [span(30, 100)]
        assert subtract(span(0, 100), span(80, 120)) == [span(0, 80)]

    def test_subtract_covering_leaves_nothing(self):
        assert subtract(span(10, 20), span(0, 30)) == []

    def test_subtract_disjoint_keeps_window(self):
        assert subtract(span(0, 10), span(10, 20)) == [span(0, 10)]

    def test_subtract_all_applies_every_cut(self):
        result = subtract_all([span(0, 480)], [span(180, 240), span(300, 310)])
        assert result == [span(0, 180), span(240, 300), span(310, 480)]

    def test_intersect(self):
        assert intersect([span(0, 480)], [span(60, 120), span(400, 600)]) == [span(60, 120), span(400, 480)]
        assert intersect([span(0, 60)], [span(60, 120)]) == []
