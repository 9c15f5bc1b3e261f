"""Unit tests for half-open interval arithmetic."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import random
import pytest
from datetime import date, datetime, timedelta
from collision_os.services.intervals import Interval, intersects, overlap, to_date


class TestIntervals:
    def test_back_to_back_do_not_intersect(self):
        a = Interval(date(2024, 9, 16), date(2024, 9, 20))
        b = Interval(date(2024, 9, 20), date(2024, 9, 22))
        assert not intersects(a, b)
        assert not intersects(b, a)

    def test_one_day_overlap(self):
        a = Interval(date(2024, 9, 16), date(2024, 9, 20))
        b = Interval(date(2024, 9, 19), date(2024, 9, 22))
        assert intersects(a, b)

    def test_containment(self):
        outer = Interval(date(2024, 9, 1), date(2024, 9, 30))
        inner = Interval(date(2024, 9, 10), date(2024, 9, 11))
        assert intersects(outer, inner)
        assert intersects(inner, outer)

    def test_overlap_on_raw_values(self):
        assert overlap(1, 5, 4, 8)
        assert not overlap(1, 5, 5, 8)

    def test_symmetry_random(self):
        rng = random.Random(42)
        base = date(2024, 1, 1)
        for _ in range(500):
            s1, s2 = rng.randint(0, 60), rng.randint(0, 60)
            a = Interval(base + timedelta(days=s1), base + timedelta(days=s1 + rng.randint(1, 10)))
            b = Interval(base + timedelta(days=s2), base + timedelta(days=s2 + rng.randint(1, 10)))
            assert intersects(a, b) == intersects(b, a)

    def test_shifted_keeps_length(self):
        a = Interval(date(2024, 9, 16), date(2024, 9, 20))
        shifted = a.shifted_to(date(2024, 10, 1))
        assert shifted.end == date(2024, 10, 5)
        assert shifted.length == a.length

    def test_to_date_accepts_strings_and_datetimes(self):
        assert to_date("2024-09-16") == date(2024, 9, 16)
        assert to_date("2024-09-16T08:30:00") == date(2024, 9, 16)
        assert to_date(datetime(2024, 9, 16, 23, 59)) == date(2024, 9, 16)
        with pytest.raises(ValueError):
            to_date(20240916)

    def test_str_is_half_open(self):
        assert str(Interval.of("2024-09-16", "2024-09-20")) == "[2024-09-16, 2024-09-20)"
