"""Unit tests for the availability resolver (conflicts, ranking, alternatives)."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import random
from datetime import date, timedelta
from collision_os.services.availability_resolver import (
    Preferences,
    ScoringWeights,
    blocked_intervals,
    find_available,
    is_available,
    rank_available,
    score_unit,
    suggest_alternative_dates,
)
from collision_os.services.intervals import Interval
from conftest import make_assignment, make_unit

REQUEST = Interval(date(2024, 9, 16), date(2024, 9, 20))


class TestRanking:
    def test_newer_lower_mileage_sedan_ranks_first(self):
        new = make_unit(1, year=2023, total_miles=5000)
        old = make_unit(2, year=2021, total_miles=40000)
        ranked = rank_available([old, new], REQUEST)
        assert [r.unit.id for r in ranked] == [1, 2]
        assert ranked[0].score == 93.0
        assert ranked[1].score == 54.0

    def test_type_match_bonus(self):
        sedan = make_unit(1, vehicle_type="sedan")
        suv = make_unit(2, vehicle_type="suv")
        result = find_available([sedan, suv], REQUEST, preferences=Preferences(vehicle_type="suv"))
        assert result[0] is suv

    def test_feature_match_bonus(self):
        plain = make_unit(1, features="")
        loaded = make_unit(2, features="bluetooth, AWD")
        prefs = Preferences.from_dict({"features": ["awd", "bluetooth"]})
        assert score_unit(loaded, prefs, ScoringWeights(), 2024) == score_unit(plain, prefs, ScoringWeights(), 2024) + 10
        assert find_available([plain, loaded], REQUEST, preferences=prefs)[0] is loaded

    def test_tie_broken_by_usage_then_id(self):
        # Same score: 2 extra model years offset by 4k fewer miles
        a = make_unit(7, year=2024, total_miles=4000)
        b = make_unit(3, year=2022, total_miles=0)
        c = make_unit(5, year=2022, total_miles=0)
        assert [u.id for u in find_available([a, b, c], REQUEST)] == [3, 5, 7]

    def test_empty_pool(self):
        assert find_available([], REQUEST) == []


class TestConflicts:
    def test_overlapping_confirmed_assignment_excludes_unit(self):
        unit = make_unit(1)
        held = make_assignment(1, date(2024, 9, 18), date(2024, 9, 25))
        assert find_available([unit], REQUEST, [held]) == []

    def test_back_to_back_is_free(self):
        unit = make_unit(1)
        held = make_assignment(1, date(2024, 9, 10), date(2024, 9, 16), status="active")
        assert find_available([unit], REQUEST, [held]) == [unit]

    def test_completed_and_cancelled_do_not_block(self):
        unit = make_unit(1)
        done = make_assignment(1, date(2024, 9, 15), date(2024, 9, 21), status="completed")
        dropped = make_assignment(1, date(2024, 9, 15), date(2024, 9, 21), status="cancelled")
        assert is_available(unit, REQUEST, [done, dropped])

    def test_assignments_for_other_units_ignored(self):
        unit = make_unit(1)
        other = make_assignment(2, date(2024, 9, 15), date(2024, 9, 21))
        assert is_available(unit, REQUEST, [other])

    def test_blocked_intervals_index(self):
        index = blocked_intervals([
            make_assignment(1, date(2024, 9, 1), date(2024, 9, 3)),
            make_assignment(1, date(2024, 9, 5), date(2024, 9, 7), status="completed"),
        ])
        assert list(index) == [1]
        assert len(index[1]) == 1

    def test_never_returns_double_booked_unit(self):
        rng = random.Random(7)
        base = date(2024, 1, 1)
        pool = [make_unit(i, year=rng.randint(2015, 2024), total_miles=rng.randint(0, 90000)) for i in range(1, 9)]
        for _ in range(200):
            assignments = []
            for _ in range(rng.randint(0, 15)):
                start = base + timedelta(days=rng.randint(0, 40))
                assignments.append(make_assignment(
                    rng.randint(1, 8), start, start + timedelta(days=rng.randint(1, 7)),
                    status=rng.choice(["confirmed", "active", "completed", "cancelled"]),
                ))
            start = base + timedelta(days=rng.randint(0, 40))
            request = Interval(start, start + timedelta(days=rng.randint(1, 7)))

            for unit in find_available(pool, request, assignments):
                for a in assignments:
                    if a.unit_id == unit.id and a.status in ("confirmed", "active"):
                        assert not Interval(a.pickup_date, a.expected_return_date).intersects(request)


class TestAlternativeDates:
    def test_suggests_window_starting_at_earliest_return(self):
        pool = [make_unit(1), make_unit(2)]
        assignments = [
            make_assignment(1, date(2024, 9, 14), date(2024, 9, 22)),
            make_assignment(2, date(2024, 9, 15), date(2024, 9, 25)),
        ]
        suggestions = suggest_alternative_dates(pool, REQUEST, assignments)
        assert suggestions[0] == Interval(date(2024, 9, 22), date(2024, 9, 26))
        assert Interval(date(2024, 9, 25), date(2024, 9, 29)) in suggestions

    def test_skips_return_dates_that_are_still_blocked(self):
        pool = [make_unit(1)]
        assignments = [
            make_assignment(1, date(2024, 9, 14), date(2024, 9, 18)),
            make_assignment(1, date(2024, 9, 19), date(2024, 9, 30)),
        ]
        suggestions = suggest_alternative_dates(pool, REQUEST, assignments)
        assert suggestions == [Interval(date(2024, 9, 30), date(2024, 10, 4))]

    def test_limit(self):
        pool = [make_unit(i) for i in range(1, 6)]
        assignments = [make_assignment(i, date(2024, 9, 15), date(2024, 9, 20 + i)) for i in range(1, 6)]
        assert len(suggest_alternative_dates(pool, REQUEST, assignments, limit=3)) == 3
