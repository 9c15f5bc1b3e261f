# collision_os/services/availability_resolver.py
"""
Availability Resolver.

Given a candidate pool of loaner units, the existing assignments and a
requested half-open interval, returns the units free for the whole interval,
best candidate first. Performs no writes: the caller owns locking and commit.

Pool entries are read by attribute: id, year, total_miles, vehicle_type, features.
Assignments are read by attribute: unit_id, status, pickup_date, expected_return_date.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from collision_os.services.intervals import Interval
from collision_os.services.status_graph import ReservationStatus, status_value
from collision_os.utils.logger import get_logger

logger = get_logger(__name__)

BLOCKING_STATES = frozenset({ReservationStatus.CONFIRMED.value, ReservationStatus.ACTIVE.value})


@dataclass(frozen=True)
class ScoringWeights:
    base: float = 100.0
    age_penalty_per_year: float = 2.0
    miles_per_point: float = 1000.0
    type_match_bonus: float = 50.0
    feature_match_bonus: float = 5.0

    @classmethod
    def from_settings(cls, settings) -> "ScoringWeights":
        return cls(
            base=settings.SCORE_BASE,
            age_penalty_per_year=settings.AGE_PENALTY_PER_YEAR,
            miles_per_point=settings.MILES_PER_SCORE_POINT,
            type_match_bonus=settings.TYPE_MATCH_BONUS,
            feature_match_bonus=settings.FEATURE_MATCH_BONUS,
        )


DEFAULT_WEIGHTS = ScoringWeights()


@dataclass(frozen=True)
class Preferences:
    vehicle_type: Optional[str] = None
    features: Tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def from_dict(cls, d: Optional[dict]) -> "Preferences":
        if not d:
            return cls()
        features = d.get("features") or ()
        return cls(
            vehicle_type=(d.get("vehicle_type") or None),
            features=tuple(f.strip().lower() for f in features if f and f.strip()),
        )


@dataclass(frozen=True)
class RankedUnit:
    unit: object
    score: float


def unit_features(unit) -> set:
    """Features are stored as a comma-separated string or given as an iterable."""
    raw = getattr(unit, "features", None) or ()
    if isinstance(raw, str):
        raw = raw.split(",")
    return {f.strip().lower() for f in raw if f and f.strip()}


def assignment_interval(assignment) -> Interval:
    return Interval.of(assignment.pickup_date, assignment.expected_return_date)


def blocked_intervals(assignments: Iterable) -> Dict[object, List[Interval]]:
    """Index confirmed/active assignments by the unit they hold."""
    index: Dict[object, List[Interval]] = defaultdict(list)
    for a in assignments:
        if status_value(a.status).lower() not in BLOCKING_STATES:
            continue
        index[a.unit_id].append(assignment_interval(a))
    return index


def conflicts(unit_id, interval: Interval, index: Dict[object, List[Interval]]) -> List[Interval]:
    return [held for held in index.get(unit_id, ()) if held.intersects(interval)]


def is_available(unit, interval: Interval, assignments: Iterable) -> bool:
    return not conflicts(unit.id, interval, blocked_intervals(assignments))


def score_unit(unit, preferences: Preferences, weights: ScoringWeights, reference_year: int) -> float:
    """
    Higher is better. Newer and less-driven units win; an exact type match and
    each requested feature the unit carries add a bonus.
    """
    score = weights.base

    year = getattr(unit, "year", None)
    if year:
        score -= max(0, reference_year - int(year)) * weights.age_penalty_per_year

    if weights.miles_per_point:
        score -= float(getattr(unit, "total_miles", 0) or 0) / weights.miles_per_point

    if preferences.vehicle_type and getattr(unit, "vehicle_type", None) == preferences.vehicle_type:
        score += weights.type_match_bonus

    if preferences.features:
        matched = unit_features(unit) & set(preferences.features)
        score += len(matched) * weights.feature_match_bonus

    return score


def _id_key(unit_id):
    # Mixed int/str identifiers still sort deterministically
    return (0, unit_id, "") if isinstance(unit_id, int) else (1, 0, str(unit_id))


def rank_available(
    pool: Sequence,
    interval: Interval,
    assignments: Iterable = (),
    preferences: Optional[Preferences] = None,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> List[RankedUnit]:
    """Free units with their scores, ordered by score, then lowest usage, then id."""
    preferences = preferences or Preferences()
    index = blocked_intervals(assignments)

    ranked = []
    for unit in pool:
        clash = conflicts(unit.id, interval, index)
        if clash:
            logger.debug(f"unit {unit.id} blocked for {interval} by {', '.join(map(str, clash))}")
            continue
        ranked.append(RankedUnit(unit, score_unit(unit, preferences, weights, interval.start.year)))

    ranked.sort(key=lambda r: (-r.score, float(getattr(r.unit, "total_miles", 0) or 0), _id_key(r.unit.id)))
    return ranked


def find_available(
    pool: Sequence,
    interval: Interval,
    assignments: Iterable = (),
    preferences: Optional[Preferences] = None,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> list:
    """Ranked list of units free for the whole interval. May be empty."""
    return [r.unit for r in rank_available(pool, interval, assignments, preferences, weights)]


def suggest_alternative_dates(
    pool: Sequence,
    interval: Interval,
    assignments: Iterable = (),
    limit: int = 3,
) -> List[Interval]:
    """
    Earliest intervals of the same length at which some pool unit is free.
    Candidate starts are the return dates of the assignments blocking the request.
    """
    index = blocked_intervals(assignments)
    candidates = sorted({
        held.end
        for unit in pool
        for held in conflicts(unit.id, interval, index)
        if held.end > interval.start
    })

    found: List[Interval] = []
    for start in candidates:
        shifted = interval.shifted_to(start)
        if any(not conflicts(unit.id, shifted, index) for unit in pool):
            found.append(shifted)
        if len(found) >= limit:
            break
    return found
