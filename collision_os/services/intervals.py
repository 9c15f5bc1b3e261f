# collision_os/services/intervals.py
"""Half-open date intervals [start, end) used for reservation conflict arithmetic."""

from dataclasses import dataclass
from datetime import date, datetime, timedelta


def to_date(value) -> date:
    """Coerce any date-like value to a naive date (supports 'YYYY-MM-DD' or ISO with T)."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return date.fromisoformat(value.split("T", 1)[0].strip())
    raise ValueError(f"Unsupported date: {value!r}")


def overlap(a_start, a_end, b_start, b_end) -> bool:
    """
    Check overlap between [a_start, a_end) and [b_start, b_end).
    End is exclusive: a loaner returned on the 20th is free for a pickup on the 20th.
    """
    return a_start < b_end and b_start < a_end


@dataclass(frozen=True)
class Interval:
    start: date
    end: date

    @classmethod
    def of(cls, start, end) -> "Interval":
        return cls(to_date(start), to_date(end))

    def intersects(self, other: "Interval") -> bool:
        return overlap(self.start, self.end, other.start, other.end)

    def shifted_to(self, new_start: date) -> "Interval":
        """Same length, starting at new_start."""
        return Interval(new_start, new_start + (self.end - self.start))

    @property
    def length(self) -> timedelta:
        return self.end - self.start

    def __str__(self):
        return f"[{self.start.isoformat()}, {self.end.isoformat()})"


def intersects(a: Interval, b: Interval) -> bool:
    return a.intersects(b)
