"""
Half-open interval math.

All scheduling decisions reduce to one predicate: two ``[start, end)``
intervals overlap iff ``a.start < b.end and b.start < a.end``. Touching
boundaries (``a.end == b.start``) do not overlap, so back-to-back sessions
on the same resource are legal.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Iterable, List, TypeVar

from gymcore.core.exceptions import ValidationError

T = TypeVar("T")


def as_utc(instant: datetime) -> datetime:
    """Return ``instant`` as an aware UTC datetime (naive values are UTC)."""
    if instant.tzinfo is None:
        return instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(timezone.utc)


@dataclass(frozen=True)
class Interval:
    """Half-open time range ``[start, end)``."""

    start: datetime
    end: datetime

    def __post_init__(self):
        if self.start is None or self.end is None:
            raise ValidationError("Interval start and end are required", "interval")
        start = as_utc(self.start)
        end = as_utc(self.end)
        if end <= start:
            raise ValidationError(
                "Interval end must be strictly after its start",
                "interval",
                {"start": start.isoformat(), "end": end.isoformat()},
            )
        object.__setattr__(self, "start", start)
        object.__setattr__(self, "end", end)

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    def contains(self, instant: datetime) -> bool:
        """True if ``instant`` falls inside ``[start, end)``."""
        instant = as_utc(instant)
        return self.start <= instant < self.end

    def overlaps(self, other: "Interval") -> bool:
        return overlaps(self, other)

    def shifted(self, delta: timedelta) -> "Interval":
        return Interval(self.start + delta, self.end + delta)


def overlaps(a: Interval, b: Interval) -> bool:
    """Half-open overlap test. Adjacent intervals do not overlap."""
    return a.start < b.end and b.start < a.end


def sort_by_start(items: Iterable[T]) -> List[T]:
    """Order objects exposing ``.interval`` by start, then end, then id."""
    return sorted(
        items,
        key=lambda item: (
            item.interval.start,
            item.interval.end,
            getattr(item, "id", None) or 0,
        ),
    )


def interval_from_duration(start: datetime, days: int) -> Interval:
    """Interval of ``days`` whole days beginning at ``start``."""
    if days <= 0:
        raise ValidationError("Duration in days must be positive", "validity_days")
    return Interval(start, start + timedelta(days=days))
