"""
Calendar date ranges for rental bookings.

Rental periods have day granularity and are closed intervals: a booking for
2024-06-01..2024-06-10 holds its units on both the first and the last day.
Any time-of-day on an input is discarded.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime

from rental_kernel.exceptions import ValidationError


def to_calendar_date(value: date | datetime | str, field: str = "date") -> date:
    """
    Normalize a date, datetime or ISO-8601 string to a calendar date.

    Raises:
        ValidationError: If the value cannot be read as a date.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value).date()
        except ValueError:
            raise ValidationError(f"Invalid {field}: {value!r}", field=field) from None
    raise ValidationError(f"Invalid {field}: {value!r}", field=field)


@dataclass(frozen=True)
class DateRange:
    """Closed calendar interval [start, end]."""

    start: date
    end: date

    def __post_init__(self) -> None:
        if self.end < self.start:
            raise ValidationError(
                f"end_date {self.end} is before start_date {self.start}",
                field="end_date",
            )

    @classmethod
    def of(
        cls,
        start: date | datetime | str,
        end: date | datetime | str,
    ) -> DateRange:
        """Build a range from loosely typed inputs, truncating to dates."""
        return cls(
            to_calendar_date(start, "start_date"),
            to_calendar_date(end, "end_date"),
        )

    @property
    def days(self) -> int:
        """Number of calendar days covered, counting both ends."""
        return (self.end - self.start).days + 1

    def overlaps(self, other: DateRange) -> bool:
        """[a,b] and [c,d] intersect iff a <= d and c <= b."""
        return self.start <= other.end and other.start <= self.end
