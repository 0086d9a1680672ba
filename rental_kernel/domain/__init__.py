"""Pure domain logic: time, date ranges, pricing."""

from rental_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from rental_kernel.domain.dates import DateRange, to_calendar_date
from rental_kernel.domain.pricing import (
    billable_days,
    order_total,
    quantize_money,
    rental_total,
)

__all__ = [
    "Clock",
    "DateRange",
    "DeterministicClock",
    "SystemClock",
    "billable_days",
    "order_total",
    "quantize_money",
    "rental_total",
    "to_calendar_date",
]
