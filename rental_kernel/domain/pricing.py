"""
Rental and sale pricing.

Pure functions; amounts are Decimal and are quantized to two fractional
digits only once, on the final total.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

from rental_kernel.domain.dates import DateRange

CENT = Decimal("0.01")


def quantize_money(amount: Decimal) -> Decimal:
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def billable_days(period: DateRange) -> int:
    """
    Days billed for a rental period.

    The period is inclusive, so a same-day rental bills one day and
    2024-01-01..2024-01-03 bills three.
    """
    return max(period.days, 1)


def rental_total(
    lines: Iterable[tuple[int, Decimal]],
    period: DateRange,
) -> Decimal:
    """
    Total for (quantity, unit_rent_price_per_day) lines over ``period``.

    >>> from datetime import date
    >>> rental_total(
    ...     [(2, Decimal("50")), (1, Decimal("30"))],
    ...     DateRange(date(2024, 1, 1), date(2024, 1, 3)),
    ... )
    Decimal('390.00')
    """
    days = billable_days(period)
    total = sum(
        (Decimal(quantity) * price * days for quantity, price in lines),
        Decimal("0"),
    )
    return quantize_money(total)


def order_total(lines: Iterable[tuple[int, Decimal]]) -> Decimal:
    """Total for (quantity, unit_price) sale lines."""
    total = sum(
        (Decimal(quantity) * price for quantity, price in lines),
        Decimal("0"),
    )
    return quantize_money(total)
