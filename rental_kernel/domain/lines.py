"""
Booking and order line inputs.

Callers may pass plain mappings (decoded JSON request bodies) or the line
dataclasses below; either way each line is validated before anything is
written.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Mapping
from uuid import UUID

from rental_kernel.domain.pricing import quantize_money
from rental_kernel.exceptions import ValidationError


def _as_uuid(value: Any, field: str) -> UUID:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid {field}: {value!r}", field=field) from None


def _as_quantity(value: Any) -> int:
    # bool is an int subclass; True is not a quantity
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"quantity must be an integer, got {value!r}", field="quantity")
    if value <= 0:
        raise ValidationError(f"quantity must be positive, got {value}", field="quantity")
    return value


def as_positive_amount(value: Any, field: str) -> Decimal:
    """
    Parse a monetary amount that must be strictly positive.

    The amount is rounded to cents (ROUND_HALF_UP) here, so the value that
    is priced is the value that is stored.
    """
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number, got {value!r}", field=field)
    try:
        # str() first so floats like 0.1 keep their printed value
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(f"{field} must be a number, got {value!r}", field=field) from None
    if not amount.is_finite():
        raise ValidationError(f"{field} must be positive, got {value}", field=field)
    try:
        amount = quantize_money(amount)
    except InvalidOperation:
        raise ValidationError(f"{field} is out of range: {value}", field=field) from None
    if amount <= 0:
        raise ValidationError(f"{field} must be positive, got {value}", field=field)
    return amount


@dataclass(frozen=True)
class RentalLine:
    """One requested variant on a booking, priced per unit per day."""

    variant_id: UUID
    quantity: int
    unit_rent_price: Decimal

    @classmethod
    def parse(cls, raw: RentalLine | Mapping[str, Any]) -> RentalLine:
        if isinstance(raw, RentalLine):
            return cls(
                _as_uuid(raw.variant_id, "variant_id"),
                _as_quantity(raw.quantity),
                as_positive_amount(raw.unit_rent_price, "unit_rent_price"),
            )
        if not isinstance(raw, Mapping):
            raise ValidationError(f"Invalid rental item: {raw!r}", field="items")
        price = raw.get("unit_rent_price", raw.get("unit_rent_price_per_day"))
        return cls(
            _as_uuid(raw.get("variant_id"), "variant_id"),
            _as_quantity(raw.get("quantity")),
            as_positive_amount(price, "unit_rent_price"),
        )


@dataclass(frozen=True)
class OrderLine:
    """One purchased variant on a sales order."""

    variant_id: UUID
    quantity: int
    unit_price: Decimal

    @classmethod
    def parse(cls, raw: OrderLine | Mapping[str, Any]) -> OrderLine:
        if isinstance(raw, OrderLine):
            return cls(
                _as_uuid(raw.variant_id, "variant_id"),
                _as_quantity(raw.quantity),
                as_positive_amount(raw.unit_price, "unit_price"),
            )
        if not isinstance(raw, Mapping):
            raise ValidationError(f"Invalid order item: {raw!r}", field="items")
        return cls(
            _as_uuid(raw.get("variant_id"), "variant_id"),
            _as_quantity(raw.get("quantity")),
            as_positive_amount(raw.get("unit_price"), "unit_price"),
        )


def parse_rental_lines(items: Iterable[Any] | None) -> list[RentalLine]:
    """
    Raises:
        ValidationError: If ``items`` is empty or any line is malformed.
    """
    lines = [RentalLine.parse(raw) for raw in (items or [])]
    if not lines:
        raise ValidationError("A rental needs at least one item", field="items")
    return lines


def parse_order_lines(items: Iterable[Any] | None) -> list[OrderLine]:
    """
    Raises:
        ValidationError: If ``items`` is empty or any line is malformed.
    """
    lines = [OrderLine.parse(raw) for raw in (items or [])]
    if not lines:
        raise ValidationError("An order needs at least one item", field="items")
    return lines
