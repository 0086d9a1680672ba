"""
Immutable data transfer objects returned by selectors and services.

Pure domain objects, no ORM dependencies: callers never receive live ORM
entities, so nothing they do can write through to the store.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from rental_kernel.exceptions import CapacityError


@dataclass(frozen=True)
class Availability:
    """
    Free units of a variant over a date window.

    ``available`` is ``total - committed`` and may be negative when the
    variant is over-committed; it is deliberately not clamped.
    """

    variant_id: UUID
    start_date: date
    end_date: date
    total: int
    committed: int
    available: int

    def has_capacity(self, quantity: int) -> bool:
        """Negative availability counts as zero."""
        return max(self.available, 0) >= quantity

    def require(self, quantity: int) -> None:
        """
        Raises:
            CapacityError: If fewer than ``quantity`` units are free.
        """
        if not self.has_capacity(quantity):
            raise CapacityError(str(self.variant_id), quantity, self.available)


@dataclass(frozen=True)
class ProductInfo:
    id: UUID
    sku: str
    title: str
    description: str | None
    category: str | None
    base_price: Decimal
    image_url: str | None
    variant_ids: tuple[UUID, ...] = ()


@dataclass(frozen=True)
class ProductPage:
    """One page of a catalog listing, with the unpaged match count."""

    products: tuple[ProductInfo, ...]
    page: int
    limit: int
    total: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit)


@dataclass(frozen=True)
class VariantInfo:
    id: UUID
    product_id: UUID
    name: str
    price: Decimal
    rent_price_per_day: Decimal | None
    pixel_pitch: Decimal | None
    width_cm: Decimal | None
    height_cm: Decimal | None
    weight_kg: Decimal | None


@dataclass(frozen=True)
class InventoryUnitInfo:
    id: UUID
    variant_id: UUID
    serial_number: str
    status: str
    inventory_type: str
    location: str | None
    product_id: UUID | None = None
    sku: str | None = None
    product_title: str | None = None


@dataclass(frozen=True)
class RentalItemInfo:
    id: UUID
    variant_id: UUID
    quantity: int
    unit_rent_price: Decimal


@dataclass(frozen=True)
class AssignmentInfo:
    id: UUID
    rental_id: UUID
    inventory_unit_id: UUID
    released_at: datetime | None
    returned_at: datetime | None

    @property
    def is_outstanding(self) -> bool:
        return self.released_at is None


@dataclass(frozen=True)
class RentalInfo:
    id: UUID
    user_id: UUID
    start_date: date
    end_date: date
    status: str
    total_amount: Decimal
    delivery_address: str | None
    items: tuple[RentalItemInfo, ...] = ()
    assignments: tuple[AssignmentInfo, ...] = ()

    @property
    def rental_id(self) -> UUID:
        return self.id


@dataclass(frozen=True)
class RentalTransition:
    """
    Outcome of a rental status change.

    ``released_unit_ids`` is empty when the change did not hand units back,
    including a repeated `returned`/`cancelled`.
    """

    rental: RentalInfo
    previous_status: str
    new_status: str
    released_unit_ids: tuple[UUID, ...] = field(default_factory=tuple)

    @property
    def rental_id(self) -> UUID:
        return self.rental.id

    @property
    def status(self) -> str:
        return self.new_status

    @property
    def changed(self) -> bool:
        return self.previous_status != self.new_status


@dataclass(frozen=True)
class OrderItemInfo:
    id: UUID
    variant_id: UUID
    quantity: int
    unit_price: Decimal


@dataclass(frozen=True)
class OrderInfo:
    id: UUID
    user_id: UUID
    status: str
    total_amount: Decimal
    shipping_address: str | None
    billing_address: str | None
    items: tuple[OrderItemInfo, ...] = ()
