"""
Module: rental_kernel.selectors.availability_selector
Responsibility: How many units of a variant are free over a date window.

Invariants enforced:
    - total counts the variant's units whose status is `available` at query
      time.  It does not tell "never allocated" from "free for this window";
      a unit that is `rented` for a different window is excluded from total.
    - committed counts DISTINCT units with an unreleased assignment on a
      `confirmed`/`active` rental whose range intersects the window
      (closed-interval test: start <= window.end AND end >= window.start).
    - available = total - committed, unclamped.

Failure modes:
    - VariantNotFoundError for an unknown variant.
    - ValidationError when end_date precedes start_date.

The result is a point-in-time read: it reserves nothing and may be stale as
soon as it is returned.  Callers that need a guarantee must re-check inside
the writing transaction (see RentalService.create_rental enforce_capacity).

compute_booking_capacity is the stricter view used for that re-check.  It
measures booked quantity rather than assigned units, so bookings that have
no units yet still count:
    - total counts the variant's units that are `available` or `rented`.
    - committed sums RentalItem.quantity over `pending`/`confirmed`/`active`
      rentals whose range intersects the window.
"""

from datetime import date, datetime
from uuid import UUID

from sqlalchemy import func, select

from rental_kernel.domain.dates import DateRange
from rental_kernel.domain.dtos import Availability
from rental_kernel.exceptions import VariantNotFoundError
from rental_kernel.logging_config import get_logger
from rental_kernel.models.catalog import ProductVariant
from rental_kernel.models.inventory import InventoryStatus, InventoryUnit
from rental_kernel.models.rental import (
    BOOKING_STATUSES,
    COMMITTING_STATUSES,
    Rental,
    RentalItem,
    RentalUnitAssignment,
)
from rental_kernel.selectors.base import BaseSelector

logger = get_logger("selectors.availability")


class AvailabilitySelector(BaseSelector):
    """Read-only availability queries for rental inventory."""

    def compute_availability(
        self,
        variant_id: UUID,
        start_date: date | datetime | str,
        end_date: date | datetime | str,
    ) -> Availability:
        """
        Compute total / committed / available units for a variant and window.

        Args:
            variant_id: Product variant to check.
            start_date: First day of the window (time of day ignored).
            end_date: Last day of the window, inclusive.

        Returns:
            Availability DTO.

        Raises:
            VariantNotFoundError: If the variant does not exist.
            ValidationError: If end_date is before start_date.
        """
        window = DateRange.of(start_date, end_date)

        if self.session.get(ProductVariant, variant_id) is None:
            raise VariantNotFoundError(str(variant_id))

        total = self._count_available_units(variant_id)
        committed = self._count_committed_units(variant_id, window)

        result = Availability(
            variant_id=variant_id,
            start_date=window.start,
            end_date=window.end,
            total=total,
            committed=committed,
            available=total - committed,
        )
        logger.debug(
            "availability_computed",
            extra={
                "variant_id": str(variant_id),
                "start_date": window.start,
                "end_date": window.end,
                "total": total,
                "committed": committed,
            },
        )
        return result

    def _count_available_units(self, variant_id: UUID) -> int:
        stmt = select(func.count(InventoryUnit.id)).where(
            InventoryUnit.variant_id == variant_id,
            InventoryUnit.status == InventoryStatus.AVAILABLE.value,
        )
        return self.session.execute(stmt).scalar_one()

    def _count_committed_units(self, variant_id: UUID, window: DateRange) -> int:
        stmt = (
            select(func.count(func.distinct(RentalUnitAssignment.inventory_unit_id)))
            .join(InventoryUnit, InventoryUnit.id == RentalUnitAssignment.inventory_unit_id)
            .join(Rental, Rental.id == RentalUnitAssignment.rental_id)
            .where(
                InventoryUnit.variant_id == variant_id,
                Rental.status.in_([s.value for s in COMMITTING_STATUSES]),
                Rental.start_date <= window.end,
                Rental.end_date >= window.start,
                RentalUnitAssignment.released_at.is_(None),
            )
        )
        return self.session.execute(stmt).scalar_one()

    def compute_booking_capacity(
        self,
        variant_id: UUID,
        start_date: date | datetime | str,
        end_date: date | datetime | str,
    ) -> Availability:
        """
        Units of a variant not yet spoken for by overlapping bookings.

        Units under maintenance, damaged or retired are outside the pool;
        rented units are inside it because the booking holding them is
        among the ones subtracted.

        Raises:
            VariantNotFoundError: If the variant does not exist.
            ValidationError: If end_date is before start_date.
        """
        window = DateRange.of(start_date, end_date)

        if self.session.get(ProductVariant, variant_id) is None:
            raise VariantNotFoundError(str(variant_id))

        pool = self.session.execute(
            select(func.count(InventoryUnit.id)).where(
                InventoryUnit.variant_id == variant_id,
                InventoryUnit.status.in_(
                    [InventoryStatus.AVAILABLE.value, InventoryStatus.RENTED.value]
                ),
            )
        ).scalar_one()

        booked = self.session.execute(
            select(func.coalesce(func.sum(RentalItem.quantity), 0))
            .join(Rental, Rental.id == RentalItem.rental_id)
            .where(
                RentalItem.variant_id == variant_id,
                Rental.status.in_([s.value for s in BOOKING_STATUSES]),
                Rental.start_date <= window.end,
                Rental.end_date >= window.start,
            )
        ).scalar_one()

        return Availability(
            variant_id=variant_id,
            start_date=window.start,
            end_date=window.end,
            total=pool,
            committed=int(booked),
            available=pool - int(booked),
        )
