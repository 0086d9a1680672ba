"""
RentalService -- booking, fulfilment and status changes for rentals.

Responsibility:
    Writes rentals and keeps inventory unit status consistent with them:

    - ``create_rental`` books variants for a date range and fixes the total.
    - ``assign_units`` hands specific serialized units to a confirmed/active
      rental, marking them `rented`.
    - ``transition_rental`` changes status and, on the way into
      `returned`/`cancelled`, hands the assigned units back to the pool.

Architecture position:
    Kernel > Services.  Flushes within the caller's transaction (see
    BaseService); RentalOrchestrator wraps each public method in its own
    transaction scope.

Invariants enforced:
    - assign_units and the release path of transition_rental are the only
      writers of the unit/assignment pairing.  A unit is assigned only when
      it is `available` and has no open assignment on any rental.
    - Release closes what it frees: every released assignment is stamped
      with released_at, on cancellation as well as on return.  A rental that
      is cancelled, reopened and returned therefore cannot free a unit that
      another rental has taken since.
    - Release runs only when the previous status was not already
      `returned`/`cancelled`.  The rental row is locked
      (SELECT ... FOR UPDATE) before its status is read, so two concurrent
      transitions of the same rental serialize and cannot both release.
    - Status values form a closed set of six; any member may follow any
      other.  No transition graph is imposed.
    - total_amount is computed once, from the booked lines, at creation.

Failure modes:
    - ValidationError for empty/malformed items or end before start.
    - VariantNotFoundError for a booked variant missing from the catalog.
    - InvalidStatusError for a status outside the six-member set.
    - RentalNotFoundError for an unknown rental.
    - CapacityError when booking with enforce_capacity and the window is full.
    - InventoryUnitNotFoundError / UnitUnavailableError on assignment.
"""

from __future__ import annotations

from collections import Counter, defaultdict
from datetime import date, datetime
from typing import Any, Iterable
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from rental_kernel.domain.clock import Clock, SystemClock
from rental_kernel.domain.dates import DateRange
from rental_kernel.domain.dtos import AssignmentInfo, RentalInfo, RentalTransition
from rental_kernel.domain.lines import RentalLine, parse_rental_lines
from rental_kernel.domain.pricing import billable_days, rental_total
from rental_kernel.domain.statuses import parse_status
from rental_kernel.exceptions import (
    InventoryUnitNotFoundError,
    RentalNotFoundError,
    UnitUnavailableError,
    ValidationError,
    VariantNotFoundError,
)
from rental_kernel.logging_config import LogContext, get_logger
from rental_kernel.models.catalog import ProductVariant
from rental_kernel.models.inventory import InventoryStatus, InventoryUnit
from rental_kernel.models.rental import (
    COMMITTING_STATUSES,
    RELEASING_STATUSES,
    Rental,
    RentalItem,
    RentalStatus,
    RentalUnitAssignment,
)
from rental_kernel.selectors.availability_selector import AvailabilitySelector
from rental_kernel.selectors.rental_selector import assignment_to_dto, rental_to_dto
from rental_kernel.services.base import BaseService

logger = get_logger("services.rental")


class RentalService(BaseService):
    """
    Write operations on rentals.

    All public methods return DTOs, never ORM entities.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()

    # ------------------------------------------------------------------
    # Booking
    # ------------------------------------------------------------------

    def create_rental(
        self,
        user_id: UUID,
        start_date: date | datetime | str,
        end_date: date | datetime | str,
        items: Iterable[RentalLine | dict[str, Any]],
        delivery_address: str | None = None,
        enforce_capacity: bool = False,
    ) -> RentalInfo:
        """
        Book variants for an inclusive date range.

        Everything is validated before the first write.  The header is
        written first, then each item, then the computed total; the caller's
        transaction makes the three steps one unit.

        By default availability is NOT consulted: booking and fulfilment are
        decoupled and a variant can be overbooked.  With
        ``enforce_capacity=True`` the variants' unit rows are locked and each
        variant's requested quantity is checked against the units not already
        booked by overlapping pending, confirmed or active rentals, before
        anything is written.

        Args:
            user_id: Owning user.
            start_date: First rental day.
            end_date: Last rental day (inclusive).
            items: Lines of {variant_id, quantity, unit_rent_price}.
            delivery_address: Optional delivery address.
            enforce_capacity: Reject the booking when a variant is full.

        Returns:
            RentalInfo for the new `pending` rental.

        Raises:
            ValidationError: Malformed items or end_date before start_date.
            VariantNotFoundError: A line references an unknown variant.
            CapacityError: enforce_capacity and a variant lacks free units.
        """
        period = DateRange.of(start_date, end_date)
        lines = parse_rental_lines(items)
        self._require_variants(line.variant_id for line in lines)

        if enforce_capacity:
            self._check_capacity(lines, period)

        rental = Rental(
            user_id=user_id,
            start_date=period.start,
            end_date=period.end,
            status=RentalStatus.PENDING.value,
            delivery_address=delivery_address,
        )
        self.session.add(rental)
        self.session.flush()

        for line_no, line in enumerate(lines, start=1):
            self._add_item(rental, line_no, line)

        rental.total_amount = rental_total(
            ((line.quantity, line.unit_rent_price) for line in lines),
            period,
        )
        self.session.flush()

        with LogContext.bind(rental_id=str(rental.id)):
            logger.info(
                "rental_created",
                extra={
                    "user_id": str(user_id),
                    "start_date": period.start,
                    "end_date": period.end,
                    "days": billable_days(period),
                    "item_count": len(lines),
                    "total_amount": rental.total_amount,
                    "enforce_capacity": enforce_capacity,
                },
            )
        return rental_to_dto(rental)

    def _add_item(self, rental: Rental, line_no: int, line: RentalLine) -> RentalItem:
        item = RentalItem(
            variant_id=line.variant_id,
            line_no=line_no,
            quantity=line.quantity,
            unit_rent_price=line.unit_rent_price,
        )
        rental.items.append(item)
        self.session.flush()
        return item

    def _require_variants(self, variant_ids: Iterable[UUID]) -> None:
        wanted = set(variant_ids)
        found = set(
            self.session.execute(
                select(ProductVariant.id).where(ProductVariant.id.in_(wanted))
            ).scalars()
        )
        missing = wanted - found
        if missing:
            raise VariantNotFoundError(str(sorted(missing, key=str)[0]))

    def _check_capacity(self, lines: list[RentalLine], period: DateRange) -> None:
        requested: Counter[UUID] = Counter()
        for line in lines:
            requested[line.variant_id] += line.quantity

        # Lock the variants' units so a concurrent capacity-checked booking
        # for the same variants waits until this transaction ends.
        self.session.execute(
            select(InventoryUnit.id)
            .where(InventoryUnit.variant_id.in_(list(requested)))
            .with_for_update()
        ).all()

        selector = AvailabilitySelector(self.session)
        for variant_id, quantity in requested.items():
            availability = selector.compute_booking_capacity(variant_id, period.start, period.end)
            if not availability.has_capacity(quantity):
                logger.warning(
                    "rental_capacity_rejected",
                    extra={
                        "variant_id": str(variant_id),
                        "requested": quantity,
                        "available": availability.available,
                    },
                )
            availability.require(quantity)

    # ------------------------------------------------------------------
    # Status transitions
    # ------------------------------------------------------------------

    def transition_rental(self, rental_id: UUID, new_status: str | RentalStatus) -> RentalTransition:
        """
        Set a rental's status, releasing its units when it ends.

        The status is written unconditionally, including when it equals the
        current one.  When the new status is `returned` or `cancelled` and
        the previous one was neither, every unit with an open assignment
        goes back to `available` and the assignment is closed with
        ``released_at``; for `returned` it is also stamped ``returned_at``.

        Args:
            rental_id: Rental to change.
            new_status: One of pending, confirmed, active, completed,
                cancelled, returned.

        Returns:
            RentalTransition with the updated rental and released unit ids.

        Raises:
            InvalidStatusError: If new_status is outside the closed set.
            RentalNotFoundError: If the rental doesn't exist.
        """
        target = parse_status(RentalStatus, new_status, "rental")
        rental = self._lock_rental(rental_id)
        previous = RentalStatus(rental.status)

        rental.status = target.value

        released: tuple[UUID, ...] = ()
        if target in RELEASING_STATUSES and previous not in RELEASING_STATUSES:
            released = self._release_units(
                rental,
                stamp_returned=target == RentalStatus.RETURNED,
            )

        self.session.flush()

        with LogContext.bind(rental_id=str(rental.id)):
            logger.info(
                "rental_status_changed",
                extra={
                    "from_status": previous.value,
                    "to_status": target.value,
                    "released_units": len(released),
                },
            )

        return RentalTransition(
            rental=rental_to_dto(rental),
            previous_status=previous.value,
            new_status=target.value,
            released_unit_ids=released,
        )

    def _lock_rental(self, rental_id: UUID) -> Rental:
        stmt = (
            select(Rental)
            .where(Rental.id == rental_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        rental = self.session.execute(stmt).scalar_one_or_none()
        if rental is None:
            raise RentalNotFoundError(str(rental_id))
        return rental

    def _release_units(self, rental: Rental, stamp_returned: bool) -> tuple[UUID, ...]:
        outstanding = [a for a in rental.assignments if a.is_outstanding]
        if not outstanding:
            return ()

        unit_ids = [a.inventory_unit_id for a in outstanding]
        units = self.session.execute(
            select(InventoryUnit)
            .where(InventoryUnit.id.in_(unit_ids))
            .with_for_update()
        ).scalars().all()
        for unit in units:
            unit.status = InventoryStatus.AVAILABLE.value

        now = self._clock.now()
        for assignment in outstanding:
            assignment.released_at = now
            if stamp_returned:
                assignment.returned_at = now

        logger.info(
            "inventory_released",
            extra={
                "rental_id": str(rental.id),
                "unit_count": len(units),
                "stamped_returned": stamp_returned,
            },
        )
        return tuple(unit_ids)

    # ------------------------------------------------------------------
    # Fulfilment
    # ------------------------------------------------------------------

    def assign_units(self, rental_id: UUID, unit_ids: Iterable[UUID]) -> tuple[AssignmentInfo, ...]:
        """
        Hand specific inventory units to a confirmed or active rental.

        Each unit must be `available`, free of open assignments and of a
        variant booked on the rental.  No variant may receive more units
        than were booked.  The units become `rented`.

        Raises:
            RentalNotFoundError: If the rental doesn't exist.
            ValidationError: Rental not confirmed/active, duplicate unit ids,
                a unit of an unbooked variant, or more units than booked.
            InventoryUnitNotFoundError: If a unit doesn't exist.
            UnitUnavailableError: If a unit is not `available` or is still
                held by another rental.
        """
        wanted = list(unit_ids)
        if not wanted:
            raise ValidationError("No inventory units to assign", field="unit_ids")
        if len(set(wanted)) != len(wanted):
            raise ValidationError("Duplicate inventory unit ids", field="unit_ids")

        rental = self._lock_rental(rental_id)
        if RentalStatus(rental.status) not in COMMITTING_STATUSES:
            raise ValidationError(
                f"Units can only be assigned to confirmed or active rentals; "
                f"rental {rental.id} is {rental.status}",
                field="status",
            )

        units = {
            unit.id: unit
            for unit in self.session.execute(
                select(InventoryUnit)
                .where(InventoryUnit.id.in_(wanted))
                .with_for_update()
            ).scalars()
        }

        held_elsewhere = set(
            self.session.execute(
                select(RentalUnitAssignment.inventory_unit_id).where(
                    RentalUnitAssignment.inventory_unit_id.in_(wanted),
                    RentalUnitAssignment.released_at.is_(None),
                )
            ).scalars()
        )

        booked: Counter[UUID] = Counter()
        for item in rental.items:
            booked[item.variant_id] += item.quantity

        held: dict[UUID, int] = defaultdict(int)
        for assignment in rental.assignments:
            if assignment.is_outstanding:
                held[assignment.unit.variant_id] += 1

        created: list[RentalUnitAssignment] = []
        for unit_id in wanted:
            unit = units.get(unit_id)
            if unit is None:
                raise InventoryUnitNotFoundError(str(unit_id))
            if unit.status != InventoryStatus.AVAILABLE:
                raise UnitUnavailableError(str(unit.id), str(unit.status))
            if unit.id in held_elsewhere:
                raise UnitUnavailableError(str(unit.id), InventoryStatus.RENTED.value)
            if unit.variant_id not in booked:
                raise ValidationError(
                    f"Unit {unit.serial_number} is of a variant not booked on rental {rental.id}",
                    field="unit_ids",
                )
            held[unit.variant_id] += 1
            if held[unit.variant_id] > booked[unit.variant_id]:
                raise ValidationError(
                    f"More units assigned for variant {unit.variant_id} than the "
                    f"{booked[unit.variant_id]} booked",
                    field="unit_ids",
                )

            unit.status = InventoryStatus.RENTED.value
            assignment = RentalUnitAssignment(inventory_unit_id=unit.id, unit=unit)
            rental.assignments.append(assignment)
            created.append(assignment)

        self.session.flush()

        with LogContext.bind(rental_id=str(rental.id)):
            logger.info(
                "inventory_assigned",
                extra={"unit_count": len(created)},
            )
        return tuple(assignment_to_dto(a) for a in created)
