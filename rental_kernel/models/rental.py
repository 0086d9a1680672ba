"""
Module: rental_kernel.models.rental
Responsibility: ORM persistence for rental bookings, their line items, and the
    assignment of physical inventory units to a booking.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - start_date <= end_date (ck_rentals_date_range).  Both are calendar
      dates; the range is inclusive.
    - status is one of the six RentalStatus values (ck_rentals_valid_status).
      Any status may follow any other; the kernel does not impose a transition
      graph.
    - total_amount is written once at creation and never recalculated.
    - RentalItem.unit_rent_price is a snapshot taken at booking time and is
      independent of later catalog price changes.
    - A rental is never deleted; items and assignments go with it if it is.

Failure modes:
    - IntegrityError on a date range with end before start, or on an unknown
      status written around the service layer.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from rental_kernel.db.base import Base, UUIDString

if TYPE_CHECKING:
    from rental_kernel.models.inventory import InventoryUnit


class RentalStatus(str, Enum):
    """Rental lifecycle status.

    Nominal flow is PENDING -> CONFIRMED -> ACTIVE -> COMPLETED, with
    CANCELLED / RETURNED reachable from any state.
    """

    PENDING = "pending"
    CONFIRMED = "confirmed"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    RETURNED = "returned"


# Statuses whose assigned units are out of the pool
COMMITTING_STATUSES: tuple[RentalStatus, ...] = (
    RentalStatus.CONFIRMED,
    RentalStatus.ACTIVE,
)

# Statuses that hand assigned units back to the pool
RELEASING_STATUSES: tuple[RentalStatus, ...] = (
    RentalStatus.RETURNED,
    RentalStatus.CANCELLED,
)

# Statuses whose booked quantity counts against capacity
BOOKING_STATUSES: tuple[RentalStatus, ...] = (
    RentalStatus.PENDING,
    RentalStatus.CONFIRMED,
    RentalStatus.ACTIVE,
)


class Rental(Base):
    """
    A booking of one or more variants for an inclusive date range.

    Guarantees:
        - start_date <= end_date.
        - status defaults to `pending`.
        - items and assignments are loaded eagerly with the rental.
    """

    __tablename__ = "rentals"

    __table_args__ = (
        CheckConstraint("start_date <= end_date", name="ck_rentals_date_range"),
        CheckConstraint(
            "status IN ('pending', 'confirmed', 'active', 'completed', "
            "'cancelled', 'returned')",
            name="ck_rentals_valid_status",
        ),
        Index("idx_rental_user", "user_id"),
        Index("idx_rental_status_dates", "status", "start_date", "end_date"),
    )

    # Owning user (resolved by the user directory, opaque here)
    user_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    start_date: Mapped[date] = mapped_column(nullable=False)

    end_date: Mapped[date] = mapped_column(nullable=False)

    status: Mapped[RentalStatus] = mapped_column(
        String(20),
        nullable=False,
        default=RentalStatus.PENDING,
    )

    total_amount: Mapped[Decimal] = mapped_column(
        nullable=False,
        default=Decimal("0.00"),
    )

    delivery_address: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    items: Mapped[list["RentalItem"]] = relationship(
        back_populates="rental",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="RentalItem.line_no",
    )

    assignments: Mapped[list["RentalUnitAssignment"]] = relationship(
        back_populates="rental",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Rental {self.id} {self.start_date}..{self.end_date} ({self.status})>"


class RentalItem(Base):
    """One booked variant line on a rental."""

    __tablename__ = "rental_items"

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_rental_items_quantity_positive"),
        Index("idx_rental_item_rental", "rental_id"),
        Index("idx_rental_item_variant", "variant_id"),
    )

    rental_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("rentals.id", ondelete="CASCADE"),
        nullable=False,
    )

    # Not cascading: a booked variant cannot be removed from the catalog
    variant_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("product_variants.id"),
        nullable=False,
    )

    # Position in the booking request
    line_no: Mapped[int] = mapped_column(nullable=False)

    quantity: Mapped[int] = mapped_column(nullable=False)

    # Price per unit per day, captured at booking time
    unit_rent_price: Mapped[Decimal] = mapped_column(nullable=False)

    rental: Mapped["Rental"] = relationship(back_populates="items")


class RentalUnitAssignment(Base):
    """
    Links a rental to a specific inventory unit that fulfils it.

    released_at stays NULL while the unit is out.  It is stamped whenever the
    unit goes back to the pool, on return and on cancellation alike, so a
    closed assignment is never released twice.  returned_at is stamped on
    return only.
    """

    __tablename__ = "rental_unit_assignments"

    __table_args__ = (
        Index("idx_assignment_rental", "rental_id"),
        Index("idx_assignment_unit", "inventory_unit_id"),
    )

    rental_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("rentals.id", ondelete="CASCADE"),
        nullable=False,
    )

    inventory_unit_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("inventory_units.id", ondelete="CASCADE"),
        nullable=False,
    )

    released_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    returned_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    rental: Mapped["Rental"] = relationship(back_populates="assignments")

    unit: Mapped["InventoryUnit"] = relationship()

    @property
    def is_outstanding(self) -> bool:
        return self.released_at is None
