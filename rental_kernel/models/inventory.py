"""
Module: rental_kernel.models.inventory
Responsibility: ORM persistence for physical, serialized inventory units.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - serial_number is globally unique (uq_inventory_serial_number).  A second
      unit with the same serial is rejected, never merged.
    - status is one of InventoryStatus; it is `rented` iff the unit has an
      open assignment on a confirmed/active rental.  The model does not
      enforce this; RentalService is the only writer of `rented`.
    - Units are never deleted directly, only through product/variant cascade.
"""

from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from rental_kernel.db.base import TrackedBase, UUIDString

if TYPE_CHECKING:
    from rental_kernel.models.catalog import ProductVariant


class InventoryStatus(str, Enum):
    """Physical unit status."""

    AVAILABLE = "available"
    RENTED = "rented"
    MAINTENANCE = "maintenance"
    DAMAGED = "damaged"
    RETIRED = "retired"


class InventoryType(str, Enum):
    """Whether a unit is held for the rental fleet or for sale."""

    RENTAL = "rental"
    SALE = "sale"


class InventoryUnit(TrackedBase):
    """
    One physical piece of equipment belonging to a product variant.

    Guarantees:
        - serial_number is unique across all variants.
        - status defaults to `available`.
    """

    __tablename__ = "inventory_units"

    __table_args__ = (
        UniqueConstraint("serial_number", name="uq_inventory_serial_number"),
        CheckConstraint(
            "status IN ('available', 'rented', 'maintenance', 'damaged', 'retired')",
            name="ck_inventory_units_valid_status",
        ),
        Index("idx_inventory_variant_status", "variant_id", "status"),
    )

    variant_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("product_variants.id", ondelete="CASCADE"),
        nullable=False,
    )

    serial_number: Mapped[str] = mapped_column(String(100), nullable=False)

    status: Mapped[InventoryStatus] = mapped_column(
        String(20),
        nullable=False,
        default=InventoryStatus.AVAILABLE,
    )

    inventory_type: Mapped[InventoryType] = mapped_column(
        String(20),
        nullable=False,
        default=InventoryType.RENTAL,
    )

    # Warehouse shelf, venue, truck...
    location: Mapped[str | None] = mapped_column(String(255), nullable=True)

    variant: Mapped["ProductVariant"] = relationship(back_populates="units")

    @property
    def is_available(self) -> bool:
        return self.status == InventoryStatus.AVAILABLE

    def __repr__(self) -> str:
        return f"<InventoryUnit {self.serial_number} ({self.status})>"
