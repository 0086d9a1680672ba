"""
Module: rental_kernel.models.sales_order
Responsibility: ORM persistence for outright equipment sales.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - status is one of the seven OrderStatus values.
    - total_amount = sum(quantity * unit_price) over items, written at
      creation.
"""

from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from rental_kernel.db.base import Base, TrackedBase, UUIDString


class OrderStatus(str, Enum):
    """Sales order lifecycle status."""

    PENDING = "pending"
    PAID = "paid"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class SalesOrder(TrackedBase):
    """A sale of one or more variants to a user."""

    __tablename__ = "sales_orders"

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'paid', 'shipped', 'delivered', "
            "'completed', 'cancelled', 'refunded')",
            name="ck_sales_orders_valid_status",
        ),
        Index("idx_sales_order_user", "user_id"),
    )

    user_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    status: Mapped[OrderStatus] = mapped_column(
        String(20),
        nullable=False,
        default=OrderStatus.PENDING,
    )

    total_amount: Mapped[Decimal] = mapped_column(nullable=False)

    shipping_address: Mapped[str | None] = mapped_column(Text, nullable=True)

    billing_address: Mapped[str | None] = mapped_column(Text, nullable=True)

    items: Mapped[list["OrderItem"]] = relationship(
        back_populates="order",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="OrderItem.line_no",
    )


class OrderItem(Base):
    """One sold variant line on a sales order."""

    __tablename__ = "order_items"

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_order_items_quantity_positive"),
        Index("idx_order_item_order", "order_id"),
    )

    order_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("sales_orders.id", ondelete="CASCADE"),
        nullable=False,
    )

    variant_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("product_variants.id"),
        nullable=False,
    )

    line_no: Mapped[int] = mapped_column(nullable=False)

    quantity: Mapped[int] = mapped_column(nullable=False)

    unit_price: Mapped[Decimal] = mapped_column(nullable=False)

    order: Mapped["SalesOrder"] = relationship(back_populates="items")
