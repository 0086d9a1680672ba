"""Read models for sales orders."""

from uuid import UUID

from sqlalchemy import select

from rental_kernel.domain.dtos import OrderInfo, OrderItemInfo
from rental_kernel.exceptions import OrderNotFoundError
from rental_kernel.models.sales_order import OrderStatus, SalesOrder
from rental_kernel.selectors.base import BaseSelector


def order_to_dto(order: SalesOrder) -> OrderInfo:
    return OrderInfo(
        id=order.id,
        user_id=order.user_id,
        status=OrderStatus(order.status).value,
        total_amount=order.total_amount,
        shipping_address=order.shipping_address,
        billing_address=order.billing_address,
        items=tuple(
            OrderItemInfo(
                id=item.id,
                variant_id=item.variant_id,
                quantity=item.quantity,
                unit_price=item.unit_price,
            )
            for item in order.items
        ),
    )


class OrderSelector(BaseSelector):
    """Queries over sales orders."""

    def get_order(self, order_id: UUID) -> OrderInfo:
        """
        Raises:
            OrderNotFoundError: If the order doesn't exist.
        """
        order = self.session.get(SalesOrder, order_id)
        if order is None:
            raise OrderNotFoundError(str(order_id))
        return order_to_dto(order)

    def list_orders(self, user_id: UUID | None = None) -> list[OrderInfo]:
        """List orders newest first; a user's own, or all when user_id is None."""
        stmt = select(SalesOrder)
        if user_id is not None:
            stmt = stmt.where(SalesOrder.user_id == user_id)
        stmt = stmt.order_by(SalesOrder.created_at.desc())
        return [order_to_dto(o) for o in self.session.execute(stmt).scalars().all()]
