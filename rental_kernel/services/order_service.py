"""
Service layer for sales orders.

Orders are priced from the caller-supplied unit prices; status changes are
restricted to the seven order statuses but follow no transition graph.
"""

from __future__ import annotations

from typing import Any, Iterable
from uuid import UUID

from sqlalchemy import select

from rental_kernel.domain.dtos import OrderInfo
from rental_kernel.domain.lines import OrderLine, parse_order_lines
from rental_kernel.domain.pricing import order_total
from rental_kernel.domain.statuses import parse_status
from rental_kernel.exceptions import OrderNotFoundError, VariantNotFoundError
from rental_kernel.logging_config import LogContext, get_logger
from rental_kernel.models.catalog import ProductVariant
from rental_kernel.models.sales_order import OrderItem, OrderStatus, SalesOrder
from rental_kernel.selectors.order_selector import order_to_dto
from rental_kernel.services.base import BaseService

logger = get_logger("services.order")


class OrderService(BaseService):
    """Creates sales orders and changes their status."""

    def create_order(
        self,
        user_id: UUID,
        items: Iterable[OrderLine | dict[str, Any]],
        shipping_address: str | None = None,
        billing_address: str | None = None,
    ) -> OrderInfo:
        """
        Create a `pending` order; total is sum(quantity * unit_price).

        Raises:
            ValidationError: Empty or malformed items.
            VariantNotFoundError: A line references an unknown variant.
        """
        lines = parse_order_lines(items)
        wanted = {line.variant_id for line in lines}
        found = set(
            self.session.execute(
                select(ProductVariant.id).where(ProductVariant.id.in_(wanted))
            ).scalars()
        )
        missing = wanted - found
        if missing:
            raise VariantNotFoundError(str(sorted(missing, key=str)[0]))

        order = SalesOrder(
            user_id=user_id,
            status=OrderStatus.PENDING.value,
            total_amount=order_total((line.quantity, line.unit_price) for line in lines),
            shipping_address=shipping_address,
            billing_address=billing_address,
        )
        for line_no, line in enumerate(lines, start=1):
            order.items.append(
                OrderItem(
                    variant_id=line.variant_id,
                    line_no=line_no,
                    quantity=line.quantity,
                    unit_price=line.unit_price,
                )
            )
        self.session.add(order)
        self.session.flush()

        with LogContext.bind(order_id=str(order.id)):
            logger.info(
                "order_created",
                extra={
                    "user_id": str(user_id),
                    "item_count": len(lines),
                    "total_amount": order.total_amount,
                },
            )
        return order_to_dto(order)

    def update_order_status(self, order_id: UUID, status: str | OrderStatus) -> OrderInfo:
        """
        Raises:
            InvalidStatusError: Status outside the seven order statuses.
            OrderNotFoundError: If the order doesn't exist.
        """
        target = parse_status(OrderStatus, status, "order")
        order = self.session.execute(
            select(SalesOrder).where(SalesOrder.id == order_id).with_for_update()
        ).scalar_one_or_none()
        if order is None:
            raise OrderNotFoundError(str(order_id))

        previous = order.status
        order.status = target.value
        self.session.flush()

        with LogContext.bind(order_id=str(order.id)):
            logger.info(
                "order_status_changed",
                extra={"from_status": str(previous), "to_status": target.value},
            )
        return order_to_dto(order)
