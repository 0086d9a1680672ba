"""Tests for OrderService and OrderSelector."""

from decimal import Decimal
from uuid import uuid4

import pytest

from rental_kernel.exceptions import (
    InvalidStatusError,
    OrderNotFoundError,
    ValidationError,
    VariantNotFoundError,
)
from rental_kernel.models.sales_order import OrderStatus
from rental_kernel.selectors.order_selector import OrderSelector
from rental_kernel.services.order_service import OrderService


@pytest.fixture
def order_service(session):
    return OrderService(session)


class TestCreateOrder:

    def test_total_is_sum_of_lines(self, order_service, create_variant, test_actor_id):
        cabinet = create_variant(name="Cabinet")
        controller = create_variant(name="Controller")

        order = order_service.create_order(
            test_actor_id,
            [
                {"variant_id": cabinet.id, "quantity": 3, "unit_price": "1200.00"},
                {"variant_id": controller.id, "quantity": 1, "unit_price": "349.99"},
            ],
            shipping_address="Bole Road 12",
        )

        assert order.total_amount == Decimal("3949.99")
        assert order.status == OrderStatus.PENDING.value
        assert order.shipping_address == "Bole Road 12"
        assert [i.quantity for i in order.items] == [3, 1]

    def test_empty_order(self, order_service, test_actor_id):
        with pytest.raises(ValidationError):
            order_service.create_order(test_actor_id, [])

    def test_unknown_variant(self, order_service, test_actor_id):
        with pytest.raises(VariantNotFoundError):
            order_service.create_order(
                test_actor_id,
                [{"variant_id": uuid4(), "quantity": 1, "unit_price": "10"}],
            )

    def test_logs_with_order_context(self, order_service, create_variant, test_actor_id, captured_logs):
        variant = create_variant()

        order = order_service.create_order(
            test_actor_id,
            [{"variant_id": variant.id, "quantity": 1, "unit_price": "10"}],
        )

        record = next(r for r in captured_logs() if r["message"] == "order_created")
        assert record["order_id"] == str(order.id)


class TestUpdateOrderStatus:

    @pytest.mark.parametrize("status", [s.value for s in OrderStatus])
    def test_every_order_status_is_accepted(self, order_service, create_variant, test_actor_id, status):
        variant = create_variant()
        order = order_service.create_order(
            test_actor_id,
            [{"variant_id": variant.id, "quantity": 1, "unit_price": "10"}],
        )

        assert order_service.update_order_status(order.id, status).status == status

    def test_unknown_status(self, order_service, create_variant, test_actor_id):
        variant = create_variant()
        order = order_service.create_order(
            test_actor_id,
            [{"variant_id": variant.id, "quantity": 1, "unit_price": "10"}],
        )

        with pytest.raises(InvalidStatusError):
            order_service.update_order_status(order.id, "lost_in_transit")

    def test_unknown_order(self, order_service):
        with pytest.raises(OrderNotFoundError):
            order_service.update_order_status(uuid4(), "shipped")


class TestOrderSelector:

    def test_list_orders_per_user(self, session, order_service, create_variant, test_actor_id):
        variant = create_variant()
        line = [{"variant_id": variant.id, "quantity": 1, "unit_price": "10"}]
        mine = order_service.create_order(test_actor_id, line)
        order_service.create_order(uuid4(), line)

        selector = OrderSelector(session)

        assert [o.id for o in selector.list_orders(user_id=test_actor_id)] == [mine.id]
        assert len(selector.list_orders()) == 2
        assert selector.get_order(mine.id).total_amount == Decimal("10.00")
