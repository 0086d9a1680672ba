"""
End-to-end tests through RentalOrchestrator and BackOffice, with each call
committing in its own transaction scope.
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from rental_kernel.config import KernelSettings
from rental_kernel.exceptions import CapacityError, RentalNotFoundError
from rental_kernel.services.rental_orchestrator import RentalOrchestrator


@pytest.fixture
def stock(back_office):
    """Variant with three rental units; returns (variant_id, unit_ids)."""
    first = back_office.add_unit_with_new_product(
        serial_number="P39-0001",
        inventory_type="rental",
        sku="P39",
        title="P3.9 Outdoor",
        base_price="1500",
        rent_price_per_day="50",
    )
    others = [
        back_office.add_unit(first.variant_id, f"P39-000{n}") for n in (2, 3)
    ]
    return first.variant_id, [first.id] + [u.id for u in others]


class TestRentalLifecycle:

    def test_book_pay_assign_return(self, orchestrator, stock, deterministic_clock):
        variant_id, unit_ids = stock
        customer = uuid4()

        rental = orchestrator.create_rental(
            customer,
            "2024-06-01",
            "2024-06-10",
            [{"variant_id": variant_id, "quantity": 2, "unit_rent_price": "50"}],
            delivery_address="Warehouse pickup",
        )
        assert rental.total_amount == Decimal("1000.00")

        confirmed = orchestrator.confirm_payment(rental.id)
        assert confirmed.previous_status == "pending"
        assert confirmed.status == "confirmed"

        orchestrator.assign_units(rental.id, unit_ids[:2])
        during = orchestrator.compute_availability(variant_id, date(2024, 6, 5), date(2024, 6, 6))
        assert during.committed == 2
        assert during.total == 1

        deterministic_clock.advance(3600)
        returned = orchestrator.transition_rental(rental.id, "returned")
        assert set(returned.released_unit_ids) == set(unit_ids[:2])

        after = orchestrator.compute_availability(variant_id, date(2024, 6, 5), date(2024, 6, 6))
        assert after.committed == 0
        assert after.total == 3

        stored = orchestrator.get_rental(rental.id)
        assert stored.status == "returned"
        assert stored.delivery_address == "Warehouse pickup"
        assert all(a.returned_at is not None for a in stored.assignments)

    def test_list_rentals_filters(self, orchestrator, stock):
        variant_id, _ = stock
        customer = uuid4()
        line = [{"variant_id": variant_id, "quantity": 1, "unit_rent_price": "50"}]
        mine = orchestrator.create_rental(customer, "2024-01-01", "2024-01-02", line)
        orchestrator.create_rental(uuid4(), "2024-01-01", "2024-01-02", line)
        orchestrator.confirm_payment(mine.id)

        assert [r.id for r in orchestrator.list_rentals(user_id=customer)] == [mine.id]
        assert [r.id for r in orchestrator.list_rentals(status="confirmed")] == [mine.id]
        assert len(orchestrator.list_rentals()) == 2

    def test_unknown_rental(self, orchestrator):
        with pytest.raises(RentalNotFoundError):
            orchestrator.get_rental(uuid4())


class TestCapacityEnforcement:

    def test_orchestrator_default_from_settings(self, session_factory, stock, deterministic_clock):
        variant_id, unit_ids = stock
        strict = RentalOrchestrator.from_settings(
            KernelSettings(enforce_booking_capacity=True),
            session_factory=session_factory,
            clock=deterministic_clock,
        )
        assert strict.enforce_capacity is True

        first = strict.create_rental(
            uuid4(),
            "2024-06-01",
            "2024-06-10",
            [{"variant_id": variant_id, "quantity": 3, "unit_rent_price": "50"}],
        )
        strict.confirm_payment(first.id)
        strict.assign_units(first.id, unit_ids)

        with pytest.raises(CapacityError):
            strict.create_rental(
                uuid4(),
                "2024-06-09",
                "2024-06-12",
                [{"variant_id": variant_id, "quantity": 1, "unit_rent_price": "50"}],
            )

        # A per-call override still lets staff overbook deliberately
        overbooked = strict.create_rental(
            uuid4(),
            "2024-06-09",
            "2024-06-12",
            [{"variant_id": variant_id, "quantity": 1, "unit_rent_price": "50"}],
            enforce_capacity=False,
        )
        assert overbooked.status == "pending"


class TestBackOffice:

    def test_orders_and_inventory_counts(self, back_office, stock):
        variant_id, unit_ids = stock
        customer = uuid4()

        order = back_office.create_order(
            customer,
            [{"variant_id": variant_id, "quantity": 2, "unit_price": "1500"}],
            shipping_address="Addis Ababa",
        )
        back_office.update_order_status(order.id, "paid")
        back_office.update_unit(unit_ids[0], status="maintenance", location="Repair bench")

        assert back_office.get_order(order.id).status == "paid"
        assert [o.id for o in back_office.list_orders(user_id=customer)] == [order.id]
        assert back_office.inventory_status_counts() == {"available": 2, "maintenance": 1}
        assert [u.serial_number for u in back_office.list_units(status="maintenance")] == ["P39-0001"]

    def test_delete_unreferenced_product(self, back_office):
        product = back_office.create_product("TEMP-1", "Temporary", "10")
        back_office.add_variant(product.id, "Standard", "10")

        back_office.delete_product(product.id)

        assert back_office.list_units() == []

    def test_order_payment_marks_order_paid(self, back_office, stock, captured_logs):
        variant_id, _ = stock
        order = back_office.create_order(
            uuid4(), [{"variant_id": variant_id, "quantity": 1, "unit_price": "1500"}]
        )

        paid = back_office.confirm_order_payment(order.id)

        assert paid.status == "paid"
        assert back_office.get_order(order.id).status == "paid"
        records = [r for r in captured_logs() if r["message"] == "payment_confirmed"]
        assert records[-1]["order_id"] == str(order.id)

    def test_browse_catalog(self, back_office, stock):
        back_office.create_product("CTRL-1", "Sending card", "120", category="controllers")

        page = back_office.list_products(category="controllers")

        assert [p.sku for p in page.products] == ["CTRL-1"]
        assert back_office.list_products(search="outdoor").total == 1
