"""Tests for InventoryService: unit registration and admin updates."""

from uuid import uuid4

import pytest

from rental_kernel.exceptions import (
    DuplicateSerialNumberError,
    InvalidStatusError,
    InventoryUnitNotFoundError,
    ValidationError,
    VariantNotFoundError,
)
from rental_kernel.models.catalog import Product
from rental_kernel.models.inventory import InventoryUnit
from rental_kernel.selectors.inventory_selector import InventorySelector
from rental_kernel.services.inventory_service import InventoryService


@pytest.fixture
def inventory_service(session):
    return InventoryService(session)


class TestAddUnit:

    def test_registers_available_rental_unit(self, inventory_service, create_variant, captured_logs):
        variant = create_variant()

        unit = inventory_service.add_unit(variant.id, "LED-0001", location="Warehouse A")

        assert unit.serial_number == "LED-0001"
        assert unit.status == "available"
        assert unit.inventory_type == "rental"
        assert unit.location == "Warehouse A"
        assert any(r["message"] == "inventory_unit_added" for r in captured_logs())

    def test_duplicate_serial_is_rejected(self, inventory_service, session, create_variant):
        variant = create_variant()
        inventory_service.add_unit(variant.id, "LED-0002")

        with pytest.raises(DuplicateSerialNumberError) as exc_info:
            inventory_service.add_unit(variant.id, "LED-0002", inventory_type="sale")

        assert exc_info.value.code == "DUPLICATE_SERIAL_NUMBER"
        assert isinstance(exc_info.value, ValidationError)
        count = session.query(InventoryUnit).filter_by(serial_number="LED-0002").count()
        assert count == 1

    def test_unknown_inventory_type(self, inventory_service, create_variant):
        variant = create_variant()

        with pytest.raises(ValidationError):
            inventory_service.add_unit(variant.id, "LED-0003", inventory_type="lease")

    def test_unknown_status(self, inventory_service, create_variant):
        variant = create_variant()

        with pytest.raises(InvalidStatusError):
            inventory_service.add_unit(variant.id, "LED-0004", status="lost")

    def test_unknown_variant(self, inventory_service):
        with pytest.raises(VariantNotFoundError):
            inventory_service.add_unit(uuid4(), "LED-0005")

    def test_missing_serial(self, inventory_service, create_variant):
        variant = create_variant()

        with pytest.raises(ValidationError):
            inventory_service.add_unit(variant.id, "")


class TestAddUnitWithNewProduct:

    def test_creates_product_variant_and_unit(self, inventory_service, session):
        unit = inventory_service.add_unit_with_new_product(
            serial_number="LED-1000",
            inventory_type="sale",
            sku="P39-OUT",
            title="P3.9 Outdoor Cabinet",
            base_price="1500.00",
            pixel_pitch="3.9",
            rent_price_per_day="75.00",
        )

        product = session.query(Product).filter_by(sku="P39-OUT").one()
        assert [v.name for v in product.variants] == ["Standard"]
        assert unit.variant_id == product.variants[0].id
        assert unit.inventory_type == "sale"

    def test_bad_serial_creates_no_product(self, inventory_service, session):
        with pytest.raises(ValidationError):
            inventory_service.add_unit_with_new_product(
                serial_number="",
                inventory_type="rental",
                sku="P26-IN",
                title="P2.6 Indoor",
                base_price="900",
            )

        assert session.query(Product).filter_by(sku="P26-IN").count() == 0

    def test_missing_product_fields(self, inventory_service):
        with pytest.raises(ValidationError):
            inventory_service.add_unit_with_new_product(
                serial_number="LED-1001",
                inventory_type="rental",
                sku="",
                title="Untitled",
                base_price="900",
            )


class TestUpdateUnit:

    def test_status_and_location(self, inventory_service, create_variant, create_unit):
        unit = create_unit(create_variant())

        updated = inventory_service.update_unit(unit.id, status="maintenance", location="Bay 3")

        assert updated.status == "maintenance"
        assert updated.location == "Bay 3"

    def test_none_leaves_fields_unchanged(self, inventory_service, create_variant, create_unit):
        unit = create_unit(create_variant())
        inventory_service.update_unit(unit.id, location="Bay 1")

        updated = inventory_service.update_unit(unit.id, status="damaged")

        assert updated.status == "damaged"
        assert updated.location == "Bay 1"

    def test_unknown_status(self, inventory_service, create_variant, create_unit):
        unit = create_unit(create_variant())

        with pytest.raises(InvalidStatusError):
            inventory_service.update_unit(unit.id, status="borrowed")

    def test_unknown_unit(self, inventory_service):
        with pytest.raises(InventoryUnitNotFoundError):
            inventory_service.update_unit(uuid4(), status="retired")


class TestInventorySelector:

    def test_list_and_counts(self, session, inventory_service, create_variant):
        variant = create_variant(name="Searchable Panel")
        inventory_service.add_unit(variant.id, "FIND-ME-1")
        inventory_service.add_unit(variant.id, "FIND-ME-2", status="maintenance")
        inventory_service.add_unit(variant.id, "OTHER-3", inventory_type="sale")
        selector = InventorySelector(session)

        assert {u.serial_number for u in selector.list_units(search="find-me")} == {
            "FIND-ME-1",
            "FIND-ME-2",
        }
        assert [u.serial_number for u in selector.list_units(status="maintenance")] == ["FIND-ME-2"]
        assert [u.serial_number for u in selector.list_units(inventory_type="sale")] == ["OTHER-3"]

        counts = selector.status_counts()
        assert counts["available"] >= 2
        assert counts["maintenance"] >= 1

    def test_get_unit_includes_product(self, session, inventory_service, create_variant):
        variant = create_variant()
        added = inventory_service.add_unit(variant.id, "LED-2000")

        unit = InventorySelector(session).get_unit(added.id)

        assert unit.sku is not None
        assert unit.product_id == variant.product_id
