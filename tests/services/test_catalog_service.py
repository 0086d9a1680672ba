"""
Tests for CatalogService, focused on the cascading product delete and its
refusal when rental or order lines still reference the product.
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from rental_kernel.exceptions import (
    ProductNotFoundError,
    ProductReferencedError,
    ValidationError,
)
from rental_kernel.models.catalog import Product, ProductVariant
from rental_kernel.models.inventory import InventoryUnit
from rental_kernel.selectors.catalog_selector import CatalogSelector
from rental_kernel.services.catalog_service import CatalogService
from rental_kernel.services.inventory_service import InventoryService
from rental_kernel.services.order_service import OrderService
from rental_kernel.services.rental_service import RentalService


@pytest.fixture
def catalog_service(session):
    return CatalogService(session)


@pytest.fixture
def stocked_product(catalog_service, session):
    """A product with two variants and two units each."""
    product = catalog_service.create_product("P19-RENT", "P1.9 Rental Panel", "2000.00")
    inventory = InventoryService(session)
    variant_ids = []
    for name in ("500x500", "500x1000"):
        variant = catalog_service.add_variant(product.id, name, "2000.00", rent_price_per_day="90")
        variant_ids.append(variant.id)
        for n in range(2):
            inventory.add_unit(variant.id, f"{product.sku}-{name}-{n}")
    return product, variant_ids


class TestCreateProduct:

    def test_create_product_and_variant(self, catalog_service, session):
        product = catalog_service.create_product(
            "P26-IN", "P2.6 Indoor", "900", category="indoor", description="Fine pitch"
        )
        variant = catalog_service.add_variant(
            product.id, "Standard", "900", pixel_pitch="2.6", width_cm="50", height_cm="50"
        )

        loaded = CatalogSelector(session).get_product(product.id)
        assert loaded.variant_ids == (variant.id,)
        assert loaded.base_price == Decimal("900")
        assert variant.pixel_pitch == Decimal("2.6")

    def test_duplicate_sku(self, catalog_service):
        catalog_service.create_product("DUP-1", "First", "10")

        with pytest.raises(ValidationError) as exc_info:
            catalog_service.create_product("DUP-1", "Second", "10")

        assert exc_info.value.field == "sku"

    def test_non_positive_price(self, catalog_service):
        with pytest.raises(ValidationError):
            catalog_service.create_product("FREE-1", "Free", "0")

    def test_variant_for_unknown_product(self, catalog_service):
        with pytest.raises(ProductNotFoundError):
            catalog_service.add_variant(uuid4(), "Standard", "10")


class TestDeleteProduct:

    def test_cascades_to_variants_and_units(self, catalog_service, stocked_product, session, captured_logs):
        product, variant_ids = stocked_product

        catalog_service.delete_product(product.id)

        session.expire_all()
        assert session.get(Product, product.id) is None
        assert session.query(ProductVariant).filter(ProductVariant.id.in_(variant_ids)).count() == 0
        assert session.query(InventoryUnit).filter(InventoryUnit.variant_id.in_(variant_ids)).count() == 0

        record = next(r for r in captured_logs() if r["message"] == "product_deleted")
        assert record["variant_count"] == 2
        assert record["unit_count"] == 4

    def test_refused_when_rented(self, catalog_service, stocked_product, session, deterministic_clock, test_actor_id):
        product, variant_ids = stocked_product
        RentalService(session, deterministic_clock).create_rental(
            test_actor_id,
            date(2024, 1, 1),
            date(2024, 1, 2),
            [{"variant_id": variant_ids[0], "quantity": 1, "unit_rent_price": "90"}],
        )

        with pytest.raises(ProductReferencedError) as exc_info:
            catalog_service.delete_product(product.id)

        assert exc_info.value.reference_count == 1
        assert session.get(Product, product.id) is not None

    def test_refused_when_ordered(self, catalog_service, stocked_product, session, test_actor_id):
        product, variant_ids = stocked_product
        OrderService(session).create_order(
            test_actor_id,
            [{"variant_id": variant_ids[1], "quantity": 1, "unit_price": "2000"}],
        )

        with pytest.raises(ProductReferencedError):
            catalog_service.delete_product(product.id)

    def test_unknown_product(self, catalog_service):
        with pytest.raises(ProductNotFoundError):
            catalog_service.delete_product(uuid4())


class TestListProducts:

    @pytest.fixture
    def catalog(self, catalog_service):
        catalog_service.create_product("OUT-1", "Outdoor P4", "1000", category="outdoor")
        catalog_service.create_product(
            "OUT-2", "Outdoor P6", "800", category="outdoor", description="Stadium perimeter"
        )
        catalog_service.create_product(
            "IN-1", "Indoor P2", "1500", category="indoor", description="Studio backdrop"
        )

    def test_filters_by_category(self, session, catalog):
        page = CatalogSelector(session).list_products(category="outdoor")

        assert {p.sku for p in page.products} == {"OUT-1", "OUT-2"}
        assert page.total == 2

    def test_search_matches_title_or_description(self, session, catalog):
        selector = CatalogSelector(session)

        assert [p.sku for p in selector.list_products(search="indoor").products] == ["IN-1"]
        assert [p.sku for p in selector.list_products(search="STADIUM").products] == ["OUT-2"]

    def test_pages_share_the_unpaged_total(self, session, catalog):
        selector = CatalogSelector(session)

        first = selector.list_products(page=1, limit=2)
        second = selector.list_products(page=2, limit=2)

        assert (first.total, second.total) == (3, 3)
        assert first.total_pages == 2
        assert len(first.products) == 2
        assert len(second.products) == 1
        assert {p.sku for p in first.products + second.products} == {"OUT-1", "OUT-2", "IN-1"}

    @pytest.mark.parametrize("page, limit", [(0, 20), (1, 0)])
    def test_rejects_bad_paging(self, session, page, limit):
        with pytest.raises(ValidationError):
            CatalogSelector(session).list_products(page=page, limit=limit)
