"""
Service layer for catalog operations: products, variants, and the explicit
cascading delete of a product.

Deleting a product removes its variants and, through them, their inventory
units.  A product whose variants appear on any rental or sales order line is
refused instead: those lines are history and keep their variant reference.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import func, select

from rental_kernel.domain.dtos import ProductInfo, VariantInfo
from rental_kernel.domain.lines import as_positive_amount
from rental_kernel.exceptions import (
    ProductNotFoundError,
    ProductReferencedError,
    ValidationError,
)
from rental_kernel.logging_config import get_logger
from rental_kernel.models.catalog import Product, ProductVariant
from rental_kernel.models.rental import RentalItem
from rental_kernel.models.sales_order import OrderItem
from rental_kernel.selectors.catalog_selector import product_to_dto, variant_to_dto
from rental_kernel.services.base import BaseService

logger = get_logger("services.catalog")


def _optional_decimal(value: Any, field: str) -> Decimal | None:
    if value is None:
        return None
    return as_positive_amount(value, field)


class CatalogService(BaseService):
    """Manages products and their variants."""

    def _get_product(self, product_id: UUID) -> Product:
        product = self.session.get(Product, product_id)
        if product is None:
            raise ProductNotFoundError(str(product_id))
        return product

    def create_product(
        self,
        sku: str,
        title: str,
        base_price: Decimal | str | int,
        description: str | None = None,
        category: str | None = None,
        image_url: str | None = None,
    ) -> ProductInfo:
        """
        Create a product.

        Raises:
            ValidationError: Missing sku/title, non-positive base_price, or
                an sku that is already taken.
        """
        if not sku or not title:
            raise ValidationError("Title, base_price, and SKU are required for new products")
        price = as_positive_amount(base_price, "base_price")

        taken = self.session.execute(
            select(Product.id).where(Product.sku == sku)
        ).scalar_one_or_none()
        if taken is not None:
            raise ValidationError(f"SKU already exists: {sku}", field="sku")

        product = Product(
            sku=sku,
            title=title,
            base_price=price,
            description=description,
            category=category,
            image_url=image_url,
        )
        self.session.add(product)
        self.session.flush()

        logger.info("product_created", extra={"product_id": str(product.id), "sku": sku})
        return product_to_dto(product)

    def add_variant(
        self,
        product_id: UUID,
        name: str,
        price: Decimal | str | int,
        rent_price_per_day: Decimal | str | int | None = None,
        pixel_pitch: Decimal | str | float | None = None,
        width_cm: Decimal | str | int | None = None,
        height_cm: Decimal | str | int | None = None,
        weight_kg: Decimal | str | int | None = None,
    ) -> VariantInfo:
        """
        Add a variant to a product.

        Raises:
            ProductNotFoundError: If the product doesn't exist.
            ValidationError: Empty name or non-positive numbers.
        """
        product = self._get_product(product_id)
        if not name:
            raise ValidationError("Variant name is required", field="name")

        variant = ProductVariant(
            name=name,
            price=as_positive_amount(price, "price"),
            rent_price_per_day=_optional_decimal(rent_price_per_day, "rent_price_per_day"),
            pixel_pitch=_optional_decimal(pixel_pitch, "pixel_pitch"),
            width_cm=_optional_decimal(width_cm, "width_cm"),
            height_cm=_optional_decimal(height_cm, "height_cm"),
            weight_kg=_optional_decimal(weight_kg, "weight_kg"),
        )
        product.variants.append(variant)
        self.session.flush()

        logger.info(
            "variant_created",
            extra={"product_id": str(product.id), "variant_id": str(variant.id)},
        )
        return variant_to_dto(variant)

    def delete_product(self, product_id: UUID) -> None:
        """
        Delete a product together with its variants and their units.

        Raises:
            ProductNotFoundError: If the product doesn't exist.
            ProductReferencedError: If any variant is on a rental or order line.
        """
        product = self._get_product(product_id)
        variant_ids = [v.id for v in product.variants]

        references = 0
        if variant_ids:
            references += self.session.execute(
                select(func.count(RentalItem.id)).where(RentalItem.variant_id.in_(variant_ids))
            ).scalar_one()
            references += self.session.execute(
                select(func.count(OrderItem.id)).where(OrderItem.variant_id.in_(variant_ids))
            ).scalar_one()
        if references:
            raise ProductReferencedError(str(product_id), references)

        unit_count = sum(len(v.units) for v in product.variants)
        self.session.delete(product)
        self.session.flush()

        logger.info(
            "product_deleted",
            extra={
                "product_id": str(product_id),
                "variant_count": len(variant_ids),
                "unit_count": unit_count,
            },
        )
