"""Read models for products and variants."""

from uuid import UUID

from sqlalchemy import func, or_, select

from rental_kernel.domain.dtos import ProductInfo, ProductPage, VariantInfo
from rental_kernel.exceptions import (
    ProductNotFoundError,
    ValidationError,
    VariantNotFoundError,
)
from rental_kernel.models.catalog import Product, ProductVariant
from rental_kernel.selectors.base import BaseSelector


def product_to_dto(product: Product) -> ProductInfo:
    return ProductInfo(
        id=product.id,
        sku=product.sku,
        title=product.title,
        description=product.description,
        category=product.category,
        base_price=product.base_price,
        image_url=product.image_url,
        variant_ids=tuple(v.id for v in product.variants),
    )


def variant_to_dto(variant: ProductVariant) -> VariantInfo:
    return VariantInfo(
        id=variant.id,
        product_id=variant.product_id,
        name=variant.name,
        price=variant.price,
        rent_price_per_day=variant.rent_price_per_day,
        pixel_pitch=variant.pixel_pitch,
        width_cm=variant.width_cm,
        height_cm=variant.height_cm,
        weight_kg=variant.weight_kg,
    )


class CatalogSelector(BaseSelector):
    """Queries over the product catalog."""

    def get_product(self, product_id: UUID) -> ProductInfo:
        product = self.session.get(Product, product_id)
        if product is None:
            raise ProductNotFoundError(str(product_id))
        return product_to_dto(product)

    def get_variant(self, variant_id: UUID) -> VariantInfo:
        variant = self.session.get(ProductVariant, variant_id)
        if variant is None:
            raise VariantNotFoundError(str(variant_id))
        return variant_to_dto(variant)

    def find_product_by_sku(self, sku: str) -> ProductInfo | None:
        stmt = select(Product).where(Product.sku == sku)
        product = self.session.execute(stmt).scalar_one_or_none()
        return product_to_dto(product) if product else None

    def list_products(
        self,
        category: str | None = None,
        search: str | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> ProductPage:
        """
        Browse the catalog, newest first.

        Args:
            category: Only products in this category (exact match).
            search: Case-insensitive substring of title or description.
            page: 1-based page number.
            limit: Products per page.

        Raises:
            ValidationError: If page or limit is below 1.
        """
        if page < 1:
            raise ValidationError(f"page must be at least 1, got {page}", field="page")
        if limit < 1:
            raise ValidationError(f"limit must be at least 1, got {limit}", field="limit")

        conditions = []
        if category is not None:
            conditions.append(Product.category == category)
        if search:
            pattern = f"%{search}%"
            conditions.append(
                or_(Product.title.ilike(pattern), Product.description.ilike(pattern))
            )

        total = self.session.execute(
            select(func.count(Product.id)).where(*conditions)
        ).scalar_one()

        stmt = (
            select(Product)
            .where(*conditions)
            .order_by(Product.created_at.desc(), Product.sku)
            .limit(limit)
            .offset((page - 1) * limit)
        )
        products = tuple(product_to_dto(p) for p in self.session.execute(stmt).scalars())

        return ProductPage(products=products, page=page, limit=limit, total=total)
