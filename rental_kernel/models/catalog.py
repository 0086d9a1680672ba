"""
Module: rental_kernel.models.catalog
Responsibility: ORM persistence for the sellable/rentable catalog: products
    and their variants (size / pixel-pitch configurations).  A variant is the
    unit of pricing and of inventory tracking.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - sku is globally unique (uq_product_sku).
    - Deleting a product deletes its variants, and deleting a variant deletes
      its inventory units.  The cascade is declared twice: as ON DELETE
      CASCADE on the foreign keys, and as ORM delete-orphan cascades, so it
      holds for both bulk SQL deletes and session.delete().

Failure modes:
    - IntegrityError on duplicate sku.
    - IntegrityError when deleting a variant still referenced by rental or
      order items (those foreign keys do not cascade); CatalogService checks
      for this first and raises ProductReferencedError.
"""

from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from rental_kernel.db.base import TrackedBase, UUIDString

if TYPE_CHECKING:
    from rental_kernel.models.inventory import InventoryUnit


class Product(TrackedBase):
    """
    A catalog product, e.g. "P3.9 Indoor LED Panel".

    Guarantees:
        - sku is unique.
        - variants are owned: removed together with the product.
    """

    __tablename__ = "products"

    __table_args__ = (
        UniqueConstraint("sku", name="uq_product_sku"),
        Index("idx_product_category", "category"),
    )

    sku: Mapped[str] = mapped_column(String(64), nullable=False)

    title: Mapped[str] = mapped_column(String(255), nullable=False)

    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    # indoor / outdoor / ...
    category: Mapped[str | None] = mapped_column(String(64), nullable=True)

    base_price: Mapped[Decimal] = mapped_column(nullable=False)

    image_url: Mapped[str | None] = mapped_column(String(500), nullable=True)

    variants: Mapped[list["ProductVariant"]] = relationship(
        back_populates="product",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Product {self.sku}: {self.title}>"


class ProductVariant(TrackedBase):
    """
    A specific configuration of a product (panel size, pixel pitch).

    Guarantees:
        - belongs to exactly one product.
        - inventory units are owned: removed together with the variant.
    """

    __tablename__ = "product_variants"

    __table_args__ = (
        Index("idx_variant_product", "product_id"),
    )

    product_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
    )

    name: Mapped[str] = mapped_column(String(120), nullable=False)

    # Sale price
    price: Mapped[Decimal] = mapped_column(nullable=False)

    rent_price_per_day: Mapped[Decimal | None] = mapped_column(nullable=True)

    pixel_pitch: Mapped[Decimal | None] = mapped_column(nullable=True)

    width_cm: Mapped[Decimal | None] = mapped_column(nullable=True)

    height_cm: Mapped[Decimal | None] = mapped_column(nullable=True)

    weight_kg: Mapped[Decimal | None] = mapped_column(nullable=True)

    product: Mapped["Product"] = relationship(back_populates="variants")

    units: Mapped[list["InventoryUnit"]] = relationship(
        back_populates="variant",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<ProductVariant {self.id}: {self.name}>"
