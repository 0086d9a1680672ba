"""
Module: rental_kernel.selectors.inventory_selector
Responsibility: Read access to inventory units for the back office: filtered
    listings joined with their product, and per-status counts.
"""

from uuid import UUID

from sqlalchemy import func, or_, select

from rental_kernel.domain.dtos import InventoryUnitInfo
from rental_kernel.domain.statuses import parse_status
from rental_kernel.exceptions import InventoryUnitNotFoundError, ValidationError
from rental_kernel.models.catalog import Product, ProductVariant
from rental_kernel.models.inventory import InventoryStatus, InventoryType, InventoryUnit
from rental_kernel.selectors.base import BaseSelector


def unit_to_dto(
    unit: InventoryUnit,
    product: Product | None = None,
) -> InventoryUnitInfo:
    """Convert an ORM InventoryUnit (optionally with its product) to a DTO."""
    return InventoryUnitInfo(
        id=unit.id,
        variant_id=unit.variant_id,
        serial_number=unit.serial_number,
        status=InventoryStatus(unit.status).value,
        inventory_type=InventoryType(unit.inventory_type).value,
        location=unit.location,
        product_id=product.id if product is not None else None,
        sku=product.sku if product is not None else None,
        product_title=product.title if product is not None else None,
    )


class InventorySelector(BaseSelector):
    """Queries over inventory units."""

    def get_unit(self, unit_id: UUID) -> InventoryUnitInfo:
        """
        Raises:
            InventoryUnitNotFoundError: If the unit doesn't exist.
        """
        unit = self.session.get(InventoryUnit, unit_id)
        if unit is None:
            raise InventoryUnitNotFoundError(str(unit_id))
        return unit_to_dto(unit, unit.variant.product)

    def list_units(
        self,
        status: str | None = None,
        inventory_type: str | None = None,
        variant_id: UUID | None = None,
        search: str | None = None,
    ) -> list[InventoryUnitInfo]:
        """
        List units, newest first, with optional filters.

        Args:
            status: Only units in this status.
            inventory_type: Only `rental` or `sale` units.
            variant_id: Only units of this variant.
            search: Case-insensitive substring of serial number or product title.

        Raises:
            InvalidStatusError: If ``status`` is not an inventory status.
            ValidationError: If ``inventory_type`` is unknown.
        """
        stmt = (
            select(InventoryUnit, Product)
            .join(ProductVariant, InventoryUnit.variant_id == ProductVariant.id)
            .join(Product, ProductVariant.product_id == Product.id)
        )

        if status is not None:
            parsed = parse_status(InventoryStatus, status, "inventory unit")
            stmt = stmt.where(InventoryUnit.status == parsed.value)

        if inventory_type is not None:
            try:
                kind = InventoryType(inventory_type)
            except ValueError:
                raise ValidationError(
                    f"inventory_type must be 'rental' or 'sale', got {inventory_type!r}",
                    field="inventory_type",
                ) from None
            stmt = stmt.where(InventoryUnit.inventory_type == kind.value)

        if variant_id is not None:
            stmt = stmt.where(InventoryUnit.variant_id == variant_id)

        if search:
            pattern = f"%{search}%"
            stmt = stmt.where(
                or_(
                    InventoryUnit.serial_number.ilike(pattern),
                    Product.title.ilike(pattern),
                )
            )

        stmt = stmt.order_by(InventoryUnit.created_at.desc(), InventoryUnit.serial_number)

        return [unit_to_dto(unit, product) for unit, product in self.session.execute(stmt)]

    def status_counts(self) -> dict[str, int]:
        """Number of units per status; statuses with no units are omitted."""
        stmt = select(InventoryUnit.status, func.count(InventoryUnit.id)).group_by(
            InventoryUnit.status
        )
        return {InventoryStatus(status).value: count for status, count in self.session.execute(stmt)}
