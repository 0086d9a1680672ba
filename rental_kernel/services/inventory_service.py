"""
Service layer for inventory unit administration.

Registers serialized units and applies admin status/location changes.
Rental lifecycle changes to unit status go through RentalService instead.
"""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from rental_kernel.domain.dtos import InventoryUnitInfo
from rental_kernel.domain.statuses import parse_status
from rental_kernel.exceptions import (
    DuplicateSerialNumberError,
    InventoryUnitNotFoundError,
    ValidationError,
    VariantNotFoundError,
)
from rental_kernel.logging_config import get_logger
from rental_kernel.models.catalog import ProductVariant
from rental_kernel.models.inventory import InventoryStatus, InventoryType, InventoryUnit
from rental_kernel.selectors.inventory_selector import unit_to_dto
from rental_kernel.services.base import BaseService
from rental_kernel.services.catalog_service import CatalogService

logger = get_logger("services.inventory")


def _parse_inventory_type(value: str | InventoryType | None) -> InventoryType:
    try:
        return InventoryType(value)
    except ValueError:
        raise ValidationError(
            'inventory_type must be either "rental" or "sale"',
            field="inventory_type",
        ) from None


class InventoryService(BaseService):
    """Manages physical inventory units."""

    def _get_unit(self, unit_id: UUID, lock: bool = False) -> InventoryUnit:
        stmt = select(InventoryUnit).where(InventoryUnit.id == unit_id)
        if lock:
            stmt = stmt.with_for_update()
        unit = self.session.execute(stmt).scalar_one_or_none()
        if unit is None:
            raise InventoryUnitNotFoundError(str(unit_id))
        return unit

    def add_unit(
        self,
        variant_id: UUID,
        serial_number: str,
        inventory_type: str | InventoryType = InventoryType.RENTAL,
        status: str | InventoryStatus = InventoryStatus.AVAILABLE,
        location: str | None = None,
    ) -> InventoryUnitInfo:
        """
        Register a serialized unit for a variant.

        Raises:
            ValidationError: Missing serial number or unknown inventory_type.
            InvalidStatusError: Unknown status.
            VariantNotFoundError: If the variant doesn't exist.
            DuplicateSerialNumberError: If the serial number is taken.
        """
        if not serial_number:
            raise ValidationError("serial_number is required", field="serial_number")
        kind = _parse_inventory_type(inventory_type)
        unit_status = parse_status(InventoryStatus, status, "inventory unit")

        if self.session.get(ProductVariant, variant_id) is None:
            raise VariantNotFoundError(str(variant_id))

        existing = self.session.execute(
            select(InventoryUnit.id).where(InventoryUnit.serial_number == serial_number)
        ).scalar_one_or_none()
        if existing is not None:
            raise DuplicateSerialNumberError(serial_number)

        unit = InventoryUnit(
            variant_id=variant_id,
            serial_number=serial_number,
            inventory_type=kind.value,
            status=unit_status.value,
            location=location,
        )
        self.session.add(unit)
        try:
            self.session.flush()
        except IntegrityError as exc:
            # Lost a race with a concurrent insert of the same serial
            if "serial" in str(exc.orig).lower():
                raise DuplicateSerialNumberError(serial_number) from exc
            raise

        logger.info(
            "inventory_unit_added",
            extra={
                "unit_id": str(unit.id),
                "variant_id": str(variant_id),
                "serial_number": serial_number,
                "status": unit_status.value,
            },
        )
        return unit_to_dto(unit)

    def add_unit_with_new_product(
        self,
        serial_number: str,
        inventory_type: str | InventoryType,
        sku: str,
        title: str,
        base_price: Decimal | str | int,
        description: str | None = None,
        category: str | None = None,
        image_url: str | None = None,
        pixel_pitch: Decimal | str | float | None = None,
        width_cm: Decimal | str | int | None = None,
        height_cm: Decimal | str | int | None = None,
        rent_price_per_day: Decimal | str | int | None = None,
        status: str | InventoryStatus = InventoryStatus.AVAILABLE,
        location: str | None = None,
    ) -> InventoryUnitInfo:
        """
        Create a product, its default "Standard" variant priced at
        ``base_price``, and a first unit of that variant.

        Raises:
            Everything CatalogService.create_product, add_variant and
            add_unit raise.
        """
        # Validate unit fields before creating catalog rows
        if not serial_number:
            raise ValidationError("serial_number is required", field="serial_number")
        _parse_inventory_type(inventory_type)

        catalog = CatalogService(self.session)
        product = catalog.create_product(
            sku=sku,
            title=title,
            base_price=base_price,
            description=description,
            category=category,
            image_url=image_url,
        )
        variant = catalog.add_variant(
            product.id,
            name="Standard",
            price=base_price,
            rent_price_per_day=rent_price_per_day,
            pixel_pitch=pixel_pitch,
            width_cm=width_cm,
            height_cm=height_cm,
        )
        return self.add_unit(
            variant.id,
            serial_number,
            inventory_type=inventory_type,
            status=status,
            location=location,
        )

    def update_unit(
        self,
        unit_id: UUID,
        status: str | InventoryStatus | None = None,
        location: str | None = None,
    ) -> InventoryUnitInfo:
        """
        Change a unit's status and/or location; None leaves a field as is.

        Raises:
            InventoryUnitNotFoundError: If the unit doesn't exist.
            InvalidStatusError: Unknown status.
        """
        new_status = (
            parse_status(InventoryStatus, status, "inventory unit") if status is not None else None
        )
        unit = self._get_unit(unit_id, lock=True)
        previous = unit.status

        if new_status is not None:
            unit.status = new_status.value
        if location is not None:
            unit.location = location
        self.session.flush()

        logger.info(
            "inventory_unit_updated",
            extra={
                "unit_id": str(unit.id),
                "from_status": str(previous),
                "to_status": str(unit.status),
                "location": unit.location,
            },
        )
        return unit_to_dto(unit)
