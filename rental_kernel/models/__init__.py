"""ORM models for the rental kernel."""

from rental_kernel.models.catalog import Product, ProductVariant
from rental_kernel.models.inventory import InventoryStatus, InventoryType, InventoryUnit
from rental_kernel.models.rental import (
    COMMITTING_STATUSES,
    RELEASING_STATUSES,
    Rental,
    RentalItem,
    RentalStatus,
    RentalUnitAssignment,
)
from rental_kernel.models.sales_order import OrderItem, OrderStatus, SalesOrder

__all__ = [
    "COMMITTING_STATUSES",
    "RELEASING_STATUSES",
    "InventoryStatus",
    "InventoryType",
    "InventoryUnit",
    "OrderItem",
    "OrderStatus",
    "Product",
    "ProductVariant",
    "Rental",
    "RentalItem",
    "RentalStatus",
    "RentalUnitAssignment",
    "SalesOrder",
]
