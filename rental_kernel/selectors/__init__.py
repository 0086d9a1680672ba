"""Read-only query selectors."""

from rental_kernel.selectors.availability_selector import AvailabilitySelector
from rental_kernel.selectors.catalog_selector import CatalogSelector
from rental_kernel.selectors.inventory_selector import InventorySelector
from rental_kernel.selectors.order_selector import OrderSelector
from rental_kernel.selectors.rental_selector import RentalSelector

__all__ = [
    "AvailabilitySelector",
    "CatalogSelector",
    "InventorySelector",
    "OrderSelector",
    "RentalSelector",
]
