"""Write services and the transaction-owning orchestrators."""

from rental_kernel.services.catalog_service import CatalogService
from rental_kernel.services.inventory_service import InventoryService
from rental_kernel.services.order_service import OrderService
from rental_kernel.services.rental_orchestrator import BackOffice, RentalOrchestrator
from rental_kernel.services.rental_service import RentalService

__all__ = [
    "BackOffice",
    "CatalogService",
    "InventoryService",
    "OrderService",
    "RentalOrchestrator",
    "RentalService",
]
