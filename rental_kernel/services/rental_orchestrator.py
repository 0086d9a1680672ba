"""
rental_kernel.services.rental_orchestrator -- Transaction-owning entry points.

Responsibility:
    Public surface of the kernel.  Every write entry point opens its own
    transaction scope from an injected session factory, constructs the
    services it needs inside that scope, and returns DTOs.  A call either
    commits in full or leaves nothing behind.

Architecture position:
    Services -- top of the service layer.  This is the only place in the
    kernel that decides transaction boundaries.

Invariants enforced:
    - One operation, one transaction: create_rental writes header, items
      and total atomically; transition_rental writes the status and the
      inventory release atomically.
    - Every scope carries the configured statement timeout; a cancelled
      statement surfaces as StoreTimeoutError after a full rollback.

Failure modes:
    - Whatever the underlying service or selector raises, re-raised after
      rollback.

Usage:
    from rental_kernel.services.rental_orchestrator import RentalOrchestrator

    orchestrator = RentalOrchestrator(session_factory, clock=clock)
    rental = orchestrator.create_rental(user_id, "2024-01-01", "2024-01-03", items)
    orchestrator.confirm_payment(rental.id)
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Iterable
from uuid import UUID

from sqlalchemy.orm import Session, sessionmaker

from rental_kernel.config import KernelSettings
from rental_kernel.db.engine import build_engine, transaction_scope
from rental_kernel.domain.clock import Clock, SystemClock
from rental_kernel.domain.dtos import (
    AssignmentInfo,
    Availability,
    InventoryUnitInfo,
    OrderInfo,
    ProductInfo,
    ProductPage,
    RentalInfo,
    RentalTransition,
    VariantInfo,
)
from rental_kernel.domain.lines import OrderLine, RentalLine
from rental_kernel.logging_config import LogContext, configure_logging, get_logger
from rental_kernel.models.rental import RentalStatus
from rental_kernel.models.sales_order import OrderStatus
from rental_kernel.selectors.availability_selector import AvailabilitySelector
from rental_kernel.selectors.catalog_selector import CatalogSelector
from rental_kernel.selectors.inventory_selector import InventorySelector
from rental_kernel.selectors.order_selector import OrderSelector
from rental_kernel.selectors.rental_selector import RentalSelector
from rental_kernel.services.catalog_service import CatalogService
from rental_kernel.services.inventory_service import InventoryService
from rental_kernel.services.order_service import OrderService
from rental_kernel.services.rental_service import RentalService

logger = get_logger("services.orchestrator")


def session_factory_from_settings(settings: KernelSettings) -> sessionmaker[Session]:
    """Build an engine for ``settings`` and return a session factory bound to it.

    Also configures kernel logging at ``settings.log_level``; a no-op when
    logging was already configured.
    """
    configure_logging(level=settings.log_level)
    engine = build_engine(
        settings.database_url,
        echo=settings.echo,
        pool_size=settings.pool_size,
        max_overflow=settings.max_overflow,
        pool_timeout=settings.pool_timeout,
    )
    return sessionmaker(bind=engine, expire_on_commit=False)


class RentalOrchestrator:
    """Rental booking, fulfilment and lifecycle entry points.

    Contract:
        Receives a session factory and optional Clock.  Each public method
        runs in a fresh transaction scope.

    Non-goals:
        - Does NOT verify payment provider signatures; confirm_payment
          trusts its caller.
        - Does NOT look users up; user ids are opaque.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        clock: Clock | None = None,
        enforce_capacity: bool = False,
        timeout_ms: int | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._clock = clock or SystemClock()
        self.enforce_capacity = enforce_capacity
        self.timeout_ms = timeout_ms

    @classmethod
    def from_settings(
        cls,
        settings: KernelSettings,
        session_factory: sessionmaker[Session] | None = None,
        clock: Clock | None = None,
    ) -> "RentalOrchestrator":
        return cls(
            session_factory or session_factory_from_settings(settings),
            clock=clock,
            enforce_capacity=settings.enforce_booking_capacity,
            timeout_ms=settings.statement_timeout_ms,
        )

    def _scope(self):
        return transaction_scope(self._session_factory, timeout_ms=self.timeout_ms)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def compute_availability(
        self,
        variant_id: UUID,
        start_date: date | datetime | str,
        end_date: date | datetime | str,
    ) -> Availability:
        with self._scope() as session:
            return AvailabilitySelector(session).compute_availability(
                variant_id, start_date, end_date
            )

    def get_rental(self, rental_id: UUID) -> RentalInfo:
        with self._scope() as session:
            return RentalSelector(session).get_rental(rental_id)

    def list_rentals(
        self,
        user_id: UUID | None = None,
        status: str | None = None,
    ) -> list[RentalInfo]:
        with self._scope() as session:
            return RentalSelector(session).list_rentals(user_id=user_id, status=status)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_rental(
        self,
        user_id: UUID,
        start_date: date | datetime | str,
        end_date: date | datetime | str,
        items: Iterable[RentalLine | dict[str, Any]],
        delivery_address: str | None = None,
        enforce_capacity: bool | None = None,
    ) -> RentalInfo:
        """Book a rental; ``enforce_capacity`` overrides the orchestrator default."""
        enforce = self.enforce_capacity if enforce_capacity is None else enforce_capacity
        with LogContext.bind(actor_id=str(user_id)):
            with self._scope() as session:
                return RentalService(session, self._clock).create_rental(
                    user_id,
                    start_date,
                    end_date,
                    items,
                    delivery_address=delivery_address,
                    enforce_capacity=enforce,
                )

    def transition_rental(
        self,
        rental_id: UUID,
        new_status: str | RentalStatus,
    ) -> RentalTransition:
        with LogContext.bind(rental_id=str(rental_id)):
            with self._scope() as session:
                return RentalService(session, self._clock).transition_rental(
                    rental_id, new_status
                )

    def assign_units(
        self,
        rental_id: UUID,
        unit_ids: Iterable[UUID],
    ) -> tuple[AssignmentInfo, ...]:
        with LogContext.bind(rental_id=str(rental_id)):
            with self._scope() as session:
                return RentalService(session, self._clock).assign_units(rental_id, unit_ids)

    def confirm_payment(self, rental_id: UUID) -> RentalTransition:
        """Payment succeeded for a rental: mark it `confirmed`."""
        logger.info("payment_confirmed", extra={"rental_id": str(rental_id)})
        return self.transition_rental(rental_id, RentalStatus.CONFIRMED)


class BackOffice:
    """Catalog, inventory and sales order administration.

    Same transaction contract as RentalOrchestrator: one scope per call.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        timeout_ms: int | None = None,
    ) -> None:
        self._session_factory = session_factory
        self.timeout_ms = timeout_ms

    def _scope(self):
        return transaction_scope(self._session_factory, timeout_ms=self.timeout_ms)

    # Catalog

    def create_product(self, sku: str, title: str, base_price: Decimal | str | int, **details: Any) -> ProductInfo:
        with self._scope() as session:
            return CatalogService(session).create_product(sku, title, base_price, **details)

    def add_variant(self, product_id: UUID, name: str, price: Decimal | str | int, **details: Any) -> VariantInfo:
        with self._scope() as session:
            return CatalogService(session).add_variant(product_id, name, price, **details)

    def delete_product(self, product_id: UUID) -> None:
        with self._scope() as session:
            CatalogService(session).delete_product(product_id)

    def get_product(self, product_id: UUID) -> ProductInfo:
        with self._scope() as session:
            return CatalogSelector(session).get_product(product_id)

    def list_products(
        self,
        category: str | None = None,
        search: str | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> ProductPage:
        with self._scope() as session:
            return CatalogSelector(session).list_products(
                category=category, search=search, page=page, limit=limit
            )

    # Inventory

    def add_unit(self, variant_id: UUID, serial_number: str, **details: Any) -> InventoryUnitInfo:
        with self._scope() as session:
            return InventoryService(session).add_unit(variant_id, serial_number, **details)

    def add_unit_with_new_product(self, serial_number: str, inventory_type: str, **product: Any) -> InventoryUnitInfo:
        with self._scope() as session:
            return InventoryService(session).add_unit_with_new_product(
                serial_number, inventory_type, **product
            )

    def update_unit(
        self,
        unit_id: UUID,
        status: str | None = None,
        location: str | None = None,
    ) -> InventoryUnitInfo:
        with self._scope() as session:
            return InventoryService(session).update_unit(unit_id, status=status, location=location)

    def list_units(self, **filters: Any) -> list[InventoryUnitInfo]:
        with self._scope() as session:
            return InventorySelector(session).list_units(**filters)

    def inventory_status_counts(self) -> dict[str, int]:
        with self._scope() as session:
            return InventorySelector(session).status_counts()

    # Sales orders

    def create_order(
        self,
        user_id: UUID,
        items: Iterable[OrderLine | dict[str, Any]],
        shipping_address: str | None = None,
        billing_address: str | None = None,
    ) -> OrderInfo:
        with LogContext.bind(actor_id=str(user_id)):
            with self._scope() as session:
                return OrderService(session).create_order(
                    user_id, items, shipping_address, billing_address
                )

    def update_order_status(self, order_id: UUID, status: str | OrderStatus) -> OrderInfo:
        with self._scope() as session:
            return OrderService(session).update_order_status(order_id, status)

    def confirm_order_payment(self, order_id: UUID) -> OrderInfo:
        """Payment succeeded for a sales order: mark it `paid`."""
        logger.info("payment_confirmed", extra={"order_id": str(order_id)})
        return self.update_order_status(order_id, OrderStatus.PAID)

    def get_order(self, order_id: UUID) -> OrderInfo:
        with self._scope() as session:
            return OrderSelector(session).get_order(order_id)

    def list_orders(self, user_id: UUID | None = None) -> list[OrderInfo]:
        with self._scope() as session:
            return OrderSelector(session).list_orders(user_id=user_id)
