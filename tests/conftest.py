"""
Pytest fixtures for the rental kernel test suite.

Provides:
- A session-scoped engine with all tables created once
- Per-test sessions isolated by transaction rollback
- A committing session factory (with row cleanup) for orchestrator tests
- Catalog and inventory factories
- Structured log capture

Environment Variables:
- DATABASE_URL: Connection URL for the store under test.  Defaults to an
  in-memory SQLite database; set it to a PostgreSQL URL to exercise row
  locks and statement timeouts for real.
"""

import json
import logging
import os
from datetime import datetime, timezone
from decimal import Decimal
from io import StringIO
from typing import Generator
from uuid import UUID, uuid4

import pytest
from sqlalchemy import delete
from sqlalchemy.orm import Session, sessionmaker

from rental_kernel.db.base import Base
from rental_kernel.db.engine import build_engine, create_tables, drop_tables
from rental_kernel.domain.clock import DeterministicClock
from rental_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from rental_kernel.models.catalog import Product, ProductVariant
from rental_kernel.models.inventory import InventoryStatus, InventoryType, InventoryUnit
from rental_kernel.services.rental_orchestrator import BackOffice, RentalOrchestrator

# Test actor ID for all test operations
TEST_ACTOR_ID = uuid4()

DEFAULT_DATABASE_URL = "sqlite://"


def get_database_url() -> str:
    return os.environ.get("DATABASE_URL", DEFAULT_DATABASE_URL)


def pytest_configure(config):
    config.addinivalue_line(
        "markers", "postgres: mark test as requiring PostgreSQL"
    )


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture rental_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, rental_service):
            rental_service.create_rental(...)
            logs = captured_logs()
            assert any(r["message"] == "rental_created" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("rental_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Database infrastructure
# =============================================================================


@pytest.fixture(scope="session")
def db_engine():
    """Single engine for the entire test session, tables created once."""
    eng = build_engine(get_database_url(), pool_size=5, max_overflow=5, pool_timeout=10)
    drop_tables(eng)
    create_tables(eng)
    yield eng
    drop_tables(eng)
    eng.dispose()


@pytest.fixture
def is_postgres(db_engine) -> bool:
    return db_engine.dialect.name == "postgresql"


@pytest.fixture
def session(db_engine) -> Generator[Session, None, None]:
    """Provide a database session whose writes are discarded at teardown.

    The session joins an outer transaction on a dedicated connection.
    Services only flush, so everything a test writes is undone by rolling
    that outer transaction back.
    """
    conn = db_engine.connect()
    trans = conn.begin()
    sess = Session(bind=conn, join_transaction_mode="rollback_only", expire_on_commit=False)
    yield sess
    try:
        sess.close()
    finally:
        try:
            trans.rollback()
        finally:
            conn.close()


def _delete_all_rows(engine) -> None:
    with engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(delete(table))


@pytest.fixture
def session_factory(db_engine) -> Generator[sessionmaker[Session], None, None]:
    """Factory for real, committing sessions; all rows are deleted at teardown."""
    factory = sessionmaker(bind=db_engine, expire_on_commit=False)
    yield factory
    _delete_all_rows(db_engine)


# =============================================================================
# Time and actors
# =============================================================================


@pytest.fixture
def deterministic_clock() -> DeterministicClock:
    return DeterministicClock(datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def test_actor_id() -> UUID:
    return TEST_ACTOR_ID


# =============================================================================
# Catalog / inventory factories
# =============================================================================


@pytest.fixture
def create_variant(session):
    """
    Create a product with one variant and return the variant.

    Usage::

        variant = create_variant(rent_price_per_day="50.00")
    """

    def _create(
        name: str = "P2.6 Indoor Panel",
        price: str = "1200.00",
        rent_price_per_day: str | None = "50.00",
        sku: str | None = None,
    ) -> ProductVariant:
        product = Product(
            sku=sku or f"SKU-{uuid4().hex[:10]}",
            title=f"{name} product",
            base_price=Decimal(price),
        )
        variant = ProductVariant(
            name=name,
            price=Decimal(price),
            rent_price_per_day=Decimal(rent_price_per_day) if rent_price_per_day else None,
        )
        product.variants.append(variant)
        session.add(product)
        session.flush()
        return variant

    return _create


@pytest.fixture
def create_unit(session):
    """Create an inventory unit for a variant."""

    def _create(
        variant: ProductVariant,
        status: InventoryStatus = InventoryStatus.AVAILABLE,
        serial_number: str | None = None,
        inventory_type: InventoryType = InventoryType.RENTAL,
    ) -> InventoryUnit:
        unit = InventoryUnit(
            variant_id=variant.id,
            serial_number=serial_number or f"SN-{uuid4().hex[:12]}",
            status=status.value,
            inventory_type=inventory_type.value,
        )
        session.add(unit)
        session.flush()
        return unit

    return _create


# =============================================================================
# Orchestrators over committing sessions
# =============================================================================


@pytest.fixture
def orchestrator(session_factory, deterministic_clock) -> RentalOrchestrator:
    return RentalOrchestrator(session_factory, clock=deterministic_clock)


@pytest.fixture
def back_office(session_factory) -> BackOffice:
    return BackOffice(session_factory)
