"""Database layer: declarative base, engine, and transaction scopes."""

from rental_kernel.db.base import Base, TrackedBase, UUIDString
from rental_kernel.db.engine import (
    build_engine,
    create_tables,
    drop_tables,
    transaction_scope,
)

__all__ = [
    "Base",
    "TrackedBase",
    "UUIDString",
    "build_engine",
    "create_tables",
    "drop_tables",
    "transaction_scope",
]
