"""
BaseService -- abstract base for all kernel services.

Responsibility:
    Provides the common constructor and session-handling contract for every
    write service in the kernel.  Services receive a SQLAlchemy ``Session``
    and use ``session.flush()`` -- never ``session.commit()``.

Architecture position:
    Kernel > Services -- imperative shell.

Invariants enforced:
    Transaction boundaries: services flush within the caller's transaction and
    never commit or roll back themselves.  The caller (RentalOrchestrator,
    BackOffice, or a test) owns commit/rollback, which is what makes a booking
    header plus its items, or a status change plus its inventory release, a
    single all-or-nothing unit.

Failure modes:
    - If a subclass calls ``session.commit()`` itself, multi-step operations
      can leave partial writes behind.
"""

from abc import ABC

from sqlalchemy.orm import Session


class BaseService(ABC):
    """
    Abstract base class for all kernel services.

    Non-goals:
        - Does NOT manage transaction lifecycle (commit/rollback).
        - Does NOT provide read-only query methods beyond what its own
          writes need; those belong in ``rental_kernel/selectors/``.
    """

    def __init__(self, session: Session):
        self.session = session
