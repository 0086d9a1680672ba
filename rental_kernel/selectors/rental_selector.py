"""
Module: rental_kernel.selectors.rental_selector
Responsibility: Read models for rentals: a single booking with its items and
    unit assignments, and listings per user / status.
"""

from uuid import UUID

from sqlalchemy import select

from rental_kernel.domain.dtos import AssignmentInfo, RentalInfo, RentalItemInfo
from rental_kernel.domain.statuses import parse_status
from rental_kernel.exceptions import RentalNotFoundError
from rental_kernel.models.rental import Rental, RentalStatus, RentalUnitAssignment
from rental_kernel.selectors.base import BaseSelector


def assignment_to_dto(assignment: RentalUnitAssignment) -> AssignmentInfo:
    return AssignmentInfo(
        id=assignment.id,
        rental_id=assignment.rental_id,
        inventory_unit_id=assignment.inventory_unit_id,
        released_at=assignment.released_at,
        returned_at=assignment.returned_at,
    )


def rental_to_dto(rental: Rental) -> RentalInfo:
    """Convert an ORM Rental with its items and assignments to a DTO."""
    return RentalInfo(
        id=rental.id,
        user_id=rental.user_id,
        start_date=rental.start_date,
        end_date=rental.end_date,
        status=RentalStatus(rental.status).value,
        total_amount=rental.total_amount,
        delivery_address=rental.delivery_address,
        items=tuple(
            RentalItemInfo(
                id=item.id,
                variant_id=item.variant_id,
                quantity=item.quantity,
                unit_rent_price=item.unit_rent_price,
            )
            for item in rental.items
        ),
        assignments=tuple(assignment_to_dto(a) for a in rental.assignments),
    )


class RentalSelector(BaseSelector):
    """Queries over rentals."""

    def get_rental(self, rental_id: UUID) -> RentalInfo:
        """
        Get a rental with items and assignments.

        Raises:
            RentalNotFoundError: If the rental doesn't exist.
        """
        rental = self.session.get(Rental, rental_id)
        if rental is None:
            raise RentalNotFoundError(str(rental_id))
        return rental_to_dto(rental)

    def list_rentals(
        self,
        user_id: UUID | None = None,
        status: str | None = None,
    ) -> list[RentalInfo]:
        """
        List rentals newest first.

        Args:
            user_id: Only this user's rentals; None lists everyone's.
            status: Only rentals in this status.

        Raises:
            InvalidStatusError: If ``status`` is not a rental status.
        """
        stmt = select(Rental)
        if user_id is not None:
            stmt = stmt.where(Rental.user_id == user_id)
        if status is not None:
            parsed = parse_status(RentalStatus, status, "rental")
            stmt = stmt.where(Rental.status == parsed.value)
        stmt = stmt.order_by(Rental.created_at.desc(), Rental.start_date.desc())

        return [rental_to_dto(r) for r in self.session.execute(stmt).scalars().all()]
