"""Closed-set status parsing shared by rentals, orders, and inventory units."""

from enum import Enum
from typing import TypeVar

from rental_kernel.exceptions import InvalidStatusError

E = TypeVar("E", bound=Enum)


def parse_status(enum_cls: type[E], value: str | E, entity: str) -> E:
    """
    Coerce ``value`` to a member of ``enum_cls``.

    Matching is exact: status values are lowercase strings and "Returned"
    is not "returned".

    Raises:
        InvalidStatusError: If ``value`` is not a member's value.
    """
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        raise InvalidStatusError(
            entity,
            str(value),
            [member.value for member in enum_cls],
        ) from None
