"""
Typed Exception Hierarchy for the Rental Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers (the HTTP boundary, the admin back office, payment webhooks) must be
able to tell "not found" from "bad input" from "no capacity" without parsing
message strings.  Every error therefore:
  1. Has its own exception class (catch by type, not message)
  2. Has a CODE class attribute (machine-readable, API-safe)
  3. Carries structured DATA as instance attributes

Example:
    try:
        orchestrator.transition_rental(rental_id, status)
    except InvalidStatusError as e:
        return 400, {"error": e.code, "status": e.status, "allowed": e.allowed}
    except RentalNotFoundError as e:
        return 404, {"error": e.code, "rental_id": e.rental_id}

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    RentalKernelError (base)
    |
    +-- NotFoundError
    |   +-- RentalNotFoundError
    |   +-- VariantNotFoundError
    |   +-- ProductNotFoundError
    |   +-- InventoryUnitNotFoundError
    |   +-- OrderNotFoundError
    |
    +-- InvalidStatusError
    |
    +-- ValidationError
    |   +-- DuplicateSerialNumberError
    |   +-- UnitUnavailableError
    |   +-- ProductReferencedError
    |
    +-- CapacityError
    |
    +-- StoreTimeoutError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Code                    | When Raised
------------------------|-----------------------------------------------------
RENTAL_NOT_FOUND        | Rental ID doesn't exist
VARIANT_NOT_FOUND       | Product variant ID doesn't exist
PRODUCT_NOT_FOUND       | Product ID doesn't exist
INVENTORY_UNIT_NOT_FOUND| Inventory unit ID doesn't exist
ORDER_NOT_FOUND         | Sales order ID doesn't exist
INVALID_STATUS          | Status outside the closed set for the entity
VALIDATION_ERROR        | Malformed items, non-positive values, bad dates
DUPLICATE_SERIAL_NUMBER | Inventory unit serial number already registered
UNIT_UNAVAILABLE        | Unit cannot be assigned in its current status
PRODUCT_REFERENCED      | Product has variants booked or sold
CAPACITY_EXCEEDED       | Requested quantity exceeds availability
STORE_TIMEOUT           | Store call exceeded the caller-supplied timeout

All errors are caller-visible (4xx-equivalent except STORE_TIMEOUT).  None is
retried inside the kernel; a failed operation has been rolled back in full.
"""


class RentalKernelError(Exception):
    """
    Base exception for all rental kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "RENTAL_KERNEL_ERROR"


# Missing entities


class NotFoundError(RentalKernelError):
    """Base exception for a referenced entity that does not exist."""

    code: str = "NOT_FOUND"


class RentalNotFoundError(NotFoundError):
    """Rental with given ID was not found."""

    code: str = "RENTAL_NOT_FOUND"

    def __init__(self, rental_id: str):
        self.rental_id = rental_id
        super().__init__(f"Rental not found: {rental_id}")


class VariantNotFoundError(NotFoundError):
    """Product variant with given ID was not found."""

    code: str = "VARIANT_NOT_FOUND"

    def __init__(self, variant_id: str):
        self.variant_id = variant_id
        super().__init__(f"Product variant not found: {variant_id}")


class ProductNotFoundError(NotFoundError):
    """Product with given ID was not found."""

    code: str = "PRODUCT_NOT_FOUND"

    def __init__(self, product_id: str):
        self.product_id = product_id
        super().__init__(f"Product not found: {product_id}")


class InventoryUnitNotFoundError(NotFoundError):
    """Inventory unit with given ID was not found."""

    code: str = "INVENTORY_UNIT_NOT_FOUND"

    def __init__(self, unit_id: str):
        self.unit_id = unit_id
        super().__init__(f"Inventory unit not found: {unit_id}")


class OrderNotFoundError(NotFoundError):
    """Sales order with given ID was not found."""

    code: str = "ORDER_NOT_FOUND"

    def __init__(self, order_id: str):
        self.order_id = order_id
        super().__init__(f"Sales order not found: {order_id}")


# Status values


class InvalidStatusError(RentalKernelError):
    """Status value is not a member of the entity's closed status set."""

    code: str = "INVALID_STATUS"

    def __init__(self, entity: str, status: str, allowed: list[str]):
        self.entity = entity
        self.status = status
        self.allowed = allowed
        super().__init__(
            f"Invalid {entity} status '{status}'; "
            f"expected one of: {', '.join(allowed)}"
        )


# Input validation


class ValidationError(RentalKernelError):
    """Input failed validation."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message)


class DuplicateSerialNumberError(ValidationError):
    """
    Inventory unit serial number is already registered.

    Raised instead of overwriting the existing unit.
    """

    code: str = "DUPLICATE_SERIAL_NUMBER"

    def __init__(self, serial_number: str):
        self.serial_number = serial_number
        super().__init__(
            f"Serial number already registered: {serial_number}",
            field="serial_number",
        )


class UnitUnavailableError(ValidationError):
    """Inventory unit cannot be assigned in its current status."""

    code: str = "UNIT_UNAVAILABLE"

    def __init__(self, unit_id: str, status: str):
        self.unit_id = unit_id
        self.status = status
        super().__init__(
            f"Inventory unit {unit_id} is {status}, not available",
            field="unit_ids",
        )


class ProductReferencedError(ValidationError):
    """
    Product cannot be deleted because its variants are referenced by
    rental or sales order items.
    """

    code: str = "PRODUCT_REFERENCED"

    def __init__(self, product_id: str, reference_count: int):
        self.product_id = product_id
        self.reference_count = reference_count
        super().__init__(
            f"Product {product_id} is referenced by {reference_count} "
            f"rental/order item(s) and cannot be deleted"
        )


# Capacity


class CapacityError(RentalKernelError):
    """
    Requested quantity exceeds the units available for the date range.

    Raised by callers interpreting an availability result; the availability
    calculator itself never raises it.
    """

    code: str = "CAPACITY_EXCEEDED"

    def __init__(self, variant_id: str, requested: int, available: int):
        self.variant_id = variant_id
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient capacity for variant {variant_id}: "
            f"requested {requested}, available {max(available, 0)}"
        )


# Store


class StoreTimeoutError(RentalKernelError):
    """A store call exceeded the caller-supplied timeout; nothing was written."""

    code: str = "STORE_TIMEOUT"

    def __init__(self, timeout_ms: int | None):
        self.timeout_ms = timeout_ms
        super().__init__(f"Store call exceeded timeout of {timeout_ms} ms")
