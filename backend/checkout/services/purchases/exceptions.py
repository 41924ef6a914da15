"""Purchase domain exceptions."""

from checkout.services.exceptions import ConflictError, NotFoundError, ValidationError


class PurchaseNotFound(NotFoundError):
    """Purchase not found."""

    pass


class InvalidOrderNumber(ValidationError):
    """Supplied order number is not a positive integer."""

    pass


class OrderNumberConflict(ConflictError):
    """Order number already used by another purchase.

    Raised once insert retries are exhausted, or immediately for an order
    number supplied by the caller.
    """

    def __init__(self, order_number: int | None, attempts: int):
        self.order_number = order_number
        self.attempts = attempts
        super().__init__(f"Order number {order_number} is already taken (after {attempts} attempts)")
