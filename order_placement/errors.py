from decimal import Decimal

from fastapi import status


class OrderPlacementError(Exception):
    """Base class for every failure the order service reports to a caller."""

    kind = "order_placement_error"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidRequestError(OrderPlacementError):
    kind = "invalid_request"
    status_code = status.HTTP_400_BAD_REQUEST


class ProductNotFoundError(OrderPlacementError):
    kind = "product_not_found"
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, product_id: int) -> None:
        super().__init__("Product not found")
        self.product_id = product_id


class InsufficientStockError(OrderPlacementError):
    kind = "insufficient_stock"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, available: int, requested: int) -> None:
        super().__init__(
            f"Insufficient stock. Available: {available}, Requested: {requested}",
        )
        self.available = available
        self.requested = requested


class UserNotFoundError(OrderPlacementError):
    kind = "user_not_found"
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, user_id: int) -> None:
        super().__init__("User not found")
        self.user_id = user_id


class ServiceUnavailableError(OrderPlacementError):
    """The user service could not be reached or answered with a server error."""

    kind = "service_unavailable"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


class UserVerificationError(OrderPlacementError):
    kind = "user_verification_failed"

    def __init__(self, cause: str) -> None:
        super().__init__(f"Failed to verify user: {cause}")
        self.cause = cause


class InsufficientBalanceError(OrderPlacementError):
    kind = "insufficient_balance"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, available: Decimal, required: Decimal) -> None:
        super().__init__(
            f"Insufficient balance. Available: ${available:.2f}, Required: ${required:.2f}",
        )
        self.available = available
        self.required = required


class PaymentFailedError(OrderPlacementError):
    kind = "payment_failed"

    def __init__(self, reason: str) -> None:
        super().__init__(f"Failed to process payment: {reason}")
        self.reason = reason


class OrderNotFoundError(OrderPlacementError):
    kind = "order_not_found"
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, order_id: int) -> None:
        super().__init__("Order not found")
        self.order_id = order_id
