"""
Exception hierarchy for the order backend.

Every error carries a human-readable message and the HTTP status it maps to;
main.py turns them into {"message": ...} JSON responses.
"""

from typing import Any, Dict, Optional

from fastapi import status


class OrderServiceError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "An error occurred"

    def __init__(self, message: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        self.message = message or self.default_message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"message": self.message}
        body.update(self.details)
        return body


class ValidationError(OrderServiceError):
    """Raised when a request is missing required values."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class NotFoundError(OrderServiceError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class OrderNotFoundError(NotFoundError):
    default_message = "Order not found"


class NoOrdersFoundError(NotFoundError):
    default_message = "No orders found"


class ProductNotFoundError(NotFoundError):
    default_message = "Product not found"


class ProductNotInOrderError(NotFoundError):
    default_message = "Product not found in order"


class QuantityExceededError(OrderServiceError):
    """Raised when a removal asks for more units than the line item holds."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Cannot remove more than existing quantity"


class ConcurrentModificationError(OrderServiceError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Order was modified concurrently, please retry"


class OrderCreationError(OrderServiceError):
    default_message = "Failed to create order"


class StoreError(OrderServiceError):
    default_message = "Database operation failed"


class NotificationDispatchError(OrderServiceError):
    default_message = "Error sending notification"

    def __init__(self, error: str):
        super().__init__(details={"error": error})
