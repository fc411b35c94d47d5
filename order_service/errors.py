"""
errors.py — Error Taxonomy of the Order Service

All failures crossing a component boundary are raised as one of the exceptions
below. Library exceptions (SQLAlchemy, pika, pydantic) are translated at the point
where they occur, so callers only ever handle `OrderServiceError` subclasses.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Error body returned by the HTTP layer."""
    code: str
    message: str
    details: Dict[str, Any] = {}


class OrderServiceError(Exception):
    """Base exception for the order service."""

    code = "ORDER_SERVICE_ERROR"
    status_code = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        return ErrorResponse(code=self.code, message=self.message, details=self.details)


class DecodeError(OrderServiceError):
    """Malformed input document."""
    code = "DECODE_ERROR"
    status_code = 422


class ConflictError(OrderServiceError):
    """An order with the same order_uid already exists."""
    code = "CONFLICT"
    status_code = 409


class NotFoundError(OrderServiceError):
    """No order stored under the requested order_uid."""
    code = "NOT_FOUND"
    status_code = 404


class UnavailableError(OrderServiceError):
    """Store or message bus connectivity failure."""
    code = "UNAVAILABLE"
    status_code = 503


class CancelledError(OrderServiceError):
    """The caller-supplied deadline expired or the operation was cancelled."""
    code = "CANCELLED"
    status_code = 504


class SubscriptionError(UnavailableError):
    """
    The consumer could not attach to its topic at all.

    Raised only while establishing the subscription. The surrounding application
    treats it as fatal and terminates the process.
    """
    code = "SUBSCRIPTION_FAILED"
