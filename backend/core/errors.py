"""Error taxonomy shared by the booking, inventory and order services."""

from __future__ import annotations

from rest_framework import status
from rest_framework.response import Response


class CoreError(Exception):
    """Base class for errors surfaced to API callers with a stable kind."""

    kind = "error"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Request could not be completed."

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def as_payload(self) -> dict[str, str]:
        return {"error": self.kind, "detail": self.message}


class ValidationError(CoreError):
    """Malformed or out-of-range input, rejected before touching the store."""

    kind = "validation_error"
    default_message = "Invalid request data."


class ConflictError(CoreError):
    """Contention on availability or stock; safe to retry with other parameters."""

    kind = "conflict"
    status_code = status.HTTP_409_CONFLICT
    default_message = "The requested resource is not available."


class InsufficientStockError(ConflictError):
    kind = "insufficient_stock"
    default_message = "Insufficient stock."


class HasPendingOrdersError(ConflictError):
    kind = "has_pending_orders"
    default_message = "Cannot delete product with pending orders."


class HasActiveBookingsError(ConflictError):
    kind = "has_active_bookings"
    default_message = "Cannot delete property with active bookings."


class ForbiddenError(CoreError):
    kind = "forbidden"
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "You do not have permission to perform this action."


class InvalidTransitionError(CoreError):
    kind = "invalid_transition"
    default_message = "The requested status change is not allowed."


class AlreadyPaidError(CoreError):
    kind = "already_paid"
    status_code = status.HTTP_409_CONFLICT
    default_message = "Booking is already paid."


class AlreadyCompletedError(CoreError):
    kind = "already_completed"
    status_code = status.HTTP_409_CONFLICT
    default_message = "Order is already completed."


class PaymentFailedError(CoreError):
    """Payment declined; terminal for the attempt, the caller must resubmit."""

    kind = "payment_failed"
    status_code = status.HTTP_402_PAYMENT_REQUIRED
    default_message = "Payment failed. Please try again."


class NotFoundError(CoreError):
    kind = "not_found"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found."


class TransientStoreError(CoreError):
    kind = "temporarily_unavailable"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_message = "Temporary database issue, please retry."


def error_response(exc: CoreError) -> Response:
    """Render a CoreError the way every API endpoint reports failures."""
    return Response(exc.as_payload(), status=exc.status_code)
