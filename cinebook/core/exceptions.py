"""
Booking engine exceptions

Every failure surfaced to callers derives from BookingEngineError and carries a
machine-readable code plus the HTTP status the API layer answers with.
"""

from typing import Optional, Dict, Any, Iterable


class BookingEngineError(Exception):
    """Base exception for the booking engine"""

    def __init__(
        self,
        message: str,
        code: str,
        status_code: int = 400,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(BookingEngineError):
    """Request rejected before any transaction is opened"""

    def __init__(self, message: str, code: str = "VALIDATION_ERROR", details: Optional[Dict] = None):
        super().__init__(message=message, code=code, status_code=400, details=details)


class NotFoundError(BookingEngineError):
    """Resource not found errors"""

    def __init__(self, resource: str, identifier: Any = None, code: str = "NOT_FOUND"):
        message = f"{resource} not found"
        details = {}
        if identifier:
            message = f"{resource} with id {identifier} not found"
            details = {"id": str(identifier)}
        super().__init__(message=message, code=code, status_code=404, details=details)


class ConflictError(BookingEngineError):
    """State conflict detected inside a transaction"""

    def __init__(self, message: str, code: str = "CONFLICT", details: Optional[Dict] = None):
        super().__init__(message=message, code=code, status_code=409, details=details)


class PolicyError(BookingEngineError):
    """Business-rule rejection driven by time windows"""

    def __init__(self, message: str, code: str, status_code: int = 422, details: Optional[Dict] = None):
        super().__init__(message=message, code=code, status_code=status_code, details=details)


class TooManySeatsError(ValidationError):

    def __init__(self, requested: int, maximum: int):
        super().__init__(
            message=f"Cannot book more than {maximum} seats at once",
            code="TOO_MANY_SEATS",
            details={"requested": requested, "max_seats_per_booking": maximum}
        )


class InvalidSeatsError(ValidationError):

    def __init__(self, message: str = "Some seats are invalid", seat_ids: Optional[Iterable] = None):
        details = {"invalid_seats": [str(s) for s in seat_ids]} if seat_ids else {}
        super().__init__(message=message, code="INVALID_SEATS", details=details)


class ShowNotFoundError(NotFoundError):

    def __init__(self, show_id: Any):
        super().__init__("Show", show_id, code="SHOW_NOT_FOUND")


class ShowNotBookableError(ConflictError):

    def __init__(self, show_id: Any, status: str):
        super().__init__(
            message="Show is not available for booking",
            code="SHOW_NOT_BOOKABLE",
            details={"show_id": str(show_id), "status": status}
        )


class ShowAlreadyStartedError(PolicyError):

    def __init__(self, show_id: Any):
        super().__init__(
            message="Show has already started",
            code="SHOW_ALREADY_STARTED",
            details={"show_id": str(show_id)}
        )


class SeatsUnavailableError(ConflictError):
    """Seats are already held or sold by another booking"""

    def __init__(self, seat_labels: list, seat_ids: Optional[list] = None):
        super().__init__(
            message=f"Seats {', '.join(seat_labels)} are no longer available",
            code="SEATS_UNAVAILABLE",
            details={
                "unavailable_seats": seat_labels,
                "unavailable_seat_ids": [str(s) for s in seat_ids or []],
            }
        )


class LockContentionError(BookingEngineError):
    """Rows were locked by a concurrent transaction; safe to retry"""

    def __init__(self, resource: str = "seats", retry_after: int = 1):
        super().__init__(
            message=f"Failed to acquire lock for resource: {resource}",
            code="LOCK_CONTENTION",
            status_code=423,
            details={"resource": resource, "retry_after": retry_after}
        )


class BookingNotFoundError(NotFoundError):

    def __init__(self, booking_id: Any):
        super().__init__("Booking", booking_id, code="BOOKING_NOT_FOUND")


class InvalidBookingStateError(ConflictError):

    def __init__(self, booking_id: Any, status: str, action: str):
        super().__init__(
            message=f"Cannot {action} booking with status: {status}",
            code="INVALID_BOOKING_STATE",
            details={"booking_id": str(booking_id), "status": status}
        )


class NotOwnerError(BookingEngineError):

    def __init__(self, booking_id: Any):
        super().__init__(
            message="Not authorized to access this booking",
            code="NOT_OWNER",
            status_code=403,
            details={"booking_id": str(booking_id)}
        )


class BookingExpiredError(PolicyError):

    def __init__(self, booking_id: Any, expired_at=None):
        details = {"booking_id": str(booking_id)}
        if expired_at is not None:
            details["expired_at"] = expired_at.isoformat()
        super().__init__(
            message="Booking has expired",
            code="BOOKING_EXPIRED",
            status_code=410,
            details=details
        )


class CancellationWindowClosedError(PolicyError):

    def __init__(self, booking_id: Any, cutoff_hours: int):
        super().__init__(
            message=f"Cannot cancel booking less than {cutoff_hours} hours before show",
            code="CANCELLATION_WINDOW_CLOSED",
            details={"booking_id": str(booking_id), "cutoff_hours": cutoff_hours}
        )
