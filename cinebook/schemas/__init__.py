"""
Pydantic schemas
"""

from cinebook.schemas.booking import (
    ReserveSeatsRequest,
    ConfirmBookingRequest,
    CancelBookingRequest,
    PricingBreakdown,
    SeatSummary,
    ShowSummary,
    BookingSummary,
    ReservationResponse,
    BookingResponse,
    BookingListResponse,
    CancellationResponse,
    ReclaimResponse,
    SeatAvailability,
    ShowSeatMapResponse,
)
from cinebook.schemas.response import ErrorDetail, ErrorResponse, HealthResponse

__all__ = [
    "ReserveSeatsRequest",
    "ConfirmBookingRequest",
    "CancelBookingRequest",
    "PricingBreakdown",
    "SeatSummary",
    "ShowSummary",
    "BookingSummary",
    "ReservationResponse",
    "BookingResponse",
    "BookingListResponse",
    "CancellationResponse",
    "ReclaimResponse",
    "SeatAvailability",
    "ShowSeatMapResponse",
    "ErrorDetail",
    "ErrorResponse",
    "HealthResponse",
]
