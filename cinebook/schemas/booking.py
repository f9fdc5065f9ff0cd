"""
Booking schemas
"""

from pydantic import Field
from typing import Dict, List, Optional
from uuid import UUID
from datetime import datetime
from decimal import Decimal

from cinebook.schemas.base import BaseSchema, IDSchema
from cinebook.models.booking import BookingStatus, PaymentStatus
from cinebook.models.seat import SeatStatus, SeatType
from cinebook.models.show import ShowStatus


class ReserveSeatsRequest(BaseSchema):
    """Seat reservation request"""
    show_id: UUID
    # Count and duplicates are checked by the engine so the caller gets its error codes
    seat_ids: List[UUID]


class ConfirmBookingRequest(BaseSchema):
    """Payment acknowledgement supplied by the payment collaborator"""
    payment_method: str = Field(..., min_length=1, max_length=50)
    transaction_id: str = Field(..., min_length=1, max_length=255)


class CancelBookingRequest(BaseSchema):
    reason: Optional[str] = Field(None, max_length=500)


class PricingBreakdown(BaseSchema):
    """Monetary breakdown of a booking"""
    subtotal: Decimal
    convenience_fee: Decimal
    tax: Decimal
    total: Decimal


class SeatSummary(IDSchema):
    row: str
    number: str
    seat_type: SeatType
    price: Decimal


class ShowSummary(IDSchema):
    movie_title: str
    theater_name: Optional[str] = None
    screen_name: Optional[str] = None
    start_time: datetime
    end_time: datetime
    status: ShowStatus


class BookingSummary(IDSchema):
    reference: str
    status: BookingStatus
    payment_status: PaymentStatus
    expires_at: datetime


class ReservationResponse(BaseSchema):
    """Result of a successful seat reservation"""
    booking: BookingSummary
    show: ShowSummary
    seats: List[SeatSummary]
    pricing: PricingBreakdown
    expires_in_seconds: int


class BookingResponse(IDSchema):
    """Full booking detail, used for receipts"""
    reference: str
    customer_id: UUID
    status: BookingStatus
    payment_status: PaymentStatus
    show: ShowSummary
    seats: List[SeatSummary]
    pricing: PricingBreakdown
    payment_method: Optional[str] = None
    payment_reference: Optional[str] = None
    expires_at: datetime
    confirmed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None
    created_at: Optional[datetime] = None


class BookingListResponse(BaseSchema):
    items: List[BookingResponse]
    total: int
    page: int
    limit: int


class CancellationResponse(BaseSchema):
    booking_id: UUID
    status: BookingStatus
    payment_status: PaymentStatus
    refund_amount: Decimal


class ReclaimResponse(BaseSchema):
    reclaimed_count: int


class SeatAvailability(SeatSummary):
    """One seat on the seat map"""
    status: SeatStatus
    is_available: bool


class ShowSeatMapResponse(BaseSchema):
    """Seat map of a show with availability, grouped by row"""
    show: ShowSummary
    seats: List[SeatAvailability]
    rows: Dict[str, List[SeatAvailability]]
    price_by_type: Dict[str, Decimal]
    total_seats: int
    available_seats: int
