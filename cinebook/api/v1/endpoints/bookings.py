"""
Booking endpoints

Thin HTTP adapter over BookingService. Engine errors propagate to the
application-level BookingEngineError handler, which renders the error code.
"""

from typing import Any, Optional
from uuid import UUID
import logging
from fastapi import APIRouter, Depends, Query, status

from cinebook.api.deps import get_current_customer_id, get_booking_service
from cinebook.models.booking import BookingStatus
from cinebook.schemas.booking import (
    ReserveSeatsRequest,
    ConfirmBookingRequest,
    CancelBookingRequest,
    ReservationResponse,
    BookingResponse,
    BookingListResponse,
    CancellationResponse,
)
from cinebook.services.booking_service import BookingService

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("", response_model=ReservationResponse, status_code=status.HTTP_201_CREATED)
async def reserve_seats(
    request: ReserveSeatsRequest,
    customer_id: UUID = Depends(get_current_customer_id),
    service: BookingService = Depends(get_booking_service)
) -> Any:
    """
    Hold seats for the current customer and start the payment window
    """
    return await service.reserve_seats(request.show_id, customer_id, request.seat_ids)


@router.post("/{booking_id}/confirm", response_model=BookingResponse)
async def confirm_booking(
    booking_id: UUID,
    request: ConfirmBookingRequest,
    service: BookingService = Depends(get_booking_service)
) -> Any:
    """
    Confirm a booking after the payment collaborator acknowledged payment
    """
    return await service.confirm_booking(booking_id, request.payment_method, request.transaction_id)


@router.post("/{booking_id}/cancel", response_model=CancellationResponse)
async def cancel_booking(
    booking_id: UUID,
    request: Optional[CancelBookingRequest] = None,
    customer_id: UUID = Depends(get_current_customer_id),
    service: BookingService = Depends(get_booking_service)
) -> Any:
    """
    Cancel a booking; the response carries the refund owed
    """
    reason = request.reason if request else None
    return await service.cancel_booking(booking_id, customer_id, reason)


@router.get("", response_model=BookingListResponse)
async def list_my_bookings(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status_filter: Optional[BookingStatus] = Query(None, alias="status"),
    customer_id: UUID = Depends(get_current_customer_id),
    service: BookingService = Depends(get_booking_service)
) -> Any:
    """
    Get the customer's booking history with optional status filtering
    """
    return await service.list_customer_bookings(customer_id, page, limit, status_filter)


@router.get("/{identifier}", response_model=BookingResponse)
async def get_booking(
    identifier: str,
    customer_id: UUID = Depends(get_current_customer_id),
    service: BookingService = Depends(get_booking_service)
) -> Any:
    """
    Get booking details by id or reference code
    """
    return await service.get_booking_details(identifier, customer_id)
