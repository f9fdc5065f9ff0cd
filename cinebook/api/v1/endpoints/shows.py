"""
Show endpoints
"""

from typing import Any
from uuid import UUID
from fastapi import APIRouter, Depends

from cinebook.api.deps import get_booking_service
from cinebook.schemas.booking import ShowSeatMapResponse
from cinebook.services.booking_service import BookingService

router = APIRouter()


@router.get("/{show_id}/seats", response_model=ShowSeatMapResponse)
async def get_show_seats(
    show_id: UUID,
    service: BookingService = Depends(get_booking_service)
) -> Any:
    """
    Seat map with per-seat price and availability, grouped by row
    """
    return await service.get_show_seats(show_id)
