"""
Administrative endpoints
"""

from typing import Any
import logging
from fastapi import APIRouter, Depends

from cinebook.api.deps import get_booking_service
from cinebook.schemas.booking import ReclaimResponse
from cinebook.services.booking_service import BookingService

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/bookings/reclaim", response_model=ReclaimResponse)
async def reclaim_expired_bookings(
    service: BookingService = Depends(get_booking_service)
) -> Any:
    """
    Expire abandoned pending bookings on demand. Idempotent.
    """
    result = await service.reclaim_expired()
    logger.info(f"Manual reclaim released {result.reclaimed_count} bookings")
    return result
