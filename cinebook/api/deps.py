"""
Shared API dependencies
"""

from uuid import UUID
from fastapi import Header, HTTPException, status

from cinebook.services.booking_service import BookingService, booking_service


async def get_current_customer_id(
    x_customer_id: str = Header(..., alias="X-Customer-ID")
) -> UUID:
    """
    Customer identity as asserted by the upstream authentication layer
    """
    try:
        return UUID(x_customer_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid customer identity"
        ) from None


def get_booking_service() -> BookingService:
    return booking_service
