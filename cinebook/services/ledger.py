"""
Booking ledger

Persistence helpers for bookings and their seats.
"""

import logging
import secrets
import string
import uuid
from datetime import datetime
from typing import List, Optional, Sequence, Tuple
from uuid import UUID

from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from cinebook.models.booking import Booking, BookingSeat, BookingStatus, PaymentStatus
from cinebook.models.seat import SeatInstance
from cinebook.schemas.booking import PricingBreakdown

logger = logging.getLogger(__name__)

REFERENCE_ALPHABET = string.ascii_uppercase + string.digits
REFERENCE_ATTEMPTS = 5


def generate_reference(prefix: str, now: datetime) -> str:
    """Format: CB-YYYYMMDD-XXXXXX"""
    suffix = "".join(secrets.choice(REFERENCE_ALPHABET) for _ in range(6))
    return f"{prefix}-{now:%Y%m%d}-{suffix}"


async def create_booking(
    session: AsyncSession,
    *,
    reference_prefix: str,
    now: datetime,
    customer_id: UUID,
    show_id: UUID,
    seats: Sequence[SeatInstance],
    pricing: PricingBreakdown,
    expires_at: datetime
) -> Booking:
    """
    Insert a pending booking with its seats.

    The reference is random, so a clash with an existing one is retried with a
    fresh code inside a savepoint; the surrounding unit of work is untouched.
    """
    for attempt in range(1, REFERENCE_ATTEMPTS + 1):
        reference = generate_reference(reference_prefix, now)
        booking = Booking(
            id=uuid.uuid4(),
            reference=reference,
            customer_id=customer_id,
            show_id=show_id,
            status=BookingStatus.PENDING,
            payment_status=PaymentStatus.PENDING,
            subtotal=pricing.subtotal,
            convenience_fee=pricing.convenience_fee,
            tax=pricing.tax,
            total=pricing.total,
            expires_at=expires_at,
        )
        # Price is copied so later catalog changes never touch an open booking
        booking.booking_seats = [
            BookingSeat(seat_id=seat.id, price=seat.price)
            for seat in seats
        ]
        try:
            async with session.begin_nested():
                session.add(booking)
        except IntegrityError as e:
            if attempt == REFERENCE_ATTEMPTS or "reference" not in str(e.orig).lower():
                raise
            logger.warning(f"Booking reference {reference} already taken, retrying")
            continue
        return booking


async def get_booking_for_update(
    session: AsyncSession,
    booking_id: UUID,
    skip_locked: bool = False
) -> Optional[Booking]:
    stmt = (
        select(Booking)
        .options(selectinload(Booking.booking_seats))
        .where(Booking.id == booking_id)
        .with_for_update(skip_locked=skip_locked)
        .execution_options(populate_existing=True)
    )
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def find_expired_booking_ids(
    session: AsyncSession,
    now: datetime,
    limit: int,
    after_id: Optional[UUID] = None
) -> List[UUID]:
    """One keyset page of pending bookings whose hold window has elapsed"""
    stmt = (
        select(Booking.id)
        .where(
            Booking.status == BookingStatus.PENDING,
            Booking.expires_at < now
        )
        .order_by(Booking.id)
        .limit(limit)
    )
    if after_id is not None:
        stmt = stmt.where(Booking.id > after_id)
    result = await session.execute(stmt)
    return list(result.scalars().all())


def _with_details(stmt):
    return stmt.options(
        selectinload(Booking.show),
        selectinload(Booking.booking_seats).selectinload(BookingSeat.seat)
    )


async def get_booking_with_details(
    session: AsyncSession,
    booking_id: Optional[UUID] = None,
    reference: Optional[str] = None
) -> Optional[Booking]:
    stmt = _with_details(select(Booking))
    if reference is not None:
        stmt = stmt.where(Booking.reference == reference)
    else:
        stmt = stmt.where(Booking.id == booking_id)
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def list_customer_bookings(
    session: AsyncSession,
    customer_id: UUID,
    page: int = 1,
    limit: int = 10,
    status: Optional[BookingStatus] = None
) -> Tuple[List[Booking], int]:
    filters = [Booking.customer_id == customer_id]
    if status is not None:
        filters.append(Booking.status == status)

    total = await session.scalar(select(func.count(Booking.id)).where(*filters))

    stmt = (
        _with_details(select(Booking))
        .where(*filters)
        .order_by(Booking.created_at.desc(), Booking.id)
        .offset((page - 1) * limit)
        .limit(limit)
    )
    result = await session.execute(stmt)
    return list(result.scalars().all()), total or 0
