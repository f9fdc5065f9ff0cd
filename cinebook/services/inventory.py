"""
Seat inventory store

Queries over shows and their seat instances. Row locks are always taken in the
order booking -> seats -> show so that confirm, cancel and reclaim never
deadlock against each other.
"""

from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence
from uuid import UUID

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from cinebook.models.seat import SeatInstance, SeatStatus
from cinebook.models.show import Show


async def get_show(session: AsyncSession, show_id: UUID, for_update: bool = False) -> Optional[Show]:
    stmt = select(Show).where(Show.id == show_id)
    if for_update:
        stmt = stmt.with_for_update().execution_options(populate_existing=True)
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def lock_seats_nowait(
    session: AsyncSession,
    show_id: UUID,
    seat_ids: Sequence[UUID]
) -> List[SeatInstance]:
    """
    SELECT ... FOR UPDATE NOWAIT on exactly the requested seats of one show.

    Fails immediately if any row is locked by another transaction; the driver
    error is translated to LockContentionError at the transaction boundary.
    """
    stmt = (
        select(SeatInstance)
        .where(
            SeatInstance.show_id == show_id,
            SeatInstance.id.in_(list(seat_ids))
        )
        .order_by(SeatInstance.row, SeatInstance.number)
        .with_for_update(nowait=True)
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def lock_seats(session: AsyncSession, seat_ids: Iterable[UUID]) -> List[SeatInstance]:
    """Blocking row lock on seats already owned by a locked booking"""
    ids = list(seat_ids)
    if not ids:
        return []
    stmt = (
        select(SeatInstance)
        .where(SeatInstance.id.in_(ids))
        .order_by(SeatInstance.id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def count_seats_by_status(session: AsyncSession, show_id: UUID) -> Dict[SeatStatus, int]:
    stmt = (
        select(SeatInstance.status, func.count(SeatInstance.id))
        .where(SeatInstance.show_id == show_id)
        .group_by(SeatInstance.status)
    )
    result = await session.execute(stmt)
    return {status: count for status, count in result.all()}


def hold_seats(seats: Iterable[SeatInstance], customer_id: UUID, at: datetime) -> None:
    for seat in seats:
        seat.hold(customer_id, at)


def sell_seats(seats: Iterable[SeatInstance]) -> int:
    sold = 0
    for seat in seats:
        if seat.status == SeatStatus.HELD:
            seat.sell()
            sold += 1
    return sold


def release_seats(seats: Iterable[SeatInstance], only_held: bool = False) -> int:
    """Return seats to available inventory; count of seats actually released"""
    released = 0
    for seat in seats:
        if seat.status == SeatStatus.AVAILABLE:
            continue
        if only_held and seat.status != SeatStatus.HELD:
            continue
        seat.release()
        released += 1
    return released


def seat_sort_key(seat: SeatInstance):
    """Row letter, then seat number in numeric order (A2 before A10)"""
    number = seat.number
    return (seat.row, int(number) if number.isdigit() else 0, number)


async def list_show_seats(session: AsyncSession, show_id: UUID) -> List[SeatInstance]:
    """All seat instances of a show, without locking, in seat-map order"""
    result = await session.execute(
        select(SeatInstance).where(SeatInstance.show_id == show_id)
    )
    return sorted(result.scalars().all(), key=seat_sort_key)
