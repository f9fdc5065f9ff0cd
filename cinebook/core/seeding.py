"""
Show and seat-inventory seeding

The catalog normally owns shows; these helpers create a show with its seat
instances for local development and tests.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Dict, List, Optional, Tuple
from uuid import uuid4
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cinebook.core.database import async_session
from cinebook.models.seat import SeatInstance, SeatStatus, SeatType
from cinebook.models.show import Show, ShowStatus

logger = logging.getLogger(__name__)

ROW_LABELS = "ABCDEFGHIJKLMNOPQRSTUVWXYZ"

SEAT_TYPE_MULTIPLIERS = {
    SeatType.REGULAR: Decimal("1.0"),
    SeatType.PREMIUM: Decimal("1.5"),
    SeatType.RECLINER: Decimal("2.0"),
    SeatType.VIP: Decimal("2.5"),
    SeatType.WHEELCHAIR: Decimal("1.0"),
}


def build_seat_layout(rows: int, seats_per_row: int) -> List[Tuple[str, str, SeatType]]:
    """Rows lettered from A; the last two rows are premium"""
    layout = []
    for r in range(rows):
        seat_type = SeatType.PREMIUM if rows > 2 and r >= rows - 2 else SeatType.REGULAR
        for number in range(1, seats_per_row + 1):
            layout.append((ROW_LABELS[r], str(number), seat_type))
    return layout


def seat_price(base_price: Decimal, seat_type: SeatType) -> Decimal:
    return (Decimal(base_price) * SEAT_TYPE_MULTIPLIERS[seat_type]).quantize(Decimal("0.01"))


async def create_show_with_seats(
    session: AsyncSession,
    *,
    movie_title: str,
    start_time: datetime,
    duration_minutes: int = 150,
    layout: Optional[List[Tuple[str, str, SeatType]]] = None,
    base_price: Decimal = Decimal("250.00"),
    prices: Optional[Dict[str, Decimal]] = None,
    status: ShowStatus = ShowStatus.OPEN,
    theater_name: str = "CineBook Central",
    screen_name: str = "Screen 1"
) -> Tuple[Show, List[SeatInstance]]:
    """
    Create a show and snapshot a price onto every seat instance.

    `prices` overrides the price per seat label (e.g. {"A1": Decimal("300")}).
    """
    show = Show(
        id=uuid4(),
        movie_title=movie_title,
        theater_name=theater_name,
        screen_name=screen_name,
        start_time=start_time,
        end_time=start_time + timedelta(minutes=duration_minutes),
        status=status,
    )
    session.add(show)

    seats = []
    for row, number, seat_type in layout or build_seat_layout(2, 10):
        label = f"{row}{number}"
        price = (prices or {}).get(label, seat_price(base_price, seat_type))
        seat = SeatInstance(
            id=uuid4(),
            show_id=show.id,
            row=row,
            number=number,
            seat_type=seat_type,
            price=Decimal(price),
            status=SeatStatus.AVAILABLE,
        )
        seats.append(seat)
        session.add(seat)

    await session.flush()
    return show, seats


async def seed_if_empty():
    """Seed a demo show only if the database has none"""
    async with async_session() as session:
        result = await session.execute(select(Show.id).limit(1))
        if result.scalar_one_or_none():
            logger.info("Database already contains shows, skipping seeding")
            return

        logger.info("Empty database detected, seeding demo shows")
        try:
            now = datetime.now(timezone.utc)
            await create_show_with_seats(
                session,
                movie_title="The Midnight Premiere",
                start_time=now + timedelta(days=7),
                layout=build_seat_layout(8, 12),
                base_price=Decimal("250.00"),
            )
            await create_show_with_seats(
                session,
                movie_title="Matinee Classics",
                start_time=now + timedelta(days=2),
                layout=build_seat_layout(5, 10),
                base_price=Decimal("180.00"),
                screen_name="Screen 2",
            )
            await session.commit()
            logger.info("Seeding completed successfully")
        except Exception as e:
            await session.rollback()
            logger.error(f"Seeding failed: {e}")
            raise
