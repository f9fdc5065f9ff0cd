"""
Test configuration and fixtures
Async SQLAlchemy over an in-memory SQLite database, one fresh database per test
"""

import os
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Dict, Iterable
from uuid import uuid4

import pytest
import pytest_asyncio
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import NullPool, StaticPool

# Set test environment before the application settings are loaded
os.environ["APP_ENV"] = "testing"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["RECLAIM_ENABLED"] = "false"
os.environ["LOG_FORMAT"] = "text"

# Import all models BEFORE creating fixtures (critical for create_all to work)
from cinebook.core.database import Base, DatabaseManager, enable_sqlite_write_locks
from cinebook.config import Settings
from cinebook.core.seeding import create_show_with_seats
from cinebook.models.booking import Booking
from cinebook.models.seat import SeatInstance, SeatType
from cinebook.models.show import Show, ShowStatus
from cinebook.services.booking_service import BookingService

BASE_TIME = datetime(2026, 3, 14, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Controllable UTC clock injected into the booking service"""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now

    def set(self, value: datetime) -> datetime:
        self.now = value
        return self.now


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Fresh in-memory database per test"""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    enable_sqlite_write_locks(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture
def test_settings():
    # SQLite has no row locks, so isolation is exercised by a dedicated test
    return Settings(
        APP_ENV="testing",
        DATABASE_URL="sqlite+aiosqlite:///:memory:",
        DB_ISOLATION_LEVEL=None,
        BOOKING_HOLD_MINUTES=10,
        MAX_SEATS_PER_BOOKING=10,
        CONVENIENCE_FEE_PERCENT=Decimal("2.5"),
        TAX_PERCENT=Decimal("18"),
        CANCELLATION_CUTOFF_HOURS=2,
        ALMOST_FULL_THRESHOLD_PERCENT=Decimal("80"),
        RECLAIM_BATCH_SIZE=100,
        RECLAIM_ENABLED=False,
    )


@pytest.fixture
def clock():
    return FakeClock(BASE_TIME)


@pytest.fixture
def db(session_factory):
    return DatabaseManager(session_factory, retry_after=1)


@pytest.fixture
def booking_service(test_settings, db, clock):
    return BookingService(settings=test_settings, db=db, clock=clock)


@pytest_asyncio.fixture
async def test_show(session_factory):
    """Show with two seats, A1 and A2, priced 250 each"""
    async with session_factory() as session:
        show, seats = await create_show_with_seats(
            session,
            movie_title="Opening Night",
            start_time=BASE_TIME + timedelta(days=2),
            layout=[("A", "1", SeatType.REGULAR), ("A", "2", SeatType.REGULAR)],
            prices={"A1": Decimal("250.00"), "A2": Decimal("250.00")},
        )
        await session.commit()
    return show, {seat.label: seat for seat in seats}


@pytest_asyncio.fixture
async def large_show(session_factory):
    """Show with ten regular seats A1..A10 priced 100 each"""
    async with session_factory() as session:
        show, seats = await create_show_with_seats(
            session,
            movie_title="Blockbuster Premiere",
            start_time=BASE_TIME + timedelta(days=3),
            layout=[("A", str(n), SeatType.REGULAR) for n in range(1, 11)],
            base_price=Decimal("100.00"),
        )
        await session.commit()
    return show, {seat.label: seat for seat in seats}


@pytest_asyncio.fixture
async def file_engine(tmp_path):
    """File-backed database with a connection per session, so units of work really overlap"""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'cinebook.db'}",
        echo=False,
        poolclass=NullPool,
    )
    enable_sqlite_write_locks(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine
    await engine.dispose()


@pytest.fixture
def file_session_factory(file_engine):
    return async_sessionmaker(
        file_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture
def concurrent_service(test_settings, file_session_factory, clock):
    return BookingService(
        settings=test_settings,
        db=DatabaseManager(file_session_factory, retry_after=1),
        clock=clock,
    )


@pytest_asyncio.fixture
async def concurrent_show(file_session_factory):
    """Ten regular seats A1..A10 on the file-backed database"""
    async with file_session_factory() as session:
        show, seats = await create_show_with_seats(
            session,
            movie_title="Midnight Rush",
            start_time=BASE_TIME + timedelta(days=1),
            layout=[("A", str(n), SeatType.REGULAR) for n in range(1, 11)],
            base_price=Decimal("100.00"),
        )
        await session.commit()
    return show, {seat.label: seat for seat in seats}


@pytest.fixture
def customer_id():
    return uuid4()


@pytest.fixture
def other_customer_id():
    return uuid4()


async def load_seats(session_factory, seat_ids: Iterable) -> Dict[str, SeatInstance]:
    """Helper: current seat rows keyed by label"""
    async with session_factory() as session:
        result = await session.execute(
            select(SeatInstance).where(SeatInstance.id.in_(list(seat_ids)))
        )
        return {seat.label: seat for seat in result.scalars().all()}


async def load_booking(session_factory, booking_id) -> Booking:
    async with session_factory() as session:
        return await session.get(Booking, booking_id)


async def load_show(session_factory, show_id) -> Show:
    async with session_factory() as session:
        return await session.get(Show, show_id)


async def set_show_status(session_factory, show_id, status: ShowStatus):
    async with session_factory() as session:
        show = await session.get(Show, show_id)
        show.status = status
        await session.commit()


@pytest_asyncio.fixture
async def client(booking_service):
    """HTTP client wired to the test booking service"""
    from httpx import AsyncClient, ASGITransport
    from cinebook.api.deps import get_booking_service
    from cinebook.main import app

    app.dependency_overrides[get_booking_service] = lambda: booking_service
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


def customer_headers(customer_id) -> Dict[str, str]:
    return {"X-Customer-ID": str(customer_id)}
