"""
Booking confirmation tests
"""

from datetime import timedelta
from decimal import Decimal
from uuid import uuid4

import pytest

from cinebook.core.clock import ensure_utc
from cinebook.core.exceptions import BookingExpiredError, BookingNotFoundError, InvalidBookingStateError
from cinebook.models.booking import BookingStatus, PaymentStatus
from cinebook.models.seat import SeatStatus
from cinebook.models.show import ShowStatus
from tests.conftest import load_booking, load_seats, load_show


class TestConfirmBooking:
    """Test suite for the booking confirmer"""

    @pytest.mark.asyncio
    async def test_confirm_sells_seats(self, booking_service, session_factory, test_show, customer_id, clock):
        show, seats = test_show
        reservation = await booking_service.reserve_seats(show.id, customer_id, [seats["A1"].id])
        clock.advance(minutes=5)

        result = await booking_service.confirm_booking(reservation.booking.id, "card", "txn_001")

        assert result.status == BookingStatus.CONFIRMED
        assert result.payment_status == PaymentStatus.COMPLETED
        assert result.payment_method == "card"
        assert result.payment_reference == "txn_001"
        assert result.confirmed_at == clock.now
        assert [seat.price for seat in result.seats] == [Decimal("250.00")]

        stored = await load_seats(session_factory, [seats["A1"].id, seats["A2"].id])
        assert stored["A1"].status == SeatStatus.SOLD
        assert stored["A1"].held_by is None
        assert stored["A2"].status == SeatStatus.AVAILABLE

    @pytest.mark.asyncio
    async def test_confirming_last_seats_sells_out_show(
        self, booking_service, session_factory, test_show, customer_id
    ):
        show, seats = test_show
        reservation = await booking_service.reserve_seats(show.id, customer_id, [seats["A1"].id, seats["A2"].id])

        result = await booking_service.confirm_booking(reservation.booking.id, "upi", "txn_002")

        assert result.show.status == ShowStatus.SOLD_OUT
        assert (await load_show(session_factory, show.id)).status == ShowStatus.SOLD_OUT

    @pytest.mark.asyncio
    async def test_confirm_moves_show_to_almost_full(
        self, booking_service, session_factory, large_show, customer_id
    ):
        show, seats = large_show
        seat_ids = [seats[f"A{n}"].id for n in range(1, 9)]
        reservation = await booking_service.reserve_seats(show.id, customer_id, seat_ids)

        await booking_service.confirm_booking(reservation.booking.id, "card", "txn_003")

        assert (await load_show(session_factory, show.id)).status == ShowStatus.ALMOST_FULL

    @pytest.mark.asyncio
    async def test_confirm_at_exact_expiry_succeeds(self, booking_service, test_show, customer_id, clock):
        show, seats = test_show
        reservation = await booking_service.reserve_seats(show.id, customer_id, [seats["A1"].id])
        clock.set(reservation.booking.expires_at)

        result = await booking_service.confirm_booking(reservation.booking.id, "card", "txn_004")

        assert result.status == BookingStatus.CONFIRMED

    @pytest.mark.asyncio
    async def test_confirm_after_expiry_releases_seats(
        self, booking_service, session_factory, test_show, customer_id, clock
    ):
        show, seats = test_show
        reservation = await booking_service.reserve_seats(show.id, customer_id, [seats["A1"].id, seats["A2"].id])
        clock.advance(minutes=11)

        with pytest.raises(BookingExpiredError) as exc_info:
            await booking_service.confirm_booking(reservation.booking.id, "card", "txn_005")

        assert exc_info.value.status_code == 410
        booking = await load_booking(session_factory, reservation.booking.id)
        assert booking.status == BookingStatus.EXPIRED
        assert booking.payment_status == PaymentStatus.PENDING

        stored = await load_seats(session_factory, [s.id for s in seats.values()])
        assert all(seat.status == SeatStatus.AVAILABLE for seat in stored.values())
        assert all(seat.held_by is None for seat in stored.values())

    @pytest.mark.asyncio
    async def test_expired_seats_can_be_booked_again(
        self, booking_service, test_show, customer_id, other_customer_id, clock
    ):
        show, seats = test_show
        reservation = await booking_service.reserve_seats(show.id, customer_id, [seats["A1"].id])
        clock.advance(minutes=11)
        with pytest.raises(BookingExpiredError):
            await booking_service.confirm_booking(reservation.booking.id, "card", "txn_006")

        retry = await booking_service.reserve_seats(show.id, other_customer_id, [seats["A1"].id])

        assert retry.booking.status == BookingStatus.PENDING

    @pytest.mark.asyncio
    async def test_confirm_twice_is_rejected(self, booking_service, test_show, customer_id):
        show, seats = test_show
        reservation = await booking_service.reserve_seats(show.id, customer_id, [seats["A1"].id])
        await booking_service.confirm_booking(reservation.booking.id, "card", "txn_007")

        with pytest.raises(InvalidBookingStateError) as exc_info:
            await booking_service.confirm_booking(reservation.booking.id, "card", "txn_007")

        assert exc_info.value.details["status"] == "confirmed"

    @pytest.mark.asyncio
    async def test_confirm_cancelled_booking_is_rejected(self, booking_service, test_show, customer_id):
        show, seats = test_show
        reservation = await booking_service.reserve_seats(show.id, customer_id, [seats["A1"].id])
        await booking_service.cancel_booking(reservation.booking.id, customer_id)

        with pytest.raises(InvalidBookingStateError):
            await booking_service.confirm_booking(reservation.booking.id, "card", "txn_008")

    @pytest.mark.asyncio
    async def test_confirm_unknown_booking(self, booking_service):
        with pytest.raises(BookingNotFoundError):
            await booking_service.confirm_booking(uuid4(), "card", "txn_009")

    @pytest.mark.asyncio
    async def test_expires_at_is_hold_window_after_reservation(
        self, booking_service, session_factory, test_show, customer_id, clock
    ):
        show, seats = test_show
        reserved_at = clock.now
        reservation = await booking_service.reserve_seats(show.id, customer_id, [seats["A1"].id])

        booking = await load_booking(session_factory, reservation.booking.id)

        assert ensure_utc(booking.expires_at) - reserved_at == timedelta(minutes=10)
