"""
Booking history, lookup and seat map tests
"""

from datetime import timedelta
from decimal import Decimal
from uuid import uuid4

import pytest

from cinebook.core.exceptions import BookingNotFoundError, NotOwnerError, ShowNotFoundError, ValidationError
from cinebook.core.seeding import build_seat_layout, create_show_with_seats
from cinebook.models.booking import BookingStatus
from cinebook.models.seat import SeatStatus
from tests.conftest import BASE_TIME


class TestBookingQueries:

    @pytest.mark.asyncio
    async def test_lookup_by_id_and_reference(self, booking_service, test_show, customer_id):
        show, seats = test_show
        reservation = await booking_service.reserve_seats(show.id, customer_id, [seats["A1"].id])

        by_id = await booking_service.get_booking_details(reservation.booking.id, customer_id)
        by_reference = await booking_service.get_booking_details(reservation.booking.reference)

        assert by_id.id == by_reference.id == reservation.booking.id
        assert by_id.reference == reservation.booking.reference
        assert by_id.show.movie_title == "Opening Night"
        assert [seat.row + seat.number for seat in by_id.seats] == ["A1"]

    @pytest.mark.asyncio
    async def test_lookup_unknown(self, booking_service):
        with pytest.raises(BookingNotFoundError):
            await booking_service.get_booking_details(uuid4())
        with pytest.raises(BookingNotFoundError):
            await booking_service.get_booking_details("CB-20260314-XXXXXX")
        with pytest.raises(BookingNotFoundError):
            await booking_service.get_booking_details("garbage")

    @pytest.mark.asyncio
    async def test_lookup_by_other_customer(self, booking_service, test_show, customer_id, other_customer_id):
        show, seats = test_show
        reservation = await booking_service.reserve_seats(show.id, customer_id, [seats["A1"].id])

        with pytest.raises(NotOwnerError):
            await booking_service.get_booking_details(reservation.booking.id, other_customer_id)

    @pytest.mark.asyncio
    async def test_list_customer_bookings(
        self, booking_service, large_show, customer_id, other_customer_id
    ):
        show, seats = large_show
        first = await booking_service.reserve_seats(show.id, customer_id, [seats["A1"].id])
        await booking_service.reserve_seats(show.id, customer_id, [seats["A2"].id])
        await booking_service.reserve_seats(show.id, customer_id, [seats["A3"].id])
        await booking_service.reserve_seats(show.id, other_customer_id, [seats["A4"].id])
        await booking_service.confirm_booking(first.booking.id, "card", "txn_300")

        everything = await booking_service.list_customer_bookings(customer_id)
        assert everything.total == 3
        assert len(everything.items) == 3
        assert all(item.customer_id == customer_id for item in everything.items)

        page = await booking_service.list_customer_bookings(customer_id, page=2, limit=2)
        assert page.total == 3
        assert len(page.items) == 1

        confirmed = await booking_service.list_customer_bookings(customer_id, status=BookingStatus.CONFIRMED)
        assert confirmed.total == 1
        assert confirmed.items[0].id == first.booking.id


class TestShowSeatMap:

    @pytest.mark.asyncio
    async def test_seat_map_reflects_holds_and_sales(
        self, booking_service, large_show, customer_id, other_customer_id
    ):
        show, seats = large_show
        held = await booking_service.reserve_seats(show.id, customer_id, [seats["A1"].id, seats["A2"].id])
        sold = await booking_service.reserve_seats(show.id, other_customer_id, [seats["A3"].id])
        await booking_service.confirm_booking(sold.booking.id, "card", "txn_500")

        seat_map = await booking_service.get_show_seats(show.id)

        assert seat_map.show.id == show.id
        assert seat_map.total_seats == 10
        assert seat_map.available_seats == 7
        by_label = {seat.row + seat.number: seat for seat in seat_map.seats}
        assert by_label["A1"].status == SeatStatus.HELD
        assert by_label["A1"].is_available is False
        assert by_label["A3"].status == SeatStatus.SOLD
        assert by_label["A4"].status == SeatStatus.AVAILABLE
        assert by_label["A4"].is_available is True
        assert held.booking.id != sold.booking.id

    @pytest.mark.asyncio
    async def test_seats_ordered_by_row_then_number(self, booking_service, large_show):
        show, seats = large_show

        seat_map = await booking_service.get_show_seats(show.id)

        assert [seat.number for seat in seat_map.seats] == [str(n) for n in range(1, 11)]
        assert list(seat_map.rows) == ["A"]
        assert [seat.number for seat in seat_map.rows["A"]] == [str(n) for n in range(1, 11)]

    @pytest.mark.asyncio
    async def test_rows_and_prices_by_seat_type(self, booking_service, session_factory):
        async with session_factory() as session:
            # Inserted back to front so the ordering comes from the query
            show, _ = await create_show_with_seats(
                session,
                movie_title="Late Show",
                start_time=BASE_TIME + timedelta(days=1),
                layout=list(reversed(build_seat_layout(3, 2))),
                base_price=Decimal("200.00"),
            )
            await session.commit()

        seat_map = await booking_service.get_show_seats(show.id)

        assert list(seat_map.rows) == ["A", "B", "C"]
        assert [seat.row + seat.number for seat in seat_map.seats] == ["A1", "A2", "B1", "B2", "C1", "C2"]
        assert seat_map.price_by_type == {"regular": Decimal("200.00"), "premium": Decimal("300.00")}
        assert seat_map.available_seats == seat_map.total_seats == 6

    @pytest.mark.asyncio
    async def test_seat_map_unknown_show(self, booking_service):
        with pytest.raises(ShowNotFoundError):
            await booking_service.get_show_seats(uuid4())
        with pytest.raises(ValidationError):
            await booking_service.get_show_seats("not-a-show")
