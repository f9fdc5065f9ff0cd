"""
Booking service: seat allocation and booking lifecycle

Every public operation is one atomic unit of work. The long-lived seat hold is
persisted state (held seats + booking.expires_at); row locks live only for the
duration of a single transaction.
"""

from datetime import timedelta
from decimal import Decimal
from typing import Any, Dict, Iterable, Optional, Sequence
from uuid import UUID

from cinebook.config import Settings, settings as default_settings
from cinebook.core.clock import Clock, ensure_utc, utcnow
from cinebook.core.database import DatabaseManager, db_manager
from cinebook.core.logging import get_logger
from cinebook.core.exceptions import (
    ValidationError,
    TooManySeatsError,
    InvalidSeatsError,
    ShowNotFoundError,
    ShowNotBookableError,
    ShowAlreadyStartedError,
    SeatsUnavailableError,
    BookingNotFoundError,
    InvalidBookingStateError,
    NotOwnerError,
    BookingExpiredError,
    CancellationWindowClosedError,
)
from cinebook.core.metrics import MetricsCollector, metrics_collector
from cinebook.models.booking import Booking, BookingStatus, PaymentStatus
from cinebook.models.seat import SeatInstance, SeatStatus
from cinebook.models.show import Show
from cinebook.schemas.booking import (
    BookingListResponse,
    BookingResponse,
    BookingSummary,
    CancellationResponse,
    PricingBreakdown,
    ReclaimResponse,
    ReservationResponse,
    SeatAvailability,
    SeatSummary,
    ShowSeatMapResponse,
    ShowSummary,
)
from cinebook.services import inventory, ledger
from cinebook.services.occupancy import recompute_show_occupancy
from cinebook.services.pricing import calculate_pricing
from cinebook.services.reclaimer import ExpiryReclaimer, expire_booking


CANCELLABLE_STATUSES = (BookingStatus.PENDING, BookingStatus.CONFIRMED)


def _coerce_uuid(value: Any, field: str) -> UUID:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except (TypeError, ValueError):
        raise ValidationError(f"Malformed identifier for {field}", code="INVALID_IDENTIFIER",
                              details={"field": field, "value": str(value)}) from None


def _show_summary(show: Show) -> ShowSummary:
    return ShowSummary(
        id=show.id,
        movie_title=show.movie_title,
        theater_name=show.theater_name,
        screen_name=show.screen_name,
        start_time=ensure_utc(show.start_time),
        end_time=ensure_utc(show.end_time),
        status=show.status,
    )


def _seat_summary(seat: SeatInstance, price: Optional[Decimal] = None) -> SeatSummary:
    return SeatSummary(
        id=seat.id,
        row=seat.row,
        number=seat.number,
        seat_type=seat.seat_type,
        price=seat.price if price is None else price,
    )


def _pricing(booking: Booking) -> PricingBreakdown:
    return PricingBreakdown(
        subtotal=booking.subtotal,
        convenience_fee=booking.convenience_fee,
        tax=booking.tax,
        total=booking.total,
    )


def format_booking(booking: Booking, show: Show, seats_by_id: Dict[UUID, SeatInstance]) -> BookingResponse:
    """Full booking detail; seat prices are the ones captured at reservation"""
    return BookingResponse(
        id=booking.id,
        reference=booking.reference,
        customer_id=booking.customer_id,
        status=booking.status,
        payment_status=booking.payment_status,
        show=_show_summary(show),
        seats=[
            _seat_summary(seats_by_id[bs.seat_id], bs.price)
            for bs in booking.booking_seats
            if bs.seat_id in seats_by_id
        ],
        pricing=_pricing(booking),
        payment_method=booking.payment_method,
        payment_reference=booking.payment_reference,
        expires_at=ensure_utc(booking.expires_at),
        confirmed_at=ensure_utc(booking.confirmed_at),
        cancelled_at=ensure_utc(booking.cancelled_at),
        cancellation_reason=booking.cancellation_reason,
        created_at=ensure_utc(booking.created_at),
    )


def _format_loaded_booking(booking: Booking) -> BookingResponse:
    seats_by_id = {bs.seat_id: bs.seat for bs in booking.booking_seats}
    return format_booking(booking, booking.show, seats_by_id)


class BookingService:
    """
    Seat lock allocator, booking confirmer, booking canceller and the entry
    point to the expiry reclaimer.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        db: Optional[DatabaseManager] = None,
        clock: Optional[Clock] = None,
        metrics: Optional[MetricsCollector] = None
    ):
        self.settings = settings or default_settings
        self.db = db or db_manager
        self.clock = clock or utcnow
        self.metrics = metrics or metrics_collector
        self.reclaimer = ExpiryReclaimer(self.settings, self.db, self.clock, self.metrics)

    @property
    def isolation_level(self) -> Optional[str]:
        return self.settings.DB_ISOLATION_LEVEL

    def _validate_seat_request(self, seat_ids: Iterable[Any]) -> Sequence[UUID]:
        requested = list(seat_ids or [])
        if not requested:
            raise InvalidSeatsError("At least one seat must be selected")
        if len(requested) > self.settings.MAX_SEATS_PER_BOOKING:
            raise TooManySeatsError(len(requested), self.settings.MAX_SEATS_PER_BOOKING)

        parsed = []
        malformed = []
        for value in requested:
            try:
                parsed.append(value if isinstance(value, UUID) else UUID(str(value)))
            except (TypeError, ValueError):
                malformed.append(value)
        if malformed:
            raise InvalidSeatsError("Malformed seat identifiers", malformed)
        if len(set(parsed)) != len(parsed):
            raise InvalidSeatsError("Duplicate seat IDs not allowed")
        return parsed

    async def reserve_seats(self, show_id: Any, customer_id: Any, seat_ids: Iterable[Any]) -> ReservationResponse:
        """
        Atomically hold all requested seats for one customer.

        Validation happens before a transaction is opened. Inside the
        transaction the seat rows are locked with NOWAIT, so a concurrent
        holder makes this call fail fast with LockContentionError instead of
        waiting. Nothing is retried here: retrying could hide a sold-out show.
        """
        async with self.metrics.track_booking_operation("reserve"):
            requested = self._validate_seat_request(seat_ids)
            show_id = _coerce_uuid(show_id, "show_id")
            customer_id = _coerce_uuid(customer_id, "customer_id")

            async with self.db.atomic_transaction(self.isolation_level) as session:
                now = self.clock()

                show = await inventory.get_show(session, show_id)
                if show is None:
                    raise ShowNotFoundError(show_id)
                if not show.is_bookable:
                    raise ShowNotBookableError(show_id, show.status.value)
                if now >= ensure_utc(show.start_time):
                    raise ShowAlreadyStartedError(show_id)

                seats = await inventory.lock_seats_nowait(session, show_id, requested)

                if len(seats) != len(requested):
                    found = {seat.id for seat in seats}
                    raise InvalidSeatsError(
                        "Some seats are invalid",
                        [sid for sid in requested if sid not in found]
                    )

                unavailable = [seat for seat in seats if seat.status != SeatStatus.AVAILABLE]
                if unavailable:
                    raise SeatsUnavailableError(
                        [seat.label for seat in unavailable],
                        [seat.id for seat in unavailable]
                    )

                pricing = calculate_pricing(
                    [seat.price for seat in seats],
                    self.settings.CONVENIENCE_FEE_PERCENT,
                    self.settings.TAX_PERCENT
                )
                hold_duration = timedelta(minutes=self.settings.BOOKING_HOLD_MINUTES)
                expires_at = now + hold_duration

                booking = await ledger.create_booking(
                    session,
                    reference_prefix=self.settings.BOOKING_REFERENCE_PREFIX,
                    now=now,
                    customer_id=customer_id,
                    show_id=show_id,
                    seats=seats,
                    pricing=pricing,
                    expires_at=expires_at,
                )
                inventory.hold_seats(seats, customer_id, now)
                await session.flush()

                result = ReservationResponse(
                    booking=BookingSummary(
                        id=booking.id,
                        reference=booking.reference,
                        status=booking.status,
                        payment_status=booking.payment_status,
                        expires_at=expires_at,
                    ),
                    show=_show_summary(show),
                    seats=[_seat_summary(seat) for seat in seats],
                    pricing=pricing,
                    expires_in_seconds=int(hold_duration.total_seconds()),
                )

            get_logger(__name__, booking_id=booking.id, show_id=show_id, customer_id=customer_id).info(
                f"Booking {booking.reference} held {len(seats)} seats on show {show_id} "
                f"for customer {customer_id} until {expires_at.isoformat()}"
            )
            return result

    async def confirm_booking(self, booking_id: Any, payment_method: str, transaction_id: str) -> BookingResponse:
        """
        Finalize a pending booking once payment has been acknowledged.

        A booking past its expiry is expired and its seats released in the
        same unit of work; that cleanup commits and then BookingExpiredError is
        raised.
        """
        async with self.metrics.track_booking_operation("confirm"):
            booking_id = _coerce_uuid(booking_id, "booking_id")
            expired_at = None

            async with self.db.atomic_transaction(self.isolation_level) as session:
                now = self.clock()

                booking = await ledger.get_booking_for_update(session, booking_id)
                if booking is None:
                    raise BookingNotFoundError(booking_id)
                if booking.status != BookingStatus.PENDING:
                    raise InvalidBookingStateError(booking_id, booking.status.value, "confirm")

                if now > ensure_utc(booking.expires_at):
                    await expire_booking(session, booking, self.settings.ALMOST_FULL_THRESHOLD_PERCENT)
                    expired_at = ensure_utc(booking.expires_at)
                    result = None
                else:
                    booking.status = BookingStatus.CONFIRMED
                    booking.payment_status = PaymentStatus.COMPLETED
                    booking.payment_method = payment_method
                    booking.payment_reference = transaction_id
                    booking.confirmed_at = now

                    seats = await inventory.lock_seats(session, [bs.seat_id for bs in booking.booking_seats])
                    inventory.sell_seats(seats)
                    show = await recompute_show_occupancy(
                        session, booking.show_id, self.settings.ALMOST_FULL_THRESHOLD_PERCENT
                    )
                    result = format_booking(booking, show, {seat.id: seat for seat in seats})

            if expired_at is not None:
                self.metrics.record_booking_status_change(BookingStatus.EXPIRED.value)
                log = get_logger(__name__, booking_id=booking_id)
                log.info(f"Booking {booking.reference} expired at confirmation, seats released")
                raise BookingExpiredError(booking_id, expired_at)

            self.metrics.record_booking_status_change(BookingStatus.CONFIRMED.value)
            log = get_logger(__name__, booking_id=booking_id, show_id=booking.show_id)
            log.info(f"Booking confirmed: {booking.reference} ({payment_method} {transaction_id})")
            return result

    async def cancel_booking(self, booking_id: Any, customer_id: Any, reason: Optional[str] = None) -> CancellationResponse:
        """
        Reverse a pending or confirmed booking before the cancellation cutoff.

        Only records the refund obligation; moving money is the payment
        collaborator's job.
        """
        async with self.metrics.track_booking_operation("cancel"):
            booking_id = _coerce_uuid(booking_id, "booking_id")
            customer_id = _coerce_uuid(customer_id, "customer_id")

            async with self.db.atomic_transaction(self.isolation_level) as session:
                now = self.clock()

                booking = await ledger.get_booking_for_update(session, booking_id)
                if booking is None:
                    raise BookingNotFoundError(booking_id)
                if booking.customer_id != customer_id:
                    raise NotOwnerError(booking_id)
                if booking.status not in CANCELLABLE_STATUSES:
                    raise InvalidBookingStateError(booking_id, booking.status.value, "cancel")

                show = await inventory.get_show(session, booking.show_id)
                cutoff = timedelta(hours=self.settings.CANCELLATION_CUTOFF_HOURS)
                if now >= ensure_utc(show.start_time) - cutoff:
                    raise CancellationWindowClosedError(booking_id, self.settings.CANCELLATION_CUTOFF_HOURS)

                was_paid = booking.payment_status == PaymentStatus.COMPLETED
                booking.status = BookingStatus.CANCELLED
                booking.cancelled_at = now
                booking.cancellation_reason = reason
                if was_paid:
                    booking.payment_status = PaymentStatus.REFUNDED

                seats = await inventory.lock_seats(session, [bs.seat_id for bs in booking.booking_seats])
                released = inventory.release_seats(seats)
                await recompute_show_occupancy(session, booking.show_id, self.settings.ALMOST_FULL_THRESHOLD_PERCENT)

                refund_amount = booking.total if was_paid else Decimal("0.00")
                result = CancellationResponse(
                    booking_id=booking.id,
                    status=booking.status,
                    payment_status=booking.payment_status,
                    refund_amount=refund_amount,
                )

            self.metrics.record_booking_status_change(BookingStatus.CANCELLED.value)
            get_logger(__name__, booking_id=booking_id, customer_id=customer_id).info(
                f"Booking cancelled: {booking.reference}, {released} seats released, refund {refund_amount}"
            )
            return result

    async def get_show_seats(self, show_id: Any) -> ShowSeatMapResponse:
        """
        Seat map for a show: every seat with its price and current status.

        Read without locks; availability can change before a reservation.
        """
        show_id = _coerce_uuid(show_id, "show_id")
        async with self.db.session_factory() as session:
            show = await inventory.get_show(session, show_id)
            if show is None:
                raise ShowNotFoundError(show_id)
            seats = await inventory.list_show_seats(session, show_id)

        seat_map = [
            SeatAvailability(
                id=seat.id,
                row=seat.row,
                number=seat.number,
                seat_type=seat.seat_type,
                price=seat.price,
                status=seat.status,
                is_available=seat.status == SeatStatus.AVAILABLE,
            )
            for seat in seats
        ]
        rows: Dict[str, list] = {}
        price_by_type: Dict[str, Decimal] = {}
        for entry in seat_map:
            rows.setdefault(entry.row, []).append(entry)
            price_by_type.setdefault(entry.seat_type, entry.price)

        return ShowSeatMapResponse(
            show=_show_summary(show),
            seats=seat_map,
            rows=rows,
            price_by_type=price_by_type,
            total_seats=len(seat_map),
            available_seats=sum(1 for entry in seat_map if entry.is_available),
        )

    async def reclaim_expired(self) -> ReclaimResponse:
        return await self.reclaimer.reclaim_expired()

    async def list_customer_bookings(
        self,
        customer_id: Any,
        page: int = 1,
        limit: int = 10,
        status: Optional[BookingStatus] = None
    ) -> BookingListResponse:
        customer_id = _coerce_uuid(customer_id, "customer_id")
        page = max(page, 1)
        limit = min(max(limit, 1), 100)

        async with self.db.session_factory() as session:
            bookings, total = await ledger.list_customer_bookings(session, customer_id, page, limit, status)
            items = [_format_loaded_booking(booking) for booking in bookings]

        return BookingListResponse(items=items, total=total, page=page, limit=limit)

    async def get_booking_details(self, identifier: Any, customer_id: Any = None) -> BookingResponse:
        """Look a booking up by id or by its reference code"""
        identifier = str(identifier)
        async with self.db.session_factory() as session:
            if identifier.startswith(f"{self.settings.BOOKING_REFERENCE_PREFIX}-"):
                booking = await ledger.get_booking_with_details(session, reference=identifier)
            else:
                try:
                    booking_id = UUID(identifier)
                except ValueError:
                    raise BookingNotFoundError(identifier) from None
                booking = await ledger.get_booking_with_details(session, booking_id=booking_id)

            if booking is None:
                raise BookingNotFoundError(identifier)
            if customer_id is not None and booking.customer_id != _coerce_uuid(customer_id, "customer_id"):
                raise NotOwnerError(booking.id)
            return _format_loaded_booking(booking)


# Initialize default service
booking_service = BookingService()
