"""
Booking and BookingSeat models
"""

from sqlalchemy import Column, String, ForeignKey, Enum, Numeric, DateTime, Uuid, Index
from sqlalchemy.orm import relationship
import enum

from cinebook.models.base import BaseModel


class BookingStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    REFUNDED = "refunded"


class Booking(BaseModel):
    """
    One reservation attempt by one customer for one show.

    Rows are never deleted; cancelled and expired bookings stay for audit and
    idempotent re-reads.
    """
    __tablename__ = "bookings"
    __table_args__ = (
        Index("ix_bookings_status_expires_at", "status", "expires_at"),
    )

    reference = Column(String(32), unique=True, nullable=False, index=True)
    customer_id = Column(Uuid(as_uuid=True), nullable=False, index=True)
    show_id = Column(Uuid(as_uuid=True), ForeignKey("shows.id"), nullable=False, index=True)
    status = Column(
        Enum(BookingStatus),
        default=BookingStatus.PENDING,
        nullable=False,
        index=True
    )
    payment_status = Column(
        Enum(PaymentStatus),
        default=PaymentStatus.PENDING,
        nullable=False
    )
    subtotal = Column(Numeric(10, 2), nullable=False)
    convenience_fee = Column(Numeric(10, 2), nullable=False)
    tax = Column(Numeric(10, 2), nullable=False)
    total = Column(Numeric(10, 2), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    confirmed_at = Column(DateTime(timezone=True))
    cancelled_at = Column(DateTime(timezone=True))
    cancellation_reason = Column(String(500))
    payment_method = Column(String(50))
    payment_reference = Column(String(255))  # Payment gateway transaction id

    # Relationships
    show = relationship("Show", back_populates="bookings")
    booking_seats = relationship("BookingSeat", back_populates="booking", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Booking(id={self.id}, reference={self.reference}, status={self.status}, total={self.total})>"


class BookingSeat(BaseModel):
    """
    Seat reserved by a booking, with the price at reservation time
    """
    __tablename__ = "booking_seats"

    booking_id = Column(Uuid(as_uuid=True), ForeignKey("bookings.id"), nullable=False, index=True)
    seat_id = Column(Uuid(as_uuid=True), ForeignKey("show_seats.id"), nullable=False, index=True)
    price = Column(Numeric(10, 2), nullable=False)

    # Relationships
    booking = relationship("Booking", back_populates="booking_seats")
    seat = relationship("SeatInstance", back_populates="booking_seats")

    def __repr__(self):
        return f"<BookingSeat(booking_id={self.booking_id}, seat_id={self.seat_id}, price={self.price})>"
