"""
Seat instance model
"""

from sqlalchemy import Column, String, ForeignKey, Enum, Numeric, UniqueConstraint, DateTime, Uuid
from sqlalchemy.orm import relationship
import enum

from cinebook.models.base import BaseModel


class SeatStatus(str, enum.Enum):
    AVAILABLE = "available"
    HELD = "held"
    SOLD = "sold"


class SeatType(str, enum.Enum):
    REGULAR = "regular"
    PREMIUM = "premium"
    RECLINER = "recliner"
    VIP = "vip"
    WHEELCHAIR = "wheelchair"


class SeatInstance(BaseModel):
    """
    A physical seat bound to one show.

    The price is snapshotted when the show is created and never changes. Status
    moves only under a row lock taken by the booking engine.
    """
    __tablename__ = "show_seats"
    __table_args__ = (
        UniqueConstraint('show_id', 'row', 'number', name='uq_show_seat'),
    )

    show_id = Column(Uuid(as_uuid=True), ForeignKey("shows.id"), nullable=False, index=True)
    row = Column(String(10), nullable=False)
    number = Column(String(10), nullable=False)
    seat_type = Column(Enum(SeatType), default=SeatType.REGULAR, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    status = Column(
        Enum(SeatStatus),
        default=SeatStatus.AVAILABLE,
        nullable=False,
        index=True
    )
    held_by = Column(Uuid(as_uuid=True), nullable=True)
    held_at = Column(DateTime(timezone=True), nullable=True)

    # Relationships
    show = relationship("Show", back_populates="seats")
    booking_seats = relationship("BookingSeat", back_populates="seat")

    @property
    def label(self) -> str:
        return f"{self.row}{self.number}"

    def hold(self, customer_id, at):
        self.status = SeatStatus.HELD
        self.held_by = customer_id
        self.held_at = at

    def sell(self):
        self.status = SeatStatus.SOLD
        self.held_by = None
        self.held_at = None

    def release(self):
        self.status = SeatStatus.AVAILABLE
        self.held_by = None
        self.held_at = None

    def __repr__(self):
        return f"<SeatInstance(id={self.id}, show_id={self.show_id}, seat={self.label}, status={self.status})>"
