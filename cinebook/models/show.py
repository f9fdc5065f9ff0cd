"""
Show model
"""

from sqlalchemy import Column, String, DateTime, Enum
from sqlalchemy.orm import relationship
import enum

from cinebook.models.base import BaseModel


class ShowStatus(str, enum.Enum):
    SCHEDULED = "scheduled"
    OPEN = "open"
    ALMOST_FULL = "almost_full"
    SOLD_OUT = "sold_out"
    CANCELLED = "cancelled"


BOOKABLE_SHOW_STATUSES = frozenset({
    ShowStatus.SCHEDULED,
    ShowStatus.OPEN,
    ShowStatus.ALMOST_FULL,
})


class Show(BaseModel):
    """
    A scheduled screening of a title on a screen.

    Owned by the catalog; the booking engine reads its timing and writes the
    derived occupancy status.
    """
    __tablename__ = "shows"

    movie_title = Column(String(255), nullable=False)
    theater_name = Column(String(255))
    screen_name = Column(String(100))
    start_time = Column(DateTime(timezone=True), nullable=False, index=True)
    end_time = Column(DateTime(timezone=True), nullable=False)
    status = Column(
        Enum(ShowStatus),
        default=ShowStatus.SCHEDULED,
        nullable=False,
        index=True
    )

    # Relationships
    seats = relationship("SeatInstance", back_populates="show", cascade="all, delete-orphan")
    bookings = relationship("Booking", back_populates="show")

    @property
    def is_bookable(self) -> bool:
        return self.status in BOOKABLE_SHOW_STATUSES

    def __repr__(self):
        return f"<Show(id={self.id}, title={self.movie_title}, start={self.start_time}, status={self.status})>"
