"""
Database models
"""

from cinebook.models.show import Show, ShowStatus
from cinebook.models.seat import SeatInstance, SeatStatus, SeatType
from cinebook.models.booking import Booking, BookingSeat, BookingStatus, PaymentStatus

__all__ = [
    "Show",
    "ShowStatus",
    "SeatInstance",
    "SeatStatus",
    "SeatType",
    "Booking",
    "BookingSeat",
    "BookingStatus",
    "PaymentStatus",
]
