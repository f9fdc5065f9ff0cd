"""
Unit tests for the show occupancy state machine
"""

from decimal import Decimal

import pytest

from cinebook.models.show import ShowStatus
from cinebook.services.occupancy import compute_occupancy_status

THRESHOLD = Decimal("80")


@pytest.mark.unit
class TestComputeOccupancyStatus:

    @pytest.mark.parametrize(
        "sold,total,expected",
        [
            (0, 10, ShowStatus.OPEN),
            (7, 10, ShowStatus.OPEN),
            (8, 10, ShowStatus.ALMOST_FULL),
            (9, 10, ShowStatus.ALMOST_FULL),
            (10, 10, ShowStatus.SOLD_OUT),
        ],
    )
    def test_thresholds(self, sold, total, expected):
        assert compute_occupancy_status(sold, total, ShowStatus.OPEN, THRESHOLD) == expected

    def test_sold_out_returns_to_open_when_seats_free_up(self):
        assert compute_occupancy_status(3, 10, ShowStatus.SOLD_OUT, THRESHOLD) == ShowStatus.OPEN

    def test_cancelled_show_is_never_changed(self):
        assert compute_occupancy_status(10, 10, ShowStatus.CANCELLED, THRESHOLD) == ShowStatus.CANCELLED
        assert compute_occupancy_status(0, 10, ShowStatus.CANCELLED, THRESHOLD) == ShowStatus.CANCELLED

    def test_show_without_seats_keeps_status(self):
        assert compute_occupancy_status(0, 0, ShowStatus.SCHEDULED, THRESHOLD) == ShowStatus.SCHEDULED

    def test_custom_threshold(self):
        assert compute_occupancy_status(5, 10, ShowStatus.OPEN, Decimal("50")) == ShowStatus.ALMOST_FULL
