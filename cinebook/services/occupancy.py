"""
Show occupancy state machine

Occupancy is a cached projection of seat counts. It is recomputed inside the
same unit of work as every seat transition that can change the sold count.
"""

import logging
from decimal import Decimal
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from cinebook.core.exceptions import ShowNotFoundError
from cinebook.models.seat import SeatStatus
from cinebook.models.show import Show, ShowStatus
from cinebook.services import inventory

logger = logging.getLogger(__name__)


def compute_occupancy_status(
    sold: int,
    total: int,
    current: ShowStatus,
    almost_full_threshold: Decimal
) -> ShowStatus:
    if current == ShowStatus.CANCELLED:
        return current
    if total <= 0:
        return current

    percent_sold = Decimal(sold) * 100 / Decimal(total)
    if percent_sold >= 100:
        return ShowStatus.SOLD_OUT
    if percent_sold >= Decimal(almost_full_threshold):
        return ShowStatus.ALMOST_FULL
    return ShowStatus.OPEN


async def recompute_show_occupancy(
    session: AsyncSession,
    show_id: UUID,
    almost_full_threshold: Decimal
) -> Show:
    """Lock the show row, recount its seats and store the derived status"""
    # Pending seat transitions must be visible to the count query
    await session.flush()

    show = await inventory.get_show(session, show_id, for_update=True)
    if show is None:
        raise ShowNotFoundError(show_id)

    counts = await inventory.count_seats_by_status(session, show_id)
    total = sum(counts.values())
    sold = counts.get(SeatStatus.SOLD, 0)

    new_status = compute_occupancy_status(sold, total, show.status, almost_full_threshold)
    if new_status != show.status:
        logger.info(f"Show {show_id} occupancy {show.status.value} -> {new_status.value} ({sold}/{total} sold)")
        show.status = new_status
    return show
