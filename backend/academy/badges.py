"""The automatic badge award pass."""

import logging
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from academy import crud
from academy.errors import BenignDuplicate

logger = logging.getLogger(__name__)


async def award_earned_badges(
    db: AsyncSession, user_id: int, now: datetime
) -> list[int]:
    """Award every automatic badge the user now qualifies for.

    Returns the ids of badges created by this call, never ``None``.
    Badges already held are skipped. A unique-constraint conflict means a
    concurrent evaluation awarded the same badge first; that badge is
    left out of the result rather than reported twice.
    """
    stats = await crud.get_user_stats(db, user_id)
    candidates = await crud.get_auto_award_badges(db)

    awarded: list[int] = []
    for badge_id, criteria in candidates:
        if badge_id in stats.held_badge_ids:
            continue
        if not criteria.is_satisfied(stats):
            continue
        try:
            await crud.create_user_badge(db, user_id, badge_id, now, source="auto")
        except BenignDuplicate:
            logger.debug("Badge %s already awarded to user %s", badge_id, user_id)
            continue
        logger.info("Awarded badge %s to user %s", badge_id, user_id)
        awarded.append(badge_id)
    return awarded
