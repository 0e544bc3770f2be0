"""Level completion and the unlock cascade."""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from academy.completion import fully_completed_lesson_ids
from academy.crud import (
    get_all_levels,
    get_lesson_ids_by_level,
    get_lesson_ids_for_level,
    get_level,
    get_level_by_number,
    get_level_status,
    get_level_statuses,
    get_levels_up_to,
    save_level_completion,
    unlock_levels,
)
from academy.grading import percentage
from academy.models import Level

logger = logging.getLogger(__name__)


@dataclass
class LevelCheck:
    """Outcome of evaluating one level for one user.

    ``unlocked_level`` is set only when this evaluation unlocked the
    next level, and ``awarded_badge_ids`` collects badges awarded as a
    consequence.
    """

    level_unlocked: bool
    completion_percentage: float
    next_level_id: Optional[int] = None
    unlocked_level: Optional[Level] = None
    awarded_badge_ids: list[int] = field(default_factory=list)


async def calculate_level_completion(
    db: AsyncSession, user_id: int, level_id: int, now: datetime
) -> LevelCheck:
    """Recompute the user's completion of a level and unlock onward if done.

    A level without lessons reports 0% and writes nothing.
    """
    lesson_ids = await get_lesson_ids_for_level(db, level_id)
    if not lesson_ids:
        return LevelCheck(level_unlocked=False, completion_percentage=0.0)

    done = await fully_completed_lesson_ids(db, user_id, lesson_ids)
    completion = 100 * len(done) / len(lesson_ids)
    await save_level_completion(db, user_id, level_id, completion, now)

    if len(done) < len(lesson_ids):
        return LevelCheck(level_unlocked=False, completion_percentage=completion)
    return await unlock_next_level(db, user_id, level_id, now)


async def unlock_next_level(
    db: AsyncSession, user_id: int, level_id: int, now: datetime
) -> LevelCheck:
    """Unlock the level after ``level_id`` and every level below it.

    Called once ``level_id`` is 100% complete. When the next level is
    already unlocked nothing is written and ``level_unlocked`` is False,
    so repeated calls do not announce the same unlock twice. Otherwise
    all levels up to the next one are rewritten as unlocked, which also
    repairs any lower level a past run failed to unlock.
    """
    current = await get_level(db, level_id)
    if current is None:
        logger.warning("Level %s vanished during unlock check", level_id)
        return LevelCheck(level_unlocked=False, completion_percentage=100.0)

    next_level = await get_level_by_number(db, current.level_number + 1)
    if next_level is None:
        # final level finished
        return LevelCheck(level_unlocked=False, completion_percentage=100.0)

    status = await get_level_status(db, user_id, next_level.id)
    if status is not None and status.is_unlocked:
        return LevelCheck(
            level_unlocked=False,
            completion_percentage=100.0,
            next_level_id=next_level.id,
        )

    levels = await get_levels_up_to(db, next_level.level_number)
    await unlock_levels(db, user_id, levels, now)
    logger.info(
        "User %s unlocked level %s (%d levels marked unlocked)",
        user_id,
        next_level.level_number,
        len(levels),
    )
    return LevelCheck(
        level_unlocked=True,
        completion_percentage=100.0,
        next_level_id=next_level.id,
        unlocked_level=next_level,
    )


@dataclass
class LevelProgress:
    level_id: int
    level_number: int
    name: str
    description: Optional[str]
    is_unlocked: bool
    total_lessons: int
    completed_lessons: int
    completion_percentage: int


async def get_level_overview(db: AsyncSession, user_id: int) -> list[LevelProgress]:
    """Every level with the user's unlock state and live completion counts.

    Level 1 reads as unlocked when the user has no status row for it yet.
    """
    levels = await get_all_levels(db)
    statuses = {s.level_id: s for s in await get_level_statuses(db, user_id)}
    lessons_by_level = await get_lesson_ids_by_level(db)
    all_lesson_ids = [i for ids in lessons_by_level.values() for i in ids]
    done = await fully_completed_lesson_ids(db, user_id, all_lesson_ids)

    overview = []
    for level in levels:
        lesson_ids = lessons_by_level.get(level.id, [])
        completed = sum(1 for i in lesson_ids if i in done)
        status = statuses.get(level.id)
        overview.append(
            LevelProgress(
                level_id=level.id,
                level_number=level.level_number,
                name=level.name,
                description=level.description,
                is_unlocked=status.is_unlocked if status else level.level_number == 1,
                total_lessons=len(lesson_ids),
                completed_lessons=completed,
                completion_percentage=percentage(completed, len(lesson_ids)),
            )
        )
    return overview
