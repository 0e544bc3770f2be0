"""Lesson completion checks.

A lesson is fully complete for a user only when the content was marked
consumed (a ``UserProgress`` row with ``completed``) AND a quiz attempt
for it passed. Neither condition alone is enough. Both are read live on
every call, so a progress row reset to ``completed=False`` stops the
lesson counting even if a passing attempt exists.
"""

from typing import Iterable

from sqlalchemy.ext.asyncio import AsyncSession

from academy.crud import get_completed_lesson_ids, get_passed_lesson_ids


async def is_lesson_fully_complete(
    db: AsyncSession, user_id: int, lesson_id: int
) -> bool:
    return lesson_id in await fully_completed_lesson_ids(db, user_id, [lesson_id])


async def fully_completed_lesson_ids(
    db: AsyncSession, user_id: int, lesson_ids: Iterable[int]
) -> set[int]:
    """Return the subset of ``lesson_ids`` that are fully complete."""
    lesson_ids = list(lesson_ids)
    if not lesson_ids:
        return set()
    consumed = await get_completed_lesson_ids(db, user_id, lesson_ids)
    passed = await get_passed_lesson_ids(db, user_id, lesson_ids)
    return consumed & passed
