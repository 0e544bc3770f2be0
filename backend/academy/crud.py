"""Asynchronous CRUD helpers for the curriculum and learner records.

Each function in this module encapsulates a specific database operation
using SQLModel and SQLAlchemy. Writes to the per-learner tables that
can race between requests (progress, level status) are single
``INSERT ... ON CONFLICT DO UPDATE`` statements so the database applies
them atomically against the unique ``(user, ...)`` constraints.
"""

import logging
from collections import defaultdict
from datetime import datetime
from typing import Iterable

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select
from sqlalchemy.orm import selectinload
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.dialects import postgresql, sqlite
from academy.models import (
    User,
    Level,
    Branch,
    Lesson,
    Question,
    UserProgress,
    QuizAttempt,
    QuizAnswer,
    UserLevelStatus,
    Badge,
    UserBadge,
)
from academy.criteria import BadgeCriteria, Manual, UserStats, parse_criteria
from academy.errors import BenignDuplicate, InvalidCriteria
from academy.grading import GradeResult

logger = logging.getLogger(__name__)


def _insert(db: AsyncSession, model):
    """Dialect-specific INSERT that supports ``on_conflict_do_update``."""
    if db.get_bind().dialect.name == "postgresql":
        return postgresql.insert(model)
    return sqlite.insert(model)


async def get_user(db: AsyncSession, user_id: int) -> User | None:
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def get_lesson(db: AsyncSession, lesson_id: int) -> Lesson | None:
    result = await db.execute(select(Lesson).where(Lesson.id == lesson_id))
    return result.scalar_one_or_none()


async def get_questions_for_lesson(db: AsyncSession, lesson_id: int) -> list[Question]:
    """Questions in the order answers are submitted."""
    result = await db.execute(
        select(Question)
        .where(Question.lesson_id == lesson_id)
        .order_by(Question.order, Question.id)
    )
    return result.scalars().all()


async def get_lesson_ids_for_level(db: AsyncSession, level_id: int) -> list[int]:
    result = await db.execute(
        select(Lesson.id).where(Lesson.level_id == level_id).order_by(Lesson.id)
    )
    return list(result.scalars().all())


async def get_lesson_ids_by_level(db: AsyncSession) -> dict[int, list[int]]:
    """Map every level id that has lessons to its lesson ids."""
    result = await db.execute(select(Lesson.level_id, Lesson.id).order_by(Lesson.id))
    by_level: dict[int, list[int]] = defaultdict(list)
    for level_id, lesson_id in result.all():
        by_level[level_id].append(lesson_id)
    return dict(by_level)


async def get_level(db: AsyncSession, level_id: int) -> Level | None:
    result = await db.execute(select(Level).where(Level.id == level_id))
    return result.scalar_one_or_none()


async def get_level_by_number(db: AsyncSession, level_number: int) -> Level | None:
    result = await db.execute(select(Level).where(Level.level_number == level_number))
    return result.scalar_one_or_none()


async def get_levels_up_to(db: AsyncSession, level_number: int) -> list[Level]:
    """Levels with ``level_number`` at or below the given number, lowest first."""
    result = await db.execute(
        select(Level)
        .where(Level.level_number <= level_number)
        .order_by(Level.level_number)
    )
    return result.scalars().all()


async def get_all_levels(db: AsyncSession) -> list[Level]:
    result = await db.execute(select(Level).order_by(Level.level_number))
    return result.scalars().all()


async def get_completed_lesson_ids(
    db: AsyncSession, user_id: int, lesson_ids: Iterable[int]
) -> set[int]:
    """Lessons whose content the user has marked consumed."""
    result = await db.execute(
        select(UserProgress.lesson_id).where(
            UserProgress.user_id == user_id,
            UserProgress.lesson_id.in_(list(lesson_ids)),
            UserProgress.completed == True,  # noqa: E712
        )
    )
    return set(result.scalars().all())


async def get_passed_lesson_ids(
    db: AsyncSession, user_id: int, lesson_ids: Iterable[int]
) -> set[int]:
    """Lessons with at least one passing quiz attempt."""
    result = await db.execute(
        select(QuizAttempt.lesson_id)
        .where(
            QuizAttempt.user_id == user_id,
            QuizAttempt.lesson_id.in_(list(lesson_ids)),
            QuizAttempt.passed == True,  # noqa: E712
        )
        .distinct()
    )
    return set(result.scalars().all())


async def record_quiz_attempt(
    db: AsyncSession,
    user_id: int,
    lesson_id: int,
    grade: GradeResult,
    now: datetime,
) -> QuizAttempt:
    """Persist a graded attempt, its answers and the progress update together.

    A new attempt row is always inserted; earlier attempts are kept.
    The user's progress row records the latest score and attempt count
    and is marked completed when this attempt passed. A failing attempt
    never clears ``completed``.
    """
    attempt = QuizAttempt(
        user_id=user_id,
        lesson_id=lesson_id,
        score=grade.score,
        total_questions=grade.total_questions,
        correct_answers=grade.correct_answers,
        passed=grade.passed,
        attempt_date=now,
    )
    db.add(attempt)
    await db.flush()  # ensure attempt.id is populated
    for graded in grade.answers:
        db.add(
            QuizAnswer(
                attempt_id=attempt.id,
                question_id=graded.question_id,
                answer=graded.answer,
                is_correct=graded.is_correct,
            )
        )

    progress = UserProgress.__table__
    stmt = _insert(db, UserProgress).values(
        user_id=user_id,
        lesson_id=lesson_id,
        completed=grade.passed,
        score=grade.score,
        attempts=1,
        last_attempt=now,
    )
    updates = {
        "score": stmt.excluded.score,
        "attempts": progress.c.attempts + 1,
        "last_attempt": stmt.excluded.last_attempt,
    }
    if grade.passed:
        updates["completed"] = True
    await db.execute(
        stmt.on_conflict_do_update(index_elements=["user_id", "lesson_id"], set_=updates)
    )
    await db.commit()
    return attempt


async def get_quiz_attempts(
    db: AsyncSession, user_id: int, lesson_id: int
) -> list[QuizAttempt]:
    """Attempt history for a lesson, newest first."""
    result = await db.execute(
        select(QuizAttempt)
        .where(QuizAttempt.user_id == user_id, QuizAttempt.lesson_id == lesson_id)
        .options(selectinload(QuizAttempt.answers))
        .order_by(QuizAttempt.attempt_date.desc(), QuizAttempt.id.desc())
    )
    return result.scalars().all()


async def get_level_status(
    db: AsyncSession, user_id: int, level_id: int
) -> UserLevelStatus | None:
    result = await db.execute(
        select(UserLevelStatus).where(
            UserLevelStatus.user_id == user_id, UserLevelStatus.level_id == level_id
        )
    )
    return result.scalar_one_or_none()


async def get_level_statuses(db: AsyncSession, user_id: int) -> list[UserLevelStatus]:
    result = await db.execute(
        select(UserLevelStatus).where(UserLevelStatus.user_id == user_id)
    )
    return result.scalars().all()


async def save_level_completion(
    db: AsyncSession,
    user_id: int,
    level_id: int,
    completion_percentage: float,
    now: datetime,
) -> None:
    """Record the completion percentage for a level.

    An existing row keeps its unlock state. A first row is created
    unlocked, since the calculator only runs on levels the user is
    already working through.
    """
    stmt = _insert(db, UserLevelStatus).values(
        user_id=user_id,
        level_id=level_id,
        is_unlocked=True,
        completion_percentage=completion_percentage,
        unlocked_at=now,
    )
    await db.execute(
        stmt.on_conflict_do_update(
            index_elements=["user_id", "level_id"],
            set_={"completion_percentage": stmt.excluded.completion_percentage},
        )
    )
    await db.commit()


async def unlock_levels(
    db: AsyncSession, user_id: int, levels: Iterable[Level], now: datetime
) -> None:
    """Mark every given level unlocked for the user in one transaction.

    Rows that are already unlocked are rewritten as well.
    """
    for level in levels:
        stmt = _insert(db, UserLevelStatus).values(
            user_id=user_id,
            level_id=level.id,
            is_unlocked=True,
            completion_percentage=0.0,
            unlocked_at=now,
        )
        await db.execute(
            stmt.on_conflict_do_update(
                index_elements=["user_id", "level_id"],
                set_={"is_unlocked": True, "unlocked_at": now},
            )
        )
    await db.commit()


async def get_user_stats(db: AsyncSession, user_id: int) -> UserStats:
    """Aggregate counts used by the badge rules."""
    completed = await db.execute(
        select(func.count(UserProgress.id)).where(
            UserProgress.user_id == user_id,
            UserProgress.completed == True,  # noqa: E712
        )
    )
    passed = await db.execute(
        select(func.count(QuizAttempt.id)).where(
            QuizAttempt.user_id == user_id,
            QuizAttempt.passed == True,  # noqa: E712
        )
    )
    perfect = await db.execute(
        select(func.count(QuizAttempt.id)).where(
            QuizAttempt.user_id == user_id,
            QuizAttempt.score == 100,
        )
    )
    unlocked = await db.execute(
        select(func.count(UserLevelStatus.id)).where(
            UserLevelStatus.user_id == user_id,
            UserLevelStatus.is_unlocked == True,  # noqa: E712
        )
    )
    held = await db.execute(
        select(UserBadge.badge_id).where(UserBadge.user_id == user_id)
    )
    return UserStats(
        completed_lessons=completed.scalar_one(),
        passed_quizzes=passed.scalar_one(),
        perfect_scores=perfect.scalar_one(),
        unlocked_levels=unlocked.scalar_one(),
        held_badge_ids=frozenset(held.scalars().all()),
    )


async def get_badge(db: AsyncSession, badge_id: int) -> Badge | None:
    result = await db.execute(select(Badge).where(Badge.id == badge_id))
    return result.scalar_one_or_none()


async def get_badges_by_ids(db: AsyncSession, badge_ids: list[int]) -> list[Badge]:
    if not badge_ids:
        return []
    result = await db.execute(
        select(Badge).where(Badge.id.in_(badge_ids)).order_by(Badge.id)
    )
    return result.scalars().all()


async def get_auto_award_badges(db: AsyncSession) -> list[tuple[int, BadgeCriteria]]:
    """Decoded rules for every badge that is not manual-only.

    Badges whose stored criteria cannot be decoded are skipped.
    """
    result = await db.execute(select(Badge).order_by(Badge.id))
    rules = []
    for badge in result.scalars().all():
        try:
            criteria = parse_criteria(badge.criteria)
        except InvalidCriteria as exc:
            logger.warning("Skipping badge %s with invalid criteria: %s", badge.id, exc)
            continue
        if isinstance(criteria, Manual):
            continue
        rules.append((badge.id, criteria))
    return rules


async def user_has_badge(db: AsyncSession, user_id: int, badge_id: int) -> bool:
    result = await db.execute(
        select(UserBadge.id).where(
            UserBadge.user_id == user_id, UserBadge.badge_id == badge_id
        )
    )
    return result.first() is not None


async def create_user_badge(
    db: AsyncSession,
    user_id: int,
    badge_id: int,
    now: datetime,
    source: str = "auto",
    awarded_by: int | None = None,
) -> None:
    """Insert a ``UserBadge`` row, committing immediately.

    Raises ``BenignDuplicate`` when the unique ``(user, badge)``
    constraint shows another request awarded the badge first. Any other
    integrity failure propagates.
    """
    db.add(
        UserBadge(
            user_id=user_id,
            badge_id=badge_id,
            source=source,
            awarded_by_user_id=awarded_by,
            earned_at=now,
        )
    )
    try:
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        if await user_has_badge(db, user_id, badge_id):
            raise BenignDuplicate(
                f"User {user_id} already holds badge {badge_id}"
            ) from exc
        raise


async def get_user_badges(
    db: AsyncSession, user_id: int
) -> list[tuple[Badge, UserBadge]]:
    result = await db.execute(
        select(Badge, UserBadge)
        .join(UserBadge, UserBadge.badge_id == Badge.id)
        .where(UserBadge.user_id == user_id)
        .order_by(UserBadge.earned_at, Badge.id)
    )
    return [(badge, user_badge) for badge, user_badge in result.all()]


async def ensure_curriculum_content(db: AsyncSession) -> None:
    """Seed the database with the built-in levels, branches and badges."""

    from academy.curriculum_content import BADGES, BRANCHES, LEVELS

    for data in LEVELS:
        if not await get_level_by_number(db, data["level_number"]):
            db.add(Level(**data))
    for data in BRANCHES:
        result = await db.execute(select(Branch).where(Branch.slug == data["slug"]))
        if not result.scalar_one_or_none():
            db.add(Branch(**data))
    for data in BADGES:
        result = await db.execute(select(Badge).where(Badge.name == data["name"]))
        if not result.scalar_one_or_none():
            parse_criteria(data["criteria"])
            db.add(Badge(**data))
    await db.commit()
