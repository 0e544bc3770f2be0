"""Entry points of the progression, unlock and badge engine.

:class:`ProgressionEngine` is handed its collaborators explicitly: a
session factory for the database, a notifier and a clock. Each entry
point runs on its own session.

After a quiz attempt is stored, the level and badge steps run best
effort: if they fail the failure is logged and the graded result is
still returned with default values.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Awaitable, Callable, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from academy import crud
from academy.badges import award_earned_badges
from academy.errors import BenignDuplicate, NotFound, TransientStoreFailure
from academy.grading import grade_answers, parse_identifier
from academy.levels import LevelCheck, calculate_level_completion
from academy.models import Badge, utcnow
from academy.notifications import EmailNotifier, Notifier

logger = logging.getLogger(__name__)


@dataclass
class QuizResult:
    score: int
    passed: bool
    correct_answers: int
    total_questions: int
    attempt_id: int
    level_unlocked: bool = False
    next_level_id: Optional[int] = None
    completion_percentage: float = 0.0
    new_badges: list[Badge] = field(default_factory=list)


class ProgressionEngine:
    def __init__(
        self,
        sessionmaker: async_sessionmaker,
        notifier: Optional[Notifier] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._sessionmaker = sessionmaker
        self._notifier = notifier if notifier is not None else EmailNotifier()
        self._clock = clock
        self._pending: set[asyncio.Task] = set()

    @asynccontextmanager
    async def _session(self):
        """Session whose database errors surface as ``TransientStoreFailure``."""
        async with self._sessionmaker() as db:
            try:
                yield db
            except SQLAlchemyError as exc:
                await db.rollback()
                logger.error("Database error: %s", exc)
                raise TransientStoreFailure("The database is unavailable") from exc

    async def submit_quiz(
        self, user_id, lesson_id, answers: Sequence[str]
    ) -> QuizResult:
        """Grade and record a quiz attempt, then update levels and badges."""
        lesson_id = parse_identifier(lesson_id, "lesson")
        user_id = parse_identifier(user_id, "user")
        answers = list(answers or [])

        async with self._session() as db:
            lesson = await crud.get_lesson(db, lesson_id)
            if lesson is None:
                raise NotFound("Lesson not found")
            if await crud.get_user(db, user_id) is None:
                raise NotFound("User not found")
            questions = await crud.get_questions_for_lesson(db, lesson_id)
            grade = grade_answers(questions, answers)
            attempt = await crud.record_quiz_attempt(
                db, user_id, lesson_id, grade, self._clock()
            )
            level_id = lesson.level_id

        logger.info(
            "User %s scored %s on lesson %s (attempt %s)",
            user_id,
            grade.score,
            lesson_id,
            attempt.id,
        )
        result = QuizResult(
            score=grade.score,
            passed=grade.passed,
            correct_answers=grade.correct_answers,
            total_questions=grade.total_questions,
            attempt_id=attempt.id,
        )

        awarded: list[int] = []
        try:
            check = await self._check_level(user_id, level_id)
            result.level_unlocked = check.level_unlocked
            result.next_level_id = check.next_level_id
            result.completion_percentage = check.completion_percentage
            awarded.extend(check.awarded_badge_ids)
        except Exception:
            logger.exception(
                "Level check failed after attempt %s for user %s", attempt.id, user_id
            )

        try:
            awarded.extend(await self._award_badges(user_id))
            if awarded:
                async with self._session() as db:
                    result.new_badges = await crud.get_badges_by_ids(db, awarded)
        except Exception:
            logger.exception(
                "Badge check failed after attempt %s for user %s", attempt.id, user_id
            )
        return result

    async def check_and_unlock_next_level(self, user_id, level_id) -> LevelCheck:
        """Recompute a level's completion and unlock the next one when done."""
        user_id = parse_identifier(user_id, "user")
        level_id = parse_identifier(level_id, "level")
        async with self._session() as db:
            if await crud.get_level(db, level_id) is None:
                raise NotFound("Level not found")
        return await self._check_level(user_id, level_id)

    async def check_and_award_badges(self, user_id) -> list[int]:
        """Award every automatic badge the user qualifies for; return new ids."""
        user_id = parse_identifier(user_id, "user")
        async with self._session() as db:
            if await crud.get_user(db, user_id) is None:
                raise NotFound("User not found")
        return await self._award_badges(user_id)

    async def manually_award_badge(
        self, user_id, badge_id, awarded_by: Optional[int] = None
    ) -> bool:
        """Give a badge regardless of its criteria.

        Returns False when the user already holds it.
        """
        user_id = parse_identifier(user_id, "user")
        badge_id = parse_identifier(badge_id, "badge")
        async with self._session() as db:
            badge = await crud.get_badge(db, badge_id)
            if badge is None:
                raise NotFound("Badge not found")
            user = await crud.get_user(db, user_id)
            if user is None:
                raise NotFound("User not found")
            if await crud.user_has_badge(db, user_id, badge_id):
                return False
            try:
                await crud.create_user_badge(
                    db,
                    user_id,
                    badge_id,
                    self._clock(),
                    source="manual",
                    awarded_by=awarded_by,
                )
            except BenignDuplicate:
                return False
        logger.info("Badge %s manually awarded to user %s", badge_id, user_id)
        self._dispatch(self._notifier.badge_earned(user, badge), f"badge {badge_id}")
        return True

    async def _check_level(self, user_id: int, level_id: int) -> LevelCheck:
        async with self._session() as db:
            check = await calculate_level_completion(
                db, user_id, level_id, self._clock()
            )
        if check.level_unlocked:
            try:
                check.awarded_badge_ids = await self._award_badges(user_id)
            except Exception:
                logger.exception(
                    "Badge check failed after unlocking level %s for user %s",
                    check.next_level_id,
                    user_id,
                )
            await self._notify_level_unlocked(user_id, check)
        return check

    async def _award_badges(self, user_id: int) -> list[int]:
        async with self._session() as db:
            awarded = await award_earned_badges(db, user_id, self._clock())
            if not awarded:
                return awarded
            user = await crud.get_user(db, user_id)
            badges = await crud.get_badges_by_ids(db, awarded)
        if user is not None:
            for badge in badges:
                self._dispatch(
                    self._notifier.badge_earned(user, badge), f"badge {badge.id}"
                )
        return awarded

    async def _notify_level_unlocked(self, user_id: int, check: LevelCheck) -> None:
        try:
            async with self._session() as db:
                user = await crud.get_user(db, user_id)
        except TransientStoreFailure:
            logger.exception("Could not load user %s for unlock notification", user_id)
            return
        if user is not None and check.unlocked_level is not None:
            self._dispatch(
                self._notifier.level_unlocked(user, check.unlocked_level),
                f"level {check.unlocked_level.id}",
            )

    def _dispatch(self, notification: Awaitable[None], description: str) -> None:
        task = asyncio.create_task(self._deliver(notification, description))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _deliver(self, notification: Awaitable[None], description: str) -> None:
        try:
            await notification
        except Exception:
            logger.exception("Failed to send %s notification", description)

    async def wait_for_notifications(self) -> None:
        """Wait until every scheduled notification has finished."""
        while self._pending:
            await asyncio.gather(*list(self._pending))


_default_engine: Optional[ProgressionEngine] = None


def get_progression_engine() -> ProgressionEngine:
    """FastAPI dependency returning the application's engine."""
    global _default_engine
    if _default_engine is None:
        from academy.database import async_session

        _default_engine = ProgressionEngine(async_session)
    return _default_engine
