"""Tests for grading a quiz submission and the steps it triggers."""

import asyncio
import pathlib
import sys
from datetime import datetime

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker
from sqlmodel import SQLModel, select

sys.path.append(str(pathlib.Path(__file__).resolve().parents[2]))

from academy import crud, progression
from academy.errors import InvalidIdentifier, NotFound, TransientStoreFailure
from academy.models import (
    User,
    Level,
    Branch,
    Lesson,
    Question,
    UserProgress,
    QuizAttempt,
    QuizAnswer,
    Badge,
    UserBadge,
)
from academy.progression import ProgressionEngine

NOW = datetime(2024, 5, 1, 12, 0, 0)


class RecordingNotifier:
    def __init__(self):
        self.events = []

    async def level_unlocked(self, user, level):
        self.events.append(("level", level.id))

    async def badge_earned(self, user, badge):
        self.events.append(("badge", badge.id))


async def _setup_test_db():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    return async_sessionmaker(engine, expire_on_commit=False)


async def _seed(TestSession):
    """One three-question lesson in level 1, an empty level 2, and badges."""
    async with TestSession() as session:
        user = User(name="Student", email="student@example.com")
        branch = Branch(slug="aqeedah", name="Aqeedah")
        level1 = Level(level_number=1, name="Level 1")
        level2 = Level(level_number=2, name="Level 2")
        session.add_all([user, branch, level1, level2])
        await session.flush()
        lesson = Lesson(level_id=level1.id, branch_id=branch.id, title="Belief")
        session.add(lesson)
        await session.flush()
        for order, answer in enumerate(["A", "B", "C"]):
            session.add(
                Question(
                    lesson_id=lesson.id,
                    prompt=f"Question {order + 1}",
                    options=["A", "B", "C", "D"],
                    correct_answer=answer,
                    order=order,
                )
            )
        badges = {
            "first": Badge(name="First Steps", criteria={"type": "lessons_completed", "value": 1}),
            "perfect": Badge(name="Perfectionist", criteria={"type": "perfect_score", "value": 1}),
            "graduate": Badge(name="Graduate", criteria={"type": "level_completed", "value": 2}),
            "marathon": Badge(name="Marathon", criteria={"type": "quizzes_passed", "value": 5}),
            "helper": Badge(name="Helper", criteria={"type": "manual"}),
        }
        session.add_all(badges.values())
        await session.commit()
        return {
            "user": user.id,
            "lesson": lesson.id,
            "level1": level1.id,
            "level2": level2.id,
            **{key: badge.id for key, badge in badges.items()},
        }


async def _count(TestSession, model, **filters):
    async with TestSession() as session:
        stmt = select(model)
        for name, value in filters.items():
            stmt = stmt.where(getattr(model, name) == value)
        result = await session.execute(stmt)
        return len(result.scalars().all())


def test_passing_submission_unlocks_and_awards():
    async def run():
        TestSession = await _setup_test_db()
        ids = await _seed(TestSession)
        notifier = RecordingNotifier()
        engine = ProgressionEngine(TestSession, notifier=notifier, clock=lambda: NOW)

        result = await engine.submit_quiz(ids["user"], str(ids["lesson"]), ["A", "B", "C"])
        assert result.score == 100
        assert result.passed is True
        assert result.correct_answers == 3
        assert result.total_questions == 3
        assert result.attempt_id is not None
        assert result.level_unlocked is True
        assert result.next_level_id == ids["level2"]
        assert result.completion_percentage == 100
        assert sorted(b.id for b in result.new_badges) == sorted(
            [ids["first"], ids["perfect"], ids["graduate"]]
        )

        await engine.wait_for_notifications()
        assert ("level", ids["level2"]) in notifier.events
        assert sorted(e[1] for e in notifier.events if e[0] == "badge") == sorted(
            [ids["first"], ids["perfect"], ids["graduate"]]
        )

    asyncio.run(run())


def test_failing_submission():
    async def run():
        TestSession = await _setup_test_db()
        ids = await _seed(TestSession)
        engine = ProgressionEngine(TestSession, notifier=RecordingNotifier(), clock=lambda: NOW)

        result = await engine.submit_quiz(ids["user"], ids["lesson"], ["A", "X", "Y"])
        assert result.score == 33
        assert result.passed is False
        assert result.correct_answers == 1
        assert result.level_unlocked is False
        assert result.completion_percentage == 0
        assert result.new_badges == []

        async with TestSession() as session:
            progress = (
                await session.execute(
                    select(UserProgress).where(UserProgress.user_id == ids["user"])
                )
            ).scalar_one()
        assert progress.completed is False
        assert progress.score == 33
        assert progress.attempts == 1
        assert progress.last_attempt == NOW

    asyncio.run(run())


def test_attempts_accumulate_and_grading_is_deterministic():
    async def run():
        TestSession = await _setup_test_db()
        ids = await _seed(TestSession)
        engine = ProgressionEngine(TestSession, notifier=RecordingNotifier(), clock=lambda: NOW)

        first = await engine.submit_quiz(ids["user"], ids["lesson"], ["A", "B", "X"])
        second = await engine.submit_quiz(ids["user"], ids["lesson"], ["A", "B", "X"])
        assert (first.score, first.passed) == (second.score, second.passed) == (67, True)
        assert first.attempt_id != second.attempt_id

        assert await _count(TestSession, QuizAttempt, user_id=ids["user"]) == 2
        assert await _count(TestSession, QuizAnswer, attempt_id=first.attempt_id) == 3

        async with TestSession() as session:
            progress = (
                await session.execute(
                    select(UserProgress).where(UserProgress.user_id == ids["user"])
                )
            ).scalar_one()
            history = await crud.get_quiz_attempts(session, ids["user"], ids["lesson"])
        assert progress.attempts == 2
        assert len(history) == 2
        assert [a.is_correct for a in sorted(history[0].answers, key=lambda a: a.id)] == [
            True,
            True,
            False,
        ]

    asyncio.run(run())


def test_failing_after_passing_keeps_lesson_completed():
    async def run():
        TestSession = await _setup_test_db()
        ids = await _seed(TestSession)
        engine = ProgressionEngine(TestSession, notifier=RecordingNotifier(), clock=lambda: NOW)

        await engine.submit_quiz(ids["user"], ids["lesson"], ["A", "B", "C"])
        retry = await engine.submit_quiz(ids["user"], ids["lesson"], [])
        assert retry.score == 0
        assert retry.passed is False
        assert retry.level_unlocked is False
        assert retry.completion_percentage == 100
        assert retry.new_badges == []

        async with TestSession() as session:
            progress = (
                await session.execute(
                    select(UserProgress).where(UserProgress.user_id == ids["user"])
                )
            ).scalar_one()
        assert progress.completed is True
        assert progress.score == 0

    asyncio.run(run())


def test_invalid_and_unknown_lessons_record_nothing():
    async def run():
        TestSession = await _setup_test_db()
        ids = await _seed(TestSession)
        engine = ProgressionEngine(TestSession, notifier=RecordingNotifier(), clock=lambda: NOW)

        with pytest.raises(InvalidIdentifier):
            await engine.submit_quiz(ids["user"], "1'; DROP TABLE lesson; --", ["A"])
        with pytest.raises(InvalidIdentifier):
            await engine.submit_quiz(ids["user"], "-4", ["A"])
        with pytest.raises(NotFound):
            await engine.submit_quiz(ids["user"], 9999, ["A"])
        with pytest.raises(NotFound):
            await engine.submit_quiz(9999, ids["lesson"], ["A"])

        assert await _count(TestSession, QuizAttempt) == 0

    asyncio.run(run())


def test_downstream_failure_does_not_mask_grading(monkeypatch):
    async def broken_level_check(*args, **kwargs):
        raise RuntimeError("level step exploded")

    monkeypatch.setattr(progression, "calculate_level_completion", broken_level_check)

    async def run():
        TestSession = await _setup_test_db()
        ids = await _seed(TestSession)
        engine = ProgressionEngine(TestSession, notifier=RecordingNotifier(), clock=lambda: NOW)

        result = await engine.submit_quiz(ids["user"], ids["lesson"], ["A", "B", "C"])
        assert result.score == 100
        assert result.passed is True
        assert result.level_unlocked is False
        assert result.completion_percentage == 0
        # the independent badge pass still runs
        assert sorted(b.id for b in result.new_badges) == sorted(
            [ids["first"], ids["perfect"]]
        )
        assert await _count(TestSession, QuizAttempt, id=result.attempt_id) == 1

    asyncio.run(run())


def test_store_failure_records_no_attempt(monkeypatch):
    async def failing_record(*args, **kwargs):
        raise OperationalError("INSERT INTO quizattempt", {}, Exception("disk I/O error"))

    monkeypatch.setattr(crud, "record_quiz_attempt", failing_record)

    async def run():
        TestSession = await _setup_test_db()
        ids = await _seed(TestSession)
        engine = ProgressionEngine(TestSession, notifier=RecordingNotifier(), clock=lambda: NOW)

        with pytest.raises(TransientStoreFailure):
            await engine.submit_quiz(ids["user"], ids["lesson"], ["A", "B", "C"])
        assert await _count(TestSession, QuizAttempt) == 0
        assert await _count(TestSession, UserBadge) == 0

    asyncio.run(run())
