"""Routes for quiz submission and attempt history."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from academy.database import get_session
from academy.crud import get_quiz_attempts
from academy.grading import parse_identifier
from academy.progression import ProgressionEngine, get_progression_engine
from academy.routes.badges import badge_read
from academy.schemas import (
    QuizSubmission,
    QuizResultRead,
    QuizAttemptRead,
    QuizAnswerRead,
)

router = APIRouter(prefix="/users/{user_id}/lessons", tags=["quizzes"])


@router.post("/{lesson_id}/quiz", response_model=QuizResultRead)
async def submit_quiz(
    user_id: str,
    lesson_id: str,
    submission: QuizSubmission,
    engine: ProgressionEngine = Depends(get_progression_engine),
):
    result = await engine.submit_quiz(user_id, lesson_id, submission.answers)
    return QuizResultRead(
        score=result.score,
        passed=result.passed,
        correct_answers=result.correct_answers,
        total_questions=result.total_questions,
        attempt_id=result.attempt_id,
        level_unlocked=result.level_unlocked,
        next_level_id=result.next_level_id,
        completion_percentage=result.completion_percentage,
        new_badges=[badge_read(b) for b in result.new_badges],
    )


@router.get("/{lesson_id}/attempts", response_model=list[QuizAttemptRead])
async def quiz_history(
    user_id: str,
    lesson_id: str,
    db: AsyncSession = Depends(get_session),
):
    attempts = await get_quiz_attempts(
        db, parse_identifier(user_id, "user"), parse_identifier(lesson_id, "lesson")
    )
    return [
        QuizAttemptRead(
            id=a.id,
            lesson_id=a.lesson_id,
            score=a.score,
            total_questions=a.total_questions,
            correct_answers=a.correct_answers,
            passed=a.passed,
            attempt_date=a.attempt_date,
            answers=[
                QuizAnswerRead(
                    question_id=ans.question_id,
                    answer=ans.answer,
                    is_correct=ans.is_correct,
                )
                for ans in sorted(a.answers, key=lambda ans: ans.id)
            ],
        )
        for a in attempts
    ]
