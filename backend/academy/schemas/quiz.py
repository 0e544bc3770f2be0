from datetime import datetime
from typing import List, Optional
from sqlmodel import SQLModel

from .badge import BadgeRead


class QuizSubmission(SQLModel):
    answers: List[str]


class QuizResultRead(SQLModel):
    score: int
    passed: bool
    correct_answers: int
    total_questions: int
    attempt_id: int
    level_unlocked: bool
    next_level_id: Optional[int] = None
    completion_percentage: float
    new_badges: List[BadgeRead] = []


class QuizAnswerRead(SQLModel):
    question_id: int
    answer: str
    is_correct: bool


class QuizAttemptRead(SQLModel):
    id: int
    lesson_id: int
    score: int
    total_questions: int
    correct_answers: int
    passed: bool
    attempt_date: datetime
    answers: List[QuizAnswerRead] = []
