"""Database models used by the academy progression engine.

The models are defined with SQLModel (built on SQLAlchemy and Pydantic)
and represent the curriculum (levels, branches, lessons, questions) and
the per-learner records the engine reads and maintains (progress, quiz
attempts, level status and badges).
"""

from typing import Optional, List
from datetime import datetime, timezone
from sqlmodel import SQLModel, Field, Relationship
from sqlalchemy import Column, JSON, UniqueConstraint


def utcnow() -> datetime:
    """Naive UTC timestamp, the form every datetime column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class User(SQLModel, table=True):
    """Learner or administrator account."""
    id: Optional[int] = Field(default=None, primary_key=True)
    name: Optional[str] = None
    email: str = Field(unique=True, index=True)
    role: str = "student"  # 'student' or 'admin'
    created_at: datetime = Field(default_factory=utcnow)


class Level(SQLModel, table=True):
    """Ordered tier of the curriculum; levels unlock sequentially."""
    id: Optional[int] = Field(default=None, primary_key=True)
    level_number: int = Field(unique=True, index=True)
    name: str
    description: Optional[str] = None


class Branch(SQLModel, table=True):
    """Subject-matter category that cuts across levels."""
    id: Optional[int] = Field(default=None, primary_key=True)
    slug: str = Field(unique=True, index=True)
    name: str


class Lesson(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    level_id: int = Field(foreign_key="level.id", index=True)
    branch_id: int = Field(foreign_key="branch.id")
    title: str
    order: int = 1


class Question(SQLModel, table=True):
    """Quiz question; answers are compared to ``correct_answer`` verbatim."""
    id: Optional[int] = Field(default=None, primary_key=True)
    lesson_id: int = Field(foreign_key="lesson.id", index=True)
    prompt: str
    type: str = "multiple_choice"  # 'multiple_choice' or 'true_false'
    options: List[str] = Field(sa_column=Column(JSON), default_factory=list)
    correct_answer: str
    order: int = 0


class UserProgress(SQLModel, table=True):
    """One row per (user, lesson) recording whether the content was consumed."""

    __table_args__ = (UniqueConstraint("user_id", "lesson_id"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    lesson_id: int = Field(foreign_key="lesson.id")
    completed: bool = False
    score: float = 0.0
    attempts: int = 0
    last_attempt: Optional[datetime] = None


class QuizAttempt(SQLModel, table=True):
    """Append-only record of a single quiz submission."""

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    lesson_id: int = Field(foreign_key="lesson.id", index=True)
    score: int
    total_questions: int
    correct_answers: int
    passed: bool
    attempt_date: datetime = Field(default_factory=utcnow)

    answers: List["QuizAnswer"] = Relationship(back_populates="attempt")


class QuizAnswer(SQLModel, table=True):
    """Answer given to one question within an attempt."""

    id: Optional[int] = Field(default=None, primary_key=True)
    attempt_id: int = Field(foreign_key="quizattempt.id", index=True)
    question_id: int = Field(foreign_key="question.id")
    answer: str = ""
    is_correct: bool = False

    attempt: QuizAttempt = Relationship(back_populates="answers")


class UserLevelStatus(SQLModel, table=True):
    """Per (user, level) unlock flag and completion percentage."""

    __table_args__ = (UniqueConstraint("user_id", "level_id"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    level_id: int = Field(foreign_key="level.id")
    is_unlocked: bool = False
    completion_percentage: float = 0.0  # 0-100, unrounded
    unlocked_at: Optional[datetime] = None


class Badge(SQLModel, table=True):
    """Admin-authored achievement.

    ``criteria`` holds the serialized rule ``{"type": ..., "value": ...}``;
    it is decoded by :func:`academy.criteria.parse_criteria`.
    """

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    description: str = ""
    icon: str = ""
    criteria: dict = Field(sa_column=Column(JSON), default_factory=dict)
    created_at: datetime = Field(default_factory=utcnow)


class UserBadge(SQLModel, table=True):
    """Existence of a row means the user has earned the badge."""

    __table_args__ = (UniqueConstraint("user_id", "badge_id"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    badge_id: int = Field(foreign_key="badge.id")
    source: str = "auto"  # 'auto' or 'manual'
    awarded_by_user_id: Optional[int] = Field(default=None, foreign_key="user.id")
    earned_at: datetime = Field(default_factory=utcnow)
