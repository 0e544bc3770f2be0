"""Convenience imports for all schema classes used by the API."""

from .badge import BadgeRead, UserBadgeRead, BadgeCheckResult, ManualAwardResult
from .quiz import QuizSubmission, QuizResultRead, QuizAnswerRead, QuizAttemptRead
from .level import LevelCheckRead, LevelProgressRead

__all__ = [
    "BadgeRead",
    "UserBadgeRead",
    "BadgeCheckResult",
    "ManualAwardResult",
    "QuizSubmission",
    "QuizResultRead",
    "QuizAnswerRead",
    "QuizAttemptRead",
    "LevelCheckRead",
    "LevelProgressRead",
]
