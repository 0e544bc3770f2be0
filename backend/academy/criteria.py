"""Badge rules.

A badge's stored ``criteria`` blob is decoded once into one of the
criteria classes below; each knows how to test itself against a
learner's aggregate :class:`UserStats`.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Union

from academy.errors import InvalidCriteria


class CriteriaType(str, Enum):
    LESSONS_COMPLETED = "lessons_completed"
    LEVEL_COMPLETED = "level_completed"
    QUIZZES_PASSED = "quizzes_passed"
    PERFECT_SCORE = "perfect_score"
    MANUAL = "manual"


@dataclass(frozen=True)
class UserStats:
    """Counts the badge rules are evaluated against."""

    completed_lessons: int = 0
    passed_quizzes: int = 0
    perfect_scores: int = 0
    unlocked_levels: int = 0
    held_badge_ids: frozenset[int] = field(default_factory=frozenset)


@dataclass(frozen=True)
class LessonsCompleted:
    value: int
    type = CriteriaType.LESSONS_COMPLETED

    def is_satisfied(self, stats: UserStats) -> bool:
        return stats.completed_lessons >= self.value


@dataclass(frozen=True)
class LevelCompleted:
    """Satisfied once ``value`` levels are unlocked (``value - 1`` completed)."""

    value: int
    type = CriteriaType.LEVEL_COMPLETED

    def is_satisfied(self, stats: UserStats) -> bool:
        return stats.unlocked_levels >= self.value


@dataclass(frozen=True)
class QuizzesPassed:
    value: int
    type = CriteriaType.QUIZZES_PASSED

    def is_satisfied(self, stats: UserStats) -> bool:
        return stats.passed_quizzes >= self.value


@dataclass(frozen=True)
class PerfectScore:
    value: int
    type = CriteriaType.PERFECT_SCORE

    def is_satisfied(self, stats: UserStats) -> bool:
        return stats.perfect_scores >= self.value


@dataclass(frozen=True)
class Manual:
    """Only ever awarded by an administrator."""

    type = CriteriaType.MANUAL

    def is_satisfied(self, stats: UserStats) -> bool:
        return False


BadgeCriteria = Union[LessonsCompleted, LevelCompleted, QuizzesPassed, PerfectScore, Manual]

_THRESHOLD_CRITERIA = {
    CriteriaType.LESSONS_COMPLETED: LessonsCompleted,
    CriteriaType.LEVEL_COMPLETED: LevelCompleted,
    CriteriaType.QUIZZES_PASSED: QuizzesPassed,
    CriteriaType.PERFECT_SCORE: PerfectScore,
}


def parse_criteria(raw) -> BadgeCriteria:
    """Decode a serialized ``{"type": ..., "value": ...}`` rule."""
    if not isinstance(raw, dict):
        raise InvalidCriteria("Badge criteria must be an object")
    try:
        kind = CriteriaType(raw.get("type"))
    except ValueError:
        raise InvalidCriteria(f"Unknown criteria type: {raw.get('type')!r}") from None
    if kind is CriteriaType.MANUAL:
        return Manual()
    value = raw.get("value")
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise InvalidCriteria(f"{kind.value} requires a non-negative integer value")
    return _THRESHOLD_CRITERIA[kind](value)


def serialize_criteria(criteria: BadgeCriteria) -> dict:
    if isinstance(criteria, Manual):
        return {"type": criteria.type.value}
    return {"type": criteria.type.value, "value": criteria.value}
