"""Tests for decoding and evaluating badge rules."""

import pathlib
import sys

import pytest

sys.path.append(str(pathlib.Path(__file__).resolve().parents[2]))

from academy.criteria import (
    CriteriaType,
    LessonsCompleted,
    LevelCompleted,
    Manual,
    PerfectScore,
    QuizzesPassed,
    UserStats,
    parse_criteria,
    serialize_criteria,
)
from academy.errors import InvalidCriteria


def test_parse_each_criteria_type():
    assert parse_criteria({"type": "lessons_completed", "value": 5}) == LessonsCompleted(5)
    assert parse_criteria({"type": "level_completed", "value": 2}) == LevelCompleted(2)
    assert parse_criteria({"type": "quizzes_passed", "value": 3}) == QuizzesPassed(3)
    assert parse_criteria({"type": "perfect_score", "value": 1}) == PerfectScore(1)
    assert parse_criteria({"type": "manual"}) == Manual()


@pytest.mark.parametrize(
    "raw",
    [
        None,
        "lessons_completed",
        {"type": "streak", "value": 3},
        {"type": "quizzes_passed"},
        {"type": "quizzes_passed", "value": "3"},
        {"type": "quizzes_passed", "value": -1},
        {"type": "perfect_score", "value": True},
    ],
)
def test_parse_rejects_bad_rules(raw):
    with pytest.raises(InvalidCriteria):
        parse_criteria(raw)


def test_serialize_matches_stored_shape():
    assert serialize_criteria(QuizzesPassed(4)) == {"type": "quizzes_passed", "value": 4}
    assert serialize_criteria(Manual()) == {"type": "manual"}
    assert LessonsCompleted(1).type is CriteriaType.LESSONS_COMPLETED


def test_thresholds_are_inclusive():
    stats = UserStats(
        completed_lessons=3, passed_quizzes=2, perfect_scores=1, unlocked_levels=2
    )
    assert LessonsCompleted(3).is_satisfied(stats)
    assert not LessonsCompleted(4).is_satisfied(stats)
    assert QuizzesPassed(2).is_satisfied(stats)
    assert not QuizzesPassed(3).is_satisfied(stats)
    assert PerfectScore(1).is_satisfied(stats)
    assert LevelCompleted(2).is_satisfied(stats)
    assert not LevelCompleted(3).is_satisfied(stats)


def test_manual_is_never_satisfied():
    stats = UserStats(completed_lessons=100, passed_quizzes=100, unlocked_levels=4)
    assert not Manual().is_satisfied(stats)
