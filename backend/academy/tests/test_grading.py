"""Tests for quiz scoring and identifier validation."""

import pathlib
import sys

import pytest

sys.path.append(str(pathlib.Path(__file__).resolve().parents[2]))

from academy.errors import InvalidIdentifier
from academy.grading import grade_answers, parse_identifier, percentage
from academy.models import Question


def _questions(*correct):
    return [
        Question(id=i + 1, lesson_id=1, prompt=f"Q{i + 1}", correct_answer=c)
        for i, c in enumerate(correct)
    ]


def test_all_correct_passes():
    result = grade_answers(_questions("A", "B", "C"), ["A", "B", "C"])
    assert result.score == 100
    assert result.passed
    assert result.correct_answers == 3
    assert result.total_questions == 3


def test_one_of_three_fails_with_rounded_score():
    result = grade_answers(_questions("A", "B", "C"), ["A", "X", "Y"])
    assert result.score == 33
    assert not result.passed
    assert result.correct_answers == 1
    assert [a.is_correct for a in result.answers] == [True, False, False]


def test_pass_threshold_is_sixty():
    questions = _questions("A", "B", "C", "D", "E")
    assert grade_answers(questions, ["A", "B", "C", "x", "x"]).passed
    assert not grade_answers(questions, ["A", "B", "x", "x", "x"]).passed


def test_comparison_is_exact():
    result = grade_answers(_questions("Paris"), ["paris "])
    assert result.correct_answers == 0


def test_missing_answers_count_as_incorrect():
    result = grade_answers(_questions("A", "B", "C", "D"), ["A", "B"])
    assert result.correct_answers == 2
    assert result.score == 50
    assert result.answers[3].answer == ""
    assert not result.answers[3].is_correct


def test_extra_answers_are_ignored():
    result = grade_answers(_questions("A"), ["A", "B", "C"])
    assert result.correct_answers == 1
    assert result.total_questions == 1
    assert len(result.answers) == 1


def test_zero_questions_scores_zero():
    result = grade_answers([], ["A"])
    assert result.score == 0
    assert not result.passed
    assert result.total_questions == 0


def test_percentage_rounds_half_up():
    assert percentage(1, 8) == 13
    assert percentage(2, 3) == 67
    assert percentage(0, 0) == 0


@pytest.mark.parametrize("value", [7, "7", "42"])
def test_parse_identifier_accepts_positive_integers(value):
    assert parse_identifier(value) == int(value)


@pytest.mark.parametrize(
    "value",
    ["0", "-1", "1.5", "abc", "1; DROP TABLE lesson", "1' OR '1'='1", "", " 1", 0, -3, True, None, 2**63],
)
def test_parse_identifier_rejects_malformed_values(value):
    with pytest.raises(InvalidIdentifier):
        parse_identifier(value, "lesson")
