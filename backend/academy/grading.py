"""Quiz scoring.

Answers are compared to the stored correct answers by position with
plain string equality: no normalization and no partial credit.
"""

import re
from dataclasses import dataclass
from typing import Sequence

from academy.errors import InvalidIdentifier
from academy.models import Question

PASSING_SCORE = 60

_MAX_ID = 2**63 - 1
_ID_PATTERN = re.compile(r"[1-9][0-9]*")


def parse_identifier(value, kind: str = "lesson") -> int:
    """Return ``value`` as a positive integer id or raise ``InvalidIdentifier``.

    Strings must consist of decimal digits only, which also rejects
    quoted or SQL-looking payloads before any query is issued.
    """
    if isinstance(value, bool):
        raise InvalidIdentifier(f"Invalid {kind} ID")
    if isinstance(value, int):
        number = value
    elif isinstance(value, str) and _ID_PATTERN.fullmatch(value):
        number = int(value)
    else:
        raise InvalidIdentifier(f"Invalid {kind} ID")
    if number <= 0 or number > _MAX_ID:
        raise InvalidIdentifier(f"Invalid {kind} ID")
    return number


def percentage(correct: int, total: int) -> int:
    """``100 * correct / total`` rounded half up; 0 when there is nothing to score."""
    if total <= 0:
        return 0
    return (200 * correct + total) // (2 * total)


@dataclass(frozen=True)
class GradedAnswer:
    question_id: int
    answer: str
    is_correct: bool


@dataclass(frozen=True)
class GradeResult:
    score: int
    passed: bool
    correct_answers: int
    total_questions: int
    answers: tuple[GradedAnswer, ...]


def grade_answers(
    questions: Sequence[Question], submitted: Sequence[str]
) -> GradeResult:
    """Score ``submitted`` against ``questions`` in order.

    Positions beyond the end of ``submitted`` count as incorrect and are
    recorded with an empty answer.
    """
    graded = []
    for index, question in enumerate(questions):
        answer = submitted[index] if index < len(submitted) else None
        is_correct = answer is not None and answer == question.correct_answer
        graded.append(
            GradedAnswer(
                question_id=question.id,
                answer=answer if isinstance(answer, str) else "",
                is_correct=is_correct,
            )
        )
    correct = sum(1 for g in graded if g.is_correct)
    score = percentage(correct, len(questions))
    return GradeResult(
        score=score,
        passed=score >= PASSING_SCORE,
        correct_answers=correct,
        total_questions=len(questions),
        answers=tuple(graded),
    )
