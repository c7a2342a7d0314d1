# services/exam-service/src/apps/core/services/grading.py
"""
Grading Engine

Scores submitted answers against an exam definition. Only multiple-choice
questions are auto-graded; every other type earns zero points.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Iterable, List, Mapping

from ..exceptions import ExamValidationError

logger = logging.getLogger(__name__)

TWO_PLACES = Decimal('0.01')


@dataclass
class GradeResult:
    """Outcome of grading one submission."""

    answers: List[Dict[str, Any]] = field(default_factory=list)
    score: int = 0
    percentage: Decimal = Decimal('0.00')
    passed: bool = False


def calculate_percentage(score: int, total_points: int) -> Decimal:
    """Score as a percentage of total points, 0 when there are no points."""
    if total_points <= 0:
        return Decimal('0.00')
    raw = Decimal(score) * 100 / Decimal(total_points)
    return raw.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def has_passed(score: int, total_points: int, passing_score: int) -> bool:
    """Compare the unrounded percentage against the passing score."""
    if total_points <= 0:
        return passing_score <= 0
    return score * 100 >= passing_score * total_points


def grade_answer(question: Any, value: Any) -> Dict[str, Any]:
    is_correct = bool(
        question.is_multiple_choice
        and isinstance(value, str)
        and value in question.correct_option_texts
    )
    return {
        'question_id': str(question.id),
        'answer': value,
        'is_correct': is_correct,
        'points_earned': question.points if is_correct else 0,
    }


def grade_answers(
    questions: Iterable[Any],
    answers: Iterable[Mapping[str, Any]],
    total_points: int,
    passing_score: int,
) -> GradeResult:
    """
    Grade answers in submission order.

    Args:
        questions: Exam questions (anything with id, question_type,
            options and points)
        answers: Sequence of {question_id, answer}
        total_points: Exam total used as the percentage denominator
        passing_score: Minimum percentage required to pass

    Returns:
        GradeResult

    Raises:
        ExamValidationError: An answer references a question that is not
            part of the exam, or a question is answered twice
    """
    by_id = {str(q.id): q for q in questions}
    graded = []
    seen = set()

    for entry in answers:
        question_id = str(entry.get('question_id'))
        question = by_id.get(question_id)
        if question is None:
            raise ExamValidationError(f"Answer references unknown question {question_id}")
        if question_id in seen:
            raise ExamValidationError(f"Question {question_id} answered more than once")
        seen.add(question_id)
        graded.append(grade_answer(question, entry.get('answer')))

    score = sum(a['points_earned'] for a in graded)

    return GradeResult(
        answers=graded,
        score=score,
        percentage=calculate_percentage(score, total_points),
        passed=has_passed(score, total_points, passing_score),
    )


class GradingEngine:
    """Grades answers against a stored exam."""

    def grade(self, exam, answers: Iterable[Mapping[str, Any]]) -> GradeResult:
        result = grade_answers(
            exam.questions.all(),
            answers,
            total_points=exam.total_points,
            passing_score=exam.passing_score,
        )
        logger.debug(
            f"Graded exam {exam.id}: {result.score}/{exam.total_points}",
            extra={'exam_id': str(exam.id), 'passed': result.passed},
        )
        return result
