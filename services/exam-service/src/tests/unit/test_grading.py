# services/exam-service/src/tests/unit/test_grading.py
"""
Unit Tests for the Grading Engine
"""

import uuid
from decimal import Decimal

import pytest

from apps.core.exceptions import ExamValidationError
from apps.core.models import ExamQuestion, QuestionType
from apps.core.services.grading import (
    GradingEngine,
    calculate_percentage,
    grade_answers,
    has_passed,
)


def make_question(points=1, question_type=QuestionType.MULTIPLE_CHOICE, options=None):
    if options is None and question_type == QuestionType.MULTIPLE_CHOICE:
        options = [
            {'text': 'right', 'is_correct': True},
            {'text': 'wrong', 'is_correct': False},
        ]
    return ExamQuestion(
        id=uuid.uuid4(),
        text='Question',
        question_type=question_type,
        options=options or [],
        points=points,
    )


class TestPercentage:
    """Tests for percentage and pass computation."""

    def test_rounds_to_two_places(self):
        assert calculate_percentage(5, 15) == Decimal('33.33')
        assert calculate_percentage(2, 3) == Decimal('66.67')

    def test_zero_total_is_zero_percent(self):
        assert calculate_percentage(0, 0) == Decimal('0.00')
        assert calculate_percentage(3, -1) == Decimal('0.00')

    def test_pass_uses_unrounded_value(self):
        # 69.996% rounds to 70.00 but is still below 70
        assert calculate_percentage(69996, 100000) == Decimal('70.00')
        assert has_passed(69996, 100000, 70) is False
        assert has_passed(70, 100, 70) is True

    def test_zero_total_passes_only_zero_threshold(self):
        assert has_passed(0, 0, 0) is True
        assert has_passed(0, 0, 70) is False


class TestGradeAnswers:
    """Tests for grade_answers."""

    def test_partial_credit_example(self):
        """5 + 10 point exam, only the 5 point question right."""
        q5 = make_question(points=5)
        q10 = make_question(points=10)

        result = grade_answers(
            [q5, q10],
            [
                {'question_id': str(q5.id), 'answer': 'right'},
                {'question_id': str(q10.id), 'answer': 'wrong'},
            ],
            total_points=15,
            passing_score=60,
        )

        assert result.score == 5
        assert result.percentage == Decimal('33.33')
        assert result.passed is False
        assert [a['points_earned'] for a in result.answers] == [5, 0]
        assert [a['is_correct'] for a in result.answers] == [True, False]

    def test_full_marks_example(self):
        q = make_question(points=10)

        result = grade_answers(
            [q],
            [{'question_id': str(q.id), 'answer': 'right'}],
            total_points=10,
            passing_score=70,
        )

        assert result.score == 10
        assert result.percentage == Decimal('100.00')
        assert result.passed is True

    def test_any_correct_option_is_accepted(self):
        q = make_question(points=2, options=[
            {'text': 'a', 'is_correct': True},
            {'text': 'b', 'is_correct': True},
            {'text': 'c', 'is_correct': False},
        ])

        result = grade_answers([q], [{'question_id': str(q.id), 'answer': 'b'}], 2, 50)

        assert result.score == 2

    def test_non_multiple_choice_scores_zero(self):
        essay = make_question(points=6, question_type=QuestionType.ESSAY)
        true_false = make_question(points=1, question_type=QuestionType.TRUE_FALSE)

        result = grade_answers(
            [essay, true_false],
            [
                {'question_id': str(essay.id), 'answer': 'A long answer'},
                {'question_id': str(true_false.id), 'answer': 'true'},
            ],
            total_points=7,
            passing_score=0,
        )

        assert result.score == 0
        assert all(a['is_correct'] is False for a in result.answers)
        assert result.passed is True

    def test_non_string_answer_is_wrong(self):
        q = make_question(points=3)

        result = grade_answers([q], [{'question_id': str(q.id), 'answer': ['right']}], 3, 50)

        assert result.score == 0

    def test_unanswered_questions_earn_nothing(self):
        q1 = make_question(points=4)
        q2 = make_question(points=6)

        result = grade_answers([q1, q2], [{'question_id': str(q1.id), 'answer': 'right'}], 10, 50)

        assert result.score == 4
        assert len(result.answers) == 1
        assert result.percentage == Decimal('40.00')
        assert result.passed is False

    def test_unknown_question_rejected(self):
        q = make_question()

        with pytest.raises(ExamValidationError):
            grade_answers([q], [{'question_id': str(uuid.uuid4()), 'answer': 'right'}], 1, 70)

    def test_duplicate_answer_rejected(self):
        q = make_question()
        answers = [
            {'question_id': str(q.id), 'answer': 'right'},
            {'question_id': str(q.id), 'answer': 'wrong'},
        ]

        with pytest.raises(ExamValidationError):
            grade_answers([q], answers, 1, 70)


@pytest.mark.django_db
class TestGradingEngine:
    """Tests for grading against a stored exam."""

    def test_grade_uses_exam_totals(self, published_exam):
        q5, q10 = list(published_exam.questions.all())

        result = GradingEngine().grade(published_exam, [
            {'question_id': str(q5.id), 'answer': 'Airspeed'},
            {'question_id': str(q10.id), 'answer': 'Critical angle of attack'},
        ])

        assert result.score == 15
        assert result.percentage == Decimal('100.00')
        assert result.passed is True
