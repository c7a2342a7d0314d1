# services/exam-service/src/apps/core/api/serializers.py
"""
Exam Serializers

Serializers for exam, question and submission endpoints.
"""

from rest_framework import serializers

from ..models import (
    Exam,
    ExamQuestion,
    ExamSubmission,
    QuestionType,
)
from ..services import AvailabilityStatus


# =============================================================================
# QUESTIONS
# =============================================================================

class OptionSerializer(serializers.Serializer):
    text = serializers.CharField()
    is_correct = serializers.BooleanField(default=False)


class QuestionSerializer(serializers.ModelSerializer):
    """Full question, including answer keys. Authors only."""

    options = OptionSerializer(many=True, required=False)

    class Meta:
        model = ExamQuestion
        fields = [
            'id',
            'sort_order',
            'text',
            'question_type',
            'options',
            'correct_answer',
            'points',
            'difficulty',
        ]
        read_only_fields = ['id', 'sort_order']

    def validate(self, attrs):
        question_type = attrs.get('question_type', QuestionType.MULTIPLE_CHOICE)
        options = attrs.get('options') or []

        if question_type == QuestionType.MULTIPLE_CHOICE:
            if not options:
                raise serializers.ValidationError({'options': 'Multiple-choice questions need options.'})
            if not any(o.get('is_correct') for o in options):
                raise serializers.ValidationError({'options': 'At least one option must be correct.'})
        elif options:
            raise serializers.ValidationError({'options': 'Only multiple-choice questions have options.'})

        attrs['options'] = [dict(o) for o in options]
        return attrs


class StudentQuestionSerializer(serializers.ModelSerializer):
    """Question as delivered to a student, without answer keys."""

    options = serializers.SerializerMethodField()

    class Meta:
        model = ExamQuestion
        fields = ['id', 'text', 'question_type', 'options', 'points', 'difficulty']

    def get_options(self, obj):
        return [o.get('text') for o in obj.options or []]


# =============================================================================
# EXAMS
# =============================================================================

class ExamListSerializer(serializers.ModelSerializer):
    """Serializer for exam list view."""

    course_id = serializers.UUIDField(read_only=True)
    course_title = serializers.CharField(source='course.title', read_only=True)
    instructor_name = serializers.CharField(source='course.instructor_name', read_only=True)
    question_count = serializers.SerializerMethodField()

    class Meta:
        model = Exam
        fields = [
            'id',
            'title',
            'course_id',
            'course_title',
            'instructor_name',
            'exam_type',
            'exam_mode',
            'author_role',
            'created_by',
            'audience',
            'target_organization_id',
            'mandated_slot',
            'scheduled_date',
            'deadline',
            'duration_minutes',
            'total_points',
            'passing_score',
            'max_attempts',
            'is_published',
            'question_count',
        ]
        read_only_fields = fields

    def get_question_count(self, obj):
        return len(obj.questions.all())


class ExamDetailSerializer(ExamListSerializer):
    """
    Serializer for exam detail view.

    Pass hide_answers=True in the context to deliver questions without
    answer keys, ordered for the student in context['student_id'].
    """

    questions = serializers.SerializerMethodField()

    class Meta(ExamListSerializer.Meta):
        fields = ExamListSerializer.Meta.fields + [
            'description',
            'instructions',
            'linked_paper_id',
            'allow_review',
            'shuffle_questions',
            'published_at',
            'questions',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields

    def get_questions(self, obj):
        if self.context.get('hide_answers'):
            questions = obj.questions_for(self.context.get('student_id'))
            return StudentQuestionSerializer(questions, many=True).data
        return QuestionSerializer(obj.questions.all(), many=True).data


class ExamWriteSerializer(serializers.ModelSerializer):
    """
    Input for creating an exam.

    Accepts total_marks and passing_marks as aliases, an empty
    target_organization_id as "open", and _mandated_slot_id as an alias
    for mandated_slot_id.
    """

    course_id = serializers.UUIDField()
    questions = QuestionSerializer(many=True, required=False)
    total_points = serializers.IntegerField(required=False, min_value=0)
    total_marks = serializers.IntegerField(write_only=True, required=False, min_value=0)
    passing_score = serializers.IntegerField(required=False, min_value=0, max_value=100)
    passing_marks = serializers.IntegerField(write_only=True, required=False, min_value=0, max_value=100)
    max_attempts = serializers.IntegerField(required=False, min_value=1)
    duration_minutes = serializers.IntegerField(min_value=1)
    target_organization_id = serializers.UUIDField(required=False, allow_null=True)
    mandated_slot_id = serializers.UUIDField(required=False, allow_null=True)

    class Meta:
        model = Exam
        fields = [
            'course_id',
            'title',
            'description',
            'instructions',
            'exam_type',
            'exam_mode',
            'linked_paper_id',
            'questions',
            'duration_minutes',
            'total_points',
            'total_marks',
            'passing_score',
            'passing_marks',
            'max_attempts',
            'scheduled_date',
            'deadline',
            'is_published',
            'allow_review',
            'shuffle_questions',
            'target_organization_id',
            'mandated_slot_id',
        ]

    def to_internal_value(self, data):
        if hasattr(data, 'copy'):
            data = data.copy()
        if data.get('target_organization_id') == '':
            data['target_organization_id'] = None
        if 'mandated_slot_id' not in data and data.get('_mandated_slot_id'):
            data['mandated_slot_id'] = data['_mandated_slot_id']
        return super().to_internal_value(data)

    def validate(self, attrs):
        total_marks = attrs.pop('total_marks', None)
        if 'total_points' not in attrs and total_marks is not None:
            attrs['total_points'] = total_marks

        passing_marks = attrs.pop('passing_marks', None)
        if 'passing_score' not in attrs and passing_marks is not None:
            attrs['passing_score'] = passing_marks

        scheduled_date = attrs.get('scheduled_date')
        deadline = attrs.get('deadline')
        if scheduled_date and deadline and deadline < scheduled_date:
            raise serializers.ValidationError({'deadline': 'Deadline cannot be earlier than the scheduled date.'})

        return attrs


class ExamUpdateSerializer(ExamWriteSerializer):
    """Input for updating an exam. Course and slot binding are fixed."""

    class Meta(ExamWriteSerializer.Meta):
        fields = [
            f for f in ExamWriteSerializer.Meta.fields
            if f not in ('course_id', 'mandated_slot_id')
        ]


# =============================================================================
# SUBMISSIONS
# =============================================================================

class AnswerSerializer(serializers.Serializer):
    question_id = serializers.CharField()
    answer = serializers.JSONField(allow_null=True, required=False)


class SubmitAnswersSerializer(serializers.Serializer):
    answers = AnswerSerializer(many=True, allow_empty=True)


class SubmissionSerializer(serializers.ModelSerializer):
    """
    Submission with graded answers. Answers are withheld when the context
    sets allow_review=False.
    """

    exam_id = serializers.UUIDField(read_only=True)
    answers = serializers.SerializerMethodField()
    percentage = serializers.DecimalField(max_digits=5, decimal_places=2, coerce_to_string=False, read_only=True)

    class Meta:
        model = ExamSubmission
        fields = [
            'id',
            'exam_id',
            'student_id',
            'attempt_number',
            'status',
            'answers',
            'start_time',
            'end_time',
            'time_spent',
            'score',
            'percentage',
            'passed',
        ]
        read_only_fields = fields

    def get_answers(self, obj):
        if self.context.get('allow_review', True):
            return obj.answers
        return None


class StudentExamSerializer(serializers.Serializer):
    """An exam on the student's listing with its derived status."""

    exam = ExamListSerializer()
    submission = SubmissionSerializer(allow_null=True)
    status = serializers.ChoiceField(choices=AvailabilityStatus.choices)
    attempts_used = serializers.IntegerField()
