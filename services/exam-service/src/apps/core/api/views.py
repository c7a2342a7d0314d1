# services/exam-service/src/apps/core/api/views.py
"""
Exam Views

ViewSet for exam definitions and the student attempt lifecycle.
"""

import uuid

from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter
from rest_framework.response import Response

from ..exceptions import ExamNotFoundError
from ..models import Exam
from ..services import ExamService, SubmissionService
from .filters import ExamFilter
from .permissions import ExamPermission, get_actor
from .serializers import (
    ExamDetailSerializer,
    ExamListSerializer,
    ExamUpdateSerializer,
    ExamWriteSerializer,
    StudentExamSerializer,
    SubmissionSerializer,
    SubmitAnswersSerializer,
)


class ExamViewSet(viewsets.ModelViewSet):
    """
    ViewSet for managing exams.

    Provides CRUD operations for authority and organization accounts plus
    start/submit/results for students.
    """

    permission_classes = [ExamPermission]
    filter_backends = [DjangoFilterBackend, OrderingFilter]
    filterset_class = ExamFilter
    ordering_fields = ['scheduled_date', 'created_at', 'title']
    lookup_value_regex = '[0-9a-fA-F-]+'
    http_method_names = ['get', 'post', 'put', 'patch', 'delete', 'head', 'options']

    def get_queryset(self):
        """Visible exams for the list; all exams otherwise."""
        if self.action == 'list':
            return ExamService.list_exams(get_actor(self.request))
        return ExamService.base_queryset()

    def get_object(self):
        exam = ExamService.get_exam(self.kwargs[self.lookup_field])
        self.check_object_permissions(self.request, exam)
        return exam

    def get_serializer_class(self):
        """Return appropriate serializer class."""
        if self.action == 'list':
            return ExamListSerializer
        elif self.action == 'create':
            return ExamWriteSerializer
        elif self.action in ['update', 'partial_update']:
            return ExamUpdateSerializer
        return ExamDetailSerializer

    def get_serializer_context(self):
        context = super().get_serializer_context()
        actor = get_actor(self.request)
        if actor.is_student:
            context['hide_answers'] = True
            context['student_id'] = actor.id
        return context

    def get_submission_service(self) -> SubmissionService:
        return SubmissionService()

    # =========================================================================
    # EXAM DEFINITIONS
    # =========================================================================

    def create(self, request, *args, **kwargs):
        """Create an exam; organizations must bind to an authority slot."""
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        exam = ExamService.create_exam(get_actor(request), **serializer.validated_data)

        return Response(
            ExamDetailSerializer(ExamService.get_exam(exam.id), context=self.get_serializer_context()).data,
            status=status.HTTP_201_CREATED
        )

    def update(self, request, *args, **kwargs):
        """Update an exam. PUT and PATCH both apply only supplied fields."""
        serializer = self.get_serializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)

        exam = ExamService.update_exam(
            get_actor(request),
            kwargs[self.lookup_field],
            **serializer.validated_data
        )
        return Response(ExamDetailSerializer(exam, context=self.get_serializer_context()).data)

    def destroy(self, request, *args, **kwargs):
        ExamService.delete_exam(get_actor(request), kwargs[self.lookup_field])
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=False, methods=['get'], url_path=r'course/(?P<course_id>[^/.]+)')
    def course_exams(self, request, course_id=None):
        """Published exams of a course."""
        try:
            course_uuid = uuid.UUID(course_id)
        except ValueError:
            raise ExamNotFoundError(f"Course {course_id} not found")

        exams = ExamService.list_course_exams(course_uuid)
        return Response(ExamListSerializer(exams, many=True).data)

    # =========================================================================
    # STUDENT ATTEMPTS
    # =========================================================================

    @action(detail=False, methods=['get'], url_path='my-exams')
    def my_exams(self, request):
        """Published exams for the caller's active enrollments with status."""
        listing = ExamService.list_student_exams(get_actor(request))
        return Response(StudentExamSerializer(listing, many=True).data)

    @action(detail=True, methods=['post'])
    def start(self, request, pk=None):
        """Start a new attempt or resume the one in progress."""
        submission, created = self.get_submission_service().start(pk, get_actor(request).id)
        return Response(
            SubmissionSerializer(submission).data,
            status=status.HTTP_201_CREATED if created else status.HTTP_200_OK
        )

    @action(detail=True, methods=['put'])
    def submit(self, request, pk=None):
        """Submit answers for the attempt in progress."""
        serializer = SubmitAnswersSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        submission = self.get_submission_service().submit(
            pk,
            get_actor(request).id,
            serializer.validated_data['answers'],
        )
        return Response(
            SubmissionSerializer(submission, context={'allow_review': submission.exam.allow_review}).data
        )

    @action(detail=True, methods=['get'])
    def results(self, request, pk=None):
        """The caller's attempts, most recent first."""
        allow_review = Exam.objects.filter(id=pk).values_list('allow_review', flat=True).first()
        submissions = self.get_submission_service().results(pk, get_actor(request).id)
        return Response(
            SubmissionSerializer(
                submissions,
                many=True,
                context={'allow_review': allow_review is not False},
            ).data
        )
