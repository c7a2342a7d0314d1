# services/exam-service/src/tests/conftest.py
"""
Pytest Configuration and Fixtures

Provides common fixtures for exam service tests.
"""

import uuid
from datetime import timedelta

import pytest
from django.utils import timezone
from rest_framework.test import APIClient


@pytest.fixture(autouse=True)
def outbox():
    """In-memory notification outbox, emptied around every test."""
    from apps.core.notifications import InMemoryNotificationDispatcher

    InMemoryNotificationDispatcher.clear()
    yield InMemoryNotificationDispatcher
    InMemoryNotificationDispatcher.clear()


@pytest.fixture
def organization_id():
    """Provide a test organization ID."""
    return uuid.uuid4()


@pytest.fixture
def other_organization_id():
    return uuid.uuid4()


@pytest.fixture
def student_id():
    """Provide a test student ID."""
    return uuid.uuid4()


# =============================================================================
# ACTORS
# =============================================================================

@pytest.fixture
def authority():
    """Platform authority actor."""
    from apps.core.capabilities import Actor, ActorRole

    return Actor(id=str(uuid.uuid4()), role=ActorRole.AUTHORITY.value, name='Platform Admin')


@pytest.fixture
def organization(organization_id):
    """Organization actor; the account id is the organization id."""
    from apps.core.capabilities import Actor, ActorRole

    return Actor(
        id=str(organization_id),
        role=ActorRole.ORGANIZATION.value,
        organization_id=str(organization_id),
        name='North University',
    )


@pytest.fixture
def other_organization(other_organization_id):
    from apps.core.capabilities import Actor, ActorRole

    return Actor(
        id=str(other_organization_id),
        role=ActorRole.ORGANIZATION.value,
        organization_id=str(other_organization_id),
        name='South University',
    )


@pytest.fixture
def student(student_id):
    """Student actor."""
    from apps.core.capabilities import Actor, ActorRole

    return Actor(id=str(student_id), role=ActorRole.STUDENT.value, name='Test Student')


# =============================================================================
# API CLIENTS
# =============================================================================

@pytest.fixture
def api_client():
    """Provide unauthenticated API client for testing."""
    return APIClient()


@pytest.fixture
def client_for():
    """Factory fixture returning an APIClient authenticated as an actor."""
    from shared.common.authentication import TokenUser

    def _client_for(actor):
        client = APIClient()
        user = TokenUser({
            'sub': actor.id,
            'roles': [actor.role],
            'organization_id': actor.organization_id,
            'name': actor.name,
            'email': actor.email,
        })
        client.force_authenticate(user=user)
        return client

    return _client_for


# =============================================================================
# DATA
# =============================================================================

@pytest.fixture
def course(organization_id):
    """Course instructed by the test organization."""
    from apps.core.models import Course

    return Course.objects.create(
        title='Introduction to Aerodynamics',
        instructor_id=organization_id,
        instructor_name='North University',
        instructor_email='exams@north.example.com',
    )


@pytest.fixture
def create_enrollment(course):
    """Factory fixture for creating enrollments."""
    from apps.core.models import CourseEnrollment

    def _create_enrollment(**kwargs):
        defaults = {
            'course': course,
            'student_id': uuid.uuid4(),
            'student_name': 'Enrolled Student',
            'student_email': 'student@example.com',
        }
        defaults.update(kwargs)
        return CourseEnrollment.objects.create(**defaults)

    return _create_enrollment


@pytest.fixture
def enrollment(create_enrollment, student_id):
    """Active enrollment of the test student in the test course."""
    return create_enrollment(student_id=student_id, student_email='test.student@example.com')


@pytest.fixture
def create_exam(course, authority):
    """Factory fixture for creating exams directly in the database."""
    from apps.core.models import Exam

    def _create_exam(**kwargs):
        defaults = {
            'course': course,
            'created_by': authority.id,
            'author_role': authority.role,
            'title': 'Principles of Flight',
            'duration_minutes': 60,
            'scheduled_date': timezone.now() - timedelta(hours=1),
            'is_published': True,
        }
        defaults.update(kwargs)
        return Exam.objects.create(**defaults)

    return _create_exam


@pytest.fixture
def create_question():
    """Factory fixture for creating questions."""
    from apps.core.models import ExamQuestion, QuestionType

    def _create_question(exam, **kwargs):
        defaults = {
            'exam': exam,
            'sort_order': exam.questions.count(),
            'text': 'What is 2 + 2?',
            'question_type': QuestionType.MULTIPLE_CHOICE,
            'options': [
                {'text': '4', 'is_correct': True},
                {'text': '5', 'is_correct': False},
            ],
            'points': 1,
        }
        defaults.update(kwargs)
        return ExamQuestion.objects.create(**defaults)

    return _create_question


@pytest.fixture
def published_exam(create_exam, create_question):
    """Published exam with a 5-point and a 10-point question."""
    exam = create_exam(total_points=15, passing_score=60, max_attempts=1)
    create_question(exam, text='Lift depends on?', points=5, options=[
        {'text': 'Airspeed', 'is_correct': True},
        {'text': 'Paint colour', 'is_correct': False},
    ])
    create_question(exam, text='Stall occurs at?', points=10, options=[
        {'text': 'Critical angle of attack', 'is_correct': True},
        {'text': 'Any low speed', 'is_correct': False},
    ])
    return exam


@pytest.fixture
def sample_question_data():
    """Provide sample question payloads."""
    return [
        {
            'text': 'What is 2 + 2?',
            'question_type': 'multiple-choice',
            'options': [
                {'text': '4', 'is_correct': True},
                {'text': '5', 'is_correct': False},
            ],
            'points': 4,
        },
        {
            'text': 'Describe the four forces of flight.',
            'question_type': 'essay',
            'points': 6,
        },
    ]
