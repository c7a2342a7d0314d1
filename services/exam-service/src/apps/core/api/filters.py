# services/exam-service/src/apps/core/api/filters.py
"""
API Filters

Django Filter classes for the exam list.
"""

import django_filters

from ..capabilities import ActorRole
from ..models import Audience, Exam, ExamMode, ExamType


class ExamFilter(django_filters.FilterSet):
    """Filter for exam list queries."""

    course_id = django_filters.UUIDFilter(field_name='course_id')
    exam_type = django_filters.ChoiceFilter(choices=ExamType.choices)
    exam_mode = django_filters.ChoiceFilter(choices=ExamMode.choices)
    audience = django_filters.ChoiceFilter(choices=Audience.choices)
    author_role = django_filters.ChoiceFilter(choices=ActorRole.choices)
    is_published = django_filters.BooleanFilter()

    # Authority slots only
    slots = django_filters.BooleanFilter(method='filter_slots')

    scheduled_after = django_filters.IsoDateTimeFilter(
        field_name='scheduled_date',
        lookup_expr='gte'
    )
    scheduled_before = django_filters.IsoDateTimeFilter(
        field_name='scheduled_date',
        lookup_expr='lte'
    )

    class Meta:
        model = Exam
        fields = []

    def filter_slots(self, queryset, name, value):
        if value:
            return queryset.filter(author_role=ActorRole.AUTHORITY)
        return queryset.exclude(author_role=ActorRole.AUTHORITY)
