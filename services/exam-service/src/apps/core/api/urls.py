# services/exam-service/src/apps/core/api/urls.py
"""
Exam Service API URLs

URL routing configuration for REST API endpoints.
"""

from django.urls import path, include
from rest_framework.routers import DefaultRouter

from .views import ExamViewSet

router = DefaultRouter()
router.register(r'exams', ExamViewSet, basename='exam')

urlpatterns = [
    path('', include(router.urls)),
]

# API URL Patterns Summary:
#
# Exams:
#   GET         /api/v1/exams/                      (authority, organization)
#   POST        /api/v1/exams/                      (authority, organization + slot)
#   GET         /api/v1/exams/{id}/
#   PUT/PATCH   /api/v1/exams/{id}/                 (author or authority)
#   DELETE      /api/v1/exams/{id}/                 (author or authority)
#   GET         /api/v1/exams/course/{course_id}/
#
# Student attempts:
#   GET         /api/v1/exams/my-exams/
#   POST        /api/v1/exams/{id}/start/
#   PUT         /api/v1/exams/{id}/submit/
#   GET         /api/v1/exams/{id}/results/
