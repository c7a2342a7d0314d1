"""
Celery application for Exam Service.
"""
import os

from celery import Celery

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings')

app = Celery('exam_service')
app.config_from_object('django.conf:settings', namespace='CELERY')
app.autodiscover_tasks()
