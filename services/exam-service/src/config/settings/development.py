"""
Development settings for Exam Service
"""

from .base import *

DEBUG = True

ALLOWED_HOSTS = ['*']

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.postgresql',
        'NAME': os.environ.get('DB_NAME', 'exam_db'),
        'USER': os.environ.get('DB_USER', 'exam'),
        'PASSWORD': os.environ.get('DB_PASSWORD', 'exam_password'),
        'HOST': os.environ.get('DB_HOST', 'localhost'),
        'PORT': os.environ.get('DB_PORT', '5432'),
    }
}

CORS_ALLOW_ALL_ORIGINS = True

EMAIL_BACKEND = 'django.core.mail.backends.console.EmailBackend'
EVENT_BACKEND = 'log'

LOGGING['loggers']['apps']['level'] = 'DEBUG'
