# Shared Common Library for the Course Platform services
# This package contains shared authentication, permissions, error handling,
# middleware and pagination used by every microservice.

__version__ = "1.0.0"
