"""
Middleware package for the API.
"""
from middleware.logging_middleware import RequestLoggingMiddleware, get_request_id

__all__ = [
    "RequestLoggingMiddleware",
    "get_request_id",
]
