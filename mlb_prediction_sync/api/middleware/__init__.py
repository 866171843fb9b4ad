"""Middleware package for request logging."""

from .logging import RequestLoggingMiddleware

__all__ = ["RequestLoggingMiddleware"]
