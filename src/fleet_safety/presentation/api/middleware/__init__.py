"""Middleware module for the fleet safety API."""

from .actor import get_current_actor, get_optional_actor, get_reviewer_actor
from .logging import RequestResponseLoggingMiddleware

__all__ = [
    "get_current_actor",
    "get_optional_actor",
    "get_reviewer_actor",
    "RequestResponseLoggingMiddleware"
]
