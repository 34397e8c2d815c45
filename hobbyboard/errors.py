"""
Error taxonomy shared by the record store, the storage adapters and the routes.
"""

from __future__ import annotations


class HobbyboardError(Exception):
    """Base class for errors raised by this package."""


class ValidationError(HobbyboardError):
    """A required form field is missing or malformed."""


class UploadTooLargeError(ValidationError):
    """An uploaded file exceeds the storage backend's size limit."""

    def __init__(self, size: int, limit: int):
        super().__init__(f"upload of {size} bytes exceeds limit of {limit} bytes")
        self.size = size
        self.limit = limit


class NotFoundError(HobbyboardError):
    """An id has no matching row."""


class PersistenceError(HobbyboardError):
    """A query against the record store failed."""


class AuthError(HobbyboardError):
    """Submitted credentials did not match any user."""
