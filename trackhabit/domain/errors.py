"""
Error taxonomy shared by the domain and the HTTP layer.

Each error carries the HTTP status it maps to so the API server can register a
single handler for the whole family.
"""

from typing import Optional


class TrackHabitError(Exception):
    """Base error for the service"""

    status_code: int = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class AuthenticationError(TrackHabitError):
    """No session, or the session token was rejected"""
    status_code = 401


class PermissionDeniedError(TrackHabitError):
    status_code = 403


class NotFoundError(TrackHabitError):
    status_code = 404


class InvalidRequestError(TrackHabitError):
    status_code = 400


class ConfigurationError(TrackHabitError):
    """A required credential or setting is missing"""
    status_code = 500


class DataStoreError(TrackHabitError):
    """A read or write against the data store failed"""
    status_code = 500


class UnsupportedDocumentError(TrackHabitError):
    status_code = 400


class DocumentExtractionError(TrackHabitError):
    status_code = 500
