# errors.py
from typing import Optional


class QuizAppError(Exception):
    """Base error. `message` is shown to the user as-is."""

    status_code = 500

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details


# --- bad input: the user has to fix something
class ValidationError(QuizAppError):
    status_code = 400


class AuthError(QuizAppError):
    status_code = 401


class NotFoundError(QuizAppError):
    status_code = 404


# --- language model / remote fetch
class UpstreamError(QuizAppError):
    status_code = 500


class Timeout(UpstreamError):
    status_code = 408


class NetworkError(UpstreamError):
    status_code = 502


class QuotaExceeded(UpstreamError):
    status_code = 429


class MalformedResponse(UpstreamError):
    status_code = 500


# --- store
class PersistenceError(QuizAppError):
    status_code = 500


class DuplicateFavorite(PersistenceError):
    status_code = 409
