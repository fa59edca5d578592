"""Domain errors raised by the tracker and mapped to HTTP responses in main."""

from __future__ import annotations


class FitnessError(Exception):
    status_code = 500
    title = "Internal error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(FitnessError):
    """Malformed filter or request value the HTTP layer could not reject itself."""

    status_code = 400
    title = "Invalid request"


class AuthError(FitnessError):
    status_code = 401
    title = "Unauthorized"


class NotFoundError(FitnessError):
    status_code = 404
    title = "Not found"


class ConflictError(FitnessError):
    status_code = 409
    title = "Conflict"
