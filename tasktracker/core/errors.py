"""
Application error taxonomy.

Errors are raised close to where the problem is detected and translated
to HTTP responses in one place (see exception_handlers.py).
"""

from fastapi import status


class AppError(Exception):
    """Base class for errors that map to a client-visible status code."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "APP_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "VALIDATION_ERROR"


class AuthenticationError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "AUTHENTICATION_FAILED"


class InvalidTokenError(AuthenticationError):
    """Bad signature, wrong secret or malformed token."""

    code = "INVALID_TOKEN"

    def __init__(self, message: str = "Invalid token"):
        super().__init__(message)


class ExpiredTokenError(AuthenticationError):
    code = "TOKEN_EXPIRED"

    def __init__(self, message: str = "Token has expired"):
        super().__init__(message)


class AccountDeactivationError(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "ACCOUNT_DEACTIVATED"


class UserNotFoundError(AppError):
    """The token was structurally valid but its subject no longer exists."""

    status_code = status.HTTP_404_NOT_FOUND
    code = "USER_NOT_FOUND"


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"


class TaskNotFoundError(NotFoundError):
    code = "TASK_NOT_FOUND"

    def __init__(self, message: str = "Task not found"):
        super().__init__(message)


class ConflictError(AppError):
    status_code = status.HTTP_409_CONFLICT
    code = "CONFLICT"


class ConfigurationError(RuntimeError):
    """Process-level misconfiguration detected at startup."""
