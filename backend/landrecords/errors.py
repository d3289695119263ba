from __future__ import annotations


class AppError(Exception):
    """Expected failure that maps onto an HTTP status and a generic message."""

    status_code = 500
    default_message = "Request failed"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFound(AppError):
    status_code = 404
    default_message = "Not found"


class InvalidCredentials(AppError):
    status_code = 401
    default_message = "Invalid credentials"


class ValidationFailure(AppError):
    status_code = 400
    default_message = "Invalid request"


class UpstreamFailure(AppError):
    status_code = 503
    default_message = "Upstream service unavailable"


class InvalidResetToken(NotFound):
    """Reset token unknown, already used, or expired."""

    status_code = 400
    default_message = "Invalid or expired token"
