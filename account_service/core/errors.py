"""Error taxonomy shared by the auth core and the HTTP layer."""

from fastapi import status


class AppError(Exception):
    """Base application error carrying a client-safe message and HTTP status."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AppError):
    """Missing or malformed input."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class AuthenticationError(AppError):
    """Bad credentials, or an invalid, expired or mismatched token."""

    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Unauthorized request"


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class ConflictError(AppError):
    """Uniqueness violation (username or email already taken)."""

    status_code = status.HTTP_409_CONFLICT
    default_message = "Already exists"


class UploadError(AppError):
    """Media store did not return a usable reference."""

    status_code = status.HTTP_502_BAD_GATEWAY
    default_message = "File upload failed"


class DeliveryError(AppError):
    """Mail dispatcher did not confirm delivery."""

    status_code = status.HTTP_502_BAD_GATEWAY
    default_message = "Email could not be sent"


class InternalError(AppError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Internal server error"
