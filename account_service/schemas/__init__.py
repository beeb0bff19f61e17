"""Pydantic request/response schemas."""

from account_service.schemas.health import HealthResponse
from account_service.schemas.user import (
    ApiResponse,
    ChangePasswordRequest,
    CurrentUser,
    ErrorResponse,
    ForgotPasswordRequest,
    LoginData,
    LoginRequest,
    RefreshRequest,
    ResetPasswordRequest,
    TokenPair,
    UpdateAccountRequest,
    UserPublic,
)

__all__ = [
    "ApiResponse",
    "ChangePasswordRequest",
    "CurrentUser",
    "ErrorResponse",
    "ForgotPasswordRequest",
    "HealthResponse",
    "LoginData",
    "LoginRequest",
    "RefreshRequest",
    "ResetPasswordRequest",
    "TokenPair",
    "UpdateAccountRequest",
    "UserPublic",
]
