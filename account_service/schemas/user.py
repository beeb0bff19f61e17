"""Request/response schemas for the users endpoints."""

from datetime import datetime
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


class UserPublic(BaseModel):
    """Redacted user record: never carries the password hash or any token."""

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: int
    username: str
    email: str
    full_name: str = Field(..., alias="fullName")
    avatar_url: str = Field(..., alias="avatar")
    cover_image_url: str = Field(default="", alias="coverImage")
    created_at: datetime | None = Field(default=None, alias="createdAt")
    updated_at: datetime | None = Field(default=None, alias="updatedAt")


class CurrentUser(UserPublic):
    """Authenticated identity attached by the request gate. Read-only."""

    model_config = ConfigDict(from_attributes=True, populate_by_name=True, frozen=True)


class LoginRequest(BaseModel):
    """Credentials for login."""

    username: str | None = Field(default=None, max_length=255)
    password: str | None = Field(default=None, max_length=128)


class RefreshRequest(BaseModel):
    """Refresh token in the body, for clients that cannot send cookies."""

    model_config = ConfigDict(populate_by_name=True)

    refresh_token: str | None = Field(default=None, alias="refreshToken")


class ChangePasswordRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    old_password: str | None = Field(default=None, alias="oldPassword", max_length=128)
    new_password: str | None = Field(default=None, alias="newPassword", max_length=128)


class ForgotPasswordRequest(BaseModel):
    email: str | None = Field(default=None, max_length=255)


class ResetPasswordRequest(BaseModel):
    """Reset link parameters plus the new password."""

    model_config = ConfigDict(populate_by_name=True)

    user_id: int | None = Field(default=None, alias="userId")
    token: str | None = Field(default=None, max_length=255)
    new_password: str | None = Field(default=None, alias="newPassword", max_length=128)


class UpdateAccountRequest(BaseModel):
    """Partial profile update; at least one field must be supplied."""

    model_config = ConfigDict(populate_by_name=True)

    username: str | None = Field(default=None, max_length=255)
    full_name: str | None = Field(default=None, alias="fullName", max_length=255)
    email: str | None = Field(default=None, max_length=255)


class LoginData(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user: UserPublic
    access_token: str = Field(..., alias="accessToken")
    refresh_token: str = Field(..., alias="refreshToken")


class TokenPair(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    access_token: str = Field(..., alias="accessToken")
    refresh_token: str = Field(..., alias="refreshToken")


class ApiResponse(BaseModel, Generic[T]):
    """Uniform success envelope."""

    status: int
    data: T | None = None
    message: str = "Success"


class ErrorResponse(BaseModel):
    """Uniform failure envelope."""

    status: int
    error: Any
