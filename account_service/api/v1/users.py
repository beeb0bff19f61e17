"""User account endpoints: registration, login/logout, token refresh, passwords, profile."""

from typing import Annotated

from fastapi import APIRouter, Body, Cookie, Depends, File, Form, Response, UploadFile, status

from account_service.api.deps import SettingsDep, get_auth_service, get_current_user
from account_service.core.config import Settings
from account_service.schemas.user import (
    ApiResponse,
    ChangePasswordRequest,
    CurrentUser,
    ForgotPasswordRequest,
    LoginData,
    LoginRequest,
    RefreshRequest,
    ResetPasswordRequest,
    TokenPair,
    UpdateAccountRequest,
    UserPublic,
)
from account_service.services.auth import AuthService
from account_service.services.uploads import StagedFile, stage_upload

router = APIRouter()

ACCESS_COOKIE = "accessToken"
REFRESH_COOKIE = "refreshToken"

AuthServiceDep = Annotated[AuthService, Depends(get_auth_service)]
CurrentUserDep = Annotated[CurrentUser, Depends(get_current_user)]


def _set_auth_cookies(
    response: Response, access_token: str, refresh_token: str, settings: Settings
) -> None:
    for name, value in ((ACCESS_COOKIE, access_token), (REFRESH_COOKIE, refresh_token)):
        response.set_cookie(
            name,
            value,
            httponly=True,
            secure=settings.COOKIE_SECURE,
            samesite=settings.COOKIE_SAMESITE,
        )


def _clear_auth_cookies(response: Response, settings: Settings) -> None:
    for name in (ACCESS_COOKIE, REFRESH_COOKIE):
        response.delete_cookie(
            name,
            httponly=True,
            secure=settings.COOKIE_SECURE,
            samesite=settings.COOKIE_SAMESITE,
        )


def _stage(upload: UploadFile | None, settings: Settings) -> StagedFile | None:
    # Browsers send an empty part with no filename when a file input is left blank.
    if upload is None or not upload.filename:
        return None
    return stage_upload(upload.file, upload.filename, settings)


@router.post(
    "/register",
    response_model=ApiResponse[UserPublic],
    status_code=status.HTTP_201_CREATED,
)
def register(
    service: AuthServiceDep,
    settings: SettingsDep,
    full_name: Annotated[str, Form(alias="fullName", max_length=255)] = "",
    username: Annotated[str, Form(max_length=255)] = "",
    email: Annotated[str, Form(max_length=255)] = "",
    password: Annotated[str, Form(max_length=128)] = "",
    avatar: Annotated[UploadFile | None, File()] = None,
    cover_image: Annotated[UploadFile | None, File(alias="coverImage")] = None,
) -> ApiResponse[UserPublic]:
    """
    Register a new account (multipart form).

    Fields: fullName, username, email, password; files: avatar (required), coverImage (optional).
    """
    staged_avatar = _stage(avatar, settings)
    try:
        staged_cover = _stage(cover_image, settings)
    except Exception:
        if staged_avatar is not None:
            staged_avatar.discard()
        raise
    user = service.register(
        full_name=full_name,
        username=username,
        email=email,
        password=password,
        avatar=staged_avatar,
        cover_image=staged_cover,
    )
    return ApiResponse(status=201, data=user, message="User registered successfully")


@router.post("/login", response_model=ApiResponse[LoginData])
def login(
    body: LoginRequest,
    response: Response,
    service: AuthServiceDep,
    settings: SettingsDep,
) -> ApiResponse[LoginData]:
    """Authenticate with username and password; sets accessToken and refreshToken cookies."""
    result = service.login(body.username, body.password)
    _set_auth_cookies(response, result.access_token, result.refresh_token, settings)
    return ApiResponse(
        status=200,
        data=LoginData(
            user=result.user,
            access_token=result.access_token,
            refresh_token=result.refresh_token,
        ),
        message="User logged in successfully",
    )


@router.post("/logout", response_model=ApiResponse[dict])
def logout(
    response: Response,
    current_user: CurrentUserDep,
    service: AuthServiceDep,
    settings: SettingsDep,
) -> ApiResponse[dict]:
    service.logout(current_user.id)
    _clear_auth_cookies(response, settings)
    return ApiResponse(status=200, data={}, message="User logged out")


@router.post("/refresh-token", response_model=ApiResponse[TokenPair])
def refresh_token(
    response: Response,
    service: AuthServiceDep,
    settings: SettingsDep,
    body: Annotated[RefreshRequest | None, Body()] = None,
    refresh_cookie: Annotated[str | None, Cookie(alias=REFRESH_COOKIE)] = None,
) -> ApiResponse[TokenPair]:
    """
    Exchange a live refresh token for a new token pair. A token sent in the body
    takes precedence over the refreshToken cookie.
    """
    incoming = (body.refresh_token if body else None) or refresh_cookie
    pair = service.refresh_access_token(incoming)
    _set_auth_cookies(response, pair.access_token, pair.refresh_token, settings)
    return ApiResponse(
        status=200,
        data=TokenPair(access_token=pair.access_token, refresh_token=pair.refresh_token),
        message="Access token refreshed",
    )


@router.patch("/change-password", response_model=ApiResponse[dict])
def change_password(
    body: ChangePasswordRequest,
    current_user: CurrentUserDep,
    service: AuthServiceDep,
) -> ApiResponse[dict]:
    service.change_password(current_user.id, body.old_password, body.new_password)
    return ApiResponse(status=200, data={}, message="Password changed successfully")


@router.post("/forgot-password", response_model=ApiResponse[dict])
def forgot_password(
    body: ForgotPasswordRequest,
    service: AuthServiceDep,
) -> ApiResponse[dict]:
    """Mail a single-use password reset link to the account's email."""
    service.forgot_password(body.email)
    return ApiResponse(status=200, data={}, message="Password reset link sent to your email")


@router.patch("/reset-password", response_model=ApiResponse[dict])
def reset_password(
    body: ResetPasswordRequest,
    service: AuthServiceDep,
) -> ApiResponse[dict]:
    service.reset_password(body.user_id, body.token, body.new_password)
    return ApiResponse(status=200, data={}, message="Password reset successfully")


@router.patch("/update-account", response_model=ApiResponse[UserPublic])
def update_account(
    body: UpdateAccountRequest,
    current_user: CurrentUserDep,
    service: AuthServiceDep,
) -> ApiResponse[UserPublic]:
    user = service.update_account_details(
        current_user.id,
        username=body.username,
        full_name=body.full_name,
        email=body.email,
    )
    return ApiResponse(status=200, data=user, message="Account details updated")


@router.patch("/avatar", response_model=ApiResponse[UserPublic])
def update_avatar(
    current_user: CurrentUserDep,
    service: AuthServiceDep,
    settings: SettingsDep,
    avatar: Annotated[UploadFile | None, File()] = None,
) -> ApiResponse[UserPublic]:
    user = service.update_avatar(current_user.id, _stage(avatar, settings))
    return ApiResponse(status=200, data=user, message="Avatar updated")


@router.patch("/cover-image", response_model=ApiResponse[UserPublic])
def update_cover_image(
    current_user: CurrentUserDep,
    service: AuthServiceDep,
    settings: SettingsDep,
    cover_image: Annotated[UploadFile | None, File(alias="coverImage")] = None,
) -> ApiResponse[UserPublic]:
    user = service.update_cover_image(current_user.id, _stage(cover_image, settings))
    return ApiResponse(status=200, data=user, message="Cover image updated")


@router.get("/current-user", response_model=ApiResponse[UserPublic])
def current_user(
    current_user: CurrentUserDep,
    service: AuthServiceDep,
) -> ApiResponse[UserPublic]:
    return ApiResponse(
        status=200,
        data=service.get_current_user(current_user),
        message="Current user fetched",
    )
