"""
Session and credential lifecycle: register, login, logout, refresh-token rotation,
password change, and the emailed password-reset protocol.

There is no session table. A client is authenticated by its access token, and the
single refresh_token slot on the user row decides which refresh token is still live.
"""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Protocol
from urllib.parse import urlencode

from account_service.core.errors import (
    AuthenticationError,
    ConflictError,
    DeliveryError,
    NotFoundError,
    UploadError,
    ValidationError,
)
from account_service.core.security import InvalidTokenError, PasswordHasher, TokenIssuer
from account_service.models.user import User
from account_service.schemas.user import CurrentUser, UserPublic
from account_service.services.media_store import MediaStoreError, MediaUpload
from account_service.services.uploads import StagedFile, discard_all
from account_service.services.user_store import UserStore

if TYPE_CHECKING:
    from account_service.core.config import Settings

logger = logging.getLogger(__name__)

RESET_MAIL_SUBJECT = "Reset your password"
RESET_MAIL_MESSAGE = "Use the link below to reset your password"


class MediaStore(Protocol):
    def upload(self, staged: StagedFile) -> MediaUpload: ...


class MailDispatcher(Protocol):
    def send(self, recipient: str, link: str, subject: str, message: str) -> str | None: ...


@dataclass(frozen=True)
class LoginResult:
    user: UserPublic
    access_token: str
    refresh_token: str


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str


def _clean(value: str | None) -> str:
    return (value or "").strip()


def _tokens_match(presented: str, stored: str) -> bool:
    # Compare as bytes: compare_digest rejects non-ASCII str input.
    return secrets.compare_digest(presented.encode("utf-8"), stored.encode("utf-8"))


def _as_utc(value: datetime) -> datetime:
    # Some backends hand back naive datetimes for timezone-aware columns.
    return value if value.tzinfo is not None else value.replace(tzinfo=UTC)


class AuthService:
    """Orchestrates every credential-lifecycle operation against the user store."""

    def __init__(
        self,
        store: UserStore,
        hasher: PasswordHasher,
        tokens: TokenIssuer,
        media: MediaStore,
        mailer: MailDispatcher,
        settings: Settings,
    ) -> None:
        self.store = store
        self.hasher = hasher
        self.tokens = tokens
        self.media = media
        self.mailer = mailer
        self._reset_url = settings.PASSWORD_RESET_URL

    # -- helpers -----------------------------------------------------------

    def _require_user(self, user_id: int) -> User:
        user = self.store.find_by_id(user_id)
        if user is None:
            raise NotFoundError("User does not exist")
        return user

    def _upload(self, staged: StagedFile, label: str) -> str:
        try:
            result = self.media.upload(staged)
        except MediaStoreError as e:
            logger.error("%s upload failed: %s", label, e.message)
            raise UploadError(f"Error while uploading {label}") from e
        if not result.url:
            raise UploadError(f"Error while uploading {label}")
        return result.url

    def _issue_tokens(self, user: User) -> TokenPair:
        """Mint a new pair and overwrite the stored refresh token."""
        access_token = self.tokens.issue_access_token(user)
        refresh_token = self.tokens.issue_refresh_token(user.id)
        self.store.update_fields(user, refresh_token=refresh_token)
        return TokenPair(access_token=access_token, refresh_token=refresh_token)

    # -- operations --------------------------------------------------------

    def register(
        self,
        full_name: str | None,
        username: str | None,
        email: str | None,
        password: str | None,
        avatar: StagedFile | None,
        cover_image: StagedFile | None = None,
    ) -> UserPublic:
        """
        Create an account. Media is uploaded before the row is written so a failed
        avatar upload leaves no user behind. Staged files are always cleaned up.
        """
        try:
            full_name = _clean(full_name)
            username = _clean(username).lower()
            email = _clean(email).lower()
            if not all([full_name, username, email, _clean(password)]):
                raise ValidationError("Please fill all the details")

            if self.store.find_by_username_or_email(username, email) is not None:
                raise ConflictError("User with same email or username already exists")

            if avatar is None:
                raise ValidationError("Avatar file is required")

            avatar_url = self._upload(avatar, "avatar")
            cover_image_url = self._upload(cover_image, "cover image") if cover_image else ""

            user = self.store.create(
                full_name=full_name,
                username=username,
                email=email,
                password_hash=self.hasher.hash(password),
                avatar_url=avatar_url,
                cover_image_url=cover_image_url,
            )
        finally:
            discard_all(avatar, cover_image)
        logger.info("Registered user id=%s username=%s", user.id, user.username)
        return UserPublic.model_validate(user)

    def login(self, username: str | None, password: str | None) -> LoginResult:
        username = _clean(username).lower()
        if not username or not password:
            raise ValidationError("Username and password are required")

        user = self.store.find_by_username(username)
        if user is None:
            raise NotFoundError("User does not exist")
        if not user.password_hash or not self.hasher.verify(password, user.password_hash):
            logger.info("Login failed for user id=%s: bad password", user.id)
            raise AuthenticationError("Invalid user credentials")

        pair = self._issue_tokens(user)
        logger.info("User id=%s logged in", user.id)
        return LoginResult(
            user=UserPublic.model_validate(user),
            access_token=pair.access_token,
            refresh_token=pair.refresh_token,
        )

    def logout(self, user_id: int) -> None:
        """Clear the refresh-token slot. Safe to repeat."""
        user = self.store.find_by_id(user_id)
        if user is None or user.refresh_token is None:
            return
        self.store.update_fields(user, refresh_token=None)
        logger.info("User id=%s logged out", user_id)

    def refresh_access_token(self, incoming_refresh_token: str | None) -> TokenPair:
        """
        Rotate the token pair. The presented token must match the stored slot exactly,
        so a token that has already been rotated out is rejected.
        """
        if not incoming_refresh_token:
            raise AuthenticationError("Unauthorized request")

        try:
            claims = self.tokens.verify(incoming_refresh_token, "refresh")
            user_id = self.tokens.user_id_from(claims)
        except InvalidTokenError as e:
            logger.info("Refresh rejected (%s): %s", e.reason, e)
            raise AuthenticationError("Invalid refresh token") from e

        user = self.store.find_by_id(user_id)
        if user is None:
            logger.info("Refresh rejected: user id=%s no longer exists", user_id)
            raise AuthenticationError("Invalid refresh token")

        if user.refresh_token is None or not _tokens_match(
            incoming_refresh_token, user.refresh_token
        ):
            logger.warning("Refresh rejected: stale or reused token for user id=%s", user_id)
            raise AuthenticationError("Refresh token is expired or used")

        return self._issue_tokens(user)

    def change_password(
        self, user_id: int, old_password: str | None, new_password: str | None
    ) -> None:
        if not old_password or not _clean(new_password):
            raise ValidationError("Old and new password are required")
        user = self._require_user(user_id)
        if not self.hasher.verify(old_password, user.password_hash):
            logger.info("Password change rejected for user id=%s: wrong old password", user_id)
            raise AuthenticationError("Invalid old password")
        self.store.update_fields(user, password_hash=self.hasher.hash(new_password))
        logger.info("Password changed for user id=%s", user_id)

    def forgot_password(self, email: str | None) -> None:
        """Store a fresh reset token (superseding any earlier one) and mail the link."""
        email = _clean(email).lower()
        if not email:
            raise ValidationError("Email is required")
        user = self.store.find_by_email(email)
        if user is None:
            raise NotFoundError("User with this email does not exist")

        reset = self.tokens.issue_password_reset_token()
        self.store.update_fields(
            user,
            reset_password_token=reset.token,
            reset_password_expires_at=reset.expires_at,
        )

        link = f"{self._reset_url}?{urlencode({'id': user.id, 'token': reset.token})}"
        message_id = self.mailer.send(
            recipient=user.email,
            link=link,
            subject=RESET_MAIL_SUBJECT,
            message=RESET_MAIL_MESSAGE,
        )
        if not message_id:
            raise DeliveryError("Error while sending reset password email")
        logger.info("Password reset mail sent to user id=%s", user.id)

    def reset_password(
        self, user_id: int | None, token: str | None, new_password: str | None
    ) -> None:
        """Consume a reset token: set the new hash and clear the token in one commit."""
        if not user_id or not token:
            raise ValidationError("Invalid reset link")
        if not _clean(new_password):
            raise ValidationError("New password is required")

        user = self._require_user(user_id)
        stored = user.reset_password_token
        if stored is None or not _tokens_match(token, stored):
            logger.info("Reset rejected for user id=%s: token mismatch", user_id)
            raise AuthenticationError("Invalid Token")

        expires_at = user.reset_password_expires_at
        if expires_at is None or _as_utc(expires_at) <= datetime.now(UTC):
            logger.info("Reset rejected for user id=%s: token expired", user_id)
            self.store.update_fields(
                user, reset_password_token=None, reset_password_expires_at=None
            )
            raise AuthenticationError("Reset token has expired")

        self.store.update_fields(
            user,
            password_hash=self.hasher.hash(new_password),
            reset_password_token=None,
            reset_password_expires_at=None,
        )
        logger.info("Password reset completed for user id=%s", user_id)

    def update_account_details(
        self,
        user_id: int,
        username: str | None = None,
        full_name: str | None = None,
        email: str | None = None,
    ) -> UserPublic:
        """Partial profile update. Changed username/email must stay unique."""
        changes: dict[str, str] = {}
        if _clean(username):
            changes["username"] = _clean(username).lower()
        if _clean(full_name):
            changes["full_name"] = _clean(full_name)
        if _clean(email):
            changes["email"] = _clean(email).lower()
        if not changes:
            raise ValidationError("At least one field is required")

        user = self._require_user(user_id)
        if "username" in changes and changes["username"] != user.username:
            if self.store.find_by_username(changes["username"]) is not None:
                raise ConflictError("Username is already taken")
        if "email" in changes and changes["email"] != user.email:
            if self.store.find_by_email(changes["email"]) is not None:
                raise ConflictError("Email is already in use")

        user = self.store.update_fields(user, **changes)
        return UserPublic.model_validate(user)

    def update_avatar(self, user_id: int, file: StagedFile | None) -> UserPublic:
        return self._replace_media(user_id, file, "avatar_url", "avatar")

    def update_cover_image(self, user_id: int, file: StagedFile | None) -> UserPublic:
        return self._replace_media(user_id, file, "cover_image_url", "cover image")

    def _replace_media(
        self, user_id: int, file: StagedFile | None, field: str, label: str
    ) -> UserPublic:
        if file is None:
            raise ValidationError(f"{label.capitalize()} file is missing")
        try:
            user = self._require_user(user_id)
            url = self._upload(file, label)
        finally:
            file.discard()
        user = self.store.update_fields(user, **{field: url})
        return UserPublic.model_validate(user)

    def get_current_user(self, identity: CurrentUser) -> CurrentUser:
        return identity
