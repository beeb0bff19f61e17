"""Password hashing, JWT issuance/verification and password-reset tokens."""

from __future__ import annotations

import secrets
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any, Literal

import bcrypt
import jwt

if TYPE_CHECKING:
    from account_service.core.config import Settings
    from account_service.models.user import User

TokenKind = Literal["access", "refresh"]

# bcrypt only looks at the first 72 bytes of input.
BCRYPT_MAX_BYTES = 72

# Entropy of opaque reset tokens, in bytes before base64url encoding.
RESET_TOKEN_BYTES = 32


class InvalidTokenError(Exception):
    """Token failed verification. Subclasses tell expired from malformed apart."""

    reason = "invalid"


class ExpiredTokenError(InvalidTokenError):
    reason = "expired"


class MalformedTokenError(InvalidTokenError):
    reason = "malformed"


class PasswordHasher:
    """One-way salted bcrypt hashing."""

    def __init__(self, rounds: int = 12) -> None:
        self.rounds = rounds

    def hash(self, plain_password: str) -> str:
        """Hash a plain-text password for storage. Do not store plain passwords."""
        pw_bytes = plain_password.encode("utf-8")[:BCRYPT_MAX_BYTES]
        return bcrypt.hashpw(pw_bytes, bcrypt.gensalt(rounds=self.rounds)).decode("utf-8")

    def verify(self, plain_password: str, hashed: str | None) -> bool:
        """Verify a plain password against a stored hash. False for a missing or malformed hash."""
        if not plain_password or not hashed:
            return False
        pw_bytes = plain_password.encode("utf-8")[:BCRYPT_MAX_BYTES]
        try:
            return bcrypt.checkpw(pw_bytes, hashed.encode("utf-8"))
        except (ValueError, TypeError):
            return False


@dataclass(frozen=True)
class ResetToken:
    """Opaque single-use password reset token and its expiry."""

    token: str
    expires_at: datetime


class TokenIssuer:
    """Creates and validates signed access/refresh JWTs and password-reset tokens."""

    def __init__(self, settings: Settings) -> None:
        self._algorithm = settings.JWT_ALGORITHM
        self._secrets: dict[str, str] = {
            "access": settings.ACCESS_TOKEN_SECRET.get_secret_value(),
            "refresh": settings.REFRESH_TOKEN_SECRET.get_secret_value(),
        }
        self._lifetimes: dict[str, timedelta] = {
            "access": timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
            "refresh": timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
        }
        self._reset_lifetime = timedelta(minutes=settings.RESET_TOKEN_EXPIRE_MINUTES)

    def _encode(self, kind: TokenKind, claims: dict[str, Any]) -> str:
        now = datetime.now(UTC)
        payload: dict[str, Any] = {
            **claims,
            "type": kind,
            # Unique per token so two tokens minted in the same second still differ.
            "jti": uuid.uuid4().hex,
            "iat": now,
            "exp": now + self._lifetimes[kind],
        }
        return jwt.encode(payload, self._secrets[kind], algorithm=self._algorithm)

    def issue_access_token(self, user: User) -> str:
        """Short-lived token carrying the user id and public identity fields."""
        return self._encode(
            "access",
            {
                "sub": str(user.id),
                "username": user.username,
                "email": user.email,
                "fullName": user.full_name,
            },
        )

    def issue_refresh_token(self, user_id: int) -> str:
        """Longer-lived token carrying only the user id."""
        return self._encode("refresh", {"sub": str(user_id)})

    def verify(self, token: str, kind: TokenKind) -> dict[str, Any]:
        """
        Decode and validate a token of the given kind; return its claims.

        Raises ExpiredTokenError when the signature is good but exp has passed,
        MalformedTokenError for anything else (bad signature, garbage, wrong type, no sub).
        """
        try:
            claims = jwt.decode(
                token,
                self._secrets[kind],
                algorithms=[self._algorithm],
                options={"require": ["exp", "sub"]},
            )
        except jwt.ExpiredSignatureError as e:
            raise ExpiredTokenError(f"{kind} token expired") from e
        except jwt.PyJWTError as e:
            raise MalformedTokenError(f"{kind} token invalid: {e}") from e
        if claims.get("type") != kind:
            raise MalformedTokenError(f"expected {kind} token, got {claims.get('type')!r}")
        return claims

    def user_id_from(self, claims: dict[str, Any]) -> int:
        """Extract the integer user id from verified claims."""
        try:
            return int(claims["sub"])
        except (KeyError, TypeError, ValueError) as e:
            raise MalformedTokenError("token subject is not a user id") from e

    def issue_password_reset_token(self) -> ResetToken:
        """Fresh opaque reset token with an expiry timestamp."""
        return ResetToken(
            token=secrets.token_urlsafe(RESET_TOKEN_BYTES),
            expires_at=datetime.now(UTC) + self._reset_lifetime,
        )
