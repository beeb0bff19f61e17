"""FastAPI dependencies: collaborators, the auth service, and the request gate."""

import logging
from typing import Annotated

from fastapi import Cookie, Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from account_service.core.config import Settings, get_settings
from account_service.core.database import get_db
from account_service.core.errors import AuthenticationError
from account_service.core.security import InvalidTokenError, PasswordHasher, TokenIssuer
from account_service.schemas.user import CurrentUser
from account_service.services.auth import AuthService, MailDispatcher, MediaStore
from account_service.services.mailer import SmtpMailDispatcher
from account_service.services.media_store import CloudinaryMediaStore
from account_service.services.user_store import UserStore

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)

SettingsDep = Annotated[Settings, Depends(get_settings)]


def get_token_issuer(settings: SettingsDep) -> TokenIssuer:
    return TokenIssuer(settings)


def get_password_hasher(settings: SettingsDep) -> PasswordHasher:
    return PasswordHasher(rounds=settings.PASSWORD_HASH_ROUNDS)


def get_media_store(settings: SettingsDep) -> MediaStore:
    return CloudinaryMediaStore(settings)


def get_mail_dispatcher(settings: SettingsDep) -> MailDispatcher:
    return SmtpMailDispatcher(settings)


def get_auth_service(
    db: Annotated[Session, Depends(get_db)],
    hasher: Annotated[PasswordHasher, Depends(get_password_hasher)],
    tokens: Annotated[TokenIssuer, Depends(get_token_issuer)],
    media: Annotated[MediaStore, Depends(get_media_store)],
    mailer: Annotated[MailDispatcher, Depends(get_mail_dispatcher)],
    settings: SettingsDep,
) -> AuthService:
    return AuthService(
        store=UserStore(db),
        hasher=hasher,
        tokens=tokens,
        media=media,
        mailer=mailer,
        settings=settings,
    )


def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    tokens: Annotated[TokenIssuer, Depends(get_token_issuer)],
    db: Annotated[Session, Depends(get_db)],
    access_token_cookie: Annotated[str | None, Cookie(alias="accessToken")] = None,
) -> CurrentUser:
    """
    Request gate: require a valid access token from the Authorization header or the
    accessToken cookie, and return the caller's redacted identity. Raises 401 otherwise.
    """
    token = credentials.credentials if credentials is not None else access_token_cookie
    if not token:
        raise AuthenticationError("Unauthorized request")
    try:
        claims = tokens.verify(token, "access")
        user_id = tokens.user_id_from(claims)
    except InvalidTokenError as e:
        logger.info("Access token rejected (%s): %s", e.reason, e)
        raise AuthenticationError("Invalid access token") from e

    user = UserStore(db).find_by_id(user_id)
    if user is None:
        logger.info("Access token rejected: user id=%s not found", user_id)
        raise AuthenticationError("Invalid access token")
    return CurrentUser.model_validate(user)
