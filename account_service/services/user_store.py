"""Credential store: persistence of user records over a SQLAlchemy session."""

import logging
from typing import Any

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from account_service.core.errors import ConflictError
from account_service.models.user import User

logger = logging.getLogger(__name__)

# Columns the auth core may write through update_fields.
UPDATABLE_FIELDS = frozenset(
    {
        "username",
        "email",
        "full_name",
        "password_hash",
        "avatar_url",
        "cover_image_url",
        "refresh_token",
        "reset_password_token",
        "reset_password_expires_at",
    }
)


class UserStore:
    """Lookup, creation and partial update of users. Each write commits."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def find_by_id(self, user_id: int) -> User | None:
        return self._session.get(User, user_id)

    def find_by_username(self, username: str) -> User | None:
        return self._session.query(User).filter(User.username == username).first()

    def find_by_email(self, email: str) -> User | None:
        return self._session.query(User).filter(User.email == email).first()

    def find_by_username_or_email(self, username: str, email: str) -> User | None:
        return (
            self._session.query(User)
            .filter(or_(User.username == username, User.email == email))
            .first()
        )

    def create(self, **fields: Any) -> User:
        """Insert a user. A unique-constraint race surfaces as ConflictError."""
        user = User(**fields)
        self._session.add(user)
        self._commit()
        self._session.refresh(user)
        return user

    def update_fields(self, user: User, **fields: Any) -> User:
        """Apply a partial update in a single commit."""
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update fields: {sorted(unknown)}")
        for name, value in fields.items():
            setattr(user, name, value)
        self._commit()
        self._session.refresh(user)
        return user

    def _commit(self) -> None:
        try:
            self._session.commit()
        except IntegrityError as e:
            self._session.rollback()
            logger.info("Unique constraint violated on users: %s", e.orig)
            raise ConflictError("User with same email or username already exists") from e
