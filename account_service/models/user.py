"""ORM model for user accounts."""

from sqlalchemy import Column, DateTime, Integer, String, func

from account_service.models.base import Base


class User(Base):
    """
    User account with credential-lifecycle fields.

    refresh_token is a single slot: a new login or refresh overwrites it.
    reset_password_token and reset_password_expires_at are set and cleared together.
    """

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(255), nullable=False, unique=True, index=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    full_name = Column(String(255), nullable=False)
    password_hash = Column(String(255), nullable=True)
    avatar_url = Column(String(1024), nullable=False)
    cover_image_url = Column(String(1024), nullable=False, default="")
    refresh_token = Column(String(1024), nullable=True)
    reset_password_token = Column(String(255), nullable=True)
    reset_password_expires_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
