"""Retention: clear password-reset tokens whose expiry has passed."""

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

from account_service.models import User

if TYPE_CHECKING:
    from account_service.core.config import Settings

logger = logging.getLogger(__name__)


def purge_expired_reset_tokens(session: Session, settings: "Settings") -> int:
    """
    Clear reset_password_token/reset_password_expires_at on rows whose token has expired.

    Returns the number of rows cleared. Idempotent: safe to run repeatedly.
    """
    now = datetime.now(UTC)
    cleared = (
        session.query(User)
        .filter(User.reset_password_expires_at.is_not(None))
        .filter(User.reset_password_expires_at < now)
        .update(
            {User.reset_password_token: None, User.reset_password_expires_at: None},
            synchronize_session=False,
        )
    )
    session.commit()

    if cleared > 0:
        logger.info(
            "Reset-token purge: now=%s, tokens_cleared=%s (lifetime %s min)",
            now.isoformat(),
            cleared,
            settings.RESET_TOKEN_EXPIRE_MINUTES,
        )
    return cleared
