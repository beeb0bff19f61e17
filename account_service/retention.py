"""
CLI entrypoint for the reset-token purge job. Run from cron, e.g.:

  python -m account_service.retention

Or hourly: 0 * * * * cd /path/to/account-service && .venv/bin/python -m account_service.retention
"""

import logging
import sys

from account_service.core.config import get_settings
from account_service.core.database import SessionLocal
from account_service.services.retention import purge_expired_reset_tokens

logger = logging.getLogger(__name__)


def main() -> int:
    """Clear expired password-reset tokens."""
    settings = get_settings()
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%SZ",
    )
    db = SessionLocal()
    try:
        cleared = purge_expired_reset_tokens(db, settings)
        logger.info("Reset-token purge completed: tokens_cleared=%s", cleared)
        return 0
    except Exception as e:
        logger.exception("Reset-token purge failed: %s", e)
        return 1
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
