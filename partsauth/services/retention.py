"""Data retention: purge expired refresh tokens and aged login-attempt audit rows."""

import logging
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from sqlalchemy import delete
from sqlalchemy.orm import Session

from partsauth.core.timeutils import utcnow
from partsauth.models import LoginAttempt
from partsauth.services.refresh_tokens import RefreshTokenStore

if TYPE_CHECKING:
    from partsauth.core.config import Settings

logger = logging.getLogger(__name__)


def run_retention(
    session: Session,
    settings: "Settings",
    now: datetime | None = None,
) -> tuple[int, int]:
    """
    Delete expired refresh tokens and login attempts older than LOGIN_ATTEMPT_RETENTION_DAYS.

    Returns (tokens_deleted, attempts_deleted). Idempotent: safe to run repeatedly.
    Expired tokens are already unusable; this only keeps the table small.
    """
    now = now or utcnow()
    tokens_deleted = RefreshTokenStore(session, settings).purge_expired(now)

    cutoff = now - timedelta(days=settings.LOGIN_ATTEMPT_RETENTION_DAYS)
    attempts_deleted = session.execute(
        delete(LoginAttempt)
        .where(LoginAttempt.created_at < cutoff)
        .execution_options(synchronize_session=False)
    ).rowcount
    session.commit()

    if tokens_deleted or attempts_deleted:
        logger.info(
            "Retention run: cutoff=%s, tokens_deleted=%s, attempts_deleted=%s",
            cutoff.isoformat(),
            tokens_deleted,
            attempts_deleted,
        )
    return (tokens_deleted, attempts_deleted)
