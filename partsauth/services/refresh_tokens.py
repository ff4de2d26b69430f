"""Persisted opaque refresh tokens: issue, validate, rotate, revoke.

Rotation policy is rotate-on-use everywhere: each refresh swaps the stored
token value in place with a compare-and-swap UPDATE, so the presented value
is dead afterwards and of two racing refreshes only one wins. A principal may
hold several rows at once (one per login/device).
"""

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session

from partsauth.core.errors import (
    RefreshPrincipalInactiveError,
    RefreshTokenExpiredError,
    RefreshTokenNotFoundError,
)
from partsauth.core.timeutils import as_utc, utcnow
from partsauth.models import Principal, RefreshToken

if TYPE_CHECKING:
    from partsauth.core.config import Settings

logger = logging.getLogger(__name__)

# 32 random bytes, hex encoded (64 chars).
TOKEN_BYTES = 32


@dataclass(frozen=True)
class IssuedRefreshToken:
    token: str
    expires_at: datetime


@dataclass(frozen=True)
class RefreshTokenRecord:
    id: int
    principal_id: int
    principal_type: str
    expires_at: datetime


def generate_refresh_token() -> str:
    return secrets.token_hex(TOKEN_BYTES)


def token_preview(token: str) -> str:
    """First characters only; full refresh tokens never go to logs."""
    return token[:10] + "..."


class RefreshTokenStore:
    """Refresh-token persistence bound to one DB session."""

    def __init__(self, db: Session, settings: "Settings") -> None:
        self.db = db
        self.ttl = timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)

    def issue(self, principal_id: int, now: datetime | None = None) -> IssuedRefreshToken:
        """Create and persist a new token for principal_id."""
        now = now or utcnow()
        issued = IssuedRefreshToken(token=generate_refresh_token(), expires_at=now + self.ttl)
        self.db.add(
            RefreshToken(
                principal_id=principal_id,
                token=issued.token,
                expires_at=issued.expires_at,
            )
        )
        self.db.commit()
        return issued

    def validate(self, token: str, now: datetime | None = None) -> RefreshTokenRecord:
        """
        Look up token by exact match and check expiry and the owner's status.

        Raises RefreshTokenNotFoundError, RefreshTokenExpiredError or
        RefreshPrincipalInactiveError. Expired rows and rows of inactive
        owners are deleted as they are discovered.
        """
        now = now or utcnow()
        row = self.db.execute(
            select(
                RefreshToken.id,
                RefreshToken.principal_id,
                RefreshToken.expires_at,
                Principal.status,
                Principal.principal_type,
            )
            .join(Principal, Principal.id == RefreshToken.principal_id)
            .where(RefreshToken.token == token)
        ).one_or_none()
        if row is None:
            raise RefreshTokenNotFoundError()

        expires_at = as_utc(row.expires_at)
        if expires_at <= now:
            self.revoke(token)
            logger.info(
                "Expired refresh token removed",
                extra={"principal_id": row.principal_id, "token_preview": token_preview(token)},
            )
            raise RefreshTokenExpiredError()
        if row.status != "active":
            self.revoke(token)
            logger.warning(
                "Refresh attempt for inactive account; token revoked",
                extra={"principal_id": row.principal_id, "status": row.status},
            )
            raise RefreshPrincipalInactiveError()
        return RefreshTokenRecord(
            id=row.id,
            principal_id=row.principal_id,
            principal_type=row.principal_type,
            expires_at=expires_at,
        )

    def rotate(self, old_token: str, now: datetime | None = None) -> IssuedRefreshToken:
        """
        Replace old_token in place with a fresh value and expiry.

        Compare-and-swap: the row is updated only if it still holds old_token
        and has not expired. The loser of a concurrent rotation gets
        RefreshTokenNotFoundError and must log in again.
        """
        now = now or utcnow()
        issued = IssuedRefreshToken(token=generate_refresh_token(), expires_at=now + self.ttl)
        result = self.db.execute(
            update(RefreshToken)
            .where(RefreshToken.token == old_token, RefreshToken.expires_at > now)
            .values(token=issued.token, expires_at=issued.expires_at)
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        if result.rowcount != 1:
            logger.info(
                "Refresh token rotation lost (already rotated or expired)",
                extra={"token_preview": token_preview(old_token)},
            )
            raise RefreshTokenNotFoundError()
        return issued

    def revoke(self, token: str) -> bool:
        """Delete the row holding token. Idempotent; returns whether a row was removed."""
        result = self.db.execute(
            delete(RefreshToken)
            .where(RefreshToken.token == token)
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        return result.rowcount > 0

    def revoke_all(self, principal_id: int) -> int:
        """Delete every session of a principal (password reset, deactivation)."""
        result = self.db.execute(
            delete(RefreshToken)
            .where(RefreshToken.principal_id == principal_id)
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        return result.rowcount

    def purge_expired(self, now: datetime | None = None) -> int:
        """Delete all rows whose expiry has passed."""
        now = now or utcnow()
        result = self.db.execute(
            delete(RefreshToken)
            .where(RefreshToken.expires_at <= now)
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        return result.rowcount
