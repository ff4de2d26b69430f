"""Brute-force lockout state machine on Principal.failed_attempts / locked_until.

UNLOCKED: failed_attempts < threshold and locked_until is null.
LOCKED:   locked_until is in the future.

Every transition is a single conditional UPDATE so concurrent failed logins
against one account cannot under-count. Each function commits its own
transition: a failed attempt must be recorded even though the request then
ends with an error.
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from sqlalchemy import and_, case, literal, update
from sqlalchemy.orm import Session

from partsauth.core.errors import AccountLockedError, PrincipalNotFoundError
from partsauth.core.timeutils import as_utc, utcnow
from partsauth.models import Principal

if TYPE_CHECKING:
    from partsauth.core.config import Settings

logger = logging.getLogger(__name__)

_LOCKED_UNTIL_TYPE = Principal.__table__.c.locked_until.type


@dataclass(frozen=True)
class LockoutState:
    failed_attempts: int
    locked_until: datetime | None

    def is_locked(self, now: datetime) -> bool:
        return self.locked_until is not None and self.locked_until > now


def remaining_lock_minutes(locked_until: datetime, now: datetime) -> int:
    """Whole minutes left on a lock, rounded up, never below 1."""
    seconds = (as_utc(locked_until) - now).total_seconds()
    return max(1, math.ceil(seconds / 60))


def current_state(principal: Principal) -> LockoutState:
    return LockoutState(
        failed_attempts=principal.failed_attempts or 0,
        locked_until=as_utc(principal.locked_until),
    )


def clear_expired_lock(db: Session, principal_id: int, now: datetime | None = None) -> bool:
    """LOCKED -> UNLOCKED once locked_until has passed. Returns True if a lock was cleared."""
    now = now or utcnow()
    result = db.execute(
        update(Principal)
        .where(
            Principal.id == principal_id,
            Principal.locked_until.is_not(None),
            Principal.locked_until <= now,
        )
        .values(failed_attempts=0, locked_until=None)
        .execution_options(synchronize_session=False)
    )
    db.commit()
    cleared = result.rowcount > 0
    if cleared:
        logger.info("Lock expired and cleared", extra={"principal_id": principal_id})
    return cleared


def ensure_not_locked(db: Session, principal: Principal, now: datetime | None = None) -> LockoutState:
    """
    Gate run before the credential check.

    Raises AccountLockedError while LOCKED. A lock that has run out is cleared
    first, so the attempt is evaluated from a fresh UNLOCKED state.
    """
    now = now or utcnow()
    state = current_state(principal)
    if state.is_locked(now):
        raise AccountLockedError(remaining_lock_minutes(state.locked_until, now))
    if state.locked_until is not None:
        clear_expired_lock(db, principal.id, now)
        state = LockoutState(failed_attempts=0, locked_until=None)
    return state


def register_failed_attempt(
    db: Session,
    principal_id: int,
    settings: "Settings",
    now: datetime | None = None,
) -> LockoutState:
    """
    Atomically increment failed_attempts and lock when the threshold is reached.

    One statement: UPDATE ... SET failed_attempts = failed_attempts + 1,
    locked_until = CASE ... RETURNING. An existing lock is never extended.
    """
    now = now or utcnow()
    lock_until = now + timedelta(minutes=settings.LOCKOUT_DURATION_MINUTES)
    threshold = settings.LOCKOUT_MAX_FAILED_ATTEMPTS
    row = db.execute(
        update(Principal)
        .where(Principal.id == principal_id)
        .values(
            failed_attempts=Principal.failed_attempts + 1,
            locked_until=case(
                (
                    and_(
                        Principal.locked_until.is_(None),
                        Principal.failed_attempts + 1 >= threshold,
                    ),
                    literal(lock_until, _LOCKED_UNTIL_TYPE),
                ),
                else_=Principal.locked_until,
            ),
        )
        .returning(Principal.failed_attempts, Principal.locked_until)
        .execution_options(synchronize_session=False)
    ).one_or_none()
    db.commit()
    if row is None:
        raise PrincipalNotFoundError()
    state = LockoutState(failed_attempts=row[0], locked_until=as_utc(row[1]))
    if state.is_locked(now):
        logger.warning(
            "Account locked after repeated failures",
            extra={
                "principal_id": principal_id,
                "failed_attempts": state.failed_attempts,
                "locked_until": state.locked_until.isoformat(),
            },
        )
    return state


def reset_lockout(db: Session, principal_id: int) -> None:
    """Any state -> UNLOCKED. Used after a successful credential check."""
    db.execute(
        update(Principal)
        .where(
            Principal.id == principal_id,
            (Principal.failed_attempts != 0) | Principal.locked_until.is_not(None),
        )
        .values(failed_attempts=0, locked_until=None)
        .execution_options(synchronize_session=False)
    )
    db.commit()


def unlock(db: Session, principal_id: int) -> Principal:
    """Administrative unlock: force UNLOCKED regardless of current state."""
    principal = db.get(Principal, principal_id)
    if principal is None:
        raise PrincipalNotFoundError()
    was_locked = current_state(principal).is_locked(utcnow())
    db.execute(
        update(Principal)
        .where(Principal.id == principal_id)
        .values(failed_attempts=0, locked_until=None)
        .execution_options(synchronize_session=False)
    )
    db.commit()
    db.refresh(principal)
    logger.info(
        "Account unlocked by administrator",
        extra={"principal_id": principal_id, "was_locked": was_locked},
    )
    return principal
