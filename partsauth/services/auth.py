"""Login, refresh and sign-out: ties password check, lockout and both token kinds together."""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlalchemy.orm import Session

from partsauth.core.errors import (
    AccountLockedError,
    ApplicationPendingError,
    InactiveAccountError,
    InvalidCredentialsError,
    PrincipalNotFoundError,
    RefreshTokenNotFoundError,
)
from partsauth.core.security import burn_password_check, hash_password, verify_password
from partsauth.core.timeutils import utcnow
from partsauth.core.tokens import AccessTokenClaims, PrincipalType, issue_access_token
from partsauth.models import LoginAttempt, Principal, Role
from partsauth.services import lockout
from partsauth.services.permissions import list_role_permissions
from partsauth.services.refresh_tokens import IssuedRefreshToken, RefreshTokenStore

if TYPE_CHECKING:
    from partsauth.core.config import Settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClientInfo:
    """Request metadata recorded with each login attempt."""

    ip_address: str | None = None
    user_agent: str | None = None


@dataclass
class IssuedSession:
    """A freshly minted access token plus the refresh token that backs it."""

    access_token: str
    expires_in: int
    refresh: IssuedRefreshToken


@dataclass
class LoginResult:
    principal: Principal
    session: IssuedSession
    role: Role | None = None
    permissions: list[dict[str, object]] = field(default_factory=list)


@dataclass
class RefreshResult:
    principal_id: int
    session: IssuedSession


def access_ttl_minutes(principal_type: PrincipalType, settings: "Settings") -> int:
    if principal_type is PrincipalType.MOBILE_USER:
        return settings.MOBILE_ACCESS_TOKEN_EXPIRE_MINUTES
    return settings.ACCESS_TOKEN_EXPIRE_MINUTES


def normalize_email(email: str) -> str:
    return email.strip().lower()


def _clip(value: str | None, limit: int) -> str | None:
    return value[:limit] if value else None


def _record_attempt(
    db: Session,
    email: str,
    principal_id: int | None,
    success: bool,
    reason: str,
    client: ClientInfo,
) -> None:
    db.add(
        LoginAttempt(
            principal_id=principal_id,
            email=email[:255],
            ip_address=_clip(client.ip_address, 64),
            user_agent=_clip(client.user_agent, 512),
            success=success,
            reason=reason,
        )
    )
    db.commit()
    log_extra = {
        "email": email,
        "principal_id": principal_id,
        "reason": reason,
        "ip_address": client.ip_address,
    }
    if success:
        logger.info("Login succeeded", extra=log_extra)
    else:
        logger.warning("Login failed", extra=log_extra)


def _mint_session(
    principal: Principal,
    principal_type: PrincipalType,
    settings: "Settings",
    refresh: IssuedRefreshToken,
    now: datetime,
) -> IssuedSession:
    ttl = access_ttl_minutes(principal_type, settings)
    claims = AccessTokenClaims(
        principal_id=principal.id,
        email=principal.email,
        principal_type=principal_type,
    )
    return IssuedSession(
        access_token=issue_access_token(claims, ttl_minutes=ttl, now=now),
        expires_in=ttl * 60,
        refresh=refresh,
    )


def login(
    db: Session,
    email: str,
    password: str,
    principal_type: PrincipalType,
    settings: "Settings",
    client: ClientInfo | None = None,
    now: datetime | None = None,
) -> LoginResult:
    """
    Authenticate email/password for one principal family and open a session.

    Order of checks: unknown account (401), pending application (401 on wrong
    password without counting, 403 on correct), lock gate (423), password
    (401 with remaining attempts, or 423 when this failure locks), blocked
    role (403), inactive account (403). Success resets the lockout state and
    issues an access token plus a new refresh-token row.
    """
    now = now or utcnow()
    client = client or ClientInfo()
    email = normalize_email(email)
    principal = db.execute(
        select(Principal).where(
            Principal.email == email,
            Principal.principal_type == principal_type.value,
        )
    ).scalar_one_or_none()

    if principal is None:
        burn_password_check(password)
        _record_attempt(db, email, None, False, "unknown_email", client)
        raise InvalidCredentialsError()

    if principal.status == "pending":
        if not verify_password(password, principal.password_hash):
            _record_attempt(db, email, principal.id, False, "bad_password_pending", client)
            raise InvalidCredentialsError()
        _record_attempt(db, email, principal.id, False, "application_pending", client)
        raise ApplicationPendingError()

    try:
        lockout.ensure_not_locked(db, principal, now)
    except AccountLockedError:
        _record_attempt(db, email, principal.id, False, "locked", client)
        raise

    if not verify_password(password, principal.password_hash):
        state = lockout.register_failed_attempt(db, principal.id, settings, now)
        if state.is_locked(now):
            _record_attempt(db, email, principal.id, False, "locked_now", client)
            raise AccountLockedError(
                lockout.remaining_lock_minutes(state.locked_until, now),
                just_locked=True,
            )
        _record_attempt(db, email, principal.id, False, "bad_password", client)
        remaining = max(0, settings.LOCKOUT_MAX_FAILED_ATTEMPTS - state.failed_attempts)
        raise InvalidCredentialsError(remaining_attempts=remaining)

    role = db.get(Role, principal.role_id) if principal.role_id else None
    if role is not None and role.status != "active":
        _record_attempt(db, email, principal.id, False, "role_blocked", client)
        raise InactiveAccountError("Your role has been blocked. Please contact administrator.")

    if principal.status != "active":
        _record_attempt(db, email, principal.id, False, "inactive", client)
        raise InactiveAccountError()

    lockout.reset_lockout(db, principal.id)
    refresh = RefreshTokenStore(db, settings).issue(principal.id, now)
    session = _mint_session(principal, principal_type, settings, refresh, now)
    _record_attempt(db, email, principal.id, True, "ok", client)

    permissions = list_role_permissions(db, role.id) if role is not None else []
    db.refresh(principal)
    return LoginResult(principal=principal, session=session, role=role, permissions=permissions)


def refresh_session(
    db: Session,
    refresh_token: str,
    principal_type: PrincipalType,
    settings: "Settings",
    now: datetime | None = None,
) -> RefreshResult:
    """
    Validate and rotate a refresh token, then mint a new access token.

    A token belonging to another principal family is treated as unknown.
    """
    now = now or utcnow()
    store = RefreshTokenStore(db, settings)
    record = store.validate(refresh_token, now)
    if record.principal_type != principal_type.value:
        logger.warning(
            "Refresh token presented to the wrong endpoint family",
            extra={"principal_id": record.principal_id, "expected": principal_type.value},
        )
        raise RefreshTokenNotFoundError()
    principal = db.get(Principal, record.principal_id)
    if principal is None:
        raise RefreshTokenNotFoundError()
    rotated = store.rotate(refresh_token, now)
    session = _mint_session(principal, principal_type, settings, rotated, now)
    logger.info("Session refreshed", extra={"principal_id": principal.id})
    return RefreshResult(principal_id=principal.id, session=session)


def sign_out(db: Session, refresh_token: str | None, settings: "Settings") -> bool:
    """Revoke the presented refresh token. A missing or unknown token is not an error."""
    if not refresh_token:
        return False
    revoked = RefreshTokenStore(db, settings).revoke(refresh_token)
    if revoked:
        logger.info("Signed out; refresh token revoked")
    return revoked


def reset_password(
    db: Session,
    principal_id: int,
    new_password: str,
    settings: "Settings",
) -> Principal:
    """Administrative password reset: new hash, lockout cleared, every session revoked."""
    principal = db.get(Principal, principal_id)
    if principal is None:
        raise PrincipalNotFoundError()
    principal.password_hash = hash_password(new_password, rounds=settings.BCRYPT_ROUNDS)
    db.commit()
    lockout.unlock(db, principal_id)
    revoked = RefreshTokenStore(db, settings).revoke_all(principal_id)
    logger.info(
        "Password reset by administrator",
        extra={"principal_id": principal_id, "sessions_revoked": revoked},
    )
    db.refresh(principal)
    return principal
