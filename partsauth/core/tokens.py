"""Stateless access tokens: issue and validate signed JWTs.

There is no server-side record of issued access tokens and no denylist. A
leaked token stays usable until ``exp``; the short lifetime
(ACCESS_TOKEN_EXPIRE_MINUTES, 15 by default) is the only bound on exposure.
Revocation applies to refresh tokens only.
"""

import enum
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any

import jwt

from partsauth.core.config import settings

# Claim carrying the category-specific principal id, one per principal type.
CATEGORY_ID_CLAIMS = {
    "admin": "admin_id",
    "supplier": "supplier_id",
    "mobile_user": "user_id",
}

REQUIRED_CLAIMS = ["sub", "email", "principal_type", "iat", "exp"]


class PrincipalType(str, enum.Enum):
    """Mutually exclusive principal categories."""

    ADMIN = "admin"
    SUPPLIER = "supplier"
    MOBILE_USER = "mobile_user"

    @property
    def id_claim(self) -> str:
        return CATEGORY_ID_CLAIMS[self.value]


class TokenValidationError(Exception):
    """Base for access-token validation failures."""

    kind = "invalid"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class MalformedTokenError(TokenValidationError):
    kind = "malformed"


class BadSignatureError(TokenValidationError):
    kind = "bad_signature"


class ExpiredTokenError(TokenValidationError):
    kind = "expired"


@dataclass(frozen=True)
class AccessTokenClaims:
    """Claims embedded in an access token. issued_at/expires_at are set on issue."""

    principal_id: int
    email: str
    principal_type: PrincipalType
    issued_at: datetime | None = None
    expires_at: datetime | None = None
    # False when the decoded token lacked the per-category id claim (admin_id etc.).
    has_category_claim: bool = field(default=True, compare=False, repr=False)

    def to_payload(self) -> dict[str, Any]:
        return {
            "sub": str(self.principal_id),
            self.principal_type.id_claim: self.principal_id,
            "email": self.email,
            "principal_type": self.principal_type.value,
        }


def issue_access_token(
    claims: AccessTokenClaims,
    ttl_minutes: int | None = None,
    now: datetime | None = None,
) -> str:
    """Sign claims into a compact JWT with iat and exp = iat + ttl_minutes."""
    issued_at = (now or datetime.now(UTC)).replace(microsecond=0)
    ttl = ttl_minutes if ttl_minutes is not None else settings.ACCESS_TOKEN_EXPIRE_MINUTES
    payload = claims.to_payload()
    payload["iat"] = int(issued_at.timestamp())
    payload["exp"] = int((issued_at + timedelta(minutes=ttl)).timestamp())
    return jwt.encode(
        payload,
        settings.JWT_SECRET.get_secret_value(),
        algorithm=settings.JWT_ALGORITHM,
    )


def validate_access_token(token: str, now: datetime | None = None) -> AccessTokenClaims:
    """
    Verify signature and expiry and return the claims.

    Raises MalformedTokenError, BadSignatureError or ExpiredTokenError.
    Expiry is checked here against ``now`` (strictly now < exp) so callers can
    pin the clock; PyJWT's own exp check is disabled.
    """
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET.get_secret_value(),
            algorithms=[settings.JWT_ALGORITHM],
            options={"verify_exp": False, "verify_iat": False, "require": REQUIRED_CLAIMS},
        )
    except jwt.InvalidSignatureError as e:
        raise BadSignatureError("Token signature verification failed") from e
    except jwt.PyJWTError as e:
        raise MalformedTokenError(f"Token could not be decoded: {e}") from e

    claims = _claims_from_payload(payload)
    current = now or datetime.now(UTC)
    if current >= claims.expires_at:
        raise ExpiredTokenError("Token has expired")
    return claims


def _claims_from_payload(payload: dict[str, Any]) -> AccessTokenClaims:
    try:
        principal_type = PrincipalType(payload["principal_type"])
        principal_id = int(payload["sub"])
        issued_at = datetime.fromtimestamp(int(payload["iat"]), UTC)
        expires_at = datetime.fromtimestamp(int(payload["exp"]), UTC)
    except (KeyError, TypeError, ValueError) as e:
        raise MalformedTokenError("Token payload is invalid") from e
    email = payload["email"]
    if not isinstance(email, str):
        raise MalformedTokenError("Token payload is invalid")
    category_id = payload.get(principal_type.id_claim)
    return AccessTokenClaims(
        principal_id=principal_id,
        email=email,
        principal_type=principal_type,
        issued_at=issued_at,
        expires_at=expires_at,
        has_category_claim=category_id is not None and str(category_id) == str(principal_id),
    )
