"""Per-request authentication and authorization dependencies.

authenticate_request() is the gate every protected endpoint goes through:
it reads the bearer token, validates it and hands back a RequestIdentity.
The identity travels by dependency injection (and request.state for
middleware/logging); there is no module-level "current user".
"""

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from partsauth.core.database import get_db
from partsauth.core.errors import (
    AuthorizationDeniedError,
    EmptyTokenError,
    InvalidOrExpiredTokenError,
    MalformedHeaderError,
    MissingHeaderError,
)
from partsauth.core.tokens import (
    AccessTokenClaims,
    PrincipalType,
    TokenValidationError,
    validate_access_token,
)
from partsauth.services.permissions import (
    Action,
    ModuleName,
    ModuleRegistry,
    check_permission,
    load_module_registry,
)

logger = logging.getLogger(__name__)

BEARER_PREFIX = "bearer"


@dataclass(frozen=True)
class RequestIdentity:
    """Validated caller of one request."""

    claims: AccessTokenClaims
    token: str

    @property
    def principal_id(self) -> int:
        return self.claims.principal_id

    @property
    def principal_type(self) -> PrincipalType:
        return self.claims.principal_type


def get_authorization_header(headers: Mapping[str, str]) -> str | None:
    """Authorization header value, whatever case the front-end server delivered the name in."""
    value = headers.get("Authorization")
    if value is None:
        value = headers.get("authorization")
    if value is None:
        for name, candidate in headers.items():
            if name.lower() == "authorization":
                value = candidate
                break
    if value is None:
        return None
    value = value.strip()
    return value or None


def extract_bearer_token(headers: Mapping[str, str]) -> str:
    """
    Pull the token out of ``Authorization: Bearer <token>``; any run of
    whitespace may separate the scheme from the token.

    Raises MissingHeaderError, MalformedHeaderError or EmptyTokenError, in that order.
    """
    header = get_authorization_header(headers)
    if header is None:
        raise MissingHeaderError()
    parts = header.split(None, 1)
    if parts[0].lower() != BEARER_PREFIX:
        raise MalformedHeaderError()
    token = parts[1].strip() if len(parts) > 1 else ""
    if not token:
        raise EmptyTokenError()
    return token


def authenticate_headers(headers: Mapping[str, str]) -> RequestIdentity:
    """Header extraction plus token validation; framework-free so handlers and tests can call it."""
    token = extract_bearer_token(headers)
    try:
        claims = validate_access_token(token)
    except TokenValidationError as e:
        logger.info("Access token rejected", extra={"kind": e.kind})
        raise InvalidOrExpiredTokenError() from e
    return RequestIdentity(claims=claims, token=token)


def authenticate_request(request: Request) -> RequestIdentity:
    """Dependency: require a valid bearer token and expose the identity for this request."""
    identity = authenticate_headers(request.headers)
    request.state.identity = identity
    return identity


def require_principal(principal_type: PrincipalType) -> Callable[..., RequestIdentity]:
    """
    Strict variant: the token must also be minted for ``principal_type`` and
    carry its category id claim (admin_id, supplier_id or user_id), so a
    token from one family cannot be replayed against another's endpoints.
    """

    def dependency(
        identity: Annotated[RequestIdentity, Depends(authenticate_request)],
    ) -> RequestIdentity:
        claims = identity.claims
        if claims.principal_type is not principal_type or not claims.has_category_claim:
            logger.warning(
                "Token used against another principal family",
                extra={
                    "principal_id": claims.principal_id,
                    "token_type": claims.principal_type.value,
                    "expected": principal_type.value,
                },
            )
            raise InvalidOrExpiredTokenError(
                f"Invalid token. {principal_type.id_claim} not found in token."
            )
        return identity

    return dependency


get_current_admin = require_principal(PrincipalType.ADMIN)
get_current_supplier = require_principal(PrincipalType.SUPPLIER)
get_current_mobile_user = require_principal(PrincipalType.MOBILE_USER)


def get_module_registry(
    request: Request,
    db: Annotated[Session, Depends(get_db)],
) -> ModuleRegistry:
    """
    Registry validated at startup. When startup validation is disabled
    (VALIDATE_MODULES_ON_STARTUP=false) it is resolved from the database on
    each call instead, with the same checks.
    """
    registry = getattr(request.app.state, "module_registry", None)
    if registry is None:
        registry = load_module_registry(db)
    return registry


def ensure_permission(
    db: Session,
    identity: RequestIdentity,
    module: ModuleName,
    action: Action,
    registry: ModuleRegistry,
) -> None:
    """Handler-side second gate: raise AuthorizationDeniedError unless the role allows it."""
    if identity.principal_type is not PrincipalType.ADMIN or not check_permission(
        db, identity.principal_id, module, action, registry
    ):
        raise AuthorizationDeniedError(module.value, action.value)


def require_permission(module: ModuleName, action: Action) -> Callable[..., RequestIdentity]:
    """Dependency factory: administrator token plus the (module, action) flag on their role."""

    def dependency(
        identity: Annotated[RequestIdentity, Depends(get_current_admin)],
        db: Annotated[Session, Depends(get_db)],
        registry: Annotated[ModuleRegistry, Depends(get_module_registry)],
    ) -> RequestIdentity:
        ensure_permission(db, identity, module, action, registry)
        return identity

    return dependency
