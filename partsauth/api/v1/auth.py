"""Login, refresh and sign-out endpoints for cookie-based principal families (admin, supplier)."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.orm import Session

from partsauth.api.deps import RequestIdentity, get_current_admin, get_current_supplier
from partsauth.core.config import Settings, get_settings
from partsauth.core.database import get_db
from partsauth.core.errors import RefreshTokenMissingError
from partsauth.core.timeutils import utcnow
from partsauth.core.tokens import PrincipalType
from partsauth.schemas.auth import (
    IdentityResponse,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    PermissionItem,
    PrincipalSummary,
    RefreshResponse,
    RoleSummary,
)
from partsauth.services import auth as auth_service
from partsauth.services.refresh_tokens import IssuedRefreshToken


def client_info(request: Request) -> auth_service.ClientInfo:
    """Caller IP (first X-Forwarded-For hop when behind a proxy) and user agent."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        ip = forwarded.split(",")[0].strip()
    else:
        ip = request.client.host if request.client else None
    return auth_service.ClientInfo(ip_address=ip, user_agent=request.headers.get("user-agent"))


def set_refresh_cookie(
    response: Response,
    cookie_name: str,
    issued: IssuedRefreshToken,
    settings: Settings,
) -> None:
    """HTTP-only, SameSite-restricted cookie carrying the refresh token."""
    max_age = max(0, int((issued.expires_at - utcnow()).total_seconds()))
    response.set_cookie(
        key=cookie_name,
        value=issued.token,
        max_age=max_age,
        expires=issued.expires_at,
        path="/",
        domain=settings.COOKIE_DOMAIN,
        secure=settings.COOKIE_SECURE,
        httponly=True,
        samesite=settings.COOKIE_SAMESITE,
    )


def clear_refresh_cookie(response: Response, cookie_name: str, settings: Settings) -> None:
    response.delete_cookie(
        key=cookie_name,
        path="/",
        domain=settings.COOKIE_DOMAIN,
        secure=settings.COOKIE_SECURE,
        httponly=True,
        samesite=settings.COOKIE_SAMESITE,
    )


def build_cookie_auth_router(principal_type: PrincipalType, cookie_name: str) -> APIRouter:
    """
    Routes for one principal family whose refresh token lives in an HTTP-only cookie.

    Each family has its own cookie name so admin and supplier sessions in the
    same browser do not overwrite each other.
    """
    router = APIRouter()

    @router.post("/login", response_model=LoginResponse)
    def login(
        body: LoginRequest,
        request: Request,
        response: Response,
        db: Annotated[Session, Depends(get_db)],
        settings: Annotated[Settings, Depends(get_settings)],
    ) -> LoginResponse:
        """
        Authenticate with e-mail and password; returns a short-lived access token.
        Include the token in the Authorization header as: Bearer <access_token>.
        The refresh token is set as an HTTP-only cookie.
        """
        result = auth_service.login(
            db,
            body.email,
            body.password,
            principal_type,
            settings,
            client=client_info(request),
        )
        set_refresh_cookie(response, cookie_name, result.session.refresh, settings)
        return LoginResponse(
            access_token=result.session.access_token,
            token_type="Bearer",
            expires_in=result.session.expires_in,
            user=PrincipalSummary.model_validate(result.principal),
            role=RoleSummary.model_validate(result.role) if result.role is not None else None,
            permissions=[PermissionItem(**p) for p in result.permissions],
        )

    @router.post("/refresh", response_model=RefreshResponse)
    def refresh(
        request: Request,
        response: Response,
        db: Annotated[Session, Depends(get_db)],
        settings: Annotated[Settings, Depends(get_settings)],
    ) -> RefreshResponse:
        """Exchange the refresh-token cookie for a new access token; the cookie is rotated."""
        token = request.cookies.get(cookie_name)
        if not token:
            raise RefreshTokenMissingError()
        result = auth_service.refresh_session(db, token, principal_type, settings)
        set_refresh_cookie(response, cookie_name, result.session.refresh, settings)
        return RefreshResponse(
            access_token=result.session.access_token,
            token_type="Bearer",
            expires_in=result.session.expires_in,
            refresh_expires_in=max(
                0, int((result.session.refresh.expires_at - utcnow()).total_seconds())
            ),
        )

    @router.post("/signout", response_model=MessageResponse)
    def signout(
        request: Request,
        response: Response,
        db: Annotated[Session, Depends(get_db)],
        settings: Annotated[Settings, Depends(get_settings)],
    ) -> MessageResponse:
        """Revoke the refresh token (if any) and clear the cookie. Always succeeds."""
        auth_service.sign_out(db, request.cookies.get(cookie_name), settings)
        clear_refresh_cookie(response, cookie_name, settings)
        return MessageResponse(message="Signed out successfully.")

    return router


def _cookie_name(principal_type: PrincipalType) -> str:
    settings = get_settings()
    if principal_type is PrincipalType.SUPPLIER:
        return settings.SUPPLIER_REFRESH_COOKIE_NAME
    return settings.REFRESH_COOKIE_NAME


router = build_cookie_auth_router(PrincipalType.ADMIN, _cookie_name(PrincipalType.ADMIN))
supplier_router = build_cookie_auth_router(
    PrincipalType.SUPPLIER, _cookie_name(PrincipalType.SUPPLIER)
)


def identity_response(identity: RequestIdentity) -> IdentityResponse:
    claims = identity.claims
    return IdentityResponse(
        principal_id=claims.principal_id,
        email=claims.email,
        principal_type=claims.principal_type.value,
        issued_at=claims.issued_at,
        expires_at=claims.expires_at,
    )


@router.get("/me", response_model=IdentityResponse)
def admin_me(identity: Annotated[RequestIdentity, Depends(get_current_admin)]) -> IdentityResponse:
    """Claims of the administrator calling this endpoint."""
    return identity_response(identity)


@supplier_router.get("/me", response_model=IdentityResponse)
def supplier_me(
    identity: Annotated[RequestIdentity, Depends(get_current_supplier)],
) -> IdentityResponse:
    """Claims of the supplier calling this endpoint."""
    return identity_response(identity)
