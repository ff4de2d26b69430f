"""Mobile app auth: refresh tokens travel in the JSON body instead of a cookie."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from partsauth.api.deps import RequestIdentity, get_current_mobile_user
from partsauth.api.v1.auth import client_info, identity_response
from partsauth.core.config import Settings, get_settings
from partsauth.core.database import get_db
from partsauth.core.timeutils import utcnow
from partsauth.core.tokens import PrincipalType
from partsauth.schemas.auth import (
    IdentityResponse,
    LoginRequest,
    MessageResponse,
    MobileLoginResponse,
    MobileRefreshRequest,
    MobileRefreshResponse,
    MobileSignOutRequest,
    PrincipalSummary,
)
from partsauth.services import auth as auth_service

router = APIRouter()


def _seconds_left(session: auth_service.IssuedSession) -> int:
    return max(0, int((session.refresh.expires_at - utcnow()).total_seconds()))


@router.post("/login", response_model=MobileLoginResponse)
def login(
    body: LoginRequest,
    request: Request,
    db: Annotated[Session, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> MobileLoginResponse:
    """Authenticate a mobile user; both tokens are returned in the body."""
    result = auth_service.login(
        db,
        body.email,
        body.password,
        PrincipalType.MOBILE_USER,
        settings,
        client=client_info(request),
    )
    return MobileLoginResponse(
        access_token=result.session.access_token,
        token_type="Bearer",
        expires_in=result.session.expires_in,
        user=PrincipalSummary.model_validate(result.principal),
        refresh_token=result.session.refresh.token,
        refresh_expires_in=_seconds_left(result.session),
    )


@router.post("/refresh", response_model=MobileRefreshResponse)
def refresh(
    body: MobileRefreshRequest,
    db: Annotated[Session, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> MobileRefreshResponse:
    """Rotate the refresh token and mint a new access token."""
    result = auth_service.refresh_session(
        db, body.refresh_token.strip(), PrincipalType.MOBILE_USER, settings
    )
    return MobileRefreshResponse(
        access_token=result.session.access_token,
        token_type="Bearer",
        expires_in=result.session.expires_in,
        refresh_token=result.session.refresh.token,
        refresh_expires_in=_seconds_left(result.session),
    )


@router.post("/signout", response_model=MessageResponse)
def signout(
    body: MobileSignOutRequest,
    db: Annotated[Session, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> MessageResponse:
    """Revoke the given refresh token; idempotent."""
    auth_service.sign_out(db, body.refresh_token, settings)
    return MessageResponse(message="Signed out successfully.")


@router.get("/me", response_model=IdentityResponse)
def me(identity: Annotated[RequestIdentity, Depends(get_current_mobile_user)]) -> IdentityResponse:
    """Claims of the mobile user calling this endpoint."""
    return identity_response(identity)
