"""Pydantic request/response schemas."""

from partsauth.schemas.auth import (
    IdentityResponse,
    LockoutStatusResponse,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    MobileLoginResponse,
    MobileRefreshRequest,
    MobileRefreshResponse,
    MobileSignOutRequest,
    PasswordResetRequest,
    PermissionItem,
    PrincipalSummary,
    RefreshResponse,
    RoleSummary,
    TokenResponse,
)
from partsauth.schemas.health import HealthResponse

__all__ = [
    "HealthResponse",
    "IdentityResponse",
    "LockoutStatusResponse",
    "LoginRequest",
    "LoginResponse",
    "MessageResponse",
    "MobileLoginResponse",
    "MobileRefreshRequest",
    "MobileRefreshResponse",
    "MobileSignOutRequest",
    "PasswordResetRequest",
    "PermissionItem",
    "PrincipalSummary",
    "RefreshResponse",
    "RoleSummary",
    "TokenResponse",
]
