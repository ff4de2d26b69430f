"""Request/response schemas for auth endpoints."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from partsauth.core.security import EMAIL_MAX_LEN, PASSWORD_MAX_LEN, PASSWORD_MIN_LEN


class LoginRequest(BaseModel):
    """Credentials for login."""

    email: str = Field(..., min_length=3, max_length=EMAIL_MAX_LEN, description="Account e-mail")
    password: str = Field(..., min_length=1, max_length=PASSWORD_MAX_LEN, description="Password")


class TokenResponse(BaseModel):
    """Access token returned by login and refresh."""

    access_token: str = Field(..., description="JWT access token")
    token_type: str = Field(default="Bearer", description="Token type")
    expires_in: int = Field(..., description="Access token lifetime in seconds")


class PrincipalSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str


class RoleSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: str | None = None
    status: str


class PermissionItem(BaseModel):
    module_id: int
    module_name: str
    can_read: bool
    can_create: bool
    can_update: bool
    can_delete: bool


class LoginResponse(TokenResponse):
    """Successful login: access token plus who logged in. The refresh token is in a cookie."""

    user: PrincipalSummary
    role: RoleSummary | None = None
    permissions: list[PermissionItem] = Field(default_factory=list)


class RefreshResponse(TokenResponse):
    refresh_expires_in: int = Field(..., description="Seconds until the rotated refresh token expires")


class MobileLoginResponse(LoginResponse):
    """Mobile clients keep the refresh token themselves, so it is returned in the body."""

    refresh_token: str
    refresh_expires_in: int


class MobileRefreshRequest(BaseModel):
    refresh_token: str = Field(..., min_length=1, max_length=128)


class MobileRefreshResponse(RefreshResponse):
    refresh_token: str


class MobileSignOutRequest(BaseModel):
    refresh_token: str | None = Field(default=None, max_length=128)


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class IdentityResponse(BaseModel):
    """The validated access-token claims of the caller."""

    principal_id: int
    email: str
    principal_type: str
    issued_at: datetime
    expires_at: datetime


class PasswordResetRequest(BaseModel):
    password: str = Field(..., min_length=PASSWORD_MIN_LEN, max_length=PASSWORD_MAX_LEN)
    password_confirmation: str = Field(..., min_length=PASSWORD_MIN_LEN, max_length=PASSWORD_MAX_LEN)


class LockoutStatusResponse(BaseModel):
    """Account lockout fields after an administrative action."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    failed_attempts: int
    locked_until: datetime | None = None
