"""SQLAlchemy ORM models."""

from partsauth.models.base import Base
from partsauth.models.login_attempt import LoginAttempt
from partsauth.models.principal import Principal
from partsauth.models.rbac import Module, Role, RoleModulePermission
from partsauth.models.refresh_token import RefreshToken

__all__ = [
    "Base",
    "LoginAttempt",
    "Module",
    "Principal",
    "RefreshToken",
    "Role",
    "RoleModulePermission",
]
