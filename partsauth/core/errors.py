"""Error taxonomy for the auth core.

Every failure is terminal for the request: services raise one of these and
the exception handler in ``partsauth.main`` renders it as a JSON body with
the class's status code. Nothing here is retried.
"""

from typing import Any


class AuthCoreError(Exception):
    """Base class: carries the HTTP status, a machine code and a user-facing message."""

    status_code: int = 500
    code: str = "error"

    def __init__(self, message: str, **extra: Any) -> None:
        self.message = message
        self.extra = extra
        super().__init__(message)

    def to_body(self) -> dict[str, Any]:
        body: dict[str, Any] = {"success": False, "error": self.code, "message": self.message}
        body.update(self.extra)
        return body


class ValidationError(AuthCoreError):
    """Missing or malformed request fields."""

    status_code = 400
    code = "validation_error"


# --- Bearer header extraction (AuthMiddleware) ---


class MissingHeaderError(AuthCoreError):
    status_code = 401
    code = "missing_header"

    def __init__(self, message: str = "Authorization header missing.") -> None:
        super().__init__(message)


class MalformedHeaderError(AuthCoreError):
    status_code = 400
    code = "malformed_header"

    def __init__(
        self,
        message: str = 'Invalid Authorization header format. Expected "Bearer <token>".',
    ) -> None:
        super().__init__(message)


class EmptyTokenError(AuthCoreError):
    status_code = 400
    code = "empty_token"

    def __init__(self, message: str = "Bearer token is empty.") -> None:
        super().__init__(message)


class InvalidOrExpiredTokenError(AuthCoreError):
    status_code = 401
    code = "invalid_token"

    def __init__(self, message: str = "Invalid or expired token.") -> None:
        super().__init__(message)


# --- Login ---


class InvalidCredentialsError(AuthCoreError):
    """Wrong e-mail or password. remaining_attempts is None when attempts are not counted."""

    status_code = 401
    code = "invalid_credentials"

    def __init__(self, remaining_attempts: int | None = None) -> None:
        self.remaining_attempts = remaining_attempts
        if remaining_attempts is None:
            super().__init__("Invalid email or password.")
        else:
            super().__init__(
                f"Invalid email or password. {remaining_attempts} attempt(s) remaining.",
                remaining_attempts=remaining_attempts,
            )


class AccountLockedError(AuthCoreError):
    status_code = 423
    code = "account_locked"

    def __init__(self, remaining_minutes: int, just_locked: bool = False) -> None:
        self.remaining_minutes = remaining_minutes
        if just_locked:
            message = (
                "Account has been locked due to too many failed login attempts. "
                f"Please try again in {remaining_minutes} minute(s) or contact administrator."
            )
        else:
            message = (
                "Account is locked due to too many failed login attempts. "
                f"Please try again in {remaining_minutes} minute(s) or contact administrator."
            )
        super().__init__(message, remaining_minutes=remaining_minutes)


class InactiveAccountError(AuthCoreError):
    status_code = 403
    code = "account_inactive"

    def __init__(self, message: str = "Account is inactive.") -> None:
        super().__init__(message)


class ApplicationPendingError(AuthCoreError):
    """Correct password for an account that is still a pending registration application."""

    status_code = 403
    code = "application_pending"

    def __init__(self) -> None:
        super().__init__(
            "Your registration application is still pending approval. "
            "Please contact administrator for status updates.",
            application_status="pending",
        )


# --- Refresh tokens ---


class RefreshTokenError(AuthCoreError):
    """Base for refresh failures; all are 401 and require a fresh login."""

    status_code = 401
    code = "invalid_refresh_token"

    def __init__(self, message: str = "Invalid or expired refresh token.") -> None:
        super().__init__(message)


class RefreshTokenMissingError(RefreshTokenError):
    def __init__(self) -> None:
        super().__init__("Refresh token not found.")


class RefreshTokenNotFoundError(RefreshTokenError):
    pass


class RefreshTokenExpiredError(RefreshTokenError):
    pass


class RefreshPrincipalInactiveError(RefreshTokenError):
    def __init__(self) -> None:
        super().__init__("Account is inactive.")


# --- Authorization / admin operations ---


class AuthorizationDeniedError(AuthCoreError):
    status_code = 403
    code = "forbidden"

    def __init__(self, module: str, action: str) -> None:
        super().__init__(
            f"You do not have permission to {action} {module}.",
            module=module,
            action=action,
        )


class PrincipalNotFoundError(AuthCoreError):
    status_code = 404
    code = "not_found"

    def __init__(self, message: str = "Account not found.") -> None:
        super().__init__(message)


class PersistenceError(AuthCoreError):
    """Underlying store failure. The message is generic; details go to the log only."""

    status_code = 500
    code = "internal_error"

    def __init__(self, message: str = "An internal error occurred. Please try again later.") -> None:
        super().__init__(message)


class ModuleRegistryError(RuntimeError):
    """
    Raised at startup when the modules table cannot be mapped one-to-one onto
    ModuleName: an enum member has no row, or several rows normalise to the
    same name.
    """

    def __init__(self, missing: list[str], duplicates: list[str] | None = None) -> None:
        self.missing = missing
        self.duplicates = duplicates or []
        problems = []
        if missing:
            problems.append(
                "missing entries for: "
                + ", ".join(missing)
                + " (run: python -m partsauth.scripts.sync_modules)"
            )
        if self.duplicates:
            problems.append(
                "several rows share the name(s): "
                + ", ".join(self.duplicates)
                + " (names are compared case- and whitespace-insensitively)"
            )
        super().__init__("modules table " + "; ".join(problems))
