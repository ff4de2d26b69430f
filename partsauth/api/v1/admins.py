"""Administrative account operations guarded by the role permission check."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from partsauth.api.deps import RequestIdentity, require_permission
from partsauth.core.config import Settings, get_settings
from partsauth.core.database import get_db
from partsauth.core.errors import ValidationError
from partsauth.schemas.auth import LockoutStatusResponse, PasswordResetRequest
from partsauth.services import auth as auth_service
from partsauth.services import lockout
from partsauth.services.permissions import Action, ModuleName

logger = logging.getLogger(__name__)
router = APIRouter()

require_admin_update = require_permission(ModuleName.ADMINISTRATION, Action.UPDATE)


@router.post("/{principal_id}/unlock", response_model=LockoutStatusResponse)
def unlock_account(
    principal_id: int,
    caller: Annotated[RequestIdentity, Depends(require_admin_update)],
    db: Annotated[Session, Depends(get_db)],
) -> LockoutStatusResponse:
    """Clear failed attempts and any lock on an account, whatever its current state."""
    principal = lockout.unlock(db, principal_id)
    logger.info(
        "Unlock requested",
        extra={"principal_id": principal_id, "by_admin_id": caller.principal_id},
    )
    return LockoutStatusResponse.model_validate(principal)


@router.post("/{principal_id}/password-reset", response_model=LockoutStatusResponse)
def reset_password(
    principal_id: int,
    body: PasswordResetRequest,
    caller: Annotated[RequestIdentity, Depends(require_admin_update)],
    db: Annotated[Session, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> LockoutStatusResponse:
    """Set a new password, unlock the account and sign it out everywhere."""
    if body.password != body.password_confirmation:
        raise ValidationError("Password and confirmation do not match.")
    principal = auth_service.reset_password(db, principal_id, body.password, settings)
    logger.info(
        "Password reset requested",
        extra={"principal_id": principal_id, "by_admin_id": caller.principal_id},
    )
    return LockoutStatusResponse.model_validate(principal)
