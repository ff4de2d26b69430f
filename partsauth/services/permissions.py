"""Role -> module -> action authorization, deny by default.

Module names are the ModuleName enum rather than free strings. At startup
load_module_registry() maps every enum member onto exactly one row of the
persisted modules table and refuses to continue if any member is missing or
ambiguous. check_permission() then looks grants up by the resolved module id,
so it matches whatever row the registry accepted and never compares names in
SQL.
"""

import enum
import logging
from collections import defaultdict
from dataclasses import dataclass

from sqlalchemy import and_, select
from sqlalchemy.orm import Session

from partsauth.core.errors import ModuleRegistryError
from partsauth.models import Module, Principal, Role, RoleModulePermission

logger = logging.getLogger(__name__)


class Action(str, enum.Enum):
    READ = "read"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"

    @property
    def column(self) -> str:
        return f"can_{self.value}"


class ModuleName(str, enum.Enum):
    """Protected resource areas of the marketplace back office."""

    ADMINISTRATION = "administration"
    BANNERS = "banners"
    CATEGORIES = "categories"
    LOCATIONS = "locations"
    MANUFACTURERS = "manufacturers"
    ORDERS = "orders"
    PARTS_FINDER = "parts finder"
    QUOTATIONS = "quotations"
    ROLES_AND_PERMISSIONS = "roles & permissions"
    STOCK_MANAGEMENT = "stock management"
    STORES = "stores"
    SUPPLIERS = "suppliers"
    SUPPORT = "support"
    USERS = "users"


def normalize_module_name(name: str) -> str:
    return " ".join(name.split()).lower()


@dataclass(frozen=True)
class ModuleRegistry:
    """ModuleName -> modules.id, resolved once at startup."""

    ids: dict[ModuleName, int]

    def module_id(self, module: ModuleName) -> int:
        return self.ids[module]


def load_module_registry(db: Session) -> ModuleRegistry:
    """
    Resolve every ModuleName against the modules table.

    Names are compared after normalize_module_name(). Raises
    ModuleRegistryError listing the enum values with no row and the names
    held by more than one row. Rows the enum does not know about are logged
    and otherwise ignored.
    """
    rows = db.execute(select(Module.id, Module.name)).all()
    by_name: dict[str, list[int]] = defaultdict(list)
    for module_id, name in rows:
        by_name[normalize_module_name(name)].append(module_id)

    ids: dict[ModuleName, int] = {}
    missing: list[str] = []
    duplicates: list[str] = []
    for module in ModuleName:
        module_ids = by_name.pop(module.value, [])
        if not module_ids:
            missing.append(module.value)
        elif len(module_ids) > 1:
            duplicates.append(module.value)
        else:
            ids[module] = module_ids[0]
    if missing or duplicates:
        raise ModuleRegistryError(missing, duplicates)
    if by_name:
        logger.warning(
            "modules table has entries with no ModuleName; they cannot be checked",
            extra={"unknown_modules": sorted(by_name)},
        )
    return ModuleRegistry(ids=ids)


def check_permission(
    db: Session,
    principal_id: int,
    module: ModuleName | str,
    action: Action,
    registry: ModuleRegistry,
) -> bool:
    """
    True only if the principal's role has the flag for (module, action) set.

    Fail-closed: an unknown module name, no principal, no role, an inactive
    role or no role_module_permissions row all give False. The (role, module)
    pair is unique, so at most one row can match.
    """
    action = Action(action)
    try:
        module = ModuleName(module)
    except ValueError:
        logger.warning(
            "Permission check for unknown module",
            extra={"principal_id": principal_id, "module": str(module), "action": action.value},
        )
        return False
    row = db.execute(
        select(
            RoleModulePermission.can_read,
            RoleModulePermission.can_create,
            RoleModulePermission.can_update,
            RoleModulePermission.can_delete,
            Role.status,
        )
        .select_from(Principal)
        .join(Role, Role.id == Principal.role_id)
        .join(
            RoleModulePermission,
            and_(
                RoleModulePermission.role_id == Role.id,
                RoleModulePermission.module_id == registry.module_id(module),
            ),
        )
        .where(Principal.id == principal_id)
    ).one_or_none()

    if row is None:
        allowed = False
        reason = "no_permission_row"
    elif row.status != "active":
        allowed = False
        reason = "role_inactive"
    else:
        allowed = bool(getattr(row, action.column))
        reason = "flag"
    log = logger.debug if allowed else logger.info
    log(
        "Permission check",
        extra={
            "principal_id": principal_id,
            "module": module.value,
            "action": action.value,
            "allowed": allowed,
            "reason": reason,
        },
    )
    return allowed


def list_role_permissions(db: Session, role_id: int) -> list[dict[str, object]]:
    """All permission rows for a role, ordered by module name (for login responses)."""
    rows = db.execute(
        select(
            Module.id,
            Module.name,
            RoleModulePermission.can_read,
            RoleModulePermission.can_create,
            RoleModulePermission.can_update,
            RoleModulePermission.can_delete,
        )
        .join(Module, Module.id == RoleModulePermission.module_id)
        .where(RoleModulePermission.role_id == role_id)
        .order_by(Module.name)
    ).all()
    return [
        {
            "module_id": r.id,
            "module_name": r.name,
            "can_read": bool(r.can_read),
            "can_create": bool(r.can_create),
            "can_update": bool(r.can_update),
            "can_delete": bool(r.can_delete),
        }
        for r in rows
    ]
