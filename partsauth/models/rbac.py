"""ORM models for role-based access control: roles, modules and per-module permission flags."""

from sqlalchemy import Boolean, Column, ForeignKey, Integer, String, UniqueConstraint

from partsauth.models.base import Base


class Role(Base):
    """Administrator role. status: 'active' or 'inactive' (blocked)."""

    __tablename__ = "roles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False, unique=True)
    description = Column(String(255), nullable=True)
    status = Column(String(16), nullable=False, default="active")


class Module(Base):
    """Protected resource area; name must match a partsauth.services.permissions.ModuleName value."""

    __tablename__ = "modules"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False, unique=True)


class RoleModulePermission(Base):
    """Action flags for one (role, module) pair. A missing row denies every action."""

    __tablename__ = "role_module_permissions"
    __table_args__ = (UniqueConstraint("role_id", "module_id", name="uq_role_module"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    role_id = Column(Integer, ForeignKey("roles.id", ondelete="CASCADE"), nullable=False, index=True)
    module_id = Column(
        Integer, ForeignKey("modules.id", ondelete="CASCADE"), nullable=False, index=True
    )
    can_read = Column(Boolean, nullable=False, default=False)
    can_create = Column(Boolean, nullable=False, default=False)
    can_update = Column(Boolean, nullable=False, default=False)
    can_delete = Column(Boolean, nullable=False, default=False)
