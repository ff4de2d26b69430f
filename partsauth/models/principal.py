"""ORM model for authenticatable accounts (administrators, suppliers, mobile users)."""

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, String, func

from partsauth.models.base import Base

PRINCIPAL_STATUSES = ("active", "inactive", "pending")


class Principal(Base):
    """
    Account that can log in.

    principal_type: 'admin', 'supplier' or 'mobile_user'
    status: 'active', 'inactive' or 'pending' (registration application not yet approved)

    failed_attempts and locked_until are the lockout state; they are only
    written through partsauth.services.lockout so the counter stays atomic.
    role_id is set for administrators only.
    """

    __tablename__ = "principals"
    __table_args__ = (
        CheckConstraint("failed_attempts >= 0", name="ck_principals_failed_attempts"),
        CheckConstraint("status IN ('active', 'inactive', 'pending')", name="ck_principals_status"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    name = Column(String(255), nullable=False, default="")
    password_hash = Column(String(255), nullable=False)
    principal_type = Column(String(32), nullable=False, index=True)
    status = Column(String(16), nullable=False, default="active")
    failed_attempts = Column(Integer, nullable=False, default=0, server_default="0")
    locked_until = Column(DateTime(timezone=True), nullable=True)
    role_id = Column(Integer, ForeignKey("roles.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
