"""ORM model for the login audit trail."""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, func

from partsauth.models.base import Base


class LoginAttempt(Base):
    """One row per login attempt, successful or not. principal_id is null for unknown e-mails."""

    __tablename__ = "login_attempts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    principal_id = Column(
        Integer,
        ForeignKey("principals.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    email = Column(String(255), nullable=False)
    ip_address = Column(String(64), nullable=True)
    user_agent = Column(String(512), nullable=True)
    success = Column(Boolean, nullable=False)
    reason = Column(String(64), nullable=False)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        index=True,
    )
