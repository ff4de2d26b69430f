"""ORM model for persisted refresh tokens."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, func

from partsauth.models.base import Base


class RefreshToken(Base):
    """
    Opaque refresh token bound to one principal; one row per login (device).

    token is replaced in place on rotation, so the row id is stable for the
    life of a session while the token value changes on every refresh.
    """

    __tablename__ = "refresh_tokens"

    id = Column(Integer, primary_key=True, autoincrement=True)
    principal_id = Column(
        Integer,
        ForeignKey("principals.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    token = Column(String(128), nullable=False, unique=True, index=True)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
