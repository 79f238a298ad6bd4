"""Persisted login session."""

from datetime import datetime
from sqlalchemy import String, Integer, ForeignKey, DateTime, JSON
from sqlalchemy.orm import Mapped, mapped_column

from accounthub.models.base import Base, TimestampMixin


class AuthSession(Base, TimestampMixin):
    """
    Storage row behind a SessionState.

    ``session_accounts`` is a JSON list of ``{"account_id", "tenant_id"}``
    objects in activation order. Services never mutate this row directly;
    they compute a new SessionState and write it back in one step.
    """

    __tablename__ = "auth_sessions"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False, index=True
    )
    active_account_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("accounts.id"), nullable=False
    )
    active_tenant_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("tenants.id"), nullable=False
    )
    session_accounts: Mapped[list[dict]] = mapped_column(JSON, nullable=False, default=list)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    last_verified_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    revoked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return (
            f"<AuthSession(id={self.id}, user_id={self.user_id}, "
            f"account_id={self.active_account_id}, tenant_id={self.active_tenant_id})>"
        )
