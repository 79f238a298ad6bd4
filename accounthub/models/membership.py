"""Membership model linking accounts to tenants with a role."""

from sqlalchemy import Integer, ForeignKey, Index, text
from sqlalchemy.orm import Mapped, mapped_column, relationship
from typing import TYPE_CHECKING

from accounthub.models.base import Base, TimestampMixin, SoftDeleteMixin

if TYPE_CHECKING:
    from accounthub.models.account import Account
    from accounthub.models.tenant import Tenant
    from accounthub.models.role import Role


class Membership(Base, TimestampMixin, SoftDeleteMixin):
    """
    Edge between an account and a tenant, carrying the account's role there.

    The edge is owned by neither side: soft-deleting the account or the
    tenant soft-deletes the edge too, and the edge has its own ``deleted_at``
    so an account can leave a tenant without either side being deleted.

    Example memberships:
    - Account "alice@work" has an OWNER role in tenant "Acme"
    - Account "bob@work" has a MEMBER role in tenant "Acme"
    - Account "alice@work" has an OWNER role in its personal tenant

    Constraints:
    - At most one live (deleted_at IS NULL) row per (account_id, tenant_id)
    """

    __tablename__ = "memberships"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    account_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("accounts.id"),
        nullable=False,
        index=True,
    )
    tenant_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("tenants.id"),
        nullable=False,
        index=True,
    )
    role_id: Mapped[int] = mapped_column(Integer, ForeignKey("roles.id"), nullable=False)

    # Relationships
    account: Mapped["Account"] = relationship("Account", back_populates="memberships")
    tenant: Mapped["Tenant"] = relationship("Tenant", back_populates="memberships")
    role: Mapped["Role"] = relationship("Role")

    # Constraints
    __table_args__ = (
        Index(
            "uq_memberships_live_account_tenant",
            "account_id",
            "tenant_id",
            unique=True,
            sqlite_where=text("deleted_at IS NULL"),
            postgresql_where=text("deleted_at IS NULL"),
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<Membership(account_id={self.account_id}, tenant_id={self.tenant_id}, "
            f"role_id={self.role_id})>"
        )
