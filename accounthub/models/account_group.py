"""Account group models: tenant-scoped hierarchy nodes and their member edges."""

from sqlalchemy import String, Integer, ForeignKey, Text, Index, text
from sqlalchemy.orm import Mapped, mapped_column

from accounthub.models.base import Base, TimestampMixin, SoftDeleteMixin


class AccountGroup(Base, TimestampMixin, SoftDeleteMixin):
    """
    Node in a tenant's group forest (departments, sub-teams).

    The hierarchy is stored only as a ``parent_group_id`` back-reference. A
    parent does not own its children: deleting or moving a group never
    touches the rows below it. Trees are materialized on demand by
    GroupHierarchy.

    Invariants (enforced by the service layer, not the database):
    - parent belongs to the same tenant
    - no group is its own ancestor
    """

    __tablename__ = "account_groups"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    tenant_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("tenants.id"),
        nullable=False,
        index=True,
    )
    parent_group_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("account_groups.id"),
        nullable=True,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return (
            f"<AccountGroup(id={self.id}, tenant_id={self.tenant_id}, "
            f"parent_group_id={self.parent_group_id}, name='{self.name}')>"
        )


class AccountToAccountGroup(Base, TimestampMixin, SoftDeleteMixin):
    """Membership of an account in a group. One live row per (account, group)."""

    __tablename__ = "account_to_account_group"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    account_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("accounts.id"), nullable=False, index=True
    )
    account_group_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("account_groups.id"), nullable=False, index=True
    )

    __table_args__ = (
        Index(
            "uq_account_to_account_group_live",
            "account_id",
            "account_group_id",
            unique=True,
            sqlite_where=text("deleted_at IS NULL"),
            postgresql_where=text("deleted_at IS NULL"),
        ),
    )
