"""Tenant model for multi-tenant isolation."""

from enum import Enum as PyEnum
from sqlalchemy import String, Integer, ForeignKey, Enum
from sqlalchemy.orm import Mapped, mapped_column, relationship
from typing import TYPE_CHECKING

from accounthub.models.base import Base, TimestampMixin, SoftDeleteMixin

if TYPE_CHECKING:
    from accounthub.models.membership import Membership


class TenantKind(str, PyEnum):
    """Tenant kind enumeration"""

    PERSONAL = "personal"
    ORG = "org"


class Tenant(Base, TimestampMixin, SoftDeleteMixin):
    """
    Organizational container that accounts join through memberships.

    Every account gets exactly one PERSONAL tenant when it is created.
    ORG tenants are created explicitly and can be shared by many accounts,
    each holding a role inside the tenant.

    Personal tenants cannot be deleted. Deleting an org tenant soft-deletes
    every membership pointing at it.
    """

    __tablename__ = "tenants"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    kind: Mapped[TenantKind] = mapped_column(
        Enum(TenantKind, native_enum=False, values_callable=lambda x: [e.value for e in x]),
        nullable=False,
        default=TenantKind.ORG,
    )
    created_by: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    deleted_by: Mapped[int | None] = mapped_column(Integer, ForeignKey("users.id"), nullable=True)

    # Relationships
    memberships: Mapped[list["Membership"]] = relationship(
        "Membership", back_populates="tenant"
    )

    def __repr__(self) -> str:
        return f"<Tenant(id={self.id}, name='{self.name}', kind={self.kind.value})>"
