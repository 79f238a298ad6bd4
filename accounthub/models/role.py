"""Role model and default role templates."""

from enum import Enum as PyEnum
from sqlalchemy import String, Integer, Enum, JSON, Text
from sqlalchemy.orm import Mapped, mapped_column

from accounthub.core.permissions import Capability, can
from accounthub.models.base import Base, TimestampMixin, SoftDeleteMixin


class RoleKind(str, PyEnum):
    """
    Human-facing role label.

    Used to pick a default capability template and for display. Authorization
    never branches on the kind; it evaluates ``Role.allowed``.
    """

    OWNER = "owner"
    TENANT_ADMIN = "tenant_admin"
    BILLING_ADMIN = "billing_admin"
    MEMBER = "member"
    USER = "user"


DEFAULT_ROLES: dict[RoleKind, dict] = {
    RoleKind.OWNER: {
        "name": "Owner",
        "description": "Full access to all tenant features",
        "allowed": [c.value for c in Capability],
    },
    RoleKind.TENANT_ADMIN: {
        "name": "Tenant Admin",
        "description": "Can manage tenant settings, users and groups",
        "allowed": [
            Capability.VIEW_BILLING.value,
            Capability.MANAGE_USERS.value,
            Capability.MANAGE_ROLES.value,
            Capability.MANAGE_SETTINGS.value,
            Capability.MANAGE_ACCOUNTS.value,
            Capability.VIEW_ANALYTICS.value,
            Capability.MANAGE_CONTENT.value,
        ],
    },
    RoleKind.BILLING_ADMIN: {
        "name": "Billing Admin",
        "description": "Can manage billing and payment information",
        "allowed": [Capability.VIEW_BILLING.value, Capability.MANAGE_BILLING.value],
    },
    RoleKind.MEMBER: {
        "name": "Member",
        "description": "Can work with tenant content",
        "allowed": [Capability.VIEW_ANALYTICS.value, Capability.MANAGE_CONTENT.value],
    },
    RoleKind.USER: {
        "name": "User",
        "description": "Basic user access",
        "allowed": [],
    },
}


class Role(Base, TimestampMixin, SoftDeleteMixin):
    """
    Named bundle of capability tokens.

    One role row is created per membership from a DEFAULT_ROLES template, so
    a tenant can later tune a single member's capabilities without touching
    anybody else's.
    """

    __tablename__ = "roles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    kind: Mapped[RoleKind] = mapped_column(
        Enum(RoleKind, native_enum=False, values_callable=lambda x: [e.value for e in x]),
        nullable=False,
        default=RoleKind.USER,
    )
    allowed: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    @classmethod
    def from_template(cls, kind: RoleKind) -> "Role":
        template = DEFAULT_ROLES[kind]
        return cls(
            name=template["name"],
            description=template["description"],
            kind=kind,
            allowed=list(template["allowed"]),
        )

    def can(self, capability: Capability | str) -> bool:
        return can(self.allowed, capability)

    def __repr__(self) -> str:
        return f"<Role(id={self.id}, kind={self.kind.value}, allowed={self.allowed})>"
