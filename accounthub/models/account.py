from sqlalchemy import String, Integer, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship
from typing import TYPE_CHECKING
from accounthub.models.base import Base, TimestampMixin, SoftDeleteMixin

if TYPE_CHECKING:
    from accounthub.models.user import User
    from accounthub.models.membership import Membership


class Account(Base, TimestampMixin, SoftDeleteMixin):
    """
    Login and billing identity owned by exactly one user.

    An account belongs to many tenants through memberships. Every account is
    created together with its own personal tenant.
    """

    __tablename__ = "accounts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False, index=True)
    password_hash: Mapped[str | None] = mapped_column(String(255), nullable=True)
    display_name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Relationships
    user: Mapped["User"] = relationship("User", back_populates="accounts")
    memberships: Mapped[list["Membership"]] = relationship(
        "Membership", back_populates="account"
    )

    def __repr__(self) -> str:
        return f"<Account(id={self.id}, user_id={self.user_id}, email='{self.email}')>"
