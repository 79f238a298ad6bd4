from sqlalchemy import String, Integer
from sqlalchemy.orm import Mapped, mapped_column, relationship
from typing import TYPE_CHECKING
from accounthub.models.base import Base, TimestampMixin, SoftDeleteMixin

if TYPE_CHECKING:
    from accounthub.models.account import Account


class User(Base, TimestampMixin, SoftDeleteMixin):
    """
    Root identity behind one or more login accounts.

    Created on sign-up. Soft-deleted when its last account is merged into
    another user by account linking.
    """

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    display_name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Relationships
    accounts: Mapped[list["Account"]] = relationship("Account", back_populates="user")

    def __repr__(self) -> str:
        return f"<User(id={self.id}, deleted={self.is_deleted})>"
