from sqlalchemy import func
from sqlalchemy.orm import Session
from accounthub.models.account import Account
from accounthub.models.user import User


class AccountRepository:
    """Repository for Account model operations"""

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, account_id: int, include_deleted: bool = False) -> Account | None:
        """Get account by ID, live rows only unless include_deleted"""
        query = self.db.query(Account).filter(Account.id == account_id)
        if not include_deleted:
            query = query.filter(Account.deleted_at.is_(None))
        return query.first()

    def get_by_id_and_user(self, account_id: int, user_id: int) -> Account | None:
        """
        Get live account ensuring it belongs to user.

        Returns None if account doesn't exist, is deleted, or belongs to another user.
        """
        return (
            self.db.query(Account)
            .filter(
                Account.id == account_id,
                Account.user_id == user_id,
                Account.deleted_at.is_(None),
            )
            .first()
        )

    def get_by_email(self, email: str) -> Account | None:
        """
        Get the live account for an email whose owning user is also live.

        Args:
            email: Login email (compared case-insensitively)

        Returns:
            Account or None
        """
        return (
            self.db.query(Account)
            .join(User, Account.user_id == User.id)
            .filter(
                func.lower(Account.email) == email.lower(),
                Account.deleted_at.is_(None),
                User.deleted_at.is_(None),
            )
            .first()
        )

    def email_exists(self, email: str) -> bool:
        """True if any account row, live or deleted, already uses the email"""
        return (
            self.db.query(Account.id).filter(func.lower(Account.email) == email.lower()).first()
            is not None
        )

    def get_by_user(self, user_id: int) -> list[Account]:
        """Get all live accounts for a user, oldest first"""
        return (
            self.db.query(Account)
            .filter(Account.user_id == user_id, Account.deleted_at.is_(None))
            .order_by(Account.id)
            .all()
        )

    def count_live_by_user(self, user_id: int) -> int:
        """Number of live accounts owned by a user"""
        return (
            self.db.query(func.count(Account.id))
            .filter(Account.user_id == user_id, Account.deleted_at.is_(None))
            .scalar()
        )

    def add(self, account: Account) -> Account:
        """Stage new account without committing"""
        self.db.add(account)
        self.db.flush()
        return account
