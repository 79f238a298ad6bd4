from sqlalchemy.orm import Session
from accounthub.models.user import User


class UserRepository:
    """Repository for User model operations"""

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, user_id: int, include_deleted: bool = False) -> User | None:
        """Get user by internal ID"""
        query = self.db.query(User).filter(User.id == user_id)
        if not include_deleted:
            query = query.filter(User.deleted_at.is_(None))
        return query.first()

    def add(self, user: User) -> User:
        """
        Stage a new user without committing.

        Caller responsible for commit. ID is assigned by the flush.
        """
        self.db.add(user)
        self.db.flush()
        return user

    def soft_delete(self, user: User) -> None:
        """Mark user deleted without committing"""
        user.soft_delete()
        self.db.flush()
