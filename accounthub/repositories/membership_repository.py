"""Repository for Membership and Role operations."""

from sqlalchemy.orm import Session, joinedload
from accounthub.models.base import utcnow
from accounthub.models.membership import Membership
from accounthub.models.role import Role
from accounthub.models.tenant import Tenant


class MembershipRepository:
    """Repository for Membership model operations"""

    def __init__(self, db: Session):
        self.db = db

    def _live(self):
        return (
            self.db.query(Membership)
            .join(Tenant, Membership.tenant_id == Tenant.id)
            .options(joinedload(Membership.role), joinedload(Membership.tenant))
            .filter(Membership.deleted_at.is_(None), Tenant.deleted_at.is_(None))
        )

    def get_live_membership(self, account_id: int, tenant_id: int) -> Membership | None:
        """
        Get the live membership of an account in a live tenant.

        Args:
            account_id: Account ID
            tenant_id: Tenant ID

        Returns:
            Membership object or None if the account holds no live membership there
        """
        return (
            self._live()
            .filter(Membership.account_id == account_id, Membership.tenant_id == tenant_id)
            .first()
        )

    def get_account_memberships(
        self, account_id: int, include_deleted_tenants: bool = False
    ) -> list[Membership]:
        """
        Get all live memberships for an account, oldest first.

        Args:
            account_id: Account ID
            include_deleted_tenants: Also return live memberships whose tenant is deleted

        Returns:
            List of Membership objects
        """
        if include_deleted_tenants:
            query = self.db.query(Membership).filter(Membership.deleted_at.is_(None))
        else:
            query = self._live()
        return query.filter(Membership.account_id == account_id).order_by(Membership.id).all()

    def get_tenant_members(self, tenant_id: int) -> list[Membership]:
        """
        Get all live memberships for a tenant.

        Args:
            tenant_id: Tenant ID

        Returns:
            List of Membership objects for the tenant
        """
        return (
            self.db.query(Membership)
            .options(joinedload(Membership.role), joinedload(Membership.account))
            .filter(Membership.tenant_id == tenant_id, Membership.deleted_at.is_(None))
            .order_by(Membership.id)
            .all()
        )

    def add(self, membership: Membership) -> Membership:
        """
        Stage a new membership without committing.

        Raises:
            IntegrityError: If a live (account_id, tenant_id) row already exists
        """
        self.db.add(membership)
        self.db.flush()
        return membership

    def add_role(self, role: Role) -> Role:
        """Stage a new role without committing"""
        self.db.add(role)
        self.db.flush()
        return role

    def soft_delete(self, membership: Membership) -> None:
        """
        Remove an account from a tenant.

        The membership's role is soft-deleted with it since roles are
        created per membership.
        """
        membership.soft_delete()
        if membership.role is not None:
            membership.role.soft_delete()
        self.db.flush()

    def soft_delete_for_tenant(self, tenant_id: int) -> int:
        """Soft-delete every live membership of a tenant, returns row count"""
        return self._soft_delete_where(Membership.tenant_id == tenant_id)

    def soft_delete_for_account(self, account_id: int) -> int:
        """Soft-delete every live membership of an account, returns row count"""
        return self._soft_delete_where(Membership.account_id == account_id)

    def _soft_delete_where(self, condition) -> int:
        now = utcnow()
        rows = (
            self.db.query(Membership)
            .options(joinedload(Membership.role))
            .filter(condition, Membership.deleted_at.is_(None))
            .all()
        )
        for membership in rows:
            membership.deleted_at = now
            if membership.role is not None and membership.role.deleted_at is None:
                membership.role.deleted_at = now
        self.db.flush()
        return len(rows)
