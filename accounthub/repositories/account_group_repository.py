"""Repository for AccountGroup and AccountToAccountGroup operations."""

from sqlalchemy import select
from sqlalchemy.orm import Session
from accounthub.models.account_group import AccountGroup, AccountToAccountGroup
from accounthub.models.base import utcnow


class AccountGroupRepository:
    """Repository for account groups and their member edges"""

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, group_id: int, include_deleted: bool = False) -> AccountGroup | None:
        """
        Get group by ID.

        Hierarchy walks pass include_deleted=True so they can tell a deleted
        ancestor apart from a missing one.
        """
        query = self.db.query(AccountGroup).filter(AccountGroup.id == group_id)
        if not include_deleted:
            query = query.filter(AccountGroup.deleted_at.is_(None))
        return query.first()

    def get_by_id_and_tenant(self, group_id: int, tenant_id: int) -> AccountGroup | None:
        """Get a live group ensuring it belongs to the tenant"""
        return (
            self.db.query(AccountGroup)
            .filter(
                AccountGroup.id == group_id,
                AccountGroup.tenant_id == tenant_id,
                AccountGroup.deleted_at.is_(None),
            )
            .first()
        )

    def list_by_tenant(self, tenant_id: int) -> list[AccountGroup]:
        """All live groups of a tenant, oldest first"""
        return (
            self.db.query(AccountGroup)
            .filter(AccountGroup.tenant_id == tenant_id, AccountGroup.deleted_at.is_(None))
            .order_by(AccountGroup.id)
            .all()
        )

    def list_children(self, parent_group_id: int) -> list[AccountGroup]:
        """Direct live children of a group"""
        return (
            self.db.query(AccountGroup)
            .filter(
                AccountGroup.parent_group_id == parent_group_id,
                AccountGroup.deleted_at.is_(None),
            )
            .order_by(AccountGroup.id)
            .all()
        )

    def lock_tenant_groups(self, tenant_id: int) -> list[AccountGroup]:
        """
        Lock every group row of a tenant for the rest of the transaction.

        Serializes concurrent reparents within one tenant so the cycle check
        and the parent write see the same hierarchy. Backends without row
        locks (SQLite) ignore FOR UPDATE.
        """
        return (
            self.db.query(AccountGroup)
            .filter(AccountGroup.tenant_id == tenant_id)
            .order_by(AccountGroup.id)
            .with_for_update()
            .all()
        )

    def add(self, group: AccountGroup) -> AccountGroup:
        """Stage a new group without committing"""
        self.db.add(group)
        self.db.flush()
        return group

    def soft_delete(self, group: AccountGroup) -> None:
        """Soft-delete a group and its member edges; children are left as they are"""
        group.soft_delete()
        self.soft_delete_edges_for_group(group.id)
        self.db.flush()

    def soft_delete_for_tenant(self, tenant_id: int) -> int:
        """Soft-delete every live group of a tenant with its member edges"""
        groups = self.list_by_tenant(tenant_id)
        for group in groups:
            self.soft_delete(group)
        return len(groups)

    # Member edges

    def get_edge(self, account_id: int, group_id: int) -> AccountToAccountGroup | None:
        """Live edge for an (account, group) pair"""
        return (
            self.db.query(AccountToAccountGroup)
            .filter(
                AccountToAccountGroup.account_id == account_id,
                AccountToAccountGroup.account_group_id == group_id,
                AccountToAccountGroup.deleted_at.is_(None),
            )
            .first()
        )

    def list_edges_for_group(self, group_id: int) -> list[AccountToAccountGroup]:
        return (
            self.db.query(AccountToAccountGroup)
            .filter(
                AccountToAccountGroup.account_group_id == group_id,
                AccountToAccountGroup.deleted_at.is_(None),
            )
            .order_by(AccountToAccountGroup.id)
            .all()
        )

    def add_edge(self, account_id: int, group_id: int) -> AccountToAccountGroup:
        """Stage a new edge; callers check get_edge first"""
        edge = AccountToAccountGroup(account_id=account_id, account_group_id=group_id)
        self.db.add(edge)
        self.db.flush()
        return edge

    def soft_delete_edges_for_group(self, group_id: int) -> int:
        return self._soft_delete_edges(AccountToAccountGroup.account_group_id == group_id)

    def soft_delete_edges_for_account(self, account_id: int, tenant_id: int | None = None) -> int:
        """
        Detach an account from groups.

        Args:
            account_id: Account to detach
            tenant_id: Only groups of this tenant; all tenants when None
        """
        condition = AccountToAccountGroup.account_id == account_id
        if tenant_id is not None:
            tenant_groups = select(AccountGroup.id).where(AccountGroup.tenant_id == tenant_id)
            condition = condition & AccountToAccountGroup.account_group_id.in_(tenant_groups)
        return self._soft_delete_edges(condition)

    def _soft_delete_edges(self, condition) -> int:
        now = utcnow()
        edges = (
            self.db.query(AccountToAccountGroup)
            .filter(condition, AccountToAccountGroup.deleted_at.is_(None))
            .all()
        )
        for edge in edges:
            edge.deleted_at = now
        self.db.flush()
        return len(edges)
