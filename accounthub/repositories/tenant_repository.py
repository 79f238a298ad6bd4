"""Repository for Tenant model operations."""

from sqlalchemy.orm import Session
from accounthub.models.tenant import Tenant


class TenantRepository:
    """Repository for Tenant model operations"""

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, tenant_id: int, include_deleted: bool = False) -> Tenant | None:
        """
        Get tenant by ID.

        Args:
            tenant_id: Tenant ID
            include_deleted: Also return soft-deleted tenants

        Returns:
            Tenant object or None if not found
        """
        query = self.db.query(Tenant).filter(Tenant.id == tenant_id)
        if not include_deleted:
            query = query.filter(Tenant.deleted_at.is_(None))
        return query.first()

    def add(self, tenant: Tenant) -> Tenant:
        """
        Stage a new tenant without committing.

        Args:
            tenant: Tenant object to create

        Returns:
            Tenant object with ID populated
        """
        self.db.add(tenant)
        self.db.flush()
        return tenant

    def soft_delete(self, tenant: Tenant, deleted_by: int) -> None:
        """
        Mark a tenant deleted without committing.

        Memberships are not touched here; MembershipRepository.soft_delete_for_tenant
        does that in the same unit of work.

        Args:
            tenant: Tenant object to delete
            deleted_by: User performing the deletion
        """
        tenant.soft_delete()
        tenant.deleted_by = deleted_by
        self.db.flush()
