import logging

from sqlalchemy.orm import Session

from accounthub.core.exceptions import (
    ConflictException,
    ForbiddenException,
    NotFoundException,
    ValidationException,
)
from accounthub.core.permissions import Capability, unknown_capabilities
from accounthub.models.membership import Membership
from accounthub.models.role import Role, RoleKind
from accounthub.models.session_context import SessionContext
from accounthub.models.tenant import Tenant, TenantKind
from accounthub.repositories.account_group_repository import AccountGroupRepository
from accounthub.repositories.account_repository import AccountRepository
from accounthub.repositories.membership_repository import MembershipRepository
from accounthub.repositories.tenant_repository import TenantRepository
from accounthub.schemas.tenant_schemas import (
    TenantCreate,
    TenantMemberAdd,
    TenantRoleUpdate,
    TenantUpdate,
)
from accounthub.services.authorization_service import AuthorizationService
from accounthub.services.session_service import SessionService, SessionTransition

logger = logging.getLogger(__name__)


class TenantService:
    """Service layer for tenant management business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.tenant_repo = TenantRepository(db)
        self.membership_repo = MembershipRepository(db)
        self.account_repo = AccountRepository(db)
        self.group_repo = AccountGroupRepository(db)
        self.authz = AuthorizationService(db)
        self.sessions = SessionService(db)

    def create_tenant(
        self, data: TenantCreate, context: SessionContext
    ) -> tuple[Tenant, SessionTransition]:
        """
        Create an org tenant owned by the active account and switch to it.

        Returns:
            The tenant and the updated session
        """
        tenant = self.tenant_repo.add(
            Tenant(name=data.name, kind=TenantKind.ORG, created_by=context.user.id)
        )
        role = self.membership_repo.add_role(Role.from_template(RoleKind.OWNER))
        self.membership_repo.add(
            Membership(account_id=context.account.id, tenant_id=tenant.id, role_id=role.id)
        )
        transition = self.sessions.activate_pair(context.state, context.account.id, tenant.id)
        self.db.commit()
        logger.info(
            "Tenant created",
            extra={"tenant_id": tenant.id, "account_id": context.account.id},
        )
        return tenant, transition

    def list_account_tenants(self, context: SessionContext) -> list[dict]:
        """
        List all live tenants the active account belongs to.

        Args:
            context: Session context

        Returns:
            List of tenants with the account's role in each tenant
        """
        result = []
        for membership in self.membership_repo.get_account_memberships(context.account.id):
            tenant = membership.tenant
            result.append(
                {
                    "id": tenant.id,
                    "name": tenant.name,
                    "kind": tenant.kind,
                    "role": membership.role.kind,
                    "allowed": list(membership.role.allowed or []),
                    "is_active": tenant.id == context.tenant.id,
                    "created_at": tenant.created_at,
                    "updated_at": tenant.updated_at,
                }
            )
        return result

    def get_tenant(self, tenant_id: int, context: SessionContext) -> Tenant:
        """
        Get tenant details.

        Raises:
            NotFoundException: If tenant doesn't exist or is deleted
            ForbiddenException: If the active account isn't a member
        """
        tenant = self._get_live_tenant(tenant_id)
        self.authz.require_membership(context.account.id, tenant.id, "view this tenant")
        return tenant

    def update_tenant(
        self, tenant_id: int, tenant_update: TenantUpdate, context: SessionContext
    ) -> Tenant:
        """
        Rename a tenant.

        Raises:
            ForbiddenException: Without manage_settings in the tenant
        """
        tenant = self._get_live_tenant(tenant_id)
        self.authz.require(
            context.account.id, tenant.id, Capability.MANAGE_SETTINGS, "update this tenant"
        )

        tenant.name = tenant_update.name
        self.db.commit()
        self.db.refresh(tenant)
        return tenant

    def delete_tenant(self, tenant_id: int, context: SessionContext) -> SessionTransition:
        """
        Soft-delete an org tenant together with its memberships and groups.

        The caller's session forgets the tenant and, if it was active, moves
        to the active account's personal tenant.

        Raises:
            ForbiddenException: Without manage_settings in the tenant
            ValidationException: For personal tenants
        """
        tenant = self._get_live_tenant(tenant_id)
        self.authz.require(
            context.account.id, tenant.id, Capability.MANAGE_SETTINGS, "delete this tenant"
        )
        if tenant.kind == TenantKind.PERSONAL:
            raise ValidationException("Personal tenants cannot be deleted")

        self.tenant_repo.soft_delete(tenant, deleted_by=context.user.id)
        removed = self.membership_repo.soft_delete_for_tenant(tenant.id)
        groups = self.group_repo.soft_delete_for_tenant(tenant.id)
        transition = self.sessions.drop_tenant(context.state, tenant.id)
        self.db.commit()
        logger.info(
            f"Tenant deleted, {removed} memberships and {groups} groups removed",
            extra={"tenant_id": tenant.id, "user_id": context.user.id},
        )
        return transition

    def get_members(self, tenant_id: int, context: SessionContext) -> list[Membership]:
        """
        Get all live members of a tenant.

        Available to every member of the tenant.
        """
        tenant = self._get_live_tenant(tenant_id)
        self.authz.require_membership(context.account.id, tenant.id, "view members of this tenant")
        return self.membership_repo.get_tenant_members(tenant.id)

    def add_member(
        self, tenant_id: int, request: TenantMemberAdd, context: SessionContext
    ) -> Membership:
        """
        Add an existing account to a tenant.

        Raises:
            ForbiddenException: Without manage_users, or when the role would
                grant capabilities the acting account lacks
            NotFoundException: If no live account has the email
            ConflictException: If the account is already a member
        """
        tenant = self._get_live_tenant(tenant_id)
        actor = self.authz.require(
            context.account.id, tenant.id, Capability.MANAGE_USERS, "add members to this tenant"
        )

        account = self.account_repo.get_by_email(request.email)
        if account is None:
            raise NotFoundException("Account not found")
        if self.membership_repo.get_live_membership(account.id, tenant.id):
            raise ConflictException("Account is already a member of this tenant")

        role = self._build_role(request.role, request.allowed)
        self._ensure_no_escalation(actor, role.allowed)

        self.membership_repo.add_role(role)
        membership = self.membership_repo.add(
            Membership(account_id=account.id, tenant_id=tenant.id, role_id=role.id)
        )
        self.db.commit()
        self.db.refresh(membership)
        logger.info(
            "Member added",
            extra={"tenant_id": tenant.id, "account_id": account.id},
        )
        return membership

    def update_member_role(
        self, tenant_id: int, account_id: int, role_update: TenantRoleUpdate, context: SessionContext
    ) -> Membership:
        """
        Replace a member's role.

        Raises:
            ForbiddenException: Without manage_roles, for your own membership,
                or when granting capabilities you lack
            NotFoundException: If membership not found
        """
        tenant = self._get_live_tenant(tenant_id)
        actor = self.authz.require(
            context.account.id, tenant.id, Capability.MANAGE_ROLES, "change member roles in this tenant"
        )

        membership = self.membership_repo.get_live_membership(account_id, tenant.id)
        if not membership:
            raise NotFoundException("Member not found in this tenant")

        # Cannot modify self (check first for better error message)
        if account_id == context.account.id:
            raise ForbiddenException("Cannot change your own role")

        template = self._build_role(role_update.role, role_update.allowed)
        self._ensure_no_escalation(actor, template.allowed)

        role = membership.role
        role.kind = template.kind
        role.name = template.name
        role.description = template.description
        role.allowed = template.allowed
        self.db.commit()
        self.db.refresh(membership)
        return membership

    def remove_member(self, tenant_id: int, account_id: int, context: SessionContext) -> None:
        """
        Remove a member from a tenant and from the tenant's groups.

        Raises:
            ForbiddenException: Without manage_users or when removing yourself
            NotFoundException: If membership not found
        """
        tenant = self._get_live_tenant(tenant_id)
        self.authz.require(
            context.account.id, tenant.id, Capability.MANAGE_USERS, "remove members from this tenant"
        )

        membership = self.membership_repo.get_live_membership(account_id, tenant.id)
        if not membership:
            raise NotFoundException("Member not found in this tenant")

        if account_id == context.account.id:
            raise ForbiddenException("Cannot remove yourself from tenant")

        self.membership_repo.soft_delete(membership)
        self.group_repo.soft_delete_edges_for_account(account_id, tenant_id=tenant.id)
        self.db.commit()
        logger.info(
            "Member removed",
            extra={"tenant_id": tenant.id, "account_id": account_id},
        )

    def _get_live_tenant(self, tenant_id: int) -> Tenant:
        tenant = self.tenant_repo.get_by_id(tenant_id)
        if tenant is None:
            raise NotFoundException("Tenant not found")
        return tenant

    @staticmethod
    def _build_role(kind: RoleKind, allowed: list[str] | None) -> Role:
        role = Role.from_template(kind)
        if allowed is not None:
            unknown = unknown_capabilities(allowed)
            if unknown:
                raise ValidationException(f"Unknown capabilities: {', '.join(unknown)}")
            role.allowed = sorted(set(allowed))
        return role

    @staticmethod
    def _ensure_no_escalation(actor: Membership, allowed: list[str]) -> None:
        granted = set(actor.role.allowed or [])
        if not set(allowed) <= granted:
            raise ForbiddenException("You cannot grant capabilities you don't have")

