import logging

from sqlalchemy.orm import Session

from accounthub.core.exceptions import ConflictException, NotFoundException, ValidationException
from accounthub.core.permissions import Capability
from accounthub.models.account import Account
from accounthub.models.account_group import AccountGroup
from accounthub.models.session_context import SessionContext
from accounthub.repositories.account_group_repository import AccountGroupRepository
from accounthub.repositories.account_repository import AccountRepository
from accounthub.repositories.membership_repository import MembershipRepository
from accounthub.schemas.account_group_schemas import AccountGroupCreate, AccountGroupUpdate
from accounthub.services.authorization_service import AuthorizationService
from accounthub.services.group_hierarchy import GroupHierarchy, GroupNode

logger = logging.getLogger(__name__)


class AccountGroupService:
    """Service layer for the active tenant's account groups"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = AccountGroupRepository(db)
        self.account_repo = AccountRepository(db)
        self.membership_repo = MembershipRepository(db)
        self.hierarchy = GroupHierarchy(db)
        self.authz = AuthorizationService(db)

    def get_tree(self, context: SessionContext) -> list[GroupNode]:
        """Group forest of the active tenant"""
        self.authz.require_membership(context.account.id, context.tenant.id, "view groups")
        return self.hierarchy.build_tree(context.tenant.id)

    def get_group(self, group_id: int, context: SessionContext) -> dict:
        """
        Get a group with its position in the hierarchy and its members.

        Raises:
            NotFoundException: If the group isn't a live group of the active tenant
        """
        group = self._get_group(group_id, context)
        self.authz.require_membership(context.account.id, group.tenant_id, "view this group")
        return {
            "group": group,
            "ancestors": self.hierarchy.get_ancestors(group.id),
            "descendants": self.hierarchy.get_descendants(group.id),
            "accounts": self.get_group_accounts(group.id),
        }

    def get_group_accounts(self, group_id: int) -> list[Account]:
        accounts = []
        for edge in self.repo.list_edges_for_group(group_id):
            account = self.account_repo.get_by_id(edge.account_id)
            if account is not None:
                accounts.append(account)
        return accounts

    def create_group(self, data: AccountGroupCreate, context: SessionContext) -> AccountGroup:
        """
        Create a group in the active tenant, optionally under a parent.

        Raises:
            ForbiddenException: Without manage_roles
            ValidationException: If the parent isn't a live group of the tenant
        """
        tenant_id = context.tenant.id
        self.authz.require(context.account.id, tenant_id, Capability.MANAGE_ROLES, "create groups")
        if data.parent_group_id is not None:
            self._require_parent(data.parent_group_id, tenant_id)

        group = self.repo.add(
            AccountGroup(
                tenant_id=tenant_id,
                parent_group_id=data.parent_group_id,
                name=data.name,
                description=data.description,
            )
        )
        self.db.commit()
        self.db.refresh(group)
        logger.info("Group created", extra={"tenant_id": tenant_id, "group_id": group.id})
        return group

    def update_group(
        self, group_id: int, data: AccountGroupUpdate, context: SessionContext
    ) -> AccountGroup:
        """
        Rename, describe or move a group.

        Moving runs the cycle check and the write in one transaction, after
        locking the tenant's group rows, so two concurrent moves cannot both
        pass the check and close a loop together.

        Raises:
            ForbiddenException: Without manage_settings
            ValidationException: If the new parent isn't a live group of the tenant
            ConflictException: If the move would create a cycle
        """
        group = self._get_group(group_id, context)
        self.authz.require(
            context.account.id, group.tenant_id, Capability.MANAGE_SETTINGS, "update this group"
        )

        if "parent_group_id" in data.model_fields_set:
            new_parent_id = data.parent_group_id
            self.repo.lock_tenant_groups(group.tenant_id)
            if new_parent_id is not None:
                self._require_parent(new_parent_id, group.tenant_id)
            if self.hierarchy.would_create_cycle(group.id, new_parent_id):
                logger.warning(
                    f"Rejected group move under {new_parent_id}: cycle",
                    extra={"tenant_id": group.tenant_id, "group_id": group.id},
                )
                raise ConflictException("Cannot move group: would create a circular hierarchy")
            if group.parent_group_id != new_parent_id:
                logger.info(
                    f"Group moved from {group.parent_group_id} to {new_parent_id}",
                    extra={"tenant_id": group.tenant_id, "group_id": group.id},
                )
            group.parent_group_id = new_parent_id

        if data.name is not None:
            group.name = data.name
        if "description" in data.model_fields_set:
            group.description = data.description

        self.db.commit()
        self.db.refresh(group)
        return group

    def delete_group(self, group_id: int, context: SessionContext) -> None:
        """
        Soft-delete a group and its member edges.

        Child groups keep their parent reference and show up as roots.

        Raises:
            ForbiddenException: Without manage_settings
        """
        group = self._get_group(group_id, context)
        self.authz.require(
            context.account.id, group.tenant_id, Capability.MANAGE_SETTINGS, "delete this group"
        )
        self.repo.soft_delete(group)
        self.db.commit()
        logger.info("Group deleted", extra={"tenant_id": group.tenant_id, "group_id": group.id})

    def add_accounts(
        self, group_id: int, account_ids: list[int], context: SessionContext
    ) -> list[Account]:
        """
        Put accounts into a group. Accounts already in the group are skipped.

        Raises:
            ForbiddenException: Without manage_accounts
            ValidationException: If an account isn't a member of the tenant
        """
        group = self._get_group(group_id, context)
        self.authz.require(
            context.account.id,
            group.tenant_id,
            Capability.MANAGE_ACCOUNTS,
            "add accounts to this group",
        )

        unique_ids = list(dict.fromkeys(account_ids))
        for account_id in unique_ids:
            if self.membership_repo.get_live_membership(account_id, group.tenant_id) is None:
                raise ValidationException(f"Account {account_id} is not a member of this tenant")

        added = 0
        for account_id in unique_ids:
            if self.repo.get_edge(account_id, group.id) is None:
                self.repo.add_edge(account_id, group.id)
                added += 1
        self.db.commit()
        logger.info(
            f"Added {added} accounts to group",
            extra={"tenant_id": group.tenant_id, "group_id": group.id},
        )
        return self.get_group_accounts(group.id)

    def remove_accounts(
        self, group_id: int, account_ids: list[int], context: SessionContext
    ) -> list[Account]:
        """
        Take accounts out of a group. Accounts not in the group are ignored.

        Raises:
            ForbiddenException: Without manage_accounts
        """
        group = self._get_group(group_id, context)
        self.authz.require(
            context.account.id,
            group.tenant_id,
            Capability.MANAGE_ACCOUNTS,
            "remove accounts from this group",
        )
        for account_id in set(account_ids):
            edge = self.repo.get_edge(account_id, group.id)
            if edge is not None:
                edge.soft_delete()
        self.db.commit()
        return self.get_group_accounts(group.id)

    def _get_group(self, group_id: int, context: SessionContext) -> AccountGroup:
        group = self.repo.get_by_id_and_tenant(group_id, context.tenant.id)
        if group is None:
            raise NotFoundException("Group not found")
        return group

    def _require_parent(self, parent_group_id: int, tenant_id: int) -> AccountGroup:
        parent = self.repo.get_by_id_and_tenant(parent_group_id, tenant_id)
        if parent is None:
            raise ValidationException("Parent group not found or does not belong to this tenant")
        return parent
