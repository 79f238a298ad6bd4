import logging

from sqlalchemy.orm import Session

from accounthub.core.exceptions import ForbiddenException
from accounthub.core.permissions import Capability, can
from accounthub.models.membership import Membership
from accounthub.repositories.membership_repository import MembershipRepository

logger = logging.getLogger(__name__)


class AuthorizationService:
    """
    Gate for every mutating operation.

    Resolves the acting account's live membership in the target tenant and
    evaluates the membership role's capability set. A missing membership is
    a denial, reported exactly like a missing capability.
    """

    def __init__(self, db: Session):
        self.db = db
        self.membership_repo = MembershipRepository(db)

    def get_live_membership(self, account_id: int, tenant_id: int) -> Membership | None:
        return self.membership_repo.get_live_membership(account_id, tenant_id)

    def require_membership(self, account_id: int, tenant_id: int, action: str) -> Membership:
        """
        Require a live membership of the account in a live tenant.

        Raises:
            ForbiddenException: "You are not authorized to <action>"
        """
        membership = self.get_live_membership(account_id, tenant_id)
        if membership is None:
            self._deny(account_id, tenant_id, action, "no live membership")
        return membership

    def require(
        self, account_id: int, tenant_id: int, capability: Capability, action: str
    ) -> Membership:
        """
        Require the account's role in the tenant to grant a capability.

        Args:
            account_id: Acting account
            tenant_id: Tenant the operation targets
            capability: Capability the operation needs
            action: Human readable action, used in the error message

        Returns:
            The acting membership

        Raises:
            ForbiddenException: If there is no live membership or the role
                lacks the capability
        """
        membership = self.get_live_membership(account_id, tenant_id)
        if membership is None:
            self._deny(account_id, tenant_id, action, "no live membership")
        if not can(membership.role.allowed if membership.role else None, capability):
            self._deny(account_id, tenant_id, action, f"missing {capability.value}")
        return membership

    def _deny(self, account_id: int, tenant_id: int, action: str, reason: str) -> None:
        logger.warning(
            f"Authorization denied: {action} ({reason})",
            extra={"account_id": account_id, "tenant_id": tenant_id},
        )
        raise ForbiddenException(f"You are not authorized to {action}")
