import logging

from sqlalchemy.orm import Session

from accounthub.core.exceptions import (
    ConflictException,
    ForbiddenException,
    NotFoundException,
    ValidationException,
)
from accounthub.core.permissions import Capability
from accounthub.core.security import hash_password, verify_password
from accounthub.models.account import Account
from accounthub.models.membership import Membership
from accounthub.models.role import Role, RoleKind
from accounthub.models.session_context import SessionContext
from accounthub.models.tenant import Tenant, TenantKind
from accounthub.models.user import User
from accounthub.repositories.account_group_repository import AccountGroupRepository
from accounthub.repositories.account_repository import AccountRepository
from accounthub.repositories.membership_repository import MembershipRepository
from accounthub.repositories.tenant_repository import TenantRepository
from accounthub.repositories.user_repository import UserRepository
from accounthub.schemas.account_schemas import AccountUpdate, UpdatePasswordRequest
from accounthub.schemas.session_schemas import CreateAccountRequest, SignInRequest, SignUpRequest
from accounthub.services.authorization_service import AuthorizationService
from accounthub.services.session_service import SessionService, SessionTransition

logger = logging.getLogger(__name__)

PERSONAL_TENANT_NAME = "Personal"


class AccountService:
    """Service for account lifecycle business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = AccountRepository(db)
        self.user_repo = UserRepository(db)
        self.tenant_repo = TenantRepository(db)
        self.membership_repo = MembershipRepository(db)
        self.group_repo = AccountGroupRepository(db)
        self.sessions = SessionService(db)
        self.authz = AuthorizationService(db)

    def sign_up(self, data: SignUpRequest) -> tuple[Account, SessionTransition]:
        """
        Register a new user with its first account and start a session.

        Raises:
            ConflictException: If the email is already taken
        """
        self._ensure_email_free(data.email)
        user = self.user_repo.add(User(display_name=data.display_name))
        account, tenant = self._provision(user, data.email, data.password, data.display_name)
        transition = self.sessions.start_session(user, account, tenant)
        self.db.commit()
        logger.info("User signed up", extra={"user_id": user.id, "account_id": account.id})
        return account, transition

    def sign_in(self, data: SignInRequest) -> tuple[Account, SessionTransition]:
        """
        Verify credentials and start a session on the personal tenant.

        Raises:
            ValidationException: If the credentials don't authenticate
            ForbiddenException: If the account has no live tenant membership
        """
        account = self.repo.get_by_email(data.email)
        if account is None or not verify_password(data.password, account.password_hash):
            logger.warning("Failed sign-in attempt")
            raise ValidationException("Invalid email or password")

        memberships = self.membership_repo.get_account_memberships(account.id)
        if not memberships:
            raise ForbiddenException("Account has no tenant access")
        primary = next(
            (m for m in memberships if m.tenant.kind == TenantKind.PERSONAL), memberships[0]
        )

        transition = self.sessions.start_session(account.user, account, primary.tenant)
        self.db.commit()
        return account, transition

    def create_account(
        self, data: CreateAccountRequest, context: SessionContext
    ) -> tuple[Account, SessionTransition]:
        """
        Create another account for the current user and make it active.

        Raises:
            ForbiddenException: Without manage_billing in the active tenant
            ConflictException: If the email is already taken
        """
        self.authz.require(
            context.account.id, context.tenant.id, Capability.MANAGE_BILLING, "create accounts"
        )
        self._ensure_email_free(data.email)
        account, tenant = self._provision(
            context.user, data.email, data.password, data.display_name
        )
        transition = self.sessions.activate_pair(context.state, account.id, tenant.id)
        self.db.commit()
        logger.info(
            "Account created",
            extra={"user_id": context.user.id, "account_id": account.id},
        )
        return account, transition

    def get_user_accounts(self, user: User) -> list[Account]:
        """Get all live accounts for user"""
        return self.repo.get_by_user(user.id)

    def get_account(self, account_id: int, user: User) -> Account:
        """
        Get specific account ensuring user ownership.

        Raises:
            NotFoundException: If account not found or belongs to another user
        """
        account = self.repo.get_by_id_and_user(account_id, user.id)
        if not account:
            raise NotFoundException("Account not found")
        return account

    def update_account(
        self, account_id: int, data: AccountUpdate, context: SessionContext
    ) -> Account:
        """
        Update account details.

        Raises:
            NotFoundException: If account not found or belongs to another user
            ForbiddenException: Without manage_accounts in the active tenant
        """
        account = self.get_account(account_id, context.user)
        self.authz.require(
            context.account.id, context.tenant.id, Capability.MANAGE_ACCOUNTS, "update this account"
        )

        if data.display_name is not None:
            account.display_name = data.display_name

        self.db.commit()
        self.db.refresh(account)
        return account

    def delete_account(self, account_id: int, context: SessionContext) -> SessionTransition:
        """
        Soft-delete one of the user's accounts.

        Memberships and group edges of the account go with it, and so does
        its personal tenant. The account is detached from the current session.

        Raises:
            NotFoundException: If account not found or belongs to another user
            ForbiddenException: Without manage_accounts in the active tenant
            ValidationException: If it is the user's last live account
        """
        account = self.get_account(account_id, context.user)
        self.authz.require(
            context.account.id, context.tenant.id, Capability.MANAGE_ACCOUNTS, "delete this account"
        )
        if self.repo.count_live_by_user(context.user.id) <= 1:
            raise ValidationException("Cannot delete your only account")

        for membership in self.membership_repo.get_account_memberships(
            account.id, include_deleted_tenants=True
        ):
            if membership.tenant.kind == TenantKind.PERSONAL and not membership.tenant.is_deleted:
                self.tenant_repo.soft_delete(membership.tenant, deleted_by=context.user.id)
        self.membership_repo.soft_delete_for_account(account.id)
        self.group_repo.soft_delete_edges_for_account(account.id)
        account.soft_delete()
        self.db.flush()

        logger.info(
            "Account deleted",
            extra={"user_id": context.user.id, "account_id": account.id},
        )
        # remove_account commits
        return self.sessions.remove_account(context, account.id)

    def update_password(self, data: UpdatePasswordRequest, context: SessionContext) -> None:
        """Replace the active account's password"""
        account = context.account
        account.password_hash = hash_password(data.password)
        self.db.commit()
        logger.info(
            "Password updated",
            extra={"user_id": context.user.id, "account_id": account.id},
        )

    def _ensure_email_free(self, email: str) -> None:
        if self.repo.email_exists(email):
            raise ConflictException("An account with this email already exists")

    def _provision(
        self, user: User, email: str, password: str, display_name: str | None
    ) -> tuple[Account, Tenant]:
        account = self.repo.add(
            Account(
                user_id=user.id,
                email=email.lower(),
                password_hash=hash_password(password),
                display_name=display_name,
            )
        )
        tenant = self.tenant_repo.add(
            Tenant(name=PERSONAL_TENANT_NAME, kind=TenantKind.PERSONAL, created_by=user.id)
        )
        role = self.membership_repo.add_role(Role.from_template(RoleKind.OWNER))
        self.membership_repo.add(
            Membership(account_id=account.id, tenant_id=tenant.id, role_id=role.id)
        )
        return account, tenant
