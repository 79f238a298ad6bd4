"""
Session state manager.

Tracks which of a user's accounts and tenants is active, and orchestrates
the switch / link / remove transitions. Every transition:

1. validates against the live membership store (remembered pairs are never
   trusted on their own),
2. computes a new immutable SessionState,
3. persists it in one write and commits.

A validation failure raises before step 3, so the stored session is never
left half-updated.
"""

import logging
import secrets
from dataclasses import dataclass
from datetime import timedelta

from sqlalchemy.orm import Session

from accounthub.config import settings
from accounthub.core.exceptions import (
    ForbiddenException,
    NotFoundException,
    UnauthorizedException,
    ValidationException,
)
from accounthub.core.security import create_session_token, decode_session_token, verify_password
from accounthub.models.account import Account
from accounthub.models.base import as_utc, utcnow
from accounthub.models.membership import Membership
from accounthub.models.session_context import SessionAccount, SessionContext, SessionState
from accounthub.models.tenant import Tenant, TenantKind
from accounthub.models.user import User
from accounthub.repositories.account_repository import AccountRepository
from accounthub.repositories.auth_session_repository import AuthSessionRepository
from accounthub.repositories.membership_repository import MembershipRepository
from accounthub.repositories.tenant_repository import TenantRepository
from accounthub.repositories.user_repository import UserRepository

logger = logging.getLogger(__name__)

VERIFY_INTERVAL = timedelta(hours=1)


@dataclass
class SessionTransition:
    """
    Outcome of a session operation.

    ``state`` and ``token`` are None when the operation ended the session.
    """

    state: SessionState | None
    token: str | None
    message: str

    @property
    def logged_out(self) -> bool:
        return self.state is None


class SessionService:
    """Service layer for session lifecycle and account/tenant switching"""

    def __init__(self, db: Session):
        self.db = db
        self.session_repo = AuthSessionRepository(db)
        self.account_repo = AccountRepository(db)
        self.membership_repo = MembershipRepository(db)
        self.user_repo = UserRepository(db)
        self.tenant_repo = TenantRepository(db)

    # Lifecycle

    def start_session(self, user: User, account: Account, tenant: Tenant) -> SessionTransition:
        """
        Create a session with the account active in the tenant.

        Does not commit; sign-up and sign-in commit it together with their
        own writes.
        """
        state = SessionState(
            session_id=secrets.token_urlsafe(32),
            user_id=user.id,
            active_account_id=account.id,
            active_tenant_id=tenant.id,
            session_accounts=(SessionAccount(account.id, tenant.id),),
            expires_at=utcnow() + timedelta(days=settings.SESSION_EXPIRE_DAYS),
        )
        self.session_repo.add(state)
        logger.info(
            "Session started",
            extra={
                "session_id": state.session_id,
                "user_id": user.id,
                "account_id": account.id,
                "tenant_id": tenant.id,
            },
        )
        return SessionTransition(state, self.issue_token(state), "Signed in successfully")

    def issue_token(self, state: SessionState) -> str:
        return create_session_token(state.session_id, state.user_id, state.expires_at)

    def resolve_context(self, token: str) -> SessionContext:
        """
        Turn a bearer token into the acting user, account and tenant.

        Raises:
            UnauthorizedException: If the token is invalid, the session is
                revoked or expired, or the active account or its membership
                in the active tenant is no longer live
        """
        payload = decode_session_token(token)
        row = self.session_repo.get_by_id(payload["sid"])
        if row is None or row.revoked_at is not None:
            raise UnauthorizedException("Session is no longer valid")
        if str(row.user_id) != str(payload["sub"]):
            raise UnauthorizedException("Session is no longer valid")
        if as_utc(row.expires_at) <= utcnow():
            raise UnauthorizedException("Session expired")

        state = self.session_repo.to_state(row)
        user = self.user_repo.get_by_id(state.user_id)
        if user is None:
            raise UnauthorizedException("Session is no longer valid")
        account = self.account_repo.get_by_id_and_user(state.active_account_id, user.id)
        if account is None:
            raise UnauthorizedException("Session is no longer valid")
        membership = self.membership_repo.get_live_membership(account.id, state.active_tenant_id)
        if membership is None:
            raise UnauthorizedException("Session is no longer valid")

        now = utcnow()
        if now - as_utc(row.last_verified_at) > VERIFY_INTERVAL:
            row.last_verified_at = now
            self.db.commit()

        return SessionContext(
            state=state,
            user=user,
            account=account,
            tenant=membership.tenant,
            membership=membership,
            role=membership.role,
        )

    def sign_out(self, context: SessionContext) -> SessionTransition:
        """End the current session."""
        row = self.session_repo.get_by_id(context.state.session_id)
        if row is not None:
            self.session_repo.revoke(row)
        self.db.commit()
        logger.info(
            "Session signed out",
            extra={"session_id": context.state.session_id, "user_id": context.user.id},
        )
        return SessionTransition(None, None, "Signed out successfully")

    def revoke_all(self, context: SessionContext) -> int:
        """Revoke every session of the current user, this one included."""
        count = self.session_repo.revoke_all_for_user(context.user.id)
        self.db.commit()
        logger.info(
            f"Revoked {count} sessions",
            extra={"user_id": context.user.id},
        )
        return count

    # Transitions

    def switch_account(self, context: SessionContext, account_id: int) -> SessionTransition:
        """
        Make another of the user's accounts active.

        The tenant is the latest remembered one this session still has
        a live membership to, else the account's personal tenant, else its
        oldest live membership.

        Raises:
            NotFoundException: If the account doesn't exist or is deleted
            ForbiddenException: If the account belongs to another user or has
                no live membership in a live tenant
        """
        state = context.state
        account = self.account_repo.get_by_id(account_id)
        if account is None:
            raise NotFoundException("Account not found")
        if account.user_id != state.user_id:
            raise ForbiddenException("You don't have access to this account")
        if account_id == state.active_account_id:
            return SessionTransition(state, self.issue_token(state), "Account already active")

        memberships = self.membership_repo.get_account_memberships(account_id)
        if not memberships:
            raise ForbiddenException("You don't have access to this organization")

        tenant_id = self._resolve_tenant(state, account_id, memberships)
        new_state = state.activate(account_id, tenant_id)
        self._persist(new_state)
        logger.info(
            "Switched account",
            extra={
                "session_id": state.session_id,
                "account_id": account_id,
                "tenant_id": tenant_id,
            },
        )
        return SessionTransition(new_state, self.issue_token(new_state), "Account switched successfully")

    def switch_tenant(self, context: SessionContext, tenant_id: int) -> SessionTransition:
        """
        Move the active account to another tenant it belongs to.

        Raises:
            NotFoundException: If the tenant doesn't exist or is deleted
            ForbiddenException: If the active account has no live membership there
        """
        state = context.state
        if self.tenant_repo.get_by_id(tenant_id) is None:
            raise NotFoundException("Tenant not found")
        if tenant_id == state.active_tenant_id:
            return SessionTransition(state, self.issue_token(state), "Tenant already active")

        membership = self.membership_repo.get_live_membership(state.active_account_id, tenant_id)
        if membership is None:
            raise ForbiddenException("You don't have access to this organization")

        new_state = state.activate(state.active_account_id, tenant_id)
        self._persist(new_state)
        logger.info(
            "Switched tenant",
            extra={"session_id": state.session_id, "tenant_id": tenant_id},
        )
        return SessionTransition(new_state, self.issue_token(new_state), "Tenant switched successfully")

    def link_account(self, context: SessionContext, email: str, password: str) -> SessionTransition:
        """
        Attach another existing account to this session by its credentials.

        An account owned by a different user is moved to the current user;
        when that leaves the previous user without live accounts, the
        previous user is soft-deleted and its sessions revoked. The linked
        account becomes active on its personal tenant.

        Raises:
            ValidationException: If the credentials don't authenticate
            ForbiddenException: If the account has no live tenant membership
        """
        state = context.state
        account = self.account_repo.get_by_email(email)
        if account is None:
            raise ValidationException("Invalid email or password")
        if not account.password_hash:
            raise ValidationException("Account does not have a password")
        if not verify_password(password, account.password_hash):
            raise ValidationException("Invalid email or password")

        memberships = self.membership_repo.get_account_memberships(account.id)
        if not memberships:
            raise ForbiddenException("Account has no tenant access")

        if account.user_id != state.user_id:
            self._merge_into(account, state.user_id)

        primary = next(
            (m for m in memberships if m.tenant.kind == TenantKind.PERSONAL), memberships[0]
        )
        new_state = state.with_pairs(
            *(SessionAccount(account.id, m.tenant_id) for m in memberships)
        ).activate(account.id, primary.tenant_id)
        self._persist(new_state)
        logger.info(
            "Linked account",
            extra={"session_id": state.session_id, "account_id": account.id},
        )
        return SessionTransition(new_state, self.issue_token(new_state), "Account linked successfully")

    def remove_account(self, context: SessionContext, account_id: int) -> SessionTransition:
        """
        Detach an account from this session.

        If it was the active account, the first remaining session pair that
        still validates is activated, then any other live account of the
        user. With nothing left the session is revoked (full logout).

        Raises:
            NotFoundException: If the account doesn't exist
            ForbiddenException: If the account belongs to another user
        """
        state = context.state
        account = self.account_repo.get_by_id(account_id, include_deleted=True)
        if account is None:
            raise NotFoundException("Account not found")
        if account.user_id != state.user_id:
            raise ForbiddenException("You don't have access to this account")

        remaining = state.without_account(account_id)
        if account_id != state.active_account_id:
            self._persist(remaining)
            return SessionTransition(remaining, self.issue_token(remaining), "Account removed")

        replacement = self._next_active(remaining, exclude_account_id=account_id)
        if replacement is None:
            row = self.session_repo.get_by_id(state.session_id)
            if row is not None:
                self.session_repo.revoke(row)
            self.db.commit()
            logger.info(
                "Last account removed, session ended",
                extra={"session_id": state.session_id, "account_id": account_id},
            )
            return SessionTransition(None, None, "Account removed and user logged out")

        new_state = remaining.activate(*replacement)
        self._persist(new_state)
        logger.info(
            "Removed active account, switched to remaining account",
            extra={"session_id": state.session_id, "account_id": replacement[0]},
        )
        return SessionTransition(new_state, self.issue_token(new_state), "Account removed")

    def activate_pair(self, state: SessionState, account_id: int, tenant_id: int) -> SessionTransition:
        """
        Activate a pair the caller just created (new account or tenant).

        Does not commit; the creating service commits both writes together.
        """
        new_state = state.activate(account_id, tenant_id)
        self.session_repo.save_state(new_state)
        return SessionTransition(new_state, self.issue_token(new_state), "Session updated")

    def drop_tenant(self, state: SessionState, tenant_id: int) -> SessionTransition:
        """
        Forget a tenant that was just deleted.

        When it was the active tenant, the active account moves to its
        personal tenant (or oldest live membership). Does not commit.
        """
        remaining = state.without_tenant(tenant_id)
        if state.active_tenant_id != tenant_id:
            self.session_repo.save_state(remaining)
            return SessionTransition(remaining, self.issue_token(remaining), "Session updated")

        memberships = [
            m
            for m in self.membership_repo.get_account_memberships(state.active_account_id)
            if m.tenant_id != tenant_id
        ]
        if not memberships:
            row = self.session_repo.get_by_id(state.session_id)
            if row is not None:
                self.session_repo.revoke(row)
            return SessionTransition(None, None, "Session ended")

        new_state = remaining.activate(
            state.active_account_id,
            self._resolve_tenant(remaining, state.active_account_id, memberships),
        )
        self.session_repo.save_state(new_state)
        return SessionTransition(new_state, self.issue_token(new_state), "Session updated")

    # Reads

    def accounts_meta(self, context: SessionContext) -> dict:
        """
        Describe every live account of the user and its tenants.

        Returns:
            Dict with the session state and one entry per account, flagging
            which accounts are attached to this session and which is active
        """
        state = context.state
        attached = set(state.account_ids)
        accounts = []
        for account in self.account_repo.get_by_user(context.user.id):
            tenants = []
            for membership in self.membership_repo.get_account_memberships(account.id):
                tenants.append(
                    {
                        "tenant_id": membership.tenant_id,
                        "name": membership.tenant.name,
                        "kind": membership.tenant.kind,
                        "role": membership.role.kind,
                        "allowed": list(membership.role.allowed or []),
                        "is_active": account.id == state.active_account_id
                        and membership.tenant_id == state.active_tenant_id,
                    }
                )
            accounts.append(
                {
                    "account_id": account.id,
                    "email": account.email,
                    "display_name": account.display_name,
                    "is_active": account.id == state.active_account_id,
                    "in_session": account.id in attached,
                    "tenants": tenants,
                }
            )
        return {"session": self.describe(state), "accounts": accounts}

    @staticmethod
    def describe(state: SessionState) -> dict:
        return {
            "user_id": state.user_id,
            "active_account_id": state.active_account_id,
            "active_tenant_id": state.active_tenant_id,
            "session_accounts": [pair.to_dict() for pair in state.session_accounts],
            "expires_at": state.expires_at,
        }

    # Helpers

    def _persist(self, state: SessionState) -> None:
        self.session_repo.save_state(state)
        self.db.commit()

    def _resolve_tenant(
        self, state: SessionState, account_id: int, memberships: list[Membership]
    ) -> int:
        live_tenants = {m.tenant_id for m in memberships}
        for tenant_id in state.remembered_tenants(account_id):
            if tenant_id in live_tenants:
                return tenant_id
        for membership in memberships:
            if membership.tenant.kind == TenantKind.PERSONAL:
                return membership.tenant_id
        return memberships[0].tenant_id

    def _next_active(
        self, state: SessionState, exclude_account_id: int
    ) -> tuple[int, int] | None:
        for pair in state.session_accounts:
            if pair.account_id == exclude_account_id:
                continue
            account = self.account_repo.get_by_id_and_user(pair.account_id, state.user_id)
            if account is None:
                continue
            if self.membership_repo.get_live_membership(pair.account_id, pair.tenant_id):
                return pair.account_id, pair.tenant_id

        for account in self.account_repo.get_by_user(state.user_id):
            if account.id == exclude_account_id:
                continue
            memberships = self.membership_repo.get_account_memberships(account.id)
            if memberships:
                return account.id, self._resolve_tenant(state, account.id, memberships)
        return None

    def _merge_into(self, account: Account, user_id: int) -> None:
        previous_user_id = account.user_id
        account.user_id = user_id
        self.db.flush()
        logger.info(
            "Account moved to another user",
            extra={"account_id": account.id, "user_id": user_id},
        )
        if self.account_repo.count_live_by_user(previous_user_id) > 0:
            return
        previous_user = self.user_repo.get_by_id(previous_user_id)
        if previous_user is not None:
            self.user_repo.soft_delete(previous_user)
        revoked = self.session_repo.revoke_all_for_user(previous_user_id)
        logger.info(
            f"Merged empty user, revoked {revoked} sessions",
            extra={"user_id": previous_user_id},
        )
