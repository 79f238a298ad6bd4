"""Session state and request authorization context."""

from dataclasses import dataclass, field, replace
from datetime import datetime

from accounthub.core.permissions import Capability, can
from accounthub.models.account import Account
from accounthub.models.membership import Membership
from accounthub.models.role import Role
from accounthub.models.tenant import Tenant
from accounthub.models.user import User


@dataclass(frozen=True)
class SessionAccount:
    """One (account, tenant) pair the user has activated during this session."""

    account_id: int
    tenant_id: int

    def to_dict(self) -> dict:
        return {"account_id": self.account_id, "tenant_id": self.tenant_id}

    @classmethod
    def from_dict(cls, data: dict) -> "SessionAccount":
        return cls(account_id=int(data["account_id"]), tenant_id=int(data["tenant_id"]))


@dataclass(frozen=True)
class SessionState:
    """
    Immutable snapshot of one login session.

    Transitions build a new SessionState with ``dataclasses.replace`` and the
    caller persists it only after every validation passed, so a rejected
    switch or link can never leave the active account/tenant half-updated.

    Attributes:
        session_id: AuthSession.id
        user_id: The user the session belongs to
        active_account_id: Account the user is currently acting as
        active_tenant_id: Tenant the active account is currently working in
        session_accounts: Ordered set of activated (account, tenant) pairs
    """

    session_id: str
    user_id: int
    active_account_id: int
    active_tenant_id: int
    session_accounts: tuple[SessionAccount, ...] = field(default_factory=tuple)
    expires_at: datetime | None = None

    @property
    def active_pair(self) -> SessionAccount:
        return SessionAccount(self.active_account_id, self.active_tenant_id)

    @property
    def account_ids(self) -> list[int]:
        """Distinct account ids in activation order."""
        seen: list[int] = []
        for pair in self.session_accounts:
            if pair.account_id not in seen:
                seen.append(pair.account_id)
        return seen

    def has_pair(self, account_id: int, tenant_id: int) -> bool:
        return SessionAccount(account_id, tenant_id) in self.session_accounts

    def with_pairs(self, *pairs: SessionAccount) -> "SessionState":
        """Return a copy with the pairs appended, skipping ones already present."""
        accounts = list(self.session_accounts)
        for pair in pairs:
            if pair not in accounts:
                accounts.append(pair)
        return replace(self, session_accounts=tuple(accounts))

    def without_account(self, account_id: int) -> "SessionState":
        """Return a copy with every pair for the account dropped."""
        return replace(
            self,
            session_accounts=tuple(p for p in self.session_accounts if p.account_id != account_id),
        )

    def without_tenant(self, tenant_id: int) -> "SessionState":
        """Return a copy with every pair for the tenant dropped."""
        return replace(
            self,
            session_accounts=tuple(p for p in self.session_accounts if p.tenant_id != tenant_id),
        )

    def activate(self, account_id: int, tenant_id: int) -> "SessionState":
        """Return a copy with the pair active and remembered."""
        return replace(
            self, active_account_id=account_id, active_tenant_id=tenant_id
        ).with_pairs(SessionAccount(account_id, tenant_id))

    def remembered_tenants(self, account_id: int) -> list[int]:
        """Tenant ids remembered for an account, latest added first."""
        return [p.tenant_id for p in reversed(self.session_accounts) if p.account_id == account_id]


@dataclass
class SessionContext:
    """
    Resolved actor for one request.

    Built by the ``get_session_context`` dependency after the session token,
    the session row, the active account and its live membership in the active
    tenant have all been verified.

    Attributes:
        state: The session snapshot
        user: The authenticated User
        account: The active Account
        tenant: The active Tenant
        membership: The active account's live membership in the active tenant
        role: The membership's role
    """

    state: SessionState
    user: User
    account: Account
    tenant: Tenant
    membership: Membership
    role: Role

    def can(self, capability: Capability | str) -> bool:
        """Check the active role's capability set."""
        return can(self.role.allowed, capability)

    def __repr__(self) -> str:
        return (
            f"<SessionContext(user_id={self.user.id}, account_id={self.account.id}, "
            f"tenant_id={self.tenant.id}, role={self.role.kind.value})>"
        )
