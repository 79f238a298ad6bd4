from datetime import datetime
from pydantic import BaseModel, EmailStr, Field

from accounthub.models.role import RoleKind
from accounthub.models.tenant import TenantKind


class SignUpRequest(BaseModel):
    """Register a new user with its first account"""

    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    display_name: str | None = Field(None, max_length=255)


class SignInRequest(BaseModel):
    """Sign in with an account's credentials"""

    email: EmailStr
    password: str = Field(..., min_length=1)


class SwitchAccountRequest(BaseModel):
    account_id: int


class SwitchTenantRequest(BaseModel):
    tenant_id: int


class LinkAccountRequest(BaseModel):
    """Credentials of an existing account to attach to this session"""

    email: EmailStr
    password: str = Field(..., min_length=1)


class RemoveAccountRequest(BaseModel):
    account_id: int


class CreateAccountRequest(BaseModel):
    """Create another account for the signed-in user"""

    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    display_name: str | None = Field(None, max_length=255)


class CreateTenantRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)


class SessionAccountResponse(BaseModel):
    account_id: int
    tenant_id: int


class SessionStateResponse(BaseModel):
    """Active account/tenant and every activated pair"""

    user_id: int
    active_account_id: int
    active_tenant_id: int
    session_accounts: list[SessionAccountResponse]
    expires_at: datetime | None = None

    @classmethod
    def from_state(cls, state) -> "SessionStateResponse":
        return cls(
            user_id=state.user_id,
            active_account_id=state.active_account_id,
            active_tenant_id=state.active_tenant_id,
            session_accounts=[SessionAccountResponse(**p.to_dict()) for p in state.session_accounts],
            expires_at=state.expires_at,
        )


class SessionTransitionResponse(BaseModel):
    """
    Result of a session-affecting operation.

    ``token`` replaces the caller's bearer token. Both ``token`` and
    ``session`` are null when the session ended.
    """

    message: str
    token: str | None = None
    session: SessionStateResponse | None = None

    @classmethod
    def from_transition(cls, transition, **extra):
        session = None
        if transition.state is not None:
            session = SessionStateResponse.from_state(transition.state)
        return cls(message=transition.message, token=transition.token, session=session, **extra)


class AccountTenantMeta(BaseModel):
    tenant_id: int
    name: str
    kind: TenantKind
    role: RoleKind
    allowed: list[str]
    is_active: bool


class AccountMeta(BaseModel):
    account_id: int
    email: str
    display_name: str | None
    is_active: bool
    in_session: bool
    tenants: list[AccountTenantMeta]


class AccountsMetaResponse(BaseModel):
    """The session plus every live account of the user"""

    session: SessionStateResponse
    accounts: list[AccountMeta]


class RevokeAllResponse(BaseModel):
    message: str
    revoked: int
