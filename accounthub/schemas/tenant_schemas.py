from pydantic import BaseModel, EmailStr, Field
from datetime import datetime

from accounthub.models.role import RoleKind
from accounthub.models.tenant import TenantKind
from accounthub.schemas.session_schemas import SessionTransitionResponse


class TenantResponse(BaseModel):
    """Tenant details response"""

    id: int
    name: str
    kind: TenantKind
    created_by: int
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class AccountTenantResponse(BaseModel):
    """Tenant as seen by one of its member accounts"""

    id: int
    name: str
    kind: TenantKind
    role: RoleKind
    allowed: list[str]
    is_active: bool
    created_at: datetime
    updated_at: datetime


class TenantCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)


class TenantUpdate(BaseModel):
    """Rename tenant (manage_settings)"""

    name: str = Field(..., min_length=1, max_length=255)


class TenantCreatedResponse(SessionTransitionResponse):
    tenant: TenantResponse


class RoleResponse(BaseModel):
    id: int
    name: str
    kind: RoleKind
    allowed: list[str]

    model_config = {"from_attributes": True}


class TenantMemberResponse(BaseModel):
    """Tenant member details with account info"""

    id: int
    account_id: int
    email: str
    display_name: str | None
    role: RoleResponse
    created_at: datetime

    @classmethod
    def from_membership(cls, membership) -> "TenantMemberResponse":
        return cls(
            id=membership.id,
            account_id=membership.account_id,
            email=membership.account.email,
            display_name=membership.account.display_name,
            role=RoleResponse.model_validate(membership.role),
            created_at=membership.created_at,
        )


class TenantMemberAdd(BaseModel):
    """Add an existing account to the tenant"""

    email: EmailStr = Field(..., description="Email of the account to add")
    role: RoleKind = Field(default=RoleKind.MEMBER, description="Role template (default: member)")
    allowed: list[str] | None = Field(
        default=None, description="Capability override; the template's set when omitted"
    )


class TenantRoleUpdate(BaseModel):
    """Replace a member's role (manage_roles)"""

    role: RoleKind = Field(..., description="New role template")
    allowed: list[str] | None = Field(default=None, description="Capability override")


class TenantMemberRemoveResponse(BaseModel):
    """Response after removing member"""

    message: str
    removed_account_id: int
