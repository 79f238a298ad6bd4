from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from accounthub.database import get_db
from accounthub.dependencies import get_session_context
from accounthub.models.session_context import SessionContext
from accounthub.services.tenant_service import TenantService
from accounthub.schemas.session_schemas import SessionTransitionResponse
from accounthub.schemas.tenant_schemas import (
    AccountTenantResponse,
    TenantResponse,
    TenantUpdate,
    TenantMemberResponse,
    TenantMemberAdd,
    TenantRoleUpdate,
    TenantMemberRemoveResponse,
)

router = APIRouter()


@router.get("", response_model=list[AccountTenantResponse])
async def list_account_tenants(
    context: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db),
):
    """
    List all tenants the active account belongs to.

    Returns list of tenants with the account's role in each tenant,
    useful for tenant switching.
    """
    service = TenantService(db)
    return service.list_account_tenants(context)


@router.get("/{tenant_id}", response_model=TenantResponse)
async def get_tenant(
    tenant_id: int,
    context: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db),
):
    """
    Get tenant details.

    Available to every member of the tenant.
    """
    service = TenantService(db)
    return service.get_tenant(tenant_id, context)


@router.patch("/{tenant_id}", response_model=TenantResponse)
async def update_tenant(
    tenant_id: int,
    tenant_update: TenantUpdate,
    context: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db),
):
    """
    Rename tenant.

    - **Requires manage_settings**
    """
    service = TenantService(db)
    return service.update_tenant(tenant_id, tenant_update, context)


@router.delete("/{tenant_id}", response_model=SessionTransitionResponse)
async def delete_tenant(
    tenant_id: int,
    context: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db),
):
    """
    Delete an organization tenant.

    - **Requires manage_settings**
    - Personal tenants cannot be deleted
    - All memberships of the tenant are removed
    """
    service = TenantService(db)
    return SessionTransitionResponse.from_transition(service.delete_tenant(tenant_id, context))


@router.get("/{tenant_id}/members", response_model=list[TenantMemberResponse])
async def list_members(
    tenant_id: int,
    context: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db),
):
    """
    List all members of a tenant.

    Available to all members.
    """
    service = TenantService(db)
    return [TenantMemberResponse.from_membership(m) for m in service.get_members(tenant_id, context)]


@router.post(
    "/{tenant_id}/members",
    response_model=TenantMemberResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_member(
    tenant_id: int,
    request: TenantMemberAdd,
    context: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db),
):
    """
    Add an existing account to the tenant.

    - **Requires manage_users**
    - Default role: member
    - You cannot grant capabilities you don't have
    """
    service = TenantService(db)
    membership = service.add_member(tenant_id, request, context)
    return TenantMemberResponse.from_membership(membership)


@router.patch("/{tenant_id}/members/{account_id}/role", response_model=TenantMemberResponse)
async def update_member_role(
    tenant_id: int,
    account_id: int,
    role_update: TenantRoleUpdate,
    context: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db),
):
    """
    Replace a member's role.

    - **Requires manage_roles**
    - Cannot change your own role
    """
    service = TenantService(db)
    membership = service.update_member_role(tenant_id, account_id, role_update, context)
    return TenantMemberResponse.from_membership(membership)


@router.delete(
    "/{tenant_id}/members/{account_id}",
    response_model=TenantMemberRemoveResponse,
    status_code=status.HTTP_200_OK,
)
async def remove_member(
    tenant_id: int,
    account_id: int,
    context: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db),
):
    """
    Remove member from tenant.

    - **Requires manage_users**
    - Cannot remove yourself
    - The account is also taken out of the tenant's groups
    """
    service = TenantService(db)
    service.remove_member(tenant_id, account_id, context)

    return {
        "message": "Member removed successfully",
        "removed_account_id": account_id,
    }
