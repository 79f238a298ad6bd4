from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from accounthub.database import get_db
from accounthub.dependencies import get_session_context
from accounthub.models.session_context import SessionContext
from accounthub.schemas.account_group_schemas import (
    AccountGroupCreate,
    AccountGroupDetailResponse,
    AccountGroupResponse,
    AccountGroupTreeNode,
    AccountGroupUpdate,
    GroupAccountsRequest,
    GroupAccountsResponse,
)
from accounthub.services.account_group_service import AccountGroupService

router = APIRouter()


@router.get("", response_model=list[AccountGroupTreeNode])
async def get_group_tree(
    context: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db),
):
    """
    Groups of the active tenant as a forest.

    Groups whose parent was deleted are listed as roots.
    """
    service = AccountGroupService(db)
    return service.get_tree(context)


@router.get("/{group_id}", response_model=AccountGroupDetailResponse)
async def get_group(
    group_id: int,
    context: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db),
):
    """Group with its ancestors (parent first), descendants and member accounts."""
    service = AccountGroupService(db)
    return service.get_group(group_id, context)


@router.post("", response_model=AccountGroupResponse, status_code=status.HTTP_201_CREATED)
async def create_group(
    data: AccountGroupCreate,
    context: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db),
):
    """
    Create a group in the active tenant.

    - **Requires manage_roles**
    - Parent must be a live group of the same tenant
    """
    service = AccountGroupService(db)
    return service.create_group(data, context)


@router.patch("/{group_id}", response_model=AccountGroupResponse)
async def update_group(
    group_id: int,
    data: AccountGroupUpdate,
    context: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db),
):
    """
    Update or move a group.

    - **Requires manage_settings**
    - Send `parent_group_id: null` to make it a root
    - Moving under one of its own descendants is rejected with 409
    """
    service = AccountGroupService(db)
    return service.update_group(group_id, data, context)


@router.delete("/{group_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_group(
    group_id: int,
    context: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db),
):
    """
    Delete a group.

    - **Requires manage_settings**
    - Child groups are kept and become roots
    """
    service = AccountGroupService(db)
    service.delete_group(group_id, context)


@router.post("/{group_id}/accounts", response_model=GroupAccountsResponse)
async def add_accounts(
    group_id: int,
    data: GroupAccountsRequest,
    context: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db),
):
    """
    Add accounts to a group.

    - **Requires manage_accounts**
    - Accounts already in the group are left as they are
    """
    service = AccountGroupService(db)
    accounts = service.add_accounts(group_id, data.account_ids, context)
    return {"group_id": group_id, "accounts": accounts}


@router.post("/{group_id}/accounts/remove", response_model=GroupAccountsResponse)
async def remove_accounts(
    group_id: int,
    data: GroupAccountsRequest,
    context: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db),
):
    """
    Remove accounts from a group.

    - **Requires manage_accounts**
    """
    service = AccountGroupService(db)
    accounts = service.remove_accounts(group_id, data.account_ids, context)
    return {"group_id": group_id, "accounts": accounts}
