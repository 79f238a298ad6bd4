from __future__ import annotations

from datetime import datetime
from pydantic import BaseModel, Field


class AccountGroupCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    parent_group_id: int | None = None


class AccountGroupUpdate(BaseModel):
    """
    Partial update.

    Sending ``parent_group_id`` (null included) moves the group; leaving it
    out keeps the current parent.
    """

    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    parent_group_id: int | None = None


class AccountGroupResponse(BaseModel):
    id: int
    tenant_id: int
    parent_group_id: int | None
    name: str
    description: str | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class AccountGroupTreeNode(AccountGroupResponse):
    children: list[AccountGroupTreeNode] = []


class GroupAccountResponse(BaseModel):
    id: int
    email: str
    display_name: str | None

    model_config = {"from_attributes": True}


class AccountGroupDetailResponse(BaseModel):
    group: AccountGroupResponse
    ancestors: list[AccountGroupResponse]
    descendants: list[AccountGroupResponse]
    accounts: list[GroupAccountResponse]


class GroupAccountsRequest(BaseModel):
    account_ids: list[int] = Field(..., min_length=1)


class GroupAccountsResponse(BaseModel):
    group_id: int
    accounts: list[GroupAccountResponse]


AccountGroupTreeNode.model_rebuild()
