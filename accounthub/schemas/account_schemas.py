from datetime import datetime
from pydantic import BaseModel, Field

from accounthub.schemas.session_schemas import SessionTransitionResponse


class AccountUpdate(BaseModel):
    """Schema for updating an account"""

    display_name: str | None = Field(None, min_length=1, max_length=255)


class UpdatePasswordRequest(BaseModel):
    """Schema for replacing the active account's password"""

    password: str = Field(..., min_length=8, max_length=128)


class AccountResponse(BaseModel):
    """Schema for account response"""

    id: int
    user_id: int
    email: str
    display_name: str | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class AccountListResponse(BaseModel):
    """Schema for list of accounts"""

    accounts: list[AccountResponse]
    total: int


class AccountCreatedResponse(SessionTransitionResponse):
    """New account plus the session that now has it active"""

    account: AccountResponse
