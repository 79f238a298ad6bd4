from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from accounthub.database import get_db
from accounthub.dependencies import get_session_context
from accounthub.models.session_context import SessionContext
from accounthub.schemas.account_schemas import (
    AccountListResponse,
    AccountResponse,
    AccountUpdate,
    UpdatePasswordRequest,
)
from accounthub.schemas.session_schemas import SessionTransitionResponse
from accounthub.services.account_service import AccountService

router = APIRouter()


@router.get("", response_model=AccountListResponse)
async def list_accounts(
    context: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db),
):
    """List all accounts for authenticated user"""
    service = AccountService(db)
    accounts = service.get_user_accounts(context.user)
    return AccountListResponse(
        accounts=[AccountResponse.model_validate(a) for a in accounts],
        total=len(accounts),
    )


@router.post("/update-password")
async def update_password(
    data: UpdatePasswordRequest,
    context: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db),
):
    """Change the password of the active account"""
    service = AccountService(db)
    service.update_password(data, context)
    return {"message": "Password updated successfully"}


@router.get("/{account_id}", response_model=AccountResponse)
async def get_account(
    account_id: int,
    context: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db),
):
    """Get specific account details"""
    service = AccountService(db)
    return service.get_account(account_id, context.user)


@router.patch("/{account_id}", response_model=AccountResponse)
async def update_account(
    account_id: int,
    data: AccountUpdate,
    context: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db),
):
    """Update account details"""
    service = AccountService(db)
    return service.update_account(account_id, data, context)


@router.delete("/{account_id}", response_model=SessionTransitionResponse)
async def delete_account(
    account_id: int,
    context: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db),
):
    """
    Delete one of your accounts.

    Its memberships, group placements and personal tenant go with it.
    Your last remaining account cannot be deleted.
    """
    service = AccountService(db)
    return SessionTransitionResponse.from_transition(service.delete_account(account_id, context))
