from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from accounthub.database import get_db
from accounthub.dependencies import get_session_context
from accounthub.models.session_context import SessionContext
from accounthub.schemas.account_schemas import AccountCreatedResponse, AccountResponse
from accounthub.schemas.session_schemas import (
    AccountsMetaResponse,
    CreateAccountRequest,
    CreateTenantRequest,
    LinkAccountRequest,
    RemoveAccountRequest,
    RevokeAllResponse,
    SessionStateResponse,
    SessionTransitionResponse,
    SwitchAccountRequest,
    SwitchTenantRequest,
)
from accounthub.schemas.tenant_schemas import TenantCreate, TenantCreatedResponse, TenantResponse
from accounthub.services.account_service import AccountService
from accounthub.services.session_service import SessionService
from accounthub.services.tenant_service import TenantService

router = APIRouter()


@router.get("", response_model=SessionStateResponse)
async def get_session(context: SessionContext = Depends(get_session_context)):
    """Current session: active account, active tenant and activated pairs."""
    return SessionStateResponse.from_state(context.state)


@router.get("/accounts", response_model=AccountsMetaResponse)
async def get_accounts_meta(
    context: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db),
):
    """
    Every live account of the user with its tenants and roles.

    Flags which accounts are attached to this session and which pair is active.
    """
    service = SessionService(db)
    return service.accounts_meta(context)


@router.post("/switch-account", response_model=SessionTransitionResponse)
async def switch_account(
    data: SwitchAccountRequest,
    context: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db),
):
    """
    Make another of your accounts active.

    - Account must belong to you and have a live membership
    - Switching to the active account is a no-op
    """
    service = SessionService(db)
    return SessionTransitionResponse.from_transition(
        service.switch_account(context, data.account_id)
    )


@router.post("/switch-tenant", response_model=SessionTransitionResponse)
async def switch_tenant(
    data: SwitchTenantRequest,
    context: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db),
):
    """
    Move the active account to another of its tenants.

    - The active account must hold a live membership in the tenant
    """
    service = SessionService(db)
    return SessionTransitionResponse.from_transition(
        service.switch_tenant(context, data.tenant_id)
    )


@router.post("/link-account", response_model=SessionTransitionResponse)
async def link_account(
    data: LinkAccountRequest,
    context: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db),
):
    """
    Attach an existing account by its credentials.

    An account owned by another user is merged into yours.
    """
    service = SessionService(db)
    return SessionTransitionResponse.from_transition(
        service.link_account(context, data.email, data.password)
    )


@router.post("/remove-account", response_model=SessionTransitionResponse)
async def remove_account(
    data: RemoveAccountRequest,
    context: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db),
):
    """
    Detach an account from this session.

    Removing your last account signs you out; the response then carries
    no token and no session.
    """
    service = SessionService(db)
    return SessionTransitionResponse.from_transition(
        service.remove_account(context, data.account_id)
    )


@router.post(
    "/create-account",
    response_model=AccountCreatedResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_account(
    data: CreateAccountRequest,
    context: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db),
):
    """Create another account for yourself and switch to it."""
    service = AccountService(db)
    account, transition = service.create_account(data, context)
    return AccountCreatedResponse.from_transition(
        transition, account=AccountResponse.model_validate(account)
    )


@router.post(
    "/create-tenant",
    response_model=TenantCreatedResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_tenant(
    data: CreateTenantRequest,
    context: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db),
):
    """Create an organization owned by the active account and switch to it."""
    service = TenantService(db)
    tenant, transition = service.create_tenant(TenantCreate(name=data.name), context)
    return TenantCreatedResponse.from_transition(
        transition, tenant=TenantResponse.model_validate(tenant)
    )


@router.post("/revoke-all", response_model=RevokeAllResponse)
async def revoke_all(
    context: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db),
):
    """Sign out everywhere, this session included."""
    service = SessionService(db)
    count = service.revoke_all(context)
    return {"message": "All sessions revoked", "revoked": count}
