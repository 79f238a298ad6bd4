from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from accounthub.database import get_db
from accounthub.dependencies import get_session_context
from accounthub.models.session_context import SessionContext
from accounthub.schemas.account_schemas import AccountCreatedResponse, AccountResponse
from accounthub.schemas.session_schemas import (
    SessionTransitionResponse,
    SignInRequest,
    SignUpRequest,
)
from accounthub.services.account_service import AccountService
from accounthub.services.session_service import SessionService

router = APIRouter()


@router.post(
    "/sign-up",
    response_model=AccountCreatedResponse,
    status_code=status.HTTP_201_CREATED,
)
async def sign_up(data: SignUpRequest, db: Session = Depends(get_db)):
    """
    Register a new user.

    Creates the user, its first account and the account's personal tenant,
    then starts a session with that pair active.
    """
    service = AccountService(db)
    account, transition = service.sign_up(data)
    return AccountCreatedResponse.from_transition(
        transition, account=AccountResponse.model_validate(account)
    )


@router.post("/sign-in", response_model=SessionTransitionResponse)
async def sign_in(data: SignInRequest, db: Session = Depends(get_db)):
    """
    Sign in with email and password.

    The session starts on the account's personal tenant.
    """
    service = AccountService(db)
    _, transition = service.sign_in(data)
    return SessionTransitionResponse.from_transition(transition)


@router.post("/sign-out", response_model=SessionTransitionResponse)
async def sign_out(
    context: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db),
):
    """End the current session."""
    service = SessionService(db)
    return SessionTransitionResponse.from_transition(service.sign_out(context))
