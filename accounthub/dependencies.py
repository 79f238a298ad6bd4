from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from accounthub.core.exceptions import UnauthorizedException
from accounthub.database import get_db
from accounthub.models.session_context import SessionContext
from accounthub.services.session_service import SessionService

security = HTTPBearer(auto_error=False)


async def get_session_context(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: Session = Depends(get_db),
) -> SessionContext:
    """
    FastAPI dependency resolving the acting user, account and tenant.

    Flow:
    1. Extract token from Authorization: Bearer <token>
    2. Validate the JWT and read the session id from its 'sid' claim
    3. Load the session; reject it if revoked or expired
    4. Re-check that the active account and its membership in the active
       tenant are still live
    5. Return SessionContext for use in endpoints

    Raises:
        HTTPException 401: If there is no valid session
    """
    try:
        if credentials is None:
            raise UnauthorizedException("Not authenticated")
        return SessionService(db).resolve_context(credentials.credentials)

    except UnauthorizedException as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        )
