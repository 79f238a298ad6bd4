from datetime import datetime, timezone

from jose import JWTError, jwt
from passlib.context import CryptContext

from accounthub.config import settings
from accounthub.core.exceptions import UnauthorizedException

password_context = CryptContext(schemes=settings.password_schemes_list, deprecated="auto")


def hash_password(password: str) -> str:
    """Hash a plaintext credential for storage"""
    return password_context.hash(password)


def verify_password(password: str, password_hash: str | None) -> bool:
    """
    Compare a plaintext credential against a stored hash.

    Accounts without a stored hash never verify.
    """
    if not password_hash:
        return False
    return password_context.verify(password, password_hash)


def create_session_token(session_id: str, user_id: int, expires_at: datetime) -> str:
    """
    Issue a signed token for a session.

    Args:
        session_id: AuthSession.id, carried in the 'sid' claim
        user_id: Owning user, carried in the 'sub' claim
        expires_at: Session expiry, carried in the 'exp' claim

    Returns:
        Encoded JWT
    """
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=timezone.utc)
    payload = {
        "sub": str(user_id),
        "sid": session_id,
        "exp": expires_at,
        "iat": datetime.now(timezone.utc),
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.SESSION_TOKEN_ALGORITHM)


def decode_session_token(token: str) -> dict:
    """
    Decode and validate a session token.

    Args:
        token: JWT from the Authorization header

    Returns:
        Decoded token payload with 'sub', 'sid' and 'exp'

    Raises:
        UnauthorizedException: If token invalid, expired, or malformed
    """
    try:
        payload = jwt.decode(
            token, settings.SECRET_KEY, algorithms=[settings.SESSION_TOKEN_ALGORITHM]
        )
    except JWTError as e:
        raise UnauthorizedException(f"Invalid token: {str(e)}")

    if payload.get("exp") is None:
        raise UnauthorizedException("Token missing expiration")
    if payload.get("sub") is None:
        raise UnauthorizedException("Token missing user identifier")
    if payload.get("sid") is None:
        raise UnauthorizedException("Token missing session identifier")

    return payload
