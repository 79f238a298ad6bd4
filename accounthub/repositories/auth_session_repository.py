"""Repository for persisted login sessions."""

from sqlalchemy.orm import Session
from accounthub.models.auth_session import AuthSession
from accounthub.models.base import as_utc, utcnow
from accounthub.models.session_context import SessionAccount, SessionState


class AuthSessionRepository:
    """Maps AuthSession rows to and from immutable SessionState values"""

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, session_id: str) -> AuthSession | None:
        return self.db.query(AuthSession).filter(AuthSession.id == session_id).first()

    def list_active_for_user(self, user_id: int) -> list[AuthSession]:
        """Sessions of a user that have not been revoked"""
        return (
            self.db.query(AuthSession)
            .filter(AuthSession.user_id == user_id, AuthSession.revoked_at.is_(None))
            .all()
        )

    def add(self, state: SessionState) -> AuthSession:
        """Stage a new session row built from a state, without committing"""
        row = AuthSession(
            id=state.session_id,
            user_id=state.user_id,
            active_account_id=state.active_account_id,
            active_tenant_id=state.active_tenant_id,
            session_accounts=[pair.to_dict() for pair in state.session_accounts],
            expires_at=state.expires_at,
            last_verified_at=utcnow(),
        )
        self.db.add(row)
        self.db.flush()
        return row

    def save_state(self, state: SessionState) -> AuthSession:
        """
        Write a state back onto its row in one step.

        Raises:
            LookupError: If the row vanished
        """
        row = self.get_by_id(state.session_id)
        if row is None:
            raise LookupError(f"Session {state.session_id} not found")
        row.user_id = state.user_id
        row.active_account_id = state.active_account_id
        row.active_tenant_id = state.active_tenant_id
        row.session_accounts = [pair.to_dict() for pair in state.session_accounts]
        self.db.flush()
        return row

    def revoke(self, row: AuthSession) -> None:
        if row.revoked_at is None:
            row.revoked_at = utcnow()
        self.db.flush()

    def revoke_all_for_user(self, user_id: int) -> int:
        """Revoke every live session of a user, returns count"""
        rows = self.list_active_for_user(user_id)
        for row in rows:
            self.revoke(row)
        return len(rows)

    @staticmethod
    def to_state(row: AuthSession) -> SessionState:
        return SessionState(
            session_id=row.id,
            user_id=row.user_id,
            active_account_id=row.active_account_id,
            active_tenant_id=row.active_tenant_id,
            session_accounts=tuple(SessionAccount.from_dict(d) for d in row.session_accounts or []),
            expires_at=as_utc(row.expires_at),
        )
