import os

os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-accounthub-tests")
os.environ.setdefault("LOG_JSON", "false")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from accounthub.database import get_db
from accounthub.models.base import Base
# Import all model classes to ensure they're registered with SQLAlchemy
from accounthub.models.user import User
from accounthub.models.account import Account
from accounthub.models.tenant import Tenant, TenantKind
from accounthub.models.role import Role, RoleKind
from accounthub.models.membership import Membership
from accounthub.models.account_group import AccountGroup, AccountToAccountGroup
from accounthub.models.auth_session import AuthSession
from accounthub.schemas.session_schemas import SignUpRequest
from accounthub.services.account_service import AccountService
from accounthub.services.session_service import SessionService
# Import FastAPI app AFTER model imports
from accounthub.main import app

# Test database (SQLite in-memory for speed)
# Use StaticPool to ensure all connections share the same in-memory database
SQLALCHEMY_TEST_DATABASE_URL = "sqlite:///:memory:"
engine = create_engine(
    SQLALCHEMY_TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

PASSWORD = "correct-horse-battery"


@pytest.fixture(scope="function")
def db_session():
    """Create fresh database for each test"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db_session):
    """FastAPI test client with test database"""

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


class SignedUp:
    """A freshly registered user with its first account and session."""

    def __init__(self, db, account, transition):
        self.db = db
        self.account = account
        self.user = account.user
        self.transition = transition
        self.token = transition.token
        self.personal_tenant_id = transition.state.active_tenant_id

    @property
    def headers(self) -> dict:
        return {"Authorization": f"Bearer {self.token}"}

    @property
    def personal_tenant(self) -> Tenant:
        return self.db.get(Tenant, self.personal_tenant_id)

    def context(self):
        """Resolve the current token the way the HTTP dependency does"""
        return SessionService(self.db).resolve_context(self.token)

    def adopt(self, transition) -> None:
        """Continue with the token returned by a session transition"""
        self.transition = transition
        self.token = transition.token


@pytest.fixture
def sign_up(db_session):
    """Factory registering a user through the account service"""

    def _sign_up(email: str, display_name: str | None = None) -> SignedUp:
        service = AccountService(db_session)
        account, transition = service.sign_up(
            SignUpRequest(email=email, password=PASSWORD, display_name=display_name)
        )
        return SignedUp(db_session, account, transition)

    return _sign_up


@pytest.fixture
def alice(sign_up) -> SignedUp:
    return sign_up("alice@example.com", "Alice")


@pytest.fixture
def bob(sign_up) -> SignedUp:
    return sign_up("bob@example.com", "Bob")


@pytest.fixture
def auth_headers(alice):
    """Authorization headers for alice's session"""
    return alice.headers


@pytest.fixture
def make_org(db_session):
    """Factory creating an org tenant with (account, role kind) members"""

    def _make_org(name: str, owner: Account, *members: tuple[Account, RoleKind]) -> Tenant:
        tenant = Tenant(name=name, kind=TenantKind.ORG, created_by=owner.user_id)
        db_session.add(tenant)
        db_session.flush()
        for account, kind in ((owner, RoleKind.OWNER), *members):
            role = Role.from_template(kind)
            db_session.add(role)
            db_session.flush()
            db_session.add(Membership(account_id=account.id, tenant_id=tenant.id, role_id=role.id))
        db_session.commit()
        return tenant

    return _make_org


@pytest.fixture
def make_group(db_session):
    """Factory inserting an account group row directly"""

    def _make_group(tenant: Tenant, name: str, parent: AccountGroup | None = None) -> AccountGroup:
        group = AccountGroup(
            tenant_id=tenant.id,
            parent_group_id=parent.id if parent else None,
            name=name,
        )
        db_session.add(group)
        db_session.commit()
        return group

    return _make_group
