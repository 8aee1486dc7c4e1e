import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel, create_engine
from sqlmodel.pool import StaticPool

from main import app
from matchday.config import SESSION_COOKIE_NAME
from matchday.database import get_session
from matchday.models import User
from matchday.services.auth import create_session, hash_password

# Create in-memory database for testing
TEST_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

# bcrypt is slow on purpose; hash once for every fixture user
PASSWORD = "password123"
PASSWORD_HASH = hash_password(PASSWORD)


@pytest.fixture(name="session")
def session_fixture():
    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        yield session
    SQLModel.metadata.drop_all(engine)


@pytest.fixture(name="client")
def client_fixture(session: Session):
    def get_session_override():
        return session

    app.dependency_overrides[get_session] = get_session_override
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()


@pytest.fixture(name="make_user")
def make_user_fixture(session: Session):
    def _make_user(username: str, is_admin: bool = False, **fields) -> User:
        user = User(
            username=username,
            email=f"{username}@example.com",
            password_hash=PASSWORD_HASH,
            is_admin=is_admin,
            **fields
        )
        session.add(user)
        session.commit()
        session.refresh(user)
        return user
    return _make_user


@pytest.fixture(name="login")
def login_fixture(client: TestClient, session: Session):
    """Put a valid session cookie for the given user on the test client."""
    def _login(user: User) -> str:
        token = create_session(session, user.id)
        client.cookies.set(SESSION_COOKIE_NAME, token)
        return token
    return _login


@pytest.fixture(name="admin")
def admin_fixture(make_user):
    return make_user("admin", is_admin=True)
