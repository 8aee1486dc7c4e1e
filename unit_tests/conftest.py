import pytest
from sqlmodel import Session, SQLModel, create_engine
from sqlmodel.pool import StaticPool

from matchday.models import User

# Create an in-memory SQLite engine for tests
engine = create_engine(
    "sqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

@pytest.fixture(name="session")
def session_fixture():
    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        yield session
    SQLModel.metadata.drop_all(engine)

@pytest.fixture(name="make_user")
def make_user_fixture(session: Session):
    def _make_user(username: str, **fields) -> User:
        user = User(username=username, email=f"{username}@example.com", password_hash="x", **fields)
        session.add(user)
        session.commit()
        session.refresh(user)
        return user
    return _make_user
