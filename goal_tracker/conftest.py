import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session

from goal_tracker.auth import create_access_token, get_password_hash
from goal_tracker.config import Settings
from goal_tracker.fastapi_app import create_app
from goal_tracker.models import User, create_database_engine, create_db_and_tables


@pytest.fixture
def settings(tmp_path):
    return Settings(
        DATABASE_URL=f"sqlite:///{tmp_path / 'test.db'}",
        JWT_SECRET_KEY="test-secret-key",
    )

@pytest.fixture
def engine(settings):
    engine = create_database_engine(settings.DATABASE_URL)
    create_db_and_tables(engine)
    yield engine
    engine.dispose()

@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session

@pytest.fixture
def client(settings, engine):
    with TestClient(create_app(settings)) as c:
        yield c

def make_user(session, name, email, password):
    user = User(name=name, email=email, password_hash=get_password_hash(password))
    session.add(user)
    session.commit()
    session.refresh(user)
    return user

@pytest.fixture
def test_user(session):
    return make_user(session, "Test User", "test@example.com", "testpassword")

@pytest.fixture
def other_user(session):
    return make_user(session, "Other User", "other@example.com", "otherpassword")

@pytest.fixture
def auth_headers(test_user, settings):
    token = create_access_token(test_user.id, settings)
    return {"Authorization": f"Bearer {token}"}

@pytest.fixture
def other_headers(other_user, settings):
    token = create_access_token(other_user.id, settings)
    return {"Authorization": f"Bearer {token}"}
