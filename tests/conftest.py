import os
import sys
from pathlib import Path

# project root on the path, SQLite before the app is imported
sys.path.insert(0, str(Path(__file__).parent.parent))
os.environ["DATABASE_URL"] = "sqlite:///./test.db"

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

import app.core.database

test_engine = create_engine(
    "sqlite:///./test.db",
    connect_args={"check_same_thread": False}
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)
app.core.database.engine = test_engine
app.core.database.SessionLocal = TestingSessionLocal

from app.core.database import Base, get_db
from app.core.principal import Principal, Role
from app.core.security import create_access_token
from app.main import app
from app.models.user import User
from app.services.file_store import get_file_store


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


app.dependency_overrides[get_db] = override_get_db


class FakeFileStore:
    """Keeps uploads in memory and hands back predictable URLs."""

    def __init__(self):
        self.uploads = []

    def upload(self, bucket, filename, content, content_type):
        self.uploads.append((bucket, filename, content, content_type))
        return f"https://files.test/{bucket}/{filename}"


@pytest.fixture(autouse=True)
def setup_teardown():
    """Fresh schema for every test"""
    Base.metadata.drop_all(bind=test_engine)
    Base.metadata.create_all(bind=test_engine)
    yield
    Base.metadata.drop_all(bind=test_engine)


@pytest.fixture
def client():
    from fastapi.testclient import TestClient
    return TestClient(app)


@pytest.fixture
def db():
    db = TestingSessionLocal()
    yield db
    db.close()


@pytest.fixture
def file_store():
    store = FakeFileStore()
    app.dependency_overrides[get_file_store] = lambda: store
    yield store
    app.dependency_overrides.pop(get_file_store, None)


def make_user(db, email: str, role: Role = Role.OPERATOR) -> Principal:
    user = User(email=email, role=role.value)
    db.add(user)
    db.commit()
    db.refresh(user)
    return Principal(id=user.id, role=role, email=user.email)


def auth_header(principal: Principal) -> dict:
    token = create_access_token(principal.id, principal.email, principal.role.value)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def manager(db):
    return make_user(db, "manager@example.com", Role.MANAGER)


@pytest.fixture
def other_manager(db):
    return make_user(db, "manager2@example.com", Role.MANAGER)


@pytest.fixture
def project_manager(db):
    return make_user(db, "pm@example.com", Role.PROJECT_MANAGER)


@pytest.fixture
def operator(db):
    return make_user(db, "operator@example.com", Role.OPERATOR)


@pytest.fixture
def other_operator(db):
    return make_user(db, "operator2@example.com", Role.OPERATOR)
