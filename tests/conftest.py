import os
import tempfile

# Settings are read at import time, so they must be in place before `main` is imported
os.environ["JWT_SECRET"] = "test-secret"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["ENVIRONMENT"] = "test"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="uploads-")

from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.api.auth.auth import create_access_token
from app.api.deps import get_db
from app.database import Base
from app.models.user_model import User, UserRole, hash_password
from app.realtime.socket_server import sio
from app.services import email_service
from main import app

# 1. SQLite in-memory database shared by every connection
engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


# 2. get_db override
def override_get_db():
    try:
        db = TestingSessionLocal()
        yield db
    finally:
        db.close()


app.dependency_overrides[get_db] = override_get_db


@pytest.fixture(autouse=True)
def setup_database():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture(autouse=True)
def socket_emit(monkeypatch):
    """Socket pushes made by HTTP routes are recorded instead of sent."""
    emit = AsyncMock()
    monkeypatch.setattr(sio, "emit", emit)
    return emit


@pytest.fixture(autouse=True)
def sent_emails(monkeypatch):
    sent = []

    def fake_send(email, token, first_name):
        sent.append({"email": email, "token": token, "first_name": first_name})

    monkeypatch.setattr(email_service, "send_password_reset_email", fake_send)
    return sent


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def _make_user(role=UserRole.member, first_name=None, last_name="Tester", email=None,
                   password="secret123", is_active=True):
        counter["n"] += 1
        n = counter["n"]
        user = User(
            first_name=first_name or f"{role.value.capitalize()}{n}",
            last_name=last_name,
            email=email or f"{role.value}{n}@example.com",
            password=hash_password(password),
            role=role,
            is_active=is_active,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make_user


def auth_headers(user):
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


@pytest.fixture
def headers():
    return auth_headers


@pytest.fixture
def session_factory():
    return TestingSessionLocal
