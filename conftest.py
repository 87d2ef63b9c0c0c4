import os
import itertools

# Must be set before freelancehive.config caches its settings
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["EVENTS_ENABLED"] = "false"
os.environ["RATE_LIMIT_MAX"] = "0"
os.environ["ENVIRONMENT"] = "test"
os.environ.setdefault("SECRET_KEY", "test-secret-key")

import pytest
from fastapi.testclient import TestClient

from freelancehive.database import Base, engine, SessionLocal, import_models
from freelancehive.main import app
from freelancehive.auth_service.auth import token_for_user
from freelancehive.auth_service.models import User, UserRole
from freelancehive.user_service.models import Profile

_emails = itertools.count(1)


@pytest.fixture(autouse=True)
def reset_database():
    import_models()
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_user():
    """Insert a user (and profile) directly, skipping password hashing."""

    def _make_user(role=UserRole.CLIENT, email=None, with_profile=True, is_active=True):
        session = SessionLocal()
        try:
            user = User(
                email=email or f"user{next(_emails)}@example.com",
                password_hash="not-a-real-hash",
                role=role,
                is_admin=role == UserRole.ADMIN,
                is_active=is_active,
            )
            if with_profile:
                user.profile = Profile(honey_drops_balance=0)
            session.add(user)
            session.commit()
            session.refresh(user)
            session.expunge(user)
            return user
        finally:
            session.close()

    return _make_user


@pytest.fixture
def auth_headers():
    def _auth_headers(user):
        return {"Authorization": f"Bearer {token_for_user(user)}"}

    return _auth_headers


@pytest.fixture
def client_user(make_user):
    return make_user(UserRole.CLIENT)


@pytest.fixture
def freelancer_user(make_user):
    return make_user(UserRole.FREELANCER)


@pytest.fixture
def admin_user(make_user):
    return make_user(UserRole.ADMIN)
