"""Pytest configuration and fixtures."""

import base64
import os

# Settings are read at import time; pin them before the app is imported.
TEST_JWT_SECRET = base64.b64encode(b"k" * 32).decode("ascii")
os.environ["JWT_SECRET"] = TEST_JWT_SECRET
os.environ["JWT_ISSUER"] = "login-portal-test"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["SMTP_ENABLED"] = "false"
os.environ["BASE_URL"] = "http://testserver"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

import app.models  # noqa: E402, F401
from app.database import Base, build_engine, get_db  # noqa: E402
from app.services.auth import AuthService  # noqa: E402
from app.services.jwt import JWTService, get_jwt_service  # noqa: E402
from app.services.password_reset import PasswordResetService  # noqa: E402
from app.services.passwords import PasswordHasher, get_password_hasher  # noqa: E402


class FakeNotifier:
    """Records reset emails instead of sending them."""

    def __init__(self, error: Exception | None = None) -> None:
        self.sent: list[tuple[str, str]] = []
        self._error = error

    def send_reset_email(self, to_email: str, token: str) -> None:
        if self._error is not None:
            raise self._error
        self.sent.append((to_email, token))


@pytest.fixture(name="db_session")
def db_session_fixture():
    """Create an in-memory SQLite database for tests."""
    engine = build_engine("sqlite:///:memory:", poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    testing_session_local = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = testing_session_local()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(name="hasher")
def hasher_fixture() -> PasswordHasher:
    return get_password_hasher()


@pytest.fixture(name="jwt_secret")
def jwt_secret_fixture() -> str:
    return TEST_JWT_SECRET


@pytest.fixture(name="jwt_service")
def jwt_service_fixture(jwt_secret: str) -> JWTService:
    return JWTService(base64_secret=jwt_secret, issuer="login-portal-test", ttl_minutes=15)


@pytest.fixture(name="auth_service")
def auth_service_fixture(hasher: PasswordHasher) -> AuthService:
    return AuthService(hasher)


@pytest.fixture(name="notifier_factory")
def notifier_factory_fixture() -> type[FakeNotifier]:
    return FakeNotifier


@pytest.fixture(name="notifier")
def notifier_fixture() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture(name="reset_service")
def reset_service_fixture(hasher: PasswordHasher, notifier: FakeNotifier) -> PasswordResetService:
    return PasswordResetService(hasher=hasher, notifier=notifier, ttl_minutes=30)


@pytest.fixture(name="client")
def client_fixture(db_session: Session, reset_service: PasswordResetService, monkeypatch):
    """Create a test client with overridden DB dependency, a recording notifier and no rate limiting."""
    from app.rate_limit import limiter
    from main import app

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    monkeypatch.setattr("app.services.password_reset._password_reset_service", reset_service)
    app.dependency_overrides[get_db] = override_get_db
    limiter.enabled = False
    with TestClient(app) as c:
        yield c
    limiter.enabled = True
    app.dependency_overrides.clear()


@pytest.fixture(name="test_user")
def test_user_fixture(db_session: Session, auth_service: AuthService):
    """Create a test user and return its data with an access token."""
    user = auth_service.create_user(db_session, "test@example.com", "password123", "Test User")
    token = get_jwt_service().issue(user.id, user.email, user.display_name)

    return {
        "user_id": user.id,
        "email": user.email,
        "display_name": user.display_name,
        "token": token,
    }
