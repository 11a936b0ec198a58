"""Tests for the authentication middleware."""

import pytest
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import AUTH_COOKIE_NAME, Principal, get_principal
from app.middleware import AuthenticationMiddleware, add_cors
from app.repositories.users import UserRepository
from app.services.jwt import get_jwt_service


def _whoami_app(db_session: Session) -> FastAPI:
    """Small app that echoes the principal bound by the middleware."""
    echo_app = FastAPI()
    echo_app.add_middleware(AuthenticationMiddleware, exempt_prefixes=("/auth/", "/static/"))

    def whoami(principal: Principal | None = Depends(get_principal)) -> dict:
        if principal is None:
            return {"principal": None}
        return {
            "principal": {
                "user_id": principal.user_id,
                "email": principal.email,
                "display_name": principal.display_name,
                "authorities": sorted(principal.authorities),
            }
        }

    echo_app.add_api_route("/whoami", whoami)
    echo_app.add_api_route("/auth/whoami", whoami)
    echo_app.add_api_route("/", whoami)

    def override_get_db():
        yield db_session

    echo_app.dependency_overrides[get_db] = override_get_db
    return echo_app


@pytest.fixture(name="whoami_client")
def whoami_client_fixture(db_session: Session):
    with TestClient(_whoami_app(db_session)) as c:
        yield c


class TestPrincipalBinding:
    """Tests for the cookie to principal pipeline."""

    def test_no_cookie_is_anonymous(self, whoami_client: TestClient):
        assert whoami_client.get("/whoami").json() == {"principal": None}

    def test_valid_cookie_binds_principal(self, whoami_client: TestClient, test_user: dict):
        whoami_client.cookies.set(AUTH_COOKIE_NAME, test_user["token"])
        principal = whoami_client.get("/whoami").json()["principal"]
        assert principal == {
            "user_id": test_user["user_id"],
            "email": "test@example.com",
            "display_name": "Test User",
            "authorities": ["ROLE_USER"],
        }

    def test_garbage_cookie_is_anonymous(self, whoami_client: TestClient):
        whoami_client.cookies.set(AUTH_COOKIE_NAME, "invalid.token.here")
        response = whoami_client.get("/whoami")
        assert response.status_code == 200
        assert response.json() == {"principal": None}

    def test_expired_token_is_anonymous(self, whoami_client: TestClient, test_user: dict):
        token = get_jwt_service().issue(test_user["user_id"], "test@example.com", "Test User", ttl_minutes=-1)
        whoami_client.cookies.set(AUTH_COOKIE_NAME, token)
        assert whoami_client.get("/whoami").json() == {"principal": None}

    def test_unknown_user_is_anonymous(self, whoami_client: TestClient):
        token = get_jwt_service().issue(9999, "ghost@example.com", "Ghost")
        whoami_client.cookies.set(AUTH_COOKIE_NAME, token)
        assert whoami_client.get("/whoami").json() == {"principal": None}

    def test_disabled_user_is_anonymous(self, whoami_client: TestClient, test_user: dict, db_session: Session):
        user = UserRepository(db_session).find_by_id(test_user["user_id"])
        user.enabled = False
        db_session.commit()

        whoami_client.cookies.set(AUTH_COOKIE_NAME, test_user["token"])
        assert whoami_client.get("/whoami").json() == {"principal": None}

    def test_display_claims_are_not_trusted(self, whoami_client: TestClient, test_user: dict):
        """Email and name come from the store, not from the token."""
        token = get_jwt_service().issue(test_user["user_id"], "forged@example.com", "Forged")
        whoami_client.cookies.set(AUTH_COOKIE_NAME, token)
        principal = whoami_client.get("/whoami").json()["principal"]
        assert principal["email"] == "test@example.com"
        assert principal["display_name"] == "Test User"

    def test_store_failure_is_anonymous(self, whoami_client: TestClient, test_user: dict, monkeypatch):
        def broken(self, user_id):
            raise OperationalError("SELECT", {}, Exception("database is locked"))

        monkeypatch.setattr(UserRepository, "find_by_id", broken)
        whoami_client.cookies.set(AUTH_COOKIE_NAME, test_user["token"])
        assert whoami_client.get("/whoami").json() == {"principal": None}


class TestExemptPaths:
    """Tests for the exemption list."""

    def test_exempt_prefix_skips_authentication(self, whoami_client: TestClient, test_user: dict):
        whoami_client.cookies.set(AUTH_COOKIE_NAME, test_user["token"])
        assert whoami_client.get("/auth/whoami").json() == {"principal": None}

    def test_root_is_exempt(self, whoami_client: TestClient, test_user: dict):
        whoami_client.cookies.set(AUTH_COOKIE_NAME, test_user["token"])
        assert whoami_client.get("/").json() == {"principal": None}

    @pytest.mark.parametrize(
        ("path", "exempt"),
        [
            ("/", True),
            ("/auth/login", True),
            ("/static/css/app.css", True),
            ("/dashboard", False),
            ("/authors", False),
            ("/api/v1/auth/me", False),
        ],
    )
    def test_is_exempt(self, path: str, exempt: bool):
        middleware = AuthenticationMiddleware(FastAPI(), exempt_prefixes=("/auth/", "/static/"))
        assert middleware.is_exempt(path) is exempt


class TestCors:
    """Tests for the optional cross-origin setup."""

    def _app(self, origins: tuple[str, ...]) -> FastAPI:
        cors_app = FastAPI()
        cors_app.add_api_route("/api/ping", lambda: {"pong": True})
        add_cors(cors_app, origins)
        return cors_app

    def test_configured_origin_gets_credentialed_cors(self):
        client = TestClient(self._app(("http://localhost:8080",)))
        response = client.options(
            "/api/ping",
            headers={"Origin": "http://localhost:8080", "Access-Control-Request-Method": "POST"},
        )
        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "http://localhost:8080"
        assert response.headers["access-control-allow-credentials"] == "true"

    def test_unlisted_origin_gets_no_cors_headers(self):
        client = TestClient(self._app(("http://localhost:8080",)))
        response = client.get("/api/ping", headers={"Origin": "http://evil.example.com"})
        assert "access-control-allow-origin" not in response.headers

    def test_no_origins_installs_nothing(self):
        cors_app = self._app(())
        assert cors_app.user_middleware == []
