"""Authentication middleware - access token cookie to request principal."""

import logging
from collections.abc import Sequence

from sqlalchemy.exc import SQLAlchemyError
from starlette.concurrency import run_in_threadpool
from starlette.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from app.database import get_db
from app.dependencies import AUTH_COOKIE_NAME, Principal
from app.exceptions import AuthError
from app.repositories.users import UserRepository
from app.services.jwt import get_jwt_service

logger = logging.getLogger("login_portal")


class AuthenticationMiddleware(BaseHTTPMiddleware):
    """Binds ``request.state.principal`` from the ``ACCESS_TOKEN`` cookie.

    1. Skips exempt paths (public auth pages, static assets, the root).
    2. Verifies the cookie's token and loads the user it names.
    3. Binds a Principal for enabled users, None otherwise.

    Nothing here rejects a request; protected routes enforce
    authentication through ``require_principal``.
    """

    def __init__(self, app, exempt_prefixes: Sequence[str] = ()):
        super().__init__(app)
        self._exempt_prefixes = tuple(exempt_prefixes)

    def is_exempt(self, path: str) -> bool:
        """Check if path skips authentication."""
        if path == "/":
            return True
        return any(path.startswith(prefix) for prefix in self._exempt_prefixes)

    async def dispatch(self, request: Request, call_next) -> Response:
        request.state.principal = None
        if not self.is_exempt(request.url.path):
            token = request.cookies.get(AUTH_COOKIE_NAME)
            if token:
                request.state.principal = await run_in_threadpool(self._resolve_principal, request, token)
        return await call_next(request)

    def _resolve_principal(self, request: Request, token: str) -> Principal | None:
        try:
            user_id = get_jwt_service().verify(token)
        except AuthError:
            logger.debug("Ignoring access token cookie that failed verification")
            return None

        # Same session provider as the route handlers, so overrides apply here too
        provider = request.app.dependency_overrides.get(get_db, get_db)
        sessions = provider()
        db = next(sessions)
        try:
            user = UserRepository(db).find_by_id(user_id)
            if user is None:
                logger.debug("Access token names unknown user %s", user_id)
                return None
            if not user.enabled:
                logger.debug("Access token names disabled user %s", user_id)
                return None
            return Principal(user_id=user.id, email=user.email, display_name=user.display_name)
        except SQLAlchemyError:
            logger.warning("User lookup failed while authenticating request", exc_info=True)
            return None
        finally:
            sessions.close()


def add_cors(app, origins: Sequence[str]) -> None:
    """Allow credentialed cross-origin calls from ``origins``.

    Without origins nothing is installed and the app stays same-origin.
    """
    if not origins:
        return
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
