"""Authentication dependencies for FastAPI routes.

The authentication middleware stores a ``Principal`` (or None) on
``request.state``; handlers receive it explicitly through these
dependencies.
"""

from dataclasses import dataclass, field

from fastapi import HTTPException, Request, Response

from app.config import get_settings

AUTH_COOKIE_NAME = "ACCESS_TOKEN"
DEFAULT_AUTHORITY = "ROLE_USER"


@dataclass(frozen=True)
class Principal:
    """Authenticated user context."""

    user_id: int
    email: str
    display_name: str
    authorities: frozenset[str] = field(default_factory=lambda: frozenset({DEFAULT_AUTHORITY}))


def get_principal(request: Request) -> Principal | None:
    """Return the principal bound by the middleware, or None when anonymous."""
    return getattr(request.state, "principal", None)


def require_principal(request: Request) -> Principal:
    """Require an authenticated principal. Raises 401 if anonymous."""
    principal = get_principal(request)
    if principal is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return principal


def require_web_principal(request: Request) -> Principal:
    """Require authentication for web routes. The 401 is turned into a redirect to login."""
    principal = get_principal(request)
    if principal is None:
        # For HTMX requests, send redirect header
        if request.headers.get("HX-Request"):
            raise HTTPException(
                status_code=401,
                detail="Not authenticated",
                headers={"HX-Redirect": "/auth/login"},
            )
        raise HTTPException(status_code=401, detail="Not authenticated")
    return principal


def set_auth_cookie(response: Response, token: str) -> None:
    """Set the authentication cookie."""
    settings = get_settings()
    response.set_cookie(
        key=AUTH_COOKIE_NAME,
        value=token,
        httponly=True,
        path="/",
        domain=settings.COOKIE_DOMAIN,
        samesite=settings.COOKIE_SAMESITE,
        secure=settings.COOKIE_SECURE,
        max_age=settings.ACCESS_TOKEN_TTL_MINUTES * 60,
    )


def clear_auth_cookie(response: Response) -> None:
    """Clear the authentication cookie."""
    settings = get_settings()
    response.delete_cookie(key=AUTH_COOKIE_NAME, path="/", domain=settings.COOKIE_DOMAIN)
