"""Login Portal - registration, cookie JWT authentication and password reset."""

import logging
import time
from pathlib import Path

from fastapi import Depends, FastAPI, Form, HTTPException, Request
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from app.config import get_settings
from app.database import get_db
from app.dependencies import Principal, clear_auth_cookie, require_web_principal, set_auth_cookie
from app.exceptions import (
    AccountDisabledError,
    DuplicateEmailError,
    InvalidCredentialsError,
    InvalidTokenError,
    NotificationError,
    TokenExpiredError,
)
from app.middleware import AuthenticationMiddleware, add_cors
from app.rate_limit import limiter
from app.routers import auth_router
from app.routers.auth import RESET_REQUESTED_MESSAGE
from app.schemas.auth import EMAIL_MAX_LENGTH, NAME_MAX_LENGTH, PASSWORD_MAX_BYTES, PASSWORD_MIN_LENGTH
from app.services.auth import get_auth_service
from app.services.jwt import get_jwt_service
from app.services.password_reset import get_password_reset_service
from app.services.passwords import password_too_long

BASE_DIR = Path(__file__).resolve().parent

# Logging
logger = logging.getLogger("login_portal")
logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

settings = get_settings()
for warning in settings.validate():
    logger.warning("Config: %s", warning)

app = FastAPI(title="Login Portal", version="0.1.0")
app.state.limiter = limiter


# --- Security headers middleware ---
class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Content-Security-Policy"] = (
            "default-src 'self'; style-src 'self'; img-src 'self' data:; form-action 'self'"
        )
        return response


# --- Audit logging middleware ---
class AuditLogMiddleware(BaseHTTPMiddleware):
    AUDIT_PREFIXES = ("/auth/", "/api/v1/auth/")

    async def dispatch(self, request: Request, call_next) -> Response:
        start = time.time()
        response = await call_next(request)
        duration_ms = (time.time() - start) * 1000

        path = request.url.path
        if request.method == "POST" and path.startswith(self.AUDIT_PREFIXES):
            logger.info(
                "AUDIT %s %s -> %d (%.0fms) from %s",
                request.method,
                # reset paths carry the token
                "/auth/reset/<token>" if path.startswith("/auth/reset/") else path,
                response.status_code,
                duration_ms,
                request.client.host if request.client else "unknown",
            )

        return response


app.add_middleware(AuthenticationMiddleware, exempt_prefixes=settings.AUTH_EXEMPT_PREFIXES)
add_cors(app, settings.CORS_ORIGINS)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(AuditLogMiddleware)

# Static files
app.mount("/static", StaticFiles(directory=BASE_DIR / "static"), name="static")

# Templates
templates = Jinja2Templates(directory=BASE_DIR / "templates")

# API routers
app.include_router(auth_router)


# --- Rate limit error handler ---
@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> Response:
    """Handle rate limit exceeded."""
    if request.url.path.startswith("/api/"):
        return JSONResponse(status_code=429, content={"detail": "Rate limit exceeded. Try again later."})
    return HTMLResponse(content="<h1>429</h1><p>Too many requests. Please try again later.</p>", status_code=429)


# --- Storage failures: log, never expose internals ---
@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError) -> Response:
    """Turn unexpected storage errors into a generic 500."""
    logger.error("Storage failure on %s %s", request.method, request.url.path, exc_info=exc)
    if request.url.path.startswith("/api/"):
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})
    return HTMLResponse(content="<h1>500</h1><p>Internal server error</p>", status_code=500)


# --- Exception handler: 401 -> redirect to /auth/login ---
@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> Response:
    """Handle HTTP exceptions. Redirect 401 to login for web requests."""
    if exc.status_code == 401:
        # HTMX request: send redirect header
        if request.headers.get("HX-Request"):
            response = HTMLResponse(content="", status_code=200)
            response.headers["HX-Redirect"] = "/auth/login"
            return response
        # API request: return JSON
        if request.url.path.startswith("/api/"):
            return JSONResponse(status_code=401, content={"detail": exc.detail})
        # Web request: redirect
        return RedirectResponse(url="/auth/login", status_code=302)
    # All other errors: JSON for API, HTML for web
    if request.url.path.startswith("/api/"):
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail}, headers=exc.headers)
    return HTMLResponse(
        content=f"<h1>{exc.status_code}</h1><p>{exc.detail}</p>",
        status_code=exc.status_code,
    )


# --- Health check ---
@app.get("/api/health")
def health_check() -> dict:
    """Health check endpoint."""
    return {"status": "ok", "app": "login-portal", "version": "0.1.0"}


def _login_redirect(user_id: int, email: str, display_name: str) -> RedirectResponse:
    token = get_jwt_service().issue(user_id, email, display_name)
    response = RedirectResponse(url="/dashboard", status_code=302)
    set_auth_cookie(response, token)
    return response


def _password_error(password: str) -> str | None:
    if len(password) < PASSWORD_MIN_LENGTH:
        return f"Password must be at least {PASSWORD_MIN_LENGTH} characters"
    if password_too_long(password):
        return f"Password cannot exceed {PASSWORD_MAX_BYTES} bytes"
    return None


# --- Web routes ---
@app.get("/", response_class=RedirectResponse)
def home() -> RedirectResponse:
    """Send visitors to the dashboard; it redirects to login when anonymous."""
    return RedirectResponse(url="/dashboard", status_code=302)


@app.get("/auth/login", response_class=HTMLResponse)
def login_page(request: Request, registered: bool = False, reset: bool = False, logout: bool = False) -> HTMLResponse:
    """Render login page."""
    notice = None
    if reset:
        notice = "Password updated. Log in with your new password."
    elif logout:
        notice = "You have been logged out."
    elif registered:
        notice = "Account created. Log in to continue."
    return templates.TemplateResponse(request, "auth/login.html", {"notice": notice})


@app.post("/auth/login", response_class=HTMLResponse)
@limiter.limit("10/minute")
def login_submit(
    request: Request,
    email: str = Form(""),
    password: str = Form(""),
    db: Session = Depends(get_db),
) -> Response:
    """Handle login form submission."""
    try:
        user = get_auth_service().authenticate(db, email.strip(), password)
    except (InvalidCredentialsError, AccountDisabledError) as e:
        return templates.TemplateResponse(request, "auth/login.html", {"error": e.message, "email": email})

    return _login_redirect(user.id, user.email, user.display_name)


@app.get("/auth/register", response_class=HTMLResponse)
def register_page(request: Request) -> HTMLResponse:
    """Render register page."""
    return templates.TemplateResponse(request, "auth/register.html", {"errors": {}})


@app.post("/auth/register", response_class=HTMLResponse)
@limiter.limit("5/minute")
def register_submit(
    request: Request,
    email: str = Form(""),
    password: str = Form(""),
    confirm_password: str = Form(""),
    name: str = Form(""),
    db: Session = Depends(get_db),
) -> Response:
    """Handle register form submission."""
    email = email.strip()
    name = name.strip()
    errors: dict[str, str] = {}
    if "@" not in email:
        errors["email"] = "Enter a valid email address"
    elif len(email) > EMAIL_MAX_LENGTH:
        errors["email"] = f"Email cannot exceed {EMAIL_MAX_LENGTH} characters"
    if not name:
        errors["name"] = "Name is required"
    elif len(name) > NAME_MAX_LENGTH:
        errors["name"] = f"Name cannot exceed {NAME_MAX_LENGTH} characters"
    password_error = _password_error(password)
    if password_error:
        errors["password"] = password_error
    if password != confirm_password:
        errors["confirm_password"] = "Passwords do not match"

    if not errors:
        try:
            user = get_auth_service().create_user(db, email, password, name)
        except DuplicateEmailError as e:
            errors["email"] = e.message
        else:
            return _login_redirect(user.id, user.email, user.display_name)

    return templates.TemplateResponse(
        request,
        "auth/register.html",
        {"errors": errors, "email": email, "name": name},
    )


@app.get("/auth/forgot", response_class=HTMLResponse)
def forgot_page(request: Request) -> HTMLResponse:
    """Render forgot password page."""
    return templates.TemplateResponse(request, "auth/forgot.html", {})


@app.post("/auth/forgot", response_class=HTMLResponse)
@limiter.limit("3/minute")
def forgot_submit(request: Request, email: str = Form(""), db: Session = Depends(get_db)) -> HTMLResponse:
    """Handle forgot password form. Always shows the same message."""
    email = email.strip()
    if not email:
        return templates.TemplateResponse(request, "auth/forgot.html", {"error": "Email is required"})

    try:
        get_password_reset_service().request(db, email)
    except NotificationError:
        logger.warning("Reset email delivery failed; showing the generic message")

    return templates.TemplateResponse(request, "auth/forgot.html", {"success": RESET_REQUESTED_MESSAGE})


@app.get("/auth/reset/{token}", response_class=HTMLResponse)
def reset_page(request: Request, token: str) -> HTMLResponse:
    """Render the set-new-password form."""
    return templates.TemplateResponse(request, "auth/reset.html", {"token": token})


@app.post("/auth/reset/{token}", response_class=HTMLResponse)
@limiter.limit("5/minute")
def reset_submit(
    request: Request,
    token: str,
    new_password: str = Form(""),
    db: Session = Depends(get_db),
) -> Response:
    """Handle the set-new-password form."""
    error = _password_error(new_password)
    if error is None:
        try:
            get_password_reset_service().reset(db, token, new_password)
        except (InvalidTokenError, TokenExpiredError) as e:
            error = e.message
        else:
            return RedirectResponse(url="/auth/login?reset=1", status_code=302)

    return templates.TemplateResponse(request, "auth/reset.html", {"token": token, "error": error})


@app.api_route("/auth/logout", methods=["GET", "POST"])
def logout() -> RedirectResponse:
    """Clear auth cookie and redirect to login."""
    response = RedirectResponse(url="/auth/login?logout=1", status_code=302)
    clear_auth_cookie(response)
    return response


@app.get("/dashboard", response_class=HTMLResponse)
def dashboard(request: Request, principal: Principal = Depends(require_web_principal)) -> HTMLResponse:
    """Render the dashboard for the authenticated principal."""
    return templates.TemplateResponse(
        request,
        "dashboard.html",
        {"principal": principal, "authorities": sorted(principal.authorities)},
    )
