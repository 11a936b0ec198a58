"""Authentication API endpoints."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import Principal, clear_auth_cookie, require_principal, set_auth_cookie
from app.exceptions import (
    AccountDisabledError,
    DuplicateEmailError,
    InvalidCredentialsError,
    InvalidTokenError,
    NotificationError,
    TokenExpiredError,
)
from app.rate_limit import limiter
from app.schemas.auth import (
    ForgotPasswordRequest,
    LoginRequest,
    MessageResponse,
    PrincipalResponse,
    RegisterRequest,
    ResetPasswordRequest,
    TokenResponse,
    UserResponse,
)
from app.services.auth import get_auth_service
from app.services.jwt import get_jwt_service
from app.services.password_reset import get_password_reset_service

logger = logging.getLogger("login_portal")

RESET_REQUESTED_MESSAGE = "If an account exists for that email, a password reset link has been sent."

router = APIRouter(prefix="/api/v1/auth", tags=["Authentication"])


@router.post("/register", response_model=UserResponse, status_code=201)
@limiter.limit("5/minute")
def register(request: Request, response: Response, body: RegisterRequest, db: Session = Depends(get_db)) -> UserResponse:
    """Register a new user account and log it in."""
    try:
        user = get_auth_service().create_user(db, body.email, body.password, body.name)
    except DuplicateEmailError as e:
        raise HTTPException(status_code=409, detail=e.message) from None

    token = get_jwt_service().issue(user.id, user.email, user.display_name)
    set_auth_cookie(response, token)
    return UserResponse(id=user.id, email=user.email, name=user.display_name)


@router.post("/login", response_model=TokenResponse)
@limiter.limit("10/minute")
def login(request: Request, response: Response, body: LoginRequest, db: Session = Depends(get_db)) -> TokenResponse:
    """Authenticate, set the access token cookie and return the token."""
    try:
        user = get_auth_service().authenticate(db, body.email, body.password)
    except (InvalidCredentialsError, AccountDisabledError) as e:
        raise HTTPException(status_code=401, detail=e.message) from None

    token = get_jwt_service().issue(user.id, user.email, user.display_name)
    set_auth_cookie(response, token)
    return TokenResponse(token=token, email=user.email, name=user.display_name)


@router.post("/logout", status_code=204)
def logout() -> Response:
    """Clear the access token cookie."""
    response = Response(status_code=204)
    clear_auth_cookie(response)
    return response


@router.get("/me", response_model=PrincipalResponse)
def me(principal: Principal = Depends(require_principal)) -> PrincipalResponse:
    """Return the authenticated principal."""
    return PrincipalResponse(
        user_id=principal.user_id,
        email=principal.email,
        name=principal.display_name,
        authorities=sorted(principal.authorities),
    )


@router.post("/forgot-password", response_model=MessageResponse, status_code=202)
@limiter.limit("3/minute")
def forgot_password(request: Request, body: ForgotPasswordRequest, db: Session = Depends(get_db)) -> MessageResponse:
    """Request a password reset. The response never reveals whether the email exists."""
    try:
        get_password_reset_service().request(db, body.email.strip())
    except NotificationError:
        logger.warning("Reset email delivery failed; responding with the generic message")
    return MessageResponse(message=RESET_REQUESTED_MESSAGE)


@router.post("/reset-password", status_code=204)
@limiter.limit("5/minute")
def reset_password(request: Request, body: ResetPasswordRequest, db: Session = Depends(get_db)) -> Response:
    """Reset password using a valid reset token."""
    try:
        get_password_reset_service().reset(db, body.token, body.new_password)
    except (InvalidTokenError, TokenExpiredError) as e:
        raise HTTPException(status_code=400, detail=e.message) from None
    return Response(status_code=204)
