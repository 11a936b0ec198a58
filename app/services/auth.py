"""Registration and login service."""

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.clock import utc_now
from app.exceptions import AccountDisabledError, DuplicateEmailError, InvalidCredentialsError
from app.models.user import User
from app.repositories.users import UserRepository
from app.services.passwords import PasswordHasher, get_password_hasher

logger = logging.getLogger("login_portal")


class AuthService:
    """Handles user registration and authentication."""

    def __init__(self, hasher: PasswordHasher | None = None) -> None:
        self._hasher = hasher or get_password_hasher()

    def create_user(self, db: Session, email: str, password: str, name: str) -> User:
        """Register a new user and return it with its assigned id.

        Raises DuplicateEmailError if the email is taken, including when a
        concurrent registration wins the race to the unique constraint.
        """
        users = UserRepository(db)
        if users.find_by_email(email) is not None:
            logger.info("Registration rejected: duplicate email")
            raise DuplicateEmailError()

        user = User.new(email=email, password_hash=self._hasher.hash(password), display_name=name)
        try:
            users.save(user)
            db.commit()
        except IntegrityError as e:
            db.rollback()
            logger.info("Registration rejected: email taken concurrently")
            raise DuplicateEmailError() from e

        db.refresh(user)
        logger.info("User %s registered", user.id)
        return user

    def authenticate(self, db: Session, email: str, password: str) -> User:
        """Authenticate a user by email and password."""
        user = UserRepository(db).find_by_email(email)
        if user is None:
            self._hasher.dummy_verify(password)
            logger.info("Login failed: unknown email")
            raise InvalidCredentialsError()

        if not self._hasher.verify(password, user.password_hash):
            logger.info("Login failed for user %s: wrong password", user.id)
            raise InvalidCredentialsError()

        if not user.enabled:
            logger.info("Login refused for disabled user %s", user.id)
            raise AccountDisabledError()

        user.last_login_at = utc_now()
        db.commit()
        db.refresh(user)
        return user


_auth_service: AuthService | None = None


def get_auth_service() -> AuthService:
    """Get singleton auth service instance."""
    global _auth_service
    if _auth_service is None:
        _auth_service = AuthService()
    return _auth_service
