"""Password reset service.

Two independent operations share state through the reset token table:

* ``request`` issues a token and mails the link. Unknown emails return
  silently so callers cannot tell whether an account exists.
* ``reset`` redeems a token. The password change and the used flag are
  committed together or rolled back together.
"""

import logging

from sqlalchemy.orm import Session

from app.clock import utc_now
from app.config import get_settings
from app.exceptions import InvalidTokenError, NotificationError, TokenExpiredError
from app.models.password_reset_token import PasswordResetToken
from app.repositories.password_reset_tokens import PasswordResetTokenRepository
from app.repositories.users import UserRepository
from app.services.mail import Notifier, get_mail_service
from app.services.passwords import PasswordHasher, get_password_hasher

logger = logging.getLogger("login_portal")


class PasswordResetService:
    """Issues and redeems single-use password reset tokens."""

    def __init__(self, hasher: PasswordHasher, notifier: Notifier, ttl_minutes: int) -> None:
        self._hasher = hasher
        self._notifier = notifier
        self._ttl_minutes = ttl_minutes

    def request(self, db: Session, email: str) -> None:
        """Issue a reset token for ``email`` and send the link.

        Earlier outstanding tokens stay valid; only the user's used or
        expired tokens are purged.
        """
        user = UserRepository(db).find_by_email(email)
        if user is None:
            logger.debug("Password reset requested for unknown email")
            return

        tokens = PasswordResetTokenRepository(db)
        purged = tokens.purge_stale_for_user(user.id, utc_now())
        if purged:
            logger.debug("Purged %d stale reset tokens for user %s", purged, user.id)

        reset_token = tokens.save(PasswordResetToken.issue(user, self._ttl_minutes))
        try:
            self._notifier.send_reset_email(user.email, reset_token.token)
        except NotificationError:
            db.rollback()
            logger.exception("Password reset email for user %s could not be sent", user.id)
            raise

        db.commit()
        logger.info("Password reset requested for user %s", user.id)

    def reset(self, db: Session, token: str, new_password: str) -> None:
        """Redeem ``token`` and set ``new_password`` on its owner.

        Raises InvalidTokenError for unknown or used tokens and
        TokenExpiredError for unused tokens past their expiry. The
        password is never hashed for a token that fails either check.
        """
        if not token:
            raise InvalidTokenError()

        tokens = PasswordResetTokenRepository(db)
        try:
            reset_token = tokens.find_unused_by_token(token, lock=True)
            if reset_token is None:
                raise InvalidTokenError()
            if reset_token.is_expired(utc_now()):
                raise TokenExpiredError()

            user = reset_token.user
            user.password_hash = self._hasher.hash(new_password)
            UserRepository(db).save(user)

            # Zero rows means a concurrent redeem committed first.
            if not tokens.mark_used(reset_token):
                raise InvalidTokenError()

            db.commit()
        except Exception:
            db.rollback()
            raise

        logger.info("Password reset completed for user %s", user.id)


_password_reset_service: PasswordResetService | None = None


def get_password_reset_service() -> PasswordResetService:
    """Get singleton password reset service instance."""
    global _password_reset_service
    if _password_reset_service is None:
        _password_reset_service = PasswordResetService(
            hasher=get_password_hasher(),
            notifier=get_mail_service(),
            ttl_minutes=get_settings().RESET_TOKEN_TTL_MINUTES,
        )
    return _password_reset_service
