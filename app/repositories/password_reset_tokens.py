"""Password reset token repository."""

from datetime import datetime

from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.models.password_reset_token import PasswordResetToken


class PasswordResetTokenRepository:
    """Reset token store queries."""

    def __init__(self, db: Session) -> None:
        self._db = db

    def find_unused_by_token(self, token: str, lock: bool = False) -> PasswordResetToken | None:
        """Find a token that has not been used yet.

        Unknown and already-used tokens both return None. With ``lock`` the
        row is selected FOR UPDATE on databases that support it.
        """
        query = self._db.query(PasswordResetToken).filter(
            PasswordResetToken.token == token,
            PasswordResetToken.used.is_(False),
        )
        if lock:
            query = query.with_for_update()
        return query.first()

    def save(self, reset_token: PasswordResetToken) -> PasswordResetToken:
        self._db.add(reset_token)
        self._db.flush()
        return reset_token

    def mark_used(self, reset_token: PasswordResetToken) -> bool:
        """Flip ``used`` to true only if it is still false.

        Returns False when another transaction consumed the token first.
        """
        updated = (
            self._db.query(PasswordResetToken)
            .filter(
                PasswordResetToken.id == reset_token.id,
                PasswordResetToken.used.is_(False),
            )
            .update({PasswordResetToken.used: True}, synchronize_session="fetch")
        )
        return updated == 1

    def purge_stale_for_user(self, user_id: int, now: datetime) -> int:
        """Delete the user's used or expired tokens; returns rows removed."""
        return (
            self._db.query(PasswordResetToken)
            .filter(
                PasswordResetToken.user_id == user_id,
                or_(PasswordResetToken.used.is_(True), PasswordResetToken.expires_at < now),
            )
            .delete(synchronize_session="fetch")
        )
