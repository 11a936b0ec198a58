"""Password reset token model."""

import secrets
from datetime import datetime, timedelta

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from app.clock import utc_now
from app.database import Base
from app.models.user import User


class PasswordResetToken(Base):
    """Single-use, time-limited token authorizing one password change."""

    __tablename__ = "password_reset_tokens"

    id = Column(Integer, primary_key=True, autoincrement=True)
    token = Column(String(128), unique=True, nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    expires_at = Column(DateTime, nullable=False)
    used = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=utc_now)

    user = relationship(User)

    @classmethod
    def issue(cls, user: User, ttl_minutes: int) -> "PasswordResetToken":
        """Create an unused token for ``user`` with a fresh random value."""
        now = utc_now()
        return cls(
            token=secrets.token_urlsafe(32),
            user=user,
            expires_at=now + timedelta(minutes=ttl_minutes),
            used=False,
            created_at=now,
        )

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at < now
