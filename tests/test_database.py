"""Tests for engine construction."""

from sqlalchemy import text
from sqlalchemy.orm import Session

from app.database import build_engine
from app.models import PasswordResetToken, User
from app.repositories import PasswordResetTokenRepository, UserRepository


class TestBuildEngine:
    def test_sqlite_enforces_foreign_keys(self):
        engine = build_engine("sqlite://")
        with engine.connect() as connection:
            assert connection.execute(text("PRAGMA foreign_keys")).scalar() == 1

    def test_deleting_user_removes_reset_tokens(self, db_session: Session):
        """Reset tokens go with their user."""
        users = UserRepository(db_session)
        user = users.save(User.new("gone@example.com", "hash", "Gone"))
        PasswordResetTokenRepository(db_session).save(PasswordResetToken.issue(user, 30))
        db_session.commit()

        users.delete(user)
        db_session.commit()

        remaining = db_session.execute(text("SELECT COUNT(*) FROM password_reset_tokens")).scalar()
        assert remaining == 0
