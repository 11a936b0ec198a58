"""Storage access for users and tokens.

Repositories flush but never commit; the calling service owns the
transaction.
"""

from app.repositories.password_reset_tokens import PasswordResetTokenRepository
from app.repositories.refresh_tokens import RefreshTokenRepository
from app.repositories.users import UserRepository

__all__ = ["UserRepository", "PasswordResetTokenRepository", "RefreshTokenRepository"]
