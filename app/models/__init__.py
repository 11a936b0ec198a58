"""ORM models. Importing this package registers every table on Base.metadata."""

from app.models.password_reset_token import PasswordResetToken
from app.models.refresh_token import RefreshToken
from app.models.user import User

__all__ = ["User", "PasswordResetToken", "RefreshToken"]
