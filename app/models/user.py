"""User model."""

from sqlalchemy import Boolean, Column, DateTime, Integer, String

from app.clock import utc_now
from app.database import Base


class User(Base):
    """Application user. Email is the login identifier."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(256), unique=True, nullable=False, index=True)
    password_hash = Column(String(256), nullable=False)
    display_name = Column(String(256), nullable=False)
    enabled = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=utc_now)
    last_login_at = Column(DateTime, nullable=True)

    @classmethod
    def new(cls, email: str, password_hash: str, display_name: str) -> "User":
        """Build an enabled user; every field is required."""
        if not email or not password_hash or not display_name:
            raise ValueError("email, password_hash and display_name are required")
        return cls(
            email=email,
            password_hash=password_hash,
            display_name=display_name,
            enabled=True,
            created_at=utc_now(),
        )

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r}>"
