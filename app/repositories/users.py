"""User repository."""

from sqlalchemy.orm import Session

from app.models.user import User


class UserRepository:
    """Credential store queries. Email matching is exact and case-sensitive."""

    def __init__(self, db: Session) -> None:
        self._db = db

    def find_by_email(self, email: str) -> User | None:
        return self._db.query(User).filter(User.email == email).first()

    def find_by_id(self, user_id: int) -> User | None:
        return self._db.get(User, user_id)

    def save(self, user: User) -> User:
        """Add or update a user and flush so the id is assigned."""
        self._db.add(user)
        self._db.flush()
        return user

    def delete(self, user: User) -> None:
        self._db.delete(user)
        self._db.flush()
