"""Refresh token repository (reserved; no flow uses it yet)."""

from sqlalchemy.orm import Session

from app.models.refresh_token import RefreshToken


class RefreshTokenRepository:
    def __init__(self, db: Session) -> None:
        self._db = db

    def find_by_token_hash(self, token_hash: str) -> RefreshToken | None:
        return self._db.query(RefreshToken).filter(RefreshToken.token_hash == token_hash).first()

    def save(self, refresh_token: RefreshToken) -> RefreshToken:
        self._db.add(refresh_token)
        self._db.flush()
        return refresh_token

    def delete_by_token_hash(self, token_hash: str) -> int:
        return (
            self._db.query(RefreshToken)
            .filter(RefreshToken.token_hash == token_hash)
            .delete(synchronize_session="fetch")
        )
