"""Password hashing with bcrypt."""

import logging

import bcrypt

from app.config import get_settings
from app.exceptions import InvalidArgumentError

logger = logging.getLogger("login_portal")

# bcrypt only reads the first 72 bytes of its input.
BCRYPT_MAX_BYTES = 72


def password_too_long(password: str) -> bool:
    """True when ``password`` exceeds what bcrypt can hash without truncating."""
    return len(password.encode("utf-8")) > BCRYPT_MAX_BYTES


class PasswordHasher:
    """Salted, adaptive one-way hashing of passwords.

    Passwords longer than 72 UTF-8 bytes are refused by ``hash`` and never
    verify, so two passwords sharing a 72 byte prefix cannot collide.
    ``verify`` never raises: a malformed stored hash is reported as a
    mismatch after the same amount of bcrypt work as a real comparison.
    """

    def __init__(self, rounds: int = 12) -> None:
        self._rounds = rounds
        self._dummy_hash = bcrypt.hashpw(b"login-portal-dummy", bcrypt.gensalt(rounds=rounds))

    def hash(self, password: str) -> str:
        """Hash a plaintext password."""
        if password_too_long(password):
            raise InvalidArgumentError(f"Password cannot exceed {BCRYPT_MAX_BYTES} bytes")
        salt = bcrypt.gensalt(rounds=self._rounds)
        return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")

    def verify(self, password: str, password_hash: str) -> bool:
        """Check a plaintext password against a stored hash."""
        if password_too_long(password):
            self.dummy_verify(password)
            return False
        try:
            return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
        except (ValueError, TypeError, AttributeError):
            logger.warning("Malformed password hash encountered during verification")
            self.dummy_verify(password)
            return False

    def dummy_verify(self, password: str) -> None:
        """Spend one bcrypt comparison without a real hash to compare against."""
        # Result is discarded, so a cut-down input only has to cost the same.
        bcrypt.checkpw(password.encode("utf-8")[:BCRYPT_MAX_BYTES], self._dummy_hash)


_password_hasher: PasswordHasher | None = None


def get_password_hasher() -> PasswordHasher:
    """Get singleton password hasher instance."""
    global _password_hasher
    if _password_hasher is None:
        _password_hasher = PasswordHasher(rounds=get_settings().BCRYPT_ROUNDS)
    return _password_hasher
