"""JWT Token Service."""

import base64
import binascii
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt
from jose.utils import base64url_decode, base64url_encode

from app.config import get_settings
from app.exceptions import ConfigurationError, InvalidArgumentError, TokenInvalidError

ALGORITHM = "HS256"
MIN_KEY_BYTES = 32


def decode_secret(base64_secret: str) -> bytes:
    """Decode the base64 signing secret, requiring at least 256 bits."""
    try:
        key = base64.b64decode(base64_secret, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ConfigurationError("JWT_SECRET must be base64 encoded") from e
    if len(key) < MIN_KEY_BYTES:
        raise ConfigurationError(f"JWT_SECRET must decode to at least {MIN_KEY_BYTES} bytes")
    return key


def _has_canonical_signature(token: str) -> bool:
    # base64url tolerates stray low bits in the last character; re-encoding
    # catches tokens whose signature text differs but decodes the same.
    parts = token.split(".")
    if len(parts) != 3:
        return False
    signature = parts[2].encode("ascii", errors="replace")
    try:
        return base64url_encode(base64url_decode(signature)) == signature
    except (binascii.Error, ValueError):
        return False


class JWTService:
    """Issues and verifies HS256 access tokens."""

    def __init__(self, base64_secret: str, issuer: str, ttl_minutes: int) -> None:
        self._key = decode_secret(base64_secret)
        self.issuer = issuer
        self.ttl_minutes = ttl_minutes

    def issue(self, user_id: int, email: str, name: str, ttl_minutes: int | None = None) -> str:
        """Create a signed access token for the given user."""
        now = datetime.now(timezone.utc)
        ttl = self.ttl_minutes if ttl_minutes is None else ttl_minutes
        payload = {
            "sub": str(user_id),
            "email": email,
            "name": name,
            "iss": self.issuer,
            "iat": int(now.timestamp()),
            "exp": int((now + timedelta(minutes=ttl)).timestamp()),
        }
        return jwt.encode(payload, self._key, algorithm=ALGORITHM)

    def decode(self, token: str | None) -> dict:
        """Verify a token and return its claims."""
        if not token:
            raise InvalidArgumentError("Token must not be empty")
        if not _has_canonical_signature(token):
            raise TokenInvalidError()
        try:
            return jwt.decode(
                token,
                self._key,
                algorithms=[ALGORITHM],
                issuer=self.issuer,
                options={"require_exp": True, "require_sub": True, "leeway": 0},
            )
        except JWTError as e:
            raise TokenInvalidError() from e

    def verify(self, token: str | None) -> int:
        """Verify a token and return the user id in its subject."""
        claims = self.decode(token)
        try:
            return int(claims["sub"])
        except (KeyError, TypeError, ValueError) as e:
            raise TokenInvalidError() from e


_jwt_service: JWTService | None = None


def get_jwt_service() -> JWTService:
    """Get singleton JWT service instance."""
    global _jwt_service
    if _jwt_service is None:
        settings = get_settings()
        _jwt_service = JWTService(
            base64_secret=settings.JWT_SECRET,
            issuer=settings.JWT_ISSUER,
            ttl_minutes=settings.ACCESS_TOKEN_TTL_MINUTES,
        )
    return _jwt_service
