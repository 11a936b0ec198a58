"""Configuration settings for Login Portal."""

import base64
import os
import secrets
from functools import lru_cache

from dotenv import load_dotenv

load_dotenv()


def _split_csv(value: str) -> tuple[str, ...]:
    return tuple(item.strip() for item in value.split(",") if item.strip())


class Settings:
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./login_portal.db")

    # JWT
    JWT_SECRET: str = os.getenv("JWT_SECRET", "")
    JWT_ISSUER: str = os.getenv("JWT_ISSUER", "login-portal")
    ACCESS_TOKEN_TTL_MINUTES: int = int(os.getenv("ACCESS_TOKEN_TTL_MINUTES", "15"))

    # Password reset
    RESET_TOKEN_TTL_MINUTES: int = int(os.getenv("RESET_TOKEN_TTL_MINUTES", "30"))
    BASE_URL: str = os.getenv("BASE_URL", "http://localhost:8000")

    # Password hashing
    BCRYPT_ROUNDS: int = int(os.getenv("BCRYPT_ROUNDS", "12"))

    # Cookie
    COOKIE_SECURE: bool = os.getenv("COOKIE_SECURE", "false").lower() == "true"
    COOKIE_DOMAIN: str | None = os.getenv("COOKIE_DOMAIN") or None
    COOKIE_SAMESITE: str = os.getenv("COOKIE_SAMESITE", "lax")

    # Paths the authentication middleware skips ("/" is matched exactly)
    AUTH_EXEMPT_PREFIXES: tuple[str, ...] = _split_csv(
        os.getenv("AUTH_EXEMPT_PREFIXES", "/auth/,/static/,/css/,/js/,/images/")
    )

    # Origins allowed to call the API with credentials; empty means same-origin only
    CORS_ORIGINS: tuple[str, ...] = _split_csv(os.getenv("CORS_ORIGINS", ""))

    # SMTP
    SMTP_ENABLED: bool = os.getenv("SMTP_ENABLED", "false").lower() == "true"
    SMTP_HOST: str = os.getenv("SMTP_HOST", "")
    SMTP_PORT: int = int(os.getenv("SMTP_PORT", "587"))
    SMTP_USER: str = os.getenv("SMTP_USER", "")
    SMTP_PASSWORD: str = os.getenv("SMTP_PASSWORD", "")
    SMTP_STARTTLS: bool = os.getenv("SMTP_STARTTLS", "true").lower() == "true"
    SMTP_USE_TLS: bool = os.getenv("SMTP_USE_TLS", "false").lower() == "true"
    SMTP_FROM_EMAIL: str = os.getenv("SMTP_FROM_EMAIL", "no-reply@localhost")
    SMTP_FROM_NAME: str = os.getenv("SMTP_FROM_NAME", "Login Portal")

    # Application
    APP_ENV: str = os.getenv("APP_ENV", "development")
    DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"

    def __init__(self) -> None:
        self.jwt_secret_generated = not self.JWT_SECRET
        if self.jwt_secret_generated:
            self.JWT_SECRET = base64.b64encode(secrets.token_bytes(32)).decode("ascii")

    def validate(self) -> list[str]:
        """Validate settings and return list of warnings."""
        warnings = []
        if self.jwt_secret_generated:
            warnings.append("JWT_SECRET is not set - using auto-generated key (not persistent across restarts)")
        if self.SMTP_ENABLED and not self.SMTP_HOST:
            warnings.append("SMTP_ENABLED is true but SMTP_HOST is empty - reset emails will fail")
        if not self.SMTP_ENABLED and self.APP_ENV == "production":
            warnings.append("SMTP is disabled in production - password reset emails will not be sent")
        elif not self.SMTP_ENABLED:
            warnings.append("SMTP is disabled - password reset links are written to the log")
        if self.APP_ENV == "production" and not self.COOKIE_SECURE:
            warnings.append("COOKIE_SECURE is false in production")
        if "*" in self.CORS_ORIGINS:
            warnings.append("CORS_ORIGINS contains \"*\" - browsers refuse credentialed wildcard CORS")
        return warnings


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
