"""Authentication and credential lifecycle exceptions.

Raised by the services and repositories and translated to form errors or
HTTP responses by the routers. Messages are safe to show to the user.
"""


class AuthError(Exception):
    """Base exception for all authentication errors."""

    def __init__(self, message: str = "Authentication error"):
        self.message = message
        super().__init__(self.message)


class DuplicateEmailError(AuthError):
    """Raised when registering an email that already belongs to a user."""

    def __init__(self, message: str = "Email already registered"):
        super().__init__(message)


class InvalidArgumentError(AuthError):
    """Raised when a required input is missing or empty."""

    def __init__(self, message: str = "Missing required argument"):
        super().__init__(message)


class TokenInvalidError(AuthError):
    """Raised when an access token fails verification.

    The message is the same for every cause (signature, structure, issuer,
    expiry) so callers cannot learn which check failed.
    """

    def __init__(self, message: str = "Invalid or expired token"):
        super().__init__(message)


class InvalidTokenError(AuthError):
    """Raised when a reset token does not exist or was already used."""

    def __init__(self, message: str = "Invalid reset token"):
        super().__init__(message)


class TokenExpiredError(AuthError):
    """Raised when a reset token exists and is unused but past its expiry."""

    def __init__(self, message: str = "Reset token has expired"):
        super().__init__(message)


class InvalidCredentialsError(AuthError):
    """Raised when email or password is incorrect during login."""

    def __init__(self, message: str = "Invalid email or password"):
        super().__init__(message)


class AccountDisabledError(AuthError):
    """Raised when a disabled user tries to log in."""

    def __init__(self, message: str = "Account is disabled"):
        super().__init__(message)


class NotificationError(AuthError):
    """Raised when the reset email could not be delivered."""

    def __init__(self, message: str = "Could not send notification"):
        super().__init__(message)


class ConfigurationError(AuthError):
    """Raised when a setting is unusable, e.g. a too-short signing key."""

    def __init__(self, message: str = "Invalid configuration"):
        super().__init__(message)
