"""
auth/errors.py -- Domain exceptions raised by the auth core.

Every exception carries a stable machine-readable ``code`` and a public
``message`` that is safe to show a client. The HTTP layer maps each class to a
status code in one place (api/main.py); nothing in auth/ knows about HTTP.

Messages never include hashes, internal ids or stack detail.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations


class AuthError(Exception):
    """Base class for all auth domain failures."""

    code: str = "auth_error"
    message: str = "Authentication failed."

    def __init__(self, message: str | None = None) -> None:
        if message is not None:
            self.message = message
        super().__init__(self.message)


class InvalidInput(AuthError):
    """Caller-supplied data is missing or malformed."""

    code = "invalid_input"
    message = "Invalid input."


class InvalidCredentials(AuthError):
    """Unknown email, inactive account, or wrong password.

    One class for all three so responses cannot be used to enumerate accounts.
    """

    code = "invalid_credentials"
    message = "Invalid credentials."


class AccountLocked(AuthError):
    code = "account_locked"
    message = "Account is temporarily locked due to too many failed login attempts."


class DuplicateEmail(AuthError):
    code = "duplicate_email"
    message = "Email already exists."


class InvalidToken(AuthError):
    code = "invalid_token"
    message = "Invalid token."


class TokenExpired(AuthError):
    code = "token_expired"
    message = "Token expired."


class SigningKeyMissing(AuthError):
    """Token operation attempted without a configured signing key."""

    code = "internal_error"
    message = "An unexpected error occurred."
