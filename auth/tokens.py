"""
auth/tokens.py -- JWT issuance and verification.

Security design decisions:
  JWT: python-jose with HS256. Tokens are signed with the configured secret
       and carry the account id (sub), email, role, iat and exp. HMAC-SHA256
       over header+payload means any changed byte in either, or in the
       signature, fails verification.

  Stateless: there is no token table. A token stays cryptographically valid
       until exp; AuthService re-reads the account on every verification so a
       deactivated account is rejected immediately.

  Config: the secret, the validity window and the clock are constructor
       arguments. Nothing here reads the environment, so tests can inject a
       key and a fake clock.

  Expiry is checked against the injected clock rather than jose's wall-clock
       check, so "token has expired" can be simulated without waiting.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from auth.errors import InvalidInput, InvalidToken, SigningKeyMissing, TokenExpired
from auth.models import Admin

logger = logging.getLogger("portfolio.auth")

ALGORITHM = "HS256"

# 7 days -- the window the admin frontend has always been issued.
DEFAULT_EXPIRE_SECONDS = 7 * 24 * 60 * 60

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenSigner:
    """Sign and verify session tokens with one process-wide secret.

    Usage:
        signer = TokenSigner(secret_key=settings.jwt_secret)
        token = signer.issue(admin)
        claims = signer.decode(token)   # raises InvalidToken / TokenExpired
    """

    def __init__(
        self,
        secret_key: str,
        expire_seconds: int = DEFAULT_EXPIRE_SECONDS,
        clock: Clock = utcnow,
    ) -> None:
        self._secret_key = secret_key
        self.expire_seconds = expire_seconds if expire_seconds > 0 else DEFAULT_EXPIRE_SECONDS
        self._clock = clock

    def _key(self) -> str:
        # Fail every token operation the same way when no key is configured.
        if not self._secret_key:
            logger.error("Token operation attempted without a signing key")
            raise SigningKeyMissing()
        return self._secret_key

    def issue(self, admin: Admin) -> str:
        """Encode a signed JWT for the account snapshot."""
        key = self._key()
        issued_at = self._clock()
        payload = {
            "sub": str(admin.id),
            "email": admin.email,
            "role": admin.role,
            "iat": issued_at,
            "exp": issued_at + timedelta(seconds=self.expire_seconds),
        }
        return jwt.encode(payload, key, algorithm=ALGORITHM)

    def decode(self, token: str) -> dict:
        """Verify signature and expiry; return the claims.

        Raises InvalidInput for an empty or non-string token, InvalidToken for
        a bad signature, malformed structure or missing claims, and
        TokenExpired once exp has passed on the injected clock.
        """
        if not isinstance(token, str) or not token.strip():
            raise InvalidInput("Token is required.")
        key = self._key()
        # No require_exp: jose turns each require_* back into a verify_* against
        # the wall clock. exp is checked below on the injected clock.
        try:
            claims = jwt.decode(
                token.strip(),
                key,
                algorithms=[ALGORITHM],
                options={"verify_exp": False, "require_sub": True},
            )
        except JWTError as exc:
            raise InvalidToken() from exc

        exp = claims.get("exp")
        if not isinstance(exp, (int, float)):
            raise InvalidToken()
        if exp <= self._clock().timestamp():
            raise TokenExpired()
        try:
            claims["sub"] = int(claims["sub"])
        except (TypeError, ValueError) as exc:
            raise InvalidToken() from exc
        return claims
