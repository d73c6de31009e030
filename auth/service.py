"""
auth/service.py -- Login, lockout, token verification and credential changes.

AuthService is the only code that mutates an account's lockout counters,
last_login and password. It works on frozen Admin snapshots: each step builds
a new snapshot with dataclasses.replace() and persists it with an explicit
AdminStore.save() call.

Lockout state machine (per account, driven only by login attempts):

    Unlocked(n) --mismatch--> Unlocked(n+1)       if n+1 < MAX_FAILED_ATTEMPTS
    Unlocked(n) --mismatch--> Locked(now+30m)     if n+1 >= MAX_FAILED_ATTEMPTS
    Unlocked(n) --match-----> Unlocked(0)
    Locked(t)   --attempt while now < t--> rejected before the password check
    Locked(t)   --attempt at/after t-----> evaluated as Unlocked(stored n)

Expiry is lazy: there is no sweeper, only the comparison of locked_until with
the injected clock at each attempt. Concurrent attempts on the same account
are last-writer-wins through save().

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import timedelta

from auth.errors import AccountLocked, InvalidCredentials, InvalidInput, InvalidToken
from auth.models import Admin, is_locked
from auth.passwords import DUMMY_HASH, MAX_PASSWORD_BYTES, password_too_long, verify_password
from auth.store import AdminStore, normalize_email
from auth.tokens import Clock, TokenSigner, utcnow

logger = logging.getLogger("portfolio.auth")

MAX_FAILED_ATTEMPTS = 5
LOCK_DURATION = timedelta(minutes=30)
MIN_PASSWORD_LENGTH = 6


@dataclass(frozen=True)
class LoginResult:
    token: str
    admin: Admin


class AuthService:
    """Auth session operations over an AdminStore.

    Usage:
        service = AuthService(store, TokenSigner(secret_key))
        result = service.login("admin@example.com", "secret")
        admin = service.verify_token(result.token)
    """

    def __init__(self, store: AdminStore, signer: TokenSigner, clock: Clock = utcnow) -> None:
        self.store = store
        self.signer = signer
        self._clock = clock

    # ------------------------------------------------------------------
    # Login
    # ------------------------------------------------------------------

    def login(self, email: str | None, password: str | None) -> LoginResult:
        """Authenticate with email and password and issue a session token.

        Raises:
            InvalidInput:       email or password missing.
            InvalidCredentials: unknown email, inactive account, or wrong
                                password (deliberately indistinguishable).
            AccountLocked:      locked_until is still in the future.
        """
        email = normalize_email(email or "")
        if not email or not password:
            raise InvalidInput("Email and password are required.")

        admin = self.store.find_by_email(email)
        if admin is None or not admin.is_active:
            # Equalize timing with the wrong-password path.
            verify_password(password, DUMMY_HASH)
            logger.info("Login rejected: unknown or inactive account")
            raise InvalidCredentials()

        now = self._clock()
        if is_locked(admin, now):
            logger.warning("Login rejected: admin %s is locked until %s", admin.id, admin.locked_until.isoformat())
            raise AccountLocked()

        if not verify_password(password, admin.hashed_password):
            self._record_failure(admin)
            raise InvalidCredentials()

        admin = self.store.save(
            replace(admin, failed_login_attempts=0, locked_until=None, last_login=now),
        )
        logger.info("Admin %s logged in", admin.id)
        return LoginResult(token=self.issue_token(admin), admin=admin)

    def _record_failure(self, admin: Admin) -> Admin:
        attempts = admin.failed_login_attempts + 1
        locked_until = admin.locked_until
        if attempts >= MAX_FAILED_ATTEMPTS:
            locked_until = self._clock() + LOCK_DURATION
            logger.warning("Admin %s locked after %d failed attempts", admin.id, attempts)
        else:
            logger.info("Failed login for admin %s (%d/%d)", admin.id, attempts, MAX_FAILED_ATTEMPTS)
        return self.store.save(replace(admin, failed_login_attempts=attempts, locked_until=locked_until))

    # ------------------------------------------------------------------
    # Tokens
    # ------------------------------------------------------------------

    def issue_token(self, admin: Admin) -> str:
        return self.signer.issue(admin)

    def verify_token(self, token: str | None) -> Admin:
        """Validate a token and return the current account snapshot.

        The account is re-read on every call, so deactivation takes effect
        immediately even though the token is still within its expiry.

        Raises InvalidInput, InvalidToken or TokenExpired.
        """
        claims = self.signer.decode(token)
        admin = self.store.find_by_id(claims["sub"])
        if admin is None or not admin.is_active:
            raise InvalidToken()
        return admin

    def authenticate_request(self, token: str | None) -> Admin:
        """Gate for privileged operations: the verified account is the proof of identity.

        Same checks as verify_token(). The HTTP dependency turns every failure
        into 401 Unauthorized.
        """
        return self.verify_token(token)

    # ------------------------------------------------------------------
    # Credential and profile changes
    # ------------------------------------------------------------------

    def change_password(self, admin_id: int, current_password: str | None, new_password: str | None) -> None:
        """Replace the password after verifying the current one.

        The store re-hashes new_password with a fresh salt on save.

        Raises:
            InvalidInput:       a value is missing or new_password is too short
                                or too long for bcrypt.
            InvalidCredentials: current_password does not match.
        """
        if not current_password or not new_password:
            raise InvalidInput("Current password and new password are required.")
        if len(new_password) < MIN_PASSWORD_LENGTH:
            raise InvalidInput(f"New password must be at least {MIN_PASSWORD_LENGTH} characters long.")
        if password_too_long(new_password):
            raise InvalidInput(f"New password must be at most {MAX_PASSWORD_BYTES} bytes long.")

        admin = self.store.find_by_id(admin_id)
        if admin is None or not verify_password(current_password, admin.hashed_password):
            raise InvalidCredentials("Current password is incorrect.")

        self.store.save(admin, new_password=new_password)
        logger.info("Admin %s changed password", admin_id)

    def update_profile(self, admin_id: int, name: str | None = None, email: str | None = None) -> Admin:
        """Update display name and/or email. Raises DuplicateEmail on collision."""
        admin = self.store.update_profile(admin_id, name=name, email=email)
        if admin is None:
            raise InvalidCredentials()
        return admin
