"""Unit tests for auth/service.py -- login, lockout, tokens, password change.

All time-dependent behavior runs on the FakeClock fixture, so "the lock has
expired" is a clock.advance() call rather than a sleep.

Covers:
- login input validation, enumeration-safe failures, inactive accounts
- lockout state machine: 5 failures lock for 30 minutes, locked attempts are
  rejected before the password check, expiry is evaluated lazily, success
  resets the counter
- verify_token / authenticate_request: deactivation takes effect before expiry
- change_password: length rules (6 characters min, 72 bytes max), wrong
  current password, fresh salt
- update_profile
"""

from dataclasses import replace

import pytest

from auth.errors import (
    AccountLocked,
    DuplicateEmail,
    InvalidCredentials,
    InvalidInput,
    InvalidToken,
    TokenExpired,
)
from auth.models import is_locked
from auth.passwords import verify_password
from auth.service import LOCK_DURATION, MAX_FAILED_ATTEMPTS

EMAIL = "a@x.com"
PASSWORD = "correct-pass"


@pytest.fixture
def admin(store):
    return store.create(EMAIL, PASSWORD, "Alice")


def _fail_times(service, n: int) -> None:
    for _ in range(n):
        with pytest.raises(InvalidCredentials):
            service.login(EMAIL, "wrong")


# ---------------------------------------------------------------------------
# Login
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("email,password", [("", PASSWORD), (EMAIL, ""), (None, PASSWORD), (EMAIL, None), ("  ", "x")])
def test_login_missing_fields_is_invalid_input(service, admin, email, password):
    with pytest.raises(InvalidInput):
        service.login(email, password)


def test_login_success_returns_token_and_stamps_last_login(service, store, admin, clock):
    result = service.login(EMAIL, PASSWORD)
    assert result.admin.id == admin.id
    assert result.admin.last_login == clock.now
    assert service.verify_token(result.token).id == admin.id
    assert store.find_by_id(admin.id).last_login == clock.now


def test_login_email_is_case_insensitive(service, admin):
    assert service.login("  A@X.COM ", PASSWORD).admin.id == admin.id


def test_unknown_email_and_wrong_password_fail_identically(service, admin):
    with pytest.raises(InvalidCredentials) as unknown:
        service.login("nobody@x.com", PASSWORD)
    with pytest.raises(InvalidCredentials) as wrong:
        service.login(EMAIL, "wrong")
    assert unknown.value.code == wrong.value.code
    assert unknown.value.message == wrong.value.message


def test_inactive_account_with_correct_password_is_invalid_credentials(service, store, admin):
    store.set_active(admin.id, False)
    with pytest.raises(InvalidCredentials):
        service.login(EMAIL, PASSWORD)
    # Rejected before the password check: no attempt is counted
    assert store.find_by_id(admin.id).failed_login_attempts == 0


# ---------------------------------------------------------------------------
# Lockout state machine
# ---------------------------------------------------------------------------


def test_failures_below_threshold_only_count(service, store, admin):
    _fail_times(service, MAX_FAILED_ATTEMPTS - 1)
    stored = store.find_by_id(admin.id)
    assert stored.failed_login_attempts == 4
    assert stored.locked_until is None


def test_fifth_failure_locks_for_thirty_minutes(service, store, admin, clock):
    _fail_times(service, MAX_FAILED_ATTEMPTS)
    stored = store.find_by_id(admin.id)
    assert stored.failed_login_attempts == 5
    assert stored.locked_until == clock.now + LOCK_DURATION
    assert is_locked(stored, clock.now)


def test_locked_account_rejects_even_correct_password(service, store, admin, clock):
    _fail_times(service, MAX_FAILED_ATTEMPTS)
    clock.advance(minutes=29, seconds=59)
    with pytest.raises(AccountLocked):
        service.login(EMAIL, PASSWORD)
    with pytest.raises(AccountLocked):
        service.login(EMAIL, "wrong")
    # Locked attempts never reach the password check or touch the counters
    stored = store.find_by_id(admin.id)
    assert stored.failed_login_attempts == 5


def test_lock_expires_lazily_and_success_resets(service, store, admin, clock):
    _fail_times(service, MAX_FAILED_ATTEMPTS)
    clock.advance(minutes=30)
    result = service.login(EMAIL, PASSWORD)
    stored = store.find_by_id(admin.id)
    assert result.admin.id == admin.id
    assert stored.failed_login_attempts == 0
    assert stored.locked_until is None
    assert stored.last_login == clock.now


def test_failure_after_lock_expiry_relocks(service, store, admin, clock):
    _fail_times(service, MAX_FAILED_ATTEMPTS)
    clock.advance(minutes=31)
    _fail_times(service, 1)
    stored = store.find_by_id(admin.id)
    assert stored.failed_login_attempts == 6
    assert stored.locked_until == clock.now + LOCK_DURATION
    with pytest.raises(AccountLocked):
        service.login(EMAIL, PASSWORD)


def test_success_resets_partial_failure_count(service, store, admin):
    _fail_times(service, 3)
    service.login(EMAIL, PASSWORD)
    _fail_times(service, 4)
    stored = store.find_by_id(admin.id)
    assert stored.failed_login_attempts == 4
    assert stored.locked_until is None


def test_success_clears_stale_lock_timestamp(service, store, admin, clock):
    past = clock.now.replace(year=2025)
    store.save(replace(admin, failed_login_attempts=2, locked_until=past))
    service.login(EMAIL, PASSWORD)
    stored = store.find_by_id(admin.id)
    assert stored.failed_login_attempts == 0
    assert stored.locked_until is None


# ---------------------------------------------------------------------------
# Token verification
# ---------------------------------------------------------------------------


def test_verify_token_returns_current_account_state(service, store, admin):
    token = service.issue_token(admin)
    store.update_profile(admin.id, name="Renamed")
    assert service.verify_token(token).name == "Renamed"


def test_deactivated_account_token_is_invalid_before_expiry(service, store, admin):
    token = service.login(EMAIL, PASSWORD).token
    store.set_active(admin.id, False)
    with pytest.raises(InvalidToken):
        service.verify_token(token)
    with pytest.raises(InvalidToken):
        service.authenticate_request(token)


def test_token_for_missing_account_is_invalid(service, store, admin):
    ghost = replace(admin, id=admin.id + 100)
    with pytest.raises(InvalidToken):
        service.verify_token(service.issue_token(ghost))


def test_expired_token(service, admin, clock):
    token = service.issue_token(admin)
    clock.advance(days=8)
    with pytest.raises(TokenExpired):
        service.authenticate_request(token)


def test_missing_token_is_invalid_input(service):
    with pytest.raises(InvalidInput):
        service.verify_token(None)


# ---------------------------------------------------------------------------
# Password change
# ---------------------------------------------------------------------------


def test_change_password_rejects_short_password_and_keeps_old(service, store, admin):
    with pytest.raises(InvalidInput):
        service.change_password(admin.id, PASSWORD, "12345")
    stored = store.find_by_id(admin.id)
    assert stored.hashed_password == admin.hashed_password
    assert service.login(EMAIL, PASSWORD).admin.id == admin.id


@pytest.mark.parametrize("new", ["a" * 73, "\u00e9" * 37])
def test_change_password_rejects_password_over_bcrypt_limit(service, store, admin, new):
    with pytest.raises(InvalidInput):
        service.change_password(admin.id, PASSWORD, new)
    assert store.find_by_id(admin.id).hashed_password == admin.hashed_password


def test_change_password_accepts_72_bytes(service, admin):
    service.change_password(admin.id, PASSWORD, "a" * 72)
    assert service.login(EMAIL, "a" * 72).admin.id == admin.id


@pytest.mark.parametrize("current,new", [("", "newpass1"), (PASSWORD, ""), (None, "newpass1")])
def test_change_password_missing_values(service, admin, current, new):
    with pytest.raises(InvalidInput):
        service.change_password(admin.id, current, new)


def test_change_password_wrong_current(service, store, admin):
    with pytest.raises(InvalidCredentials):
        service.change_password(admin.id, "not-it", "newpass1")
    assert store.find_by_id(admin.id).hashed_password == admin.hashed_password


def test_change_password_success(service, store, admin):
    service.change_password(admin.id, PASSWORD, "newpass1")
    with pytest.raises(InvalidCredentials):
        service.login(EMAIL, PASSWORD)
    assert service.login(EMAIL, "newpass1").admin.id == admin.id


def test_change_to_same_password_produces_new_hash(service, store, admin):
    service.change_password(admin.id, PASSWORD, PASSWORD)
    stored = store.find_by_id(admin.id)
    assert stored.hashed_password != admin.hashed_password
    assert verify_password(PASSWORD, stored.hashed_password)


# ---------------------------------------------------------------------------
# Profile
# ---------------------------------------------------------------------------


def test_update_profile(service, admin):
    updated = service.update_profile(admin.id, name="Alice B", email="ALICE@x.com")
    assert updated.name == "Alice B"
    assert updated.email == "alice@x.com"


def test_update_profile_duplicate_email(service, store, admin):
    store.create("b@x.com", "whatever1", "Bob")
    with pytest.raises(DuplicateEmail):
        service.update_profile(admin.id, email="b@x.com")


def test_update_profile_missing_account(service):
    with pytest.raises(InvalidCredentials):
        service.update_profile(999, name="Ghost")
