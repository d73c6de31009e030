"""Tests for main.py -- the init-admin and set-active operator commands."""

import pytest

from auth.passwords import verify_password
from auth.store import AdminStore
from main import main


@pytest.fixture
def db_url(tmp_path):
    return f"sqlite:///{tmp_path / 'cli_auth.db'}"


def _store(db_url: str) -> AdminStore:
    return AdminStore(db_url)


def test_init_admin_creates_account(db_url, capsys):
    code = main(
        ["--db-url", db_url, "init-admin", "--email", "Owner@Example.com", "--password", "s3cret!", "--name", "Owner"]
    )
    assert code == 0
    assert "Admin user created" in capsys.readouterr().out

    store = _store(db_url)
    admin = store.find_by_email("owner@example.com")
    store.close()
    assert admin is not None
    assert admin.name == "Owner"
    assert verify_password("s3cret!", admin.hashed_password)


def test_init_admin_is_idempotent(db_url, capsys):
    main(["--db-url", db_url, "init-admin", "--email", "a@x.com", "--password", "s3cret!"])
    code = main(["--db-url", db_url, "init-admin", "--email", "b@x.com", "--password", "s3cret!"])
    assert code == 0
    assert "already exists" in capsys.readouterr().out

    store = _store(db_url)
    assert store.find_by_email("b@x.com") is None
    store.close()


def test_init_admin_rejects_short_password(db_url, capsys):
    code = main(["--db-url", db_url, "init-admin", "--email", "a@x.com", "--password", "12345"])
    assert code == 1
    assert "at least 6" in capsys.readouterr().out

    store = _store(db_url)
    assert store.has_admins() is False
    store.close()


def test_init_admin_rejects_password_over_bcrypt_limit(db_url, capsys):
    code = main(["--db-url", db_url, "init-admin", "--email", "a@x.com", "--password", "p" * 80])
    assert code == 1
    assert "at most 72 bytes" in capsys.readouterr().out

    store = _store(db_url)
    assert store.has_admins() is False
    store.close()


def test_set_active_toggles_account(db_url):
    main(["--db-url", db_url, "init-admin", "--email", "a@x.com", "--password", "s3cret!"])

    assert main(["--db-url", db_url, "set-active", "A@X.com", "--inactive"]) == 0
    store = _store(db_url)
    assert store.find_by_email("a@x.com").is_active is False
    store.close()

    assert main(["--db-url", db_url, "set-active", "a@x.com", "--active"]) == 0
    store = _store(db_url)
    assert store.find_by_email("a@x.com").is_active is True
    store.close()


def test_set_active_unknown_email(db_url, capsys):
    assert main(["--db-url", db_url, "set-active", "ghost@x.com", "--inactive"]) == 1
    assert "No account" in capsys.readouterr().out
