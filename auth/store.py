"""
auth/store.py -- SQLAlchemy Core persistence layer for admin accounts.

Pattern: Repository + Data Mapper. AdminStore is the repository; _row_to_admin
is the mapper. Service and route code never touches SQL directly, and nothing
outside this module reads or writes the admins table.

Passwords: the store only ever receives plaintext in create() and in save()'s
new_password argument, and hashes it before the INSERT/UPDATE. A save()
without new_password leaves hashed_password exactly as the snapshot carries
it -- re-hashing is an explicit step, not a side effect of every write.

Timestamps are stored as ISO 8601 UTC text and mapped back to aware
datetimes, so lock comparisons never mix naive and aware values.

Security:
  All queries use bound parameters. No f-strings in SQL.

DB path: auth/portfolio_auth.db unless DATABASE_URL overrides it.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, create_engine, event, func, select, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from auth.errors import DuplicateEmail
from auth.models import ROLE_ADMIN, Admin
from auth.passwords import hash_password

DEFAULT_DB_URL = f"sqlite:///{Path(__file__).parent / 'portfolio_auth.db'}"

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_admins = Table(
    "admins",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("email", String(255), nullable=False, unique=True),  # always lowercase
    Column("name", String(255), nullable=False),
    Column("hashed_password", Text, nullable=False),
    Column("role", String(30), nullable=False, server_default=ROLE_ADMIN),
    Column("is_active", Integer, nullable=False, server_default="1"),
    Column("last_login", String(32)),
    Column("failed_login_attempts", Integer, nullable=False, server_default="0"),
    Column("locked_until", String(32)),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so token checks can read during login writes.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _to_iso(value: datetime | None) -> str | None:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def _from_iso(value: str | None) -> datetime | None:
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def normalize_email(email: str) -> str:
    return email.strip().lower()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class AdminStore:
    """Repository for Admin accounts.

    Usage:
        store = AdminStore()
        admin = store.create("admin@example.com", "secret", "Admin User")
        admin = store.find_by_email("ADMIN@example.com")
        store.close()
    """

    def __init__(self, db_url: str = DEFAULT_DB_URL) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def find_by_email(self, email: str) -> Admin | None:
        """Look up an account by email. Case-insensitive: the input is lowercased."""
        with self.engine.connect() as conn:
            row = conn.execute(_admins.select().where(_admins.c.email == normalize_email(email))).fetchone()
        return _row_to_admin(row) if row is not None else None

    def find_by_id(self, admin_id: int) -> Admin | None:
        with self.engine.connect() as conn:
            row = conn.execute(_admins.select().where(_admins.c.id == admin_id)).fetchone()
        return _row_to_admin(row) if row is not None else None

    def has_admins(self) -> bool:
        """Return True if at least one account exists. Used by the seed command."""
        with self.engine.connect() as conn:
            count = conn.execute(select(func.count()).select_from(_admins)).scalar()
        return (count or 0) > 0

    def ping(self) -> bool:
        """Cheap connectivity probe for the health endpoint."""
        with self.engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create(self, email: str, password: str, name: str, role: str = ROLE_ADMIN) -> Admin:
        """Insert a new account and return the stored snapshot.

        Only the bcrypt hash of password is written. Raises DuplicateEmail if
        an account with the same (lowercased) email already exists.
        """
        now = _now_iso()
        try:
            with self.engine.connect() as conn:
                result = conn.execute(
                    _admins.insert().values(
                        email=normalize_email(email),
                        name=name.strip(),
                        hashed_password=hash_password(password),
                        role=role,
                        is_active=1,
                        failed_login_attempts=0,
                        created_at=now,
                        updated_at=now,
                    )
                )
                conn.commit()
                admin_id = result.inserted_primary_key[0]
        except IntegrityError as exc:
            raise DuplicateEmail() from exc
        return self.find_by_id(admin_id)

    def save(self, admin: Admin, new_password: str | None = None) -> Admin:
        """Persist the mutable fields of an account snapshot.

        When new_password is given it is hashed here, with a fresh salt, and
        the result replaces the snapshot's hashed_password. Otherwise the
        stored hash is written back unchanged.

        Returns the snapshot as persisted. Raises DuplicateEmail if the
        snapshot's email now collides with another account.
        """
        if new_password is not None:
            admin = replace(admin, hashed_password=hash_password(new_password))
        now = _now_iso()
        try:
            with self.engine.connect() as conn:
                conn.execute(
                    _admins.update()
                    .where(_admins.c.id == admin.id)
                    .values(
                        email=normalize_email(admin.email),
                        name=admin.name,
                        hashed_password=admin.hashed_password,
                        role=admin.role,
                        is_active=1 if admin.is_active else 0,
                        last_login=_to_iso(admin.last_login),
                        failed_login_attempts=admin.failed_login_attempts,
                        locked_until=_to_iso(admin.locked_until),
                        updated_at=now,
                    )
                )
                conn.commit()
        except IntegrityError as exc:
            raise DuplicateEmail() from exc
        return replace(admin, email=normalize_email(admin.email), updated_at=_from_iso(now))

    def update_profile(self, admin_id: int, name: str | None = None, email: str | None = None) -> Admin | None:
        """Apply a profile patch. Only name and email are accepted.

        Empty or missing values are ignored. The new email is lowercased and
        must not belong to a different account (DuplicateEmail). Returns the
        updated account, or None if admin_id does not exist.
        """
        fields: dict = {}
        if name and name.strip():
            fields["name"] = name.strip()
        if email and email.strip():
            fields["email"] = normalize_email(email)
            existing = self.find_by_email(fields["email"])
            if existing is not None and existing.id != admin_id:
                raise DuplicateEmail()
        if fields:
            fields["updated_at"] = _now_iso()
            try:
                with self.engine.connect() as conn:
                    conn.execute(_admins.update().where(_admins.c.id == admin_id).values(**fields))
                    conn.commit()
            except IntegrityError as exc:
                # Lost a race with a concurrent write of the same email.
                raise DuplicateEmail() from exc
        return self.find_by_id(admin_id)

    def set_active(self, admin_id: int, active: bool) -> bool:
        """Administratively (de)activate an account. Returns False if not found.

        Not exposed over HTTP; the operator CLI is the only caller.
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                _admins.update()
                .where(_admins.c.id == admin_id)
                .values(is_active=1 if active else 0, updated_at=_now_iso())
            )
            conn.commit()
        return result.rowcount > 0

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_admin(row) -> Admin:
    return Admin(
        id=row.id,
        email=row.email,
        name=row.name,
        hashed_password=row.hashed_password,
        role=row.role,
        is_active=bool(row.is_active),
        last_login=_from_iso(row.last_login),
        failed_login_attempts=row.failed_login_attempts or 0,
        locked_until=_from_iso(row.locked_until),
        created_at=_from_iso(row.created_at),
        updated_at=_from_iso(row.updated_at),
    )
