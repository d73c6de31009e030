"""
auth/models.py -- Domain dataclasses for the admin account.

Pattern: Data class (pure data container). Admin is a frozen snapshot of one
stored row; the service derives a new snapshot with dataclasses.replace() and
hands it to AdminStore.save(). No method on the record touches the database
or hashes anything.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

ROLE_ADMIN = "admin"
ROLE_SUPER_ADMIN = "super-admin"
ROLES = (ROLE_ADMIN, ROLE_SUPER_ADMIN)


@dataclass(frozen=True)
class Admin:
    """The administrator identity allowed to perform privileged writes.

    email is always stored lowercase. hashed_password is a bcrypt hash and
    must never leave the process; api.models.AdminSummary is the outward view.

    Lock state is not a field: see is_locked().
    """

    email: str
    name: str
    hashed_password: str
    role: str = ROLE_ADMIN
    id: int | None = None
    is_active: bool = True
    last_login: datetime | None = None
    failed_login_attempts: int = 0
    locked_until: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


def is_locked(admin: Admin, now: datetime) -> bool:
    """Return True while locked_until is set and still in the future."""
    return admin.locked_until is not None and admin.locked_until > now

