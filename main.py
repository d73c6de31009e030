#!/usr/bin/env python3
"""
Portfolio backend -- operator commands for the admin account.

The HTTP API never creates accounts and never changes is_active; both are
done from here.

Usage:
  python main.py init-admin
  python main.py init-admin --email me@example.com --password 's3cret!' --name "Jane Doe"
  python main.py set-active admin@example.com --inactive
  python main.py set-active admin@example.com --active

Environment variables (see core/config.py):
  DATABASE_URL     SQLAlchemy URL of the auth database (default: auth/portfolio_auth.db)
  ADMIN_EMAIL      Default email for init-admin
  ADMIN_PASSWORD   Default password for init-admin
  ADMIN_NAME       Default display name for init-admin
"""

import argparse
import logging
from typing import Optional

from auth.errors import DuplicateEmail
from auth.models import ROLE_ADMIN, ROLES
from auth.passwords import MAX_PASSWORD_BYTES, password_too_long
from auth.service import MIN_PASSWORD_LENGTH
from auth.store import DEFAULT_DB_URL, AdminStore
from core.config import get_settings

logger = logging.getLogger("portfolio.cli")


def init_admin(store: AdminStore, email: str, password: str, name: str, role: str = ROLE_ADMIN) -> int:
    """Create the first admin account. Does nothing if any admin already exists.

    Returns a process exit code: 0 when the account exists afterwards, 1 on
    invalid input or a conflicting email.
    """
    if store.has_admins():
        print("  Admin user already exists -- nothing to do.")
        return 0
    if not email.strip() or not name.strip():
        print("  [!] Email and name are required.")
        return 1
    if len(password) < MIN_PASSWORD_LENGTH:
        print(f"  [!] Password must be at least {MIN_PASSWORD_LENGTH} characters (set ADMIN_PASSWORD or --password).")
        return 1
    if password_too_long(password):
        print(f"  [!] Password must be at most {MAX_PASSWORD_BYTES} bytes.")
        return 1
    try:
        admin = store.create(email, password, name, role=role)
    except DuplicateEmail:
        print(f"  [!] An account with email '{email}' already exists.")
        return 1
    logger.info("Created admin %s", admin.id)
    print(f"  Admin user created: {admin.email} (role={admin.role})")
    return 0


def set_active(store: AdminStore, email: str, active: bool) -> int:
    """Activate or deactivate an account. Deactivation invalidates its tokens on next use."""
    admin = store.find_by_email(email)
    if admin is None:
        print(f"  [!] No account with email '{email}'.")
        return 1
    store.set_active(admin.id, active)
    logger.info("Admin %s is_active=%s", admin.id, active)
    print(f"  {admin.email} is now {'active' if active else 'inactive'}.")
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    settings = get_settings()

    parser = argparse.ArgumentParser(
        prog="portfolio-admin",
        description="Manage the portfolio backend admin account.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  ADMIN_PASSWORD='s3cret!' python main.py init-admin
  python main.py set-active admin@example.com --inactive
        """,
    )
    parser.add_argument(
        "--db-url",
        default=settings.database_url or DEFAULT_DB_URL,
        metavar="URL",
        help="SQLAlchemy database URL (default: DATABASE_URL or the bundled SQLite file)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    init = sub.add_parser("init-admin", help="Create the first admin account if none exists")
    init.add_argument("--email", default=settings.admin_email, help="Account email (default: ADMIN_EMAIL)")
    init.add_argument("--password", default=settings.admin_password, help="Account password (default: ADMIN_PASSWORD)")
    init.add_argument("--name", default=settings.admin_name, help="Display name (default: ADMIN_NAME)")
    init.add_argument("--role", choices=ROLES, default=ROLE_ADMIN, help="Account role (default: admin)")

    activate = sub.add_parser("set-active", help="Activate or deactivate an account")
    activate.add_argument("email", help="Email of the account to change")
    group = activate.add_mutually_exclusive_group(required=True)
    group.add_argument("--active", dest="active", action="store_true", help="Allow the account to log in")
    group.add_argument("--inactive", dest="active", action="store_false", help="Block logins and reject its tokens")

    args = parser.parse_args(argv)

    store = AdminStore(args.db_url)
    try:
        if args.command == "init-admin":
            return init_admin(store, args.email, args.password, args.name, role=args.role)
        return set_active(store, args.email, args.active)
    finally:
        store.close()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)-5s %(name)s %(message)s")
    raise SystemExit(main())
