#!/usr/bin/env python3
"""
Bandstand -- administrative command line for the auth store.

Usage:
  python main.py create-user --email admin@example.com --role ADMIN
  python main.py create-user --phone "+380501234567"
  python main.py purge-tokens
  python main.py purge-tokens --older-than 0

The password is read interactively (never from argv, where it would land in
shell history). Configuration comes from the same environment variables and
.env file as the API (DATABASE_URL, SECRET_KEY, ...).
"""

import argparse
import getpass
import sys
from typing import Optional

from sqlalchemy.exc import IntegrityError

from auth import db
from auth.allowlist import TokenAllowList
from auth.models import Principal, Role
from auth.store import UserStore
from auth.tokens import hash_password
from core.config import get_settings


def _read_password() -> Optional[str]:
    """Prompt twice for a password. Returns None if the entries differ."""
    first = getpass.getpass("  Password: ")
    second = getpass.getpass("  Repeat password: ")
    if first != second:
        print("  [!] Passwords do not match.")
        return None
    if len(first) < 10:
        print("  [!] Password must be at least 10 characters.")
        return None
    return first


def create_user(args: argparse.Namespace) -> int:
    if not args.email and not args.phone:
        print("  [!] Give at least one of --email / --phone.")
        return 2
    password = _read_password()
    if password is None:
        return 1

    engine = db.connect(get_settings().database_url)
    try:
        store = UserStore(engine)
        if not store.has_users() and args.role != Role.ADMIN.value:
            print("  [!] The first principal is not an ADMIN; no one can reach ADMIN-only routes yet.")
        principal = Principal(
            email=args.email,
            phone_number=args.phone,
            role=Role(args.role),
            hashed_password=hash_password(password),
        )
        try:
            principal_id = store.create_user(principal)
        except IntegrityError:
            print("  [!] A user with that email or phone number already exists.")
            return 1
        created = store.get_by_id(principal_id)
    finally:
        engine.dispose()

    print(f"  Created {created.role.value} {created.login_identifier} ({principal_id})")
    return 0


def purge_tokens(args: argparse.Namespace) -> int:
    settings = get_settings()
    older_than = settings.token_retention_seconds if args.older_than is None else args.older_than
    engine = db.connect(settings.database_url)
    try:
        removed = TokenAllowList(engine).purge_expired(older_than)
    finally:
        engine.dispose()
    print(f"  Removed {removed} expired token(s).")
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="bandstand",
        description="Administrative commands for the Bandstand auth store.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    sub = parser.add_subparsers(dest="command")

    create = sub.add_parser("create-user", help="Create a principal (e.g. the first admin)")
    create.add_argument("--email", help="Login email (stored lower-cased)")
    create.add_argument("--phone", help="Login phone number (matched exactly)")
    create.add_argument(
        "--role",
        choices=[r.value for r in Role],
        default=Role.USER.value,
        help="Role of the new principal (default: USER)",
    )
    create.set_defaults(handler=create_user)

    purge = sub.add_parser("purge-tokens", help="Delete long-expired allow-list entries")
    purge.add_argument(
        "--older-than",
        type=int,
        default=None,
        metavar="SECONDS",
        help="Only delete entries expired for longer than this (default: TOKEN_RETENTION_SECONDS)",
    )
    purge.set_defaults(handler=purge_tokens)

    args = parser.parse_args(argv)
    if not getattr(args, "handler", None):
        parser.print_help()
        return 2
    return args.handler(args)


if __name__ == "__main__":
    sys.exit(main())
