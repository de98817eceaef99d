"""
auth/store.py -- SQLAlchemy Core persistence layer for principals.

Pattern: Repository + Data Mapper.
UserStore is the repository; _row_to_principal is the mapper.
Strategy, dependency, and route code never touches SQL directly.

Lookup rules:
  email         -- case-insensitive. Emails are lower-cased on write and the
                   lookup value is lower-cased too, so the UNIQUE index on
                   users.email enforces case-insensitive uniqueness.
  phone_number  -- exact match; no normalization.

find_by_login_identifier() is the single polymorphic lookup used by the
password strategy: it tries each configured identifier kind in order and
returns the first hit.

Security:
  All queries use bound parameters. No f-strings in SQL.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable
from datetime import datetime, timezone

from sqlalchemy import func, select, text
from sqlalchemy.engine import Engine

from auth.db import users
from auth.models import Principal, Role


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class UserStore:
    """Repository for Principal records.

    Usage:
        engine = auth.db.connect("sqlite:///bandstand.db")
        store = UserStore(engine)
        store.create_user(Principal(email="a@b.co", role=Role.USER, hashed_password=hash_password("...")))
        principal = store.find_by_login_identifier("A@B.co")
        engine.dispose()
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def has_users(self) -> bool:
        """Return True if at least one principal exists."""
        with self.engine.connect() as conn:
            result = conn.execute(select(func.count()).select_from(users)).scalar()
        return (result or 0) > 0

    def get_by_id(self, principal_id: str) -> Principal | None:
        """Look up a principal by primary key. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(users.select().where(users.c.id == principal_id)).fetchone()
        return _row_to_principal(row) if row is not None else None

    def get_by_email(self, email: str) -> Principal | None:
        """Case-insensitive email lookup. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(users.select().where(users.c.email == email.strip().lower())).fetchone()
        return _row_to_principal(row) if row is not None else None

    def get_by_phone_number(self, phone_number: str) -> Principal | None:
        """Exact phone number lookup. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(users.select().where(users.c.phone_number == phone_number.strip())).fetchone()
        return _row_to_principal(row) if row is not None else None

    def find_by_login_identifier(
        self,
        identifier: str,
        kinds: Iterable[str] = ("email", "phone_number"),
    ) -> Principal | None:
        """Resolve a login identifier by trying each identifier kind in order.

        Raises ValueError for a kind that has no lookup; Settings validation
        keeps unknown kinds out of configuration, so this only fires on a
        programming error.
        """
        lookups = {
            "email": self.get_by_email,
            "phone_number": self.get_by_phone_number,
        }
        for kind in kinds:
            lookup = lookups.get(kind)
            if lookup is None:
                raise ValueError(f"Unknown login identifier kind: {kind!r}")
            principal = lookup(identifier)
            if principal is not None:
                return principal
        return None

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_user(self, principal: Principal) -> str:
        """Insert a new principal and return its generated id.

        Raises ValueError if neither email nor phone_number is set.
        Raises sqlalchemy.exc.IntegrityError if the email or phone number is
        already registered. Callers (POST /users, the CLI) turn that into a
        conflict response.
        """
        if not principal.email and not principal.phone_number:
            raise ValueError("A principal needs an email or a phone number.")
        principal_id = str(uuid.uuid4())
        now = _now_iso()
        with self.engine.connect() as conn:
            conn.execute(
                users.insert().values(
                    id=principal_id,
                    email=principal.email.strip().lower() if principal.email else None,
                    phone_number=principal.phone_number.strip() if principal.phone_number else None,
                    hashed_password=principal.hashed_password,
                    role=Role(principal.role).value,
                    created_at=now,
                    updated_at=now,
                )
            )
            conn.commit()
        return principal_id

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        with self.engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_principal(row) -> Principal:
    return Principal(
        id=row.id,
        email=row.email,
        phone_number=row.phone_number,
        hashed_password=row.hashed_password,
        role=Role(row.role),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
