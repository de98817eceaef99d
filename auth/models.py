"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Dataclasses own domain
shape; stores, strategies, and routes do the work.

Layer rule: no imports from api/.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class Role(str, Enum):
    ADMIN = "ADMIN"
    USER = "USER"


@dataclass
class Principal:
    """An identity that can log in.

    At least one of email / phone_number is set. email is stored lower-cased
    so lookups can be case-insensitive; phone_number is matched exactly.

    hashed_password is a bcrypt hash. The plaintext never reaches this class.
    """

    role: Role
    hashed_password: str
    id: str | None = None  # UUID4, assigned by UserStore.create_user()
    email: str | None = None
    phone_number: str | None = None
    created_at: str | None = None
    updated_at: str | None = None

    @property
    def login_identifier(self) -> str:
        """The identifier embedded in issued tokens: email first, phone otherwise."""
        return self.email or self.phone_number or ""


@dataclass
class IssuedToken:
    """One allow-list entry: the single currently valid token of a principal.

    Revocation sets expires_at to the revocation time; the row itself is kept
    until the purge task removes it.
    """

    principal_id: str
    token: str
    expires_at: datetime  # timezone-aware UTC
