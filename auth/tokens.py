"""
auth/tokens.py -- Signed bearer tokens and password hashing.

Security design decisions:
  Tokens: python-jose with HS256. TokenIssuer signs a minimal claim set --
       principal id (sub), role, login identifier, issue time (iat), and a
       random nonce (jti). No password hash, no profile fields. Claims are
       signed, not encrypted: anyone holding the token can read them.

       There is no "exp" claim. Expiry is owned by the server-side allow-list
       (auth/allowlist.py), which slides it forward on use and can force it
       to "now" on logout. A signature that still verifies is therefore
       necessary but never sufficient for access.

       The jti nonce makes every issued token string unique, so a second
       login always replaces the allow-list entry with a different token --
       even within the same second.

  Passwords: bcrypt directly (no passlib wrapper). bcrypt.checkpw compares in
       constant time. The _DUMMY_HASH constant enables timing equalization in
       the password strategy so response time does not reveal whether an
       identifier is registered [C1].

Layer rule: no imports from api/.
"""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timezone
from typing import TYPE_CHECKING

import bcrypt
from jose import JWTError, jwt

if TYPE_CHECKING:
    from auth.models import Principal

logger = logging.getLogger("bandstand.auth.tokens")

_ALGORITHM = "HS256"

# Prefix expected in the Authorization header and returned by POST /login.
BEARER_PREFIX = "Bearer "

# ---------------------------------------------------------------------------
# Password hashing (bcrypt -- direct usage, no passlib wrapper)
# ---------------------------------------------------------------------------


def hash_password(plain: str) -> str:
    """Return a salted bcrypt hash of the given plaintext password.

    bcrypt truncates input beyond 72 bytes. The API layer caps password
    length (Pydantic field) well below the point where that matters.
    """
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash.

    A malformed stored hash counts as a mismatch rather than an error.
    """
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        logger.warning("Stored password hash is not a valid bcrypt hash")
        return False


# Timing equalization dummy hash [C1].
# Computed once at module load so the first login attempt is not measurably
# slower than subsequent ones.
_DUMMY_HASH: str = hash_password("bandstand_timing_dummy")


def burn_password_check(plain: str) -> None:
    """Run a bcrypt comparison that always fails, for timing equalization."""
    verify_password(plain, _DUMMY_HASH)


# ---------------------------------------------------------------------------
# Token issuing / verification
# ---------------------------------------------------------------------------


class TokenIssuer:
    """Mints and verifies HS256-signed bearer tokens.

    Holds only the signing key; issuing is a pure function of the principal,
    the key, and the clock.
    """

    def __init__(self, secret_key: str, algorithm: str = _ALGORITHM) -> None:
        if not secret_key:
            raise ValueError("TokenIssuer requires a non-empty secret key.")
        self._secret_key = secret_key
        self._algorithm = algorithm

    def issue(self, principal: Principal) -> str:
        """Return a signed token for principal (without the Bearer prefix)."""
        payload = {
            "sub": principal.id,
            "role": principal.role.value,
            "identifier": principal.login_identifier,
            "iat": int(datetime.now(timezone.utc).timestamp()),
            "jti": secrets.token_hex(16),
        }
        return jwt.encode(payload, self._secret_key, algorithm=self._algorithm)

    def decode(self, token: str) -> dict | None:
        """Verify the signature and return the claims, or None on any failure.

        Returning None (rather than raising) keeps the caller simple: any
        invalid token is treated as unauthenticated.
        """
        try:
            payload = jwt.decode(token, self._secret_key, algorithms=[self._algorithm])
        except JWTError:
            return None
        if not payload.get("sub") or "role" not in payload:
            return None
        return payload


def strip_bearer(authorization: str | None) -> str | None:
    """Return the token from an 'Authorization: Bearer <token>' value, else None."""
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        return None
    token = authorization[len(BEARER_PREFIX) :].strip()
    return token or None
