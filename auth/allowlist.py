"""
auth/allowlist.py -- Server-side allow-list of issued bearer tokens.

A signed token proves who issued it, not whether it is still wanted. The
allow-list adds that second half: a token is accepted only while its row
here exists with expires_at in the future. That buys logout (revoke) and a
single active session per principal at the cost of one lookup per request.

Entry lifecycle:
  login    -> upsert(principal_id, token, now + window)  replaces any prior row
  request  -> lookup_active(token), then touch(token, now + window)
  logout   -> revoke(token)  sets expires_at just before now, row kept for audit
  purge    -> purge_expired(retention)  deletes long-dead rows

Failure policy:
  upsert         raises TokenPersistenceError -- login must fail rather than
                 hand out a token that cannot be revoked.
  lookup_active  lets SQLAlchemyError propagate; the bearer strategy maps it
                 to Unauthorized (fail closed).
  touch, revoke  log and swallow. A missed slide or a failed logout write
                 only means the token lives until its current expiry.

Expiry is lazy: lookup_active() filters on expires_at, so nothing depends on
the purge task having run.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from datetime import datetime, timezone

from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from auth.db import token_allowlist
from auth.errors import TokenPersistenceError
from auth.models import IssuedToken

logger = logging.getLogger("bandstand.auth.allowlist")

# A revoked entry is written this many seconds in the past, so lookup_active()
# (expires_at >= now) already rejects it on the same clock reading.
_REVOKED_OFFSET = 0.001


class TokenAllowList:
    """Repository for IssuedToken entries.

    clock returns the current UTC time as epoch seconds. Tests pass a fake
    clock to move time without sleeping.
    """

    def __init__(self, engine: Engine, clock: Callable[[], float] = time.time) -> None:
        self.engine = engine
        self._clock = clock

    def now(self) -> datetime:
        return datetime.fromtimestamp(self._clock(), tz=timezone.utc)

    def upsert(self, principal_id: str, token: str, expires_at: datetime) -> IssuedToken:
        """Record token as the only valid token for principal_id.

        Update-then-insert keeps this portable across SQLite and PostgreSQL.
        If a concurrent login inserts between the two statements, the insert
        hits the primary key and we fall back to the update: last write wins.
        """
        values = {"token": token, "expires_at": expires_at.timestamp()}
        try:
            with self.engine.connect() as conn:
                result = conn.execute(
                    token_allowlist.update().where(token_allowlist.c.principal_id == principal_id).values(**values)
                )
                if result.rowcount == 0:
                    try:
                        conn.execute(token_allowlist.insert().values(principal_id=principal_id, **values))
                    except IntegrityError:
                        conn.rollback()
                        result = conn.execute(
                            token_allowlist.update()
                            .where(token_allowlist.c.principal_id == principal_id)
                            .values(**values)
                        )
                        if result.rowcount == 0:
                            raise TokenPersistenceError()
                conn.commit()
        except SQLAlchemyError as exc:
            logger.error("Allow-list upsert failed for principal %s: %s", principal_id, exc)
            raise TokenPersistenceError() from exc
        return IssuedToken(principal_id=principal_id, token=token, expires_at=expires_at)

    def lookup_active(self, token: str) -> IssuedToken | None:
        """Return the entry for token if it has not expired, else None."""
        with self.engine.connect() as conn:
            row = conn.execute(
                token_allowlist.select().where(
                    (token_allowlist.c.token == token) & (token_allowlist.c.expires_at >= self._clock())
                )
            ).fetchone()
        return _row_to_issued_token(row) if row is not None else None

    def touch(self, token: str, new_expires_at: datetime) -> None:
        """Slide the expiry of token forward. Best effort: never raises.

        Only entries that are still active are extended. The refresh runs
        after the response is sent, so it can land after a logout in the same
        request; the strict comparison keeps it from reviving that token.
        """
        try:
            with self.engine.connect() as conn:
                conn.execute(
                    token_allowlist.update()
                    .where((token_allowlist.c.token == token) & (token_allowlist.c.expires_at > self._clock()))
                    .values(expires_at=new_expires_at.timestamp())
                )
                conn.commit()
        except SQLAlchemyError:
            logger.warning("Token expire time not updated", exc_info=True)

    def revoke(self, token: str) -> bool:
        """Expire token immediately.

        Only an active entry is touched, and its expiry only moves backwards:
        revoking an expired row neither revives it nor resets its retention age.

        Returns True if an entry was updated, False if none matched or the
        write failed. Neither case is an error for the caller: logout is
        idempotent.
        """
        now = self._clock()
        try:
            with self.engine.connect() as conn:
                result = conn.execute(
                    token_allowlist.update()
                    .where((token_allowlist.c.token == token) & (token_allowlist.c.expires_at >= now))
                    .values(expires_at=now - _REVOKED_OFFSET)
                )
                conn.commit()
        except SQLAlchemyError:
            logger.warning("Token revocation failed; token stays valid until natural expiry", exc_info=True)
            return False
        return result.rowcount > 0

    def purge_expired(self, older_than_seconds: float = 0) -> int:
        """Delete entries that expired more than older_than_seconds ago.

        Returns the number of rows removed.
        """
        cutoff = self._clock() - older_than_seconds
        with self.engine.connect() as conn:
            result = conn.execute(token_allowlist.delete().where(token_allowlist.c.expires_at < cutoff))
            conn.commit()
        return result.rowcount


def _row_to_issued_token(row) -> IssuedToken:
    return IssuedToken(
        principal_id=row.principal_id,
        token=row.token,
        expires_at=datetime.fromtimestamp(row.expires_at, tz=timezone.utc),
    )
