"""
auth/strategies.py -- Authentication strategies.

Each strategy turns one kind of credential into a Principal or raises an
AuthError. There is no callback threading: verify() either returns or raises.

  PasswordStrategy  -- login. LoginCredentials -> Principal, or
                       IncorrectCredentials.
  BearerStrategy    -- every protected request. Raw Authorization header ->
                       Principal, or Unauthorized.

BearerStrategy deliberately fails closed: any store error while checking the
allow-list or re-reading the principal is logged and reported as
Unauthorized, never as a 5xx and never as success.

Layer rule: no imports from api/ or fastapi.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import timedelta
from typing import Any

from sqlalchemy.exc import SQLAlchemyError

from auth.allowlist import TokenAllowList
from auth.errors import IncorrectCredentials, Unauthorized
from auth.models import Principal
from auth.store import UserStore
from auth.tokens import TokenIssuer, burn_password_check, strip_bearer, verify_password

logger = logging.getLogger("bandstand.auth.strategies")


@dataclass(frozen=True)
class LoginCredentials:
    identifier: str
    password: str


class AuthenticationStrategy(ABC):
    """Contract shared by every strategy."""

    @abstractmethod
    def verify(self, credentials: Any) -> Principal:
        """Return the authenticated Principal or raise an AuthError."""


class PasswordStrategy(AuthenticationStrategy):
    """Match a submitted identifier/password pair against the Credential Store."""

    def __init__(self, store: UserStore, identifier_kinds: Sequence[str] = ("email", "phone_number")) -> None:
        self._store = store
        self._identifier_kinds = tuple(identifier_kinds)

    def verify(self, credentials: LoginCredentials) -> Principal:
        """Authenticate a login with timing equalization [C1].

        Always runs bcrypt whether or not the identifier exists:
        - Unknown identifier: bcrypt runs against a dummy hash
        - Wrong password: bcrypt runs against the real hash
        Both end in the same IncorrectCredentials error.
        """
        principal = self._store.find_by_login_identifier(credentials.identifier, self._identifier_kinds)
        if principal is None:
            burn_password_check(credentials.password)
            raise IncorrectCredentials()
        if not verify_password(credentials.password, principal.hashed_password):
            raise IncorrectCredentials()
        return principal


class BearerStrategy(AuthenticationStrategy):
    """Verify 'Authorization: Bearer <token>' against signature and allow-list.

    Steps, each failing with Unauthorized:
      1. scheme prefix present
      2. signature verifies under the configured key
      3. token is active in the allow-list and belongs to the token's subject
      4. principal still exists (re-read so role changes apply immediately)

    The sliding-expiry refresh is a separate call, refresh(), so the HTTP
    layer can run it after the response has been sent.
    """

    def __init__(
        self,
        issuer: TokenIssuer,
        allowlist: TokenAllowList,
        store: UserStore,
        window: timedelta,
    ) -> None:
        self._issuer = issuer
        self._allowlist = allowlist
        self._store = store
        self._window = window

    def verify(self, credentials: str | None) -> Principal:
        token = strip_bearer(credentials)
        if token is None:
            raise Unauthorized()

        claims = self._issuer.decode(token)
        if claims is None:
            raise Unauthorized()

        try:
            entry = self._allowlist.lookup_active(token)
        except SQLAlchemyError:
            logger.error("Allow-list lookup failed; rejecting request", exc_info=True)
            raise Unauthorized() from None
        if entry is None or entry.principal_id != claims["sub"]:
            raise Unauthorized()

        try:
            principal = self._store.get_by_id(entry.principal_id)
        except SQLAlchemyError:
            logger.error("Principal lookup failed; rejecting request", exc_info=True)
            raise Unauthorized() from None
        if principal is None:
            raise Unauthorized()
        return principal

    def refresh(self, credentials: str | None) -> None:
        """Slide the allow-list expiry of the presented token forward."""
        token = strip_bearer(credentials)
        if token is None:
            return
        self._allowlist.touch(token, self._allowlist.now() + self._window)
