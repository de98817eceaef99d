"""
auth/service.py -- Login and logout flows.

AuthService wires the Credential Store, Token Issuer, Allow-List, and the two
strategies together. It is built once in the API lifespan (or the CLI) and
stored on app.state; route handlers call it instead of assembling the pieces.

Layer rule: no imports from api/ or fastapi.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import timedelta

from auth.allowlist import TokenAllowList
from auth.models import Principal
from auth.store import UserStore
from auth.strategies import BearerStrategy, LoginCredentials, PasswordStrategy
from auth.tokens import TokenIssuer

logger = logging.getLogger("bandstand.auth.service")

LOGOUT_MESSAGE = "Success! You are logged out"


class AuthService:
    """Entry point for credential issuance and revocation.

    Usage:
        service = AuthService(store, allowlist, TokenIssuer(secret), timedelta(minutes=60))
        principal, token = service.login(LoginCredentials("user@example.com", "..."))
        principal = service.bearer.verify(f"Bearer {token}")
        service.logout(token)
    """

    def __init__(
        self,
        store: UserStore,
        allowlist: TokenAllowList,
        issuer: TokenIssuer,
        window: timedelta,
        identifier_kinds: Sequence[str] = ("email", "phone_number"),
    ) -> None:
        self.store = store
        self.allowlist = allowlist
        self.issuer = issuer
        self.window = window
        self.password = PasswordStrategy(store, identifier_kinds)
        self.bearer = BearerStrategy(issuer, allowlist, store, window)

    def login(self, credentials: LoginCredentials) -> tuple[Principal, str]:
        """Verify credentials, mint a token, and record it in the allow-list.

        Returns (principal, token) with the token lacking its Bearer prefix.
        Raises IncorrectCredentials on a mismatch and TokenPersistenceError
        when the allow-list write fails. The upsert replaces any earlier
        token of the same principal.
        """
        principal = self.password.verify(credentials)
        token = self.issuer.issue(principal)
        self.allowlist.upsert(principal.id, token, self.allowlist.now() + self.window)
        logger.info("Principal %s logged in", principal.id)
        return principal, token

    def logout(self, token: str) -> dict:
        """Revoke token. Always reports success; a failed write is only logged."""
        if not self.allowlist.revoke(token):
            logger.info("Logout did not match an allow-list entry")
        return {"message": LOGOUT_MESSAGE}
