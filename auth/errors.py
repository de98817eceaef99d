"""
auth/errors.py -- Authentication and authorization error taxonomy.

Every rejection the auth core can produce is an AuthError subclass carrying
an HTTP status, a stable machine-readable code, and a stable human message.
The API layer renders them as {"error": {"code": ..., "message": ...}}.

Nothing here holds request data, stack traces, or internal identifiers --
the message is the same for every occurrence of a kind.

Layer rule: no imports from api/ or fastapi. The exception handler that maps
these to responses lives in api/main.py.
"""

from __future__ import annotations


class AuthError(Exception):
    """Base class for every auth rejection."""

    status_code: int = 500
    code: str = "auth_error"
    message: str = "Authentication failed"

    def __init__(self, message: str | None = None) -> None:
        if message is not None:
            self.message = message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message}


class NotAuthenticated(AuthError):
    """No session identity is present for a route that requires one."""

    status_code = 401
    code = "not_authenticated"
    message = "No authenticated"


class Unauthorized(AuthError):
    """Bearer token missing, malformed, badly signed, revoked, or expired."""

    status_code = 401
    code = "unauthorized"
    message = "Unauthorized"


class NotEnoughPermissions(AuthError):
    """Identity resolved, but its role is not in the route's required set."""

    status_code = 403
    code = "not_enough_permissions"
    message = "Not enough permissions"


class IncorrectCredentials(AuthError):
    """Login identifier/password pair did not match.

    Raised for both unknown identifiers and wrong passwords so the response
    cannot be used to enumerate registered identifiers.
    """

    status_code = 404
    code = "incorrect_credentials"
    message = "Incorrect username or password"


class TokenPersistenceError(AuthError):
    """The allow-list did not acknowledge a newly issued token.

    Fatal to login: a token the server cannot revoke is never handed out.
    """

    status_code = 500
    code = "token_not_created"
    message = "Token is not created"
