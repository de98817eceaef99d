"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

Pipeline for a protected route:
  1. BearerStrategy verifies the Authorization header (signature, allow-list,
     principal re-read). Any rejection leaves the principal absent.
  2. Optionally, the cookie session (Starlette SessionMiddleware) must name
     the same principal. Login writes it, logout clears it.
  3. auth.gate.authorize() decides: Unauthorized / NotAuthenticated /
     NotEnoughPermissions / allow.
  4. On allow, the principal is attached to request.state.principal and the
     allow-list expiry refresh is queued as a background task, so it runs
     after the response is sent and never delays it.

try_get_current_principal() is the soft variant (returns None on failure).
require_roles() builds the hard variant for a given role set.

Layer rule: auth/dependencies.py may import from fastapi because this module
is part of the FastAPI dependency injection system. Everything else in auth/
stays framework-free.

Dependencies are plain `def` functions: the stores use synchronous SQLAlchemy,
and FastAPI runs sync dependencies in its thread pool so a slow lookup only
holds up its own request.
"""

from __future__ import annotations

from collections.abc import Callable

from fastapi import BackgroundTasks, Request

from auth.errors import AuthError
from auth.gate import authorize
from auth.models import Principal, Role
from auth.service import AuthService

# Cookie-session key holding the id of the principal that logged in.
SESSION_PRINCIPAL_KEY = "principal_id"


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def try_get_current_principal(request: Request) -> Principal | None:
    """Attempt to authenticate the request via its Bearer token.

    Returns the Principal on success, None on any failure.
    Never raises -- callers that need a hard 401 should use require_roles().
    """
    service = get_auth_service(request)
    try:
        return service.bearer.verify(request.headers.get("Authorization"))
    except AuthError:
        return None


def require_roles(*roles: Role, session: bool = False) -> Callable[..., Principal]:
    """Return a dependency admitting principals whose role is in roles.

    No roles means any authenticated principal. session=True additionally
    requires the cookie session to belong to the same principal.

    Use as a FastAPI dependency:
        @router.get("/roles")
        def route(principal: Principal = Depends(require_roles(Role.ADMIN))): ...
    """
    required = frozenset(roles)

    def dependency(request: Request, background_tasks: BackgroundTasks) -> Principal:
        principal = try_get_current_principal(request)
        session_valid = True
        if session and principal is not None:
            session_valid = request.session.get(SESSION_PRINCIPAL_KEY) == principal.id
        principal = authorize(principal, required, session_valid=session_valid)

        request.state.principal = principal
        service = get_auth_service(request)
        background_tasks.add_task(service.bearer.refresh, request.headers.get("Authorization"))
        return principal

    return dependency


get_current_principal = require_roles()
require_admin = require_roles(Role.ADMIN)
