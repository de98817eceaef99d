"""
auth/gate.py -- Authorization decision for a resolved request identity.

authorize() is the whole policy; auth/dependencies.py only gathers its inputs
from the request. Order of checks:

  1. no principal                        -> Unauthorized
  2. principal, session not valid        -> NotAuthenticated
  3. roles required, role not among them -> NotEnoughPermissions
  4. otherwise                           -> the principal

An empty required_roles set admits any authenticated principal.
"""

from __future__ import annotations

from collections.abc import Collection

from auth.errors import NotAuthenticated, NotEnoughPermissions, Unauthorized
from auth.models import Principal, Role


def authorize(
    principal: Principal | None,
    required_roles: Collection[Role] = frozenset(),
    *,
    session_valid: bool = True,
) -> Principal:
    if principal is None:
        raise Unauthorized()
    if not session_valid:
        raise NotAuthenticated()
    if required_roles and principal.role not in required_roles:
        raise NotEnoughPermissions()
    return principal
