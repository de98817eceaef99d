"""Unit tests for auth/gate.py -- the authorize() decision table."""

import pytest

from auth.errors import NotAuthenticated, NotEnoughPermissions, Unauthorized
from auth.gate import authorize
from auth.models import Principal, Role


def _principal(role: Role) -> Principal:
    return Principal(id="p-1", email="p@example.com", role=role, hashed_password="x")


def test_no_principal_is_unauthorized() -> None:
    with pytest.raises(Unauthorized):
        authorize(None, {Role.ADMIN})


def test_missing_principal_wins_over_session() -> None:
    with pytest.raises(Unauthorized):
        authorize(None, {Role.ADMIN}, session_valid=False)


def test_invalid_session_is_not_authenticated() -> None:
    with pytest.raises(NotAuthenticated) as exc_info:
        authorize(_principal(Role.ADMIN), {Role.ADMIN}, session_valid=False)
    assert exc_info.value.message == "No authenticated"


def test_session_checked_before_role() -> None:
    with pytest.raises(NotAuthenticated):
        authorize(_principal(Role.USER), {Role.ADMIN}, session_valid=False)


@pytest.mark.parametrize(
    "role, required",
    [
        (Role.ADMIN, {Role.ADMIN}),
        (Role.USER, {Role.USER}),
        (Role.USER, {Role.ADMIN, Role.USER}),
        (Role.ADMIN, set()),
        (Role.USER, set()),
    ],
)
def test_allowed(role: Role, required: set) -> None:
    principal = _principal(role)
    assert authorize(principal, required) is principal


def test_role_outside_required_set() -> None:
    with pytest.raises(NotEnoughPermissions) as exc_info:
        authorize(_principal(Role.USER), {Role.ADMIN})
    assert exc_info.value.status_code == 403
    assert exc_info.value.message == "Not enough permissions"
