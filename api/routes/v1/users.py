"""
api/routes/v1/users.py -- Registration and principal lookup endpoints.

Routes:
  POST /api/v1/users         -- self-registration (public)
  GET  /api/v1/users/me      -- current principal (any authenticated role)
  GET  /api/v1/users/{id}    -- principal by id (ADMIN or USER, bearer + session)
  GET  /api/v1/roles         -- list of roles (ADMIN only)

These are the thin callers of the auth core: each protected route declares
its role set through require_roles() and receives the resolved Principal.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.exc import IntegrityError

from api.models import PrincipalResponse, RegisterRequest
from auth.dependencies import get_auth_service, get_current_principal, require_admin, require_roles
from auth.models import Principal, Role
from auth.tokens import hash_password

# Auth policy:
# - POST /api/v1/users:       public -- registration
# - GET  /api/v1/users/me:    any authenticated principal
# - GET  /api/v1/users/{id}:  ADMIN or USER, bearer token plus login session cookie
# - GET  /api/v1/roles:       ADMIN only
router = APIRouter()


@router.post("/users", response_model=PrincipalResponse, status_code=201)
def register(request: Request, body: RegisterRequest) -> PrincipalResponse:
    """Create a USER principal. The password is hashed before it reaches the store."""
    store = get_auth_service(request).store
    principal = Principal(
        email=body.email,
        phone_number=body.phone_number,
        role=Role.USER,
        hashed_password=hash_password(body.password),
    )
    try:
        principal_id = store.create_user(principal)
    except IntegrityError as exc:
        raise HTTPException(
            status_code=409,
            detail={"code": "conflict", "message": "Email or phone number is already used"},
        ) from exc
    return _principal_to_response(store.get_by_id(principal_id))


@router.get("/users/me", response_model=PrincipalResponse)
def me(principal: Principal = Depends(get_current_principal)) -> PrincipalResponse:
    """Return the principal resolved from the bearer token."""
    return PrincipalResponse.from_principal(principal)


@router.get("/users/{principal_id}", response_model=PrincipalResponse)
def get_user(
    request: Request,
    principal_id: str,
    principal: Principal = Depends(require_roles(Role.ADMIN, Role.USER, session=True)),
) -> PrincipalResponse:
    store = get_auth_service(request).store
    target = store.get_by_id(principal_id)
    if target is None:
        raise HTTPException(
            status_code=404,
            detail={"code": "not_found", "message": "User not found"},
        )
    return PrincipalResponse.from_principal(target)


@router.get("/roles", response_model=list[Role])
def list_roles(principal: Principal = Depends(require_admin)) -> list[Role]:
    return list(Role)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _principal_to_response(principal: Principal | None) -> PrincipalResponse:
    if principal is None:
        raise HTTPException(
            status_code=500,
            detail={"code": "internal_error", "message": "User not found after write."},
        )
    return PrincipalResponse.from_principal(principal)
