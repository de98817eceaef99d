"""
api/routes/v1/auth.py -- Login and logout endpoints.

Routes:
  POST /api/v1/login   -- password login; returns the principal plus "Bearer <token>"
  GET  /api/v1/logout  -- revokes the presented token (requires auth)

Security:
  [H2] POST /login is rate-limited per IP (Settings.login_rate_limit).
  [C1] PasswordStrategy provides timing equalization -- go through
       AuthService.login(), never inline the store lookup + bcrypt check.
  [M5] Cache-Control: no-store on login responses, success or failure.
  Unknown identifier and wrong password produce the identical 404 body.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.limiter import limiter, login_rate_limit
from api.models import LoginRequest, LoginResponse, MessageResponse
from auth.dependencies import SESSION_PRINCIPAL_KEY, get_auth_service, get_current_principal
from auth.errors import AuthError
from auth.models import Principal
from auth.strategies import LoginCredentials
from auth.tokens import BEARER_PREFIX, strip_bearer

# Auth policy:
# - POST /api/v1/login:   public -- login endpoint must be unauthenticated
# - GET  /api/v1/logout:  requires a valid bearer token (get_current_principal)
router = APIRouter()


@router.post("/login", response_model=LoginResponse)
@limiter.limit(login_rate_limit)  # [H2] below @router so the registered endpoint is the limited wrapper
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with identifier and password; issue an allow-listed token.

    Also marks the cookie session as belonging to the principal, which routes
    declared with require_roles(..., session=True) check.
    """
    service = get_auth_service(request)
    try:
        principal, token = service.login(LoginCredentials(body.identifier, body.password))
    except AuthError as exc:
        resp = JSONResponse(status_code=exc.status_code, content={"error": exc.to_dict()})
        resp.headers["Cache-Control"] = "no-store"  # [M5]
        return resp

    request.session[SESSION_PRINCIPAL_KEY] = principal.id
    resp = JSONResponse(
        status_code=200,
        content=LoginResponse.from_principal(principal, token=f"{BEARER_PREFIX}{token}").model_dump(mode="json"),
    )
    resp.headers["Cache-Control"] = "no-store"  # [M5]
    return resp


@router.get("/logout", response_model=MessageResponse)
def logout(request: Request, principal: Principal = Depends(get_current_principal)) -> MessageResponse:
    """Revoke the presented token and clear the cookie session.

    Always 200 once the token has authenticated: a failed revocation write is
    logged by the allow-list and the token simply runs to its natural expiry.
    """
    token = strip_bearer(request.headers.get("Authorization"))
    request.session.pop(SESSION_PRINCIPAL_KEY, None)
    return MessageResponse(**get_auth_service(request).logout(token))
