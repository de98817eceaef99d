"""
API request and response models for Bandstand REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py, which
own the internal domain representation. Route handlers map between the two.

Separation of concerns: auth/ models = domain truth; api/ models = API contract.
"""

import re
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

from auth.models import Principal, Role

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]{2,}$"
PHONE_PATTERN = r"^\+?[\d \-()/]{9,20}$"

# Lower, upper, digit, and special character, at least 10 characters.
# Lookaheads are not supported by pydantic-core's regex engine, so this is
# checked in a field_validator with the stdlib re module.
_PASSWORD_RE = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[!@£$%^&*()_+\-])[a-zA-Z0-9!@£$%^&*()_+\-]{10,}$")

# Deployments name the login field differently; all of these are accepted
# and folded into LoginRequest.identifier.
_IDENTIFIER_FIELDS = ("email", "username", "phoneNumber", "phone_number")


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class LoginRequest(BaseModel):
    """Request body for POST /api/v1/login.

    The identifier is an email or a phone number; which kinds are tried, and
    in what order, is decided by Settings.login_identifier_kinds.
    """

    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    identifier: str = Field(min_length=9, max_length=255)
    password: str = Field(min_length=10, max_length=255)

    @model_validator(mode="before")
    @classmethod
    def collect_identifier(cls, data: Any) -> Any:
        """Move the first alternative identifier field into 'identifier'."""
        if isinstance(data, dict) and "identifier" not in data:
            for name in _IDENTIFIER_FIELDS:
                if name in data:
                    data = dict(data)
                    data["identifier"] = data.pop(name)
                    break
        return data


class RegisterRequest(BaseModel):
    """Request body for POST /api/v1/users (self-registration).

    At least one of email / phone number is required. The role is not
    client-controlled: every self-registered principal is a USER.
    """

    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    email: Optional[str] = Field(default=None, min_length=9, max_length=255, pattern=EMAIL_PATTERN)
    phone_number: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("phone_number", "phoneNumber"),
        pattern=PHONE_PATTERN,
    )
    password: str = Field(max_length=255)

    @field_validator("password")
    @classmethod
    def password_strength(cls, value: str) -> str:
        if not _PASSWORD_RE.match(value):
            raise ValueError(
                "Password must be at least 10 characters and contain a lowercase letter, "
                "an uppercase letter, a digit, and a special character."
            )
        return value

    @model_validator(mode="after")
    def require_identifier(self) -> "RegisterRequest":
        if not self.email and not self.phone_number:
            raise ValueError("Either email or phone_number is required.")
        return self


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class PrincipalResponse(BaseModel):
    """Public view of a principal. Never includes the password hash."""

    model_config = ConfigDict(frozen=True)

    id: str
    email: Optional[str]
    phone_number: Optional[str]
    role: Role
    created_at: str
    updated_at: str

    @classmethod
    def from_principal(cls, principal: Principal, **extra: Any) -> "PrincipalResponse":
        """Factory Method: the mapping lives beside the output model."""
        return cls(
            id=principal.id,
            email=principal.email,
            phone_number=principal.phone_number,
            role=principal.role,
            created_at=principal.created_at or "",
            updated_at=principal.updated_at or "",
            **extra,
        )


class LoginResponse(PrincipalResponse):
    """Response for POST /api/v1/login: the principal plus 'Bearer <token>'."""

    token: str


class MessageResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    errors: Optional[list[dict]] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str]
