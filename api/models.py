"""
API request and response models for the portfolio admin REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py, which
own the internal domain representation. Route handlers map between the two.

Request fields that the auth core validates itself (email/password presence,
new password length) default to None rather than being required here, so a
missing field reaches AuthService and comes back as a 400 invalid_input
instead of a 422 from Pydantic.

The admin frontend posts camelCase keys for the password change
(currentPassword/newPassword); both spellings are accepted.
"""

from datetime import datetime
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from auth.models import Admin

# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class LoginRequest(BaseModel):
    """Request body for POST /api/v1/auth/login.

    No whitespace stripping: a password is compared exactly as sent. The
    service normalizes the email itself.
    """

    email: Optional[str] = Field(default=None, max_length=255)
    password: Optional[str] = Field(default=None, max_length=255)


class ProfileUpdate(BaseModel):
    """Request body for PUT /api/v1/auth/profile. Only name and email are applied."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = Field(default=None, max_length=255)
    email: Optional[str] = Field(default=None, max_length=255)


class PasswordChange(BaseModel):
    """Request body for PUT /api/v1/auth/change-password."""

    current_password: Optional[str] = Field(
        default=None,
        max_length=255,
        validation_alias=AliasChoices("current_password", "currentPassword"),
    )
    new_password: Optional[str] = Field(
        default=None,
        max_length=255,
        validation_alias=AliasChoices("new_password", "newPassword"),
    )


class TokenVerifyRequest(BaseModel):
    """Request body for POST /api/v1/auth/verify-token."""

    token: Optional[str] = None


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class AdminSummary(BaseModel):
    """Redacted account view. Never carries the password hash.

    Serialized with by_alias=True: the admin frontend reads lastLogin.
    """

    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    email: str
    role: str
    last_login: Optional[datetime] = Field(default=None, serialization_alias="lastLogin")

    @classmethod
    def from_admin(cls, admin: Admin) -> "AdminSummary":
        """Build the public summary from an auth Admin snapshot."""
        return cls(
            id=admin.id,
            name=admin.name,
            email=admin.email,
            role=admin.role,
            last_login=admin.last_login,
        )


class LoginResponse(BaseModel):
    """Response for POST /api/v1/auth/login."""

    model_config = ConfigDict(frozen=True)

    token: str
    token_type: str = "bearer"
    expires_in: int
    admin: AdminSummary


class MessageResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str] = Field(default_factory=dict)
