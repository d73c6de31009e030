"""
api/routes/v1/auth.py -- Admin authentication REST endpoints.

Routes:
  POST /api/v1/auth/login            -- email/password login; returns a bearer token
  GET  /api/v1/auth/me               -- current admin summary (requires auth)
  PUT  /api/v1/auth/profile          -- update name/email (requires auth)
  PUT  /api/v1/auth/change-password  -- change password (requires auth)
  POST /api/v1/auth/logout           -- stateless no-op (requires auth)
  POST /api/v1/auth/verify-token     -- check a token from the request body (public)

Status mapping for domain errors lives in api/main.py (auth_error_handler):
400 invalid_input / duplicate_email, 401 invalid_credentials / invalid_token /
token_expired, 423 account_locked. The one exception is change-password,
where a wrong current password is a 400 -- the caller is already
authenticated, so it is bad input rather than a failed login.

Security:
  POST /login is rate-limited per IP on top of the per-account lockout.
  Cache-Control: no-store on responses that carry or describe tokens.
  Logout does not revoke anything: tokens are stateless and the client
  discards its copy. Deactivating the account is the server-side kill switch.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse

from api.limiter import limiter
from api.models import (
    AdminSummary,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    PasswordChange,
    ProfileUpdate,
    TokenVerifyRequest,
)
from auth.dependencies import get_auth_service, get_current_admin
from auth.errors import InvalidCredentials
from auth.models import Admin
from auth.service import AuthService

# Auth policy:
# - POST /api/v1/auth/login:           public -- login endpoint must be unauthenticated
# - POST /api/v1/auth/verify-token:    public -- the token under test is the credential
# - GET  /api/v1/auth/me:              requires auth (get_current_admin)
# - PUT  /api/v1/auth/profile:         requires auth (get_current_admin)
# - PUT  /api/v1/auth/change-password: requires auth (get_current_admin)
# - POST /api/v1/auth/logout:          requires auth (get_current_admin)
router = APIRouter()


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@limiter.limit("10/minute")  # must be ABOVE @router to preserve FastAPI introspection
@router.post("/auth/login", response_model=LoginResponse)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with email and password; return a bearer token.

    AuthService.login raises InvalidInput (400), InvalidCredentials (401) or
    AccountLocked (423); the app-level handler renders those.
    """
    service: AuthService = request.app.state.auth_service
    result = service.login(body.email, body.password)
    resp = JSONResponse(
        status_code=200,
        content=LoginResponse(
            token=result.token,
            token_type="bearer",  # noqa: S106 # nosec B106 -- token type, not a password
            expires_in=service.signer.expire_seconds,
            admin=AdminSummary.from_admin(result.admin),
        ).model_dump(mode="json", by_alias=True),
    )
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/auth/verify-token", response_model=AdminSummary)
def verify_token(body: TokenVerifyRequest, service: AuthService = Depends(get_auth_service)) -> JSONResponse:
    """Report whether a token is valid and, if so, whose it is.

    Missing token -> 400, bad signature or inactive account -> 401
    invalid_token, past expiry -> 401 token_expired.
    """
    admin = service.verify_token(body.token)
    resp = JSONResponse(content=AdminSummary.from_admin(admin).model_dump(mode="json", by_alias=True))
    resp.headers["Cache-Control"] = "no-store"
    return resp


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.get("/auth/me", response_model=AdminSummary, response_model_by_alias=True)
async def me(current_admin: Admin = Depends(get_current_admin)) -> AdminSummary:
    """Return the summary of the currently authenticated admin."""
    return AdminSummary.from_admin(current_admin)


@router.put("/auth/profile", response_model=AdminSummary, response_model_by_alias=True)
def update_profile(
    body: ProfileUpdate,
    current_admin: Admin = Depends(get_current_admin),
    service: AuthService = Depends(get_auth_service),
) -> AdminSummary:
    """Update the current admin's display name and/or email.

    Empty fields are ignored. An email already used by another account is a
    400 duplicate_email.
    """
    updated = service.update_profile(current_admin.id, name=body.name, email=body.email)
    return AdminSummary.from_admin(updated)


@router.put("/auth/change-password", response_model=MessageResponse)
def change_password(
    body: PasswordChange,
    current_admin: Admin = Depends(get_current_admin),
    service: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    """Change the current admin's password after checking the current one."""
    try:
        service.change_password(current_admin.id, body.current_password, body.new_password)
    except InvalidCredentials as exc:
        raise HTTPException(
            status_code=400,
            detail={"code": "invalid_current_password", "message": exc.message},
        ) from exc
    return MessageResponse(message="Password changed successfully.")


@router.post("/auth/logout", response_model=MessageResponse)
async def logout(current_admin: Admin = Depends(get_current_admin)) -> MessageResponse:
    """Acknowledge logout. The client discards its token; nothing is revoked server-side."""
    return MessageResponse(message="Logout successful.")
