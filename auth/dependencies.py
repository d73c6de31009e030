"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

Token transport is the Authorization: Bearer <token> header only. There is no
cookie session and no API key path.

get_auth_service() pulls the AuthService built in the app lifespan off
app.state. get_current_admin() wraps AuthService.authenticate_request() and
turns every auth failure -- missing header, bad signature, expired token,
deactivated account -- into HTTP 401.

Layer rule: no imports from core/.
  auth/dependencies.py may import from fastapi (for Depends/HTTPException/Request)
  because this module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from fastapi import Depends, HTTPException, Request

from auth.errors import AuthError, SigningKeyMissing, TokenExpired
from auth.models import Admin
from auth.service import AuthService


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def bearer_token(request: Request) -> str | None:
    """Return the token from an Authorization: Bearer header, or None."""
    auth_header = request.headers.get("Authorization", "")
    scheme, _, token = auth_header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def get_current_admin(request: Request, service: AuthService = Depends(get_auth_service)) -> Admin:
    """Require a valid bearer token. Raises HTTP 401 on any failure.

    Use as a FastAPI dependency:
        @router.get("/protected")
        async def route(admin: Admin = Depends(get_current_admin)): ...
    """
    token = bearer_token(request)
    if token is None:
        raise HTTPException(
            status_code=401,
            detail={"code": "unauthorized", "message": "No token, authorization denied."},
        )
    try:
        return service.authenticate_request(token)
    except SigningKeyMissing:
        raise
    except TokenExpired as exc:
        raise HTTPException(status_code=401, detail={"code": exc.code, "message": exc.message}) from exc
    except AuthError as exc:
        raise HTTPException(
            status_code=401,
            detail={"code": "unauthorized", "message": "Token is not valid."},
        ) from exc
