"""
verify.py
---------
Purpose:
    JWT verification using Supabase JWKS (ES256) plus the dashboard admin gate.

Notes:
    - Fetches JWKS from Supabase and caches keys.
    - `auth_dependency` resolves the caller's claims for participant routes.
    - `admin_dependency` additionally requires the caller to be an organizer,
      either by `app_metadata.role == "admin"` or by email in ADMIN_EMAILS.
"""

from functools import lru_cache

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jwt import PyJWKClient

from app.config import settings

SUPABASE_AUDIENCE = "authenticated"

_security = HTTPBearer()


@lru_cache(maxsize=1)
def _jwk_client() -> PyJWKClient:
    return PyJWKClient(settings.jwks_url())


def verify_jwt(token: str) -> dict:
    try:
        signing_key = _jwk_client().get_signing_key_from_jwt(token)
        decoded = jwt.decode(
            token,
            signing_key.key,
            algorithms=["ES256"],
            audience=SUPABASE_AUDIENCE,
            options={"verify_exp": True},
        )
        return decoded
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid authentication token: {e}",
            headers={"WWW-Authenticate": "Bearer"},
        ) from e


def auth_dependency(credentials: HTTPAuthorizationCredentials = Depends(_security)) -> dict:
    token = credentials.credentials
    return verify_jwt(token)


def caller_email(claims: dict) -> str | None:
    """Email identity of the caller; participants are keyed by it."""
    email = claims.get("email")
    return email.strip().lower() if isinstance(email, str) and email.strip() else None


def is_admin(claims: dict) -> bool:
    app_metadata = claims.get("app_metadata") or {}
    if isinstance(app_metadata, dict) and app_metadata.get("role") == "admin":
        return True
    email = caller_email(claims)
    return bool(email and email in settings.admin_email_set())


def admin_dependency(claims: dict = Depends(auth_dependency)) -> dict:
    if not is_admin(claims):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    return claims
