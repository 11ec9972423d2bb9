from typing import Optional

from fastapi import Depends, Header
from fastapi.security import HTTPAuthorizationCredentials

from app.core.config import get_settings
from app.core.dependencies import decode_token, security_optional
from app.core.exceptions import ForbiddenException, UnauthorizedException


def require_admin(
    x_admin_api_key: str = Header(default="", alias="X-ADMIN-API-KEY"),
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security_optional),
) -> str:
    """
    Admin auth for the review console.

    Accepts either the X-ADMIN-API-KEY header (scripts) or a user token whose
    email is listed in ADMIN_EMAILS. Unconfigured keys/lists deny access (fail closed).
    """
    settings = get_settings()

    expected_key = (settings.ADMIN_API_KEY or "").strip()
    provided_key = (x_admin_api_key or "").strip()
    if expected_key and provided_key == expected_key:
        return "admin_api_key"

    if not credentials:
        raise UnauthorizedException("Unauthorized")

    payload = decode_token(credentials.credentials)
    if not payload:
        raise UnauthorizedException("Invalid token")

    allowed = {e.strip().lower() for e in settings.ADMIN_EMAILS if e.strip()}
    email = (payload.get("email") or "").strip().lower()
    if not email or email not in allowed:
        raise ForbiddenException("Admin access denied")
    return email
