# modules/security/deps.py
from __future__ import annotations

from typing import Callable

from fastapi import Depends, Request

from config.settings import settings
from modules.common.errors import Forbidden, Unauthorized
from modules.security.model import UserRole
from modules.security.perms import Principal
from modules.security.tokens import decode_access_token


def _token_from_request(request: Request) -> str | None:
    # cookie first (browser clients), then bearer header
    token = request.cookies.get(settings.AUTH_COOKIE_NAME)
    if token:
        return token
    auth = request.headers.get("Authorization") or ""
    scheme, _, value = auth.partition(" ")
    if scheme.lower() == "bearer" and value.strip():
        return value.strip()
    return None


def get_current_principal(request: Request) -> Principal:
    """
    Resolve the authenticated principal from the session credential; 401 if absent or invalid.
    """
    token = _token_from_request(request)
    if not token:
        raise Unauthorized("Authenticate yourself")

    principal = decode_access_token(token)
    if principal is None:
        raise Unauthorized("Authentication failed, login again")
    return principal


def require_roles(*roles: UserRole) -> Callable:
    """
    FastAPI dependency:
      @router.get(..., dependencies=[Depends(require_roles(UserRole.ADMIN))])
    """
    allowed = set(roles)

    def _dep(principal: Principal = Depends(get_current_principal)) -> Principal:
        if principal.role not in allowed:
            raise Forbidden("Unauthorized")
        return principal
    return _dep
