# modules/security/tokens.py
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt

from config.settings import settings
from modules.security.model import UserRole
from modules.security.perms import Principal


def create_access_token(user_id: int, email: str, role: UserRole | str,
                        expires_delta: Optional[timedelta] = None) -> str:
    expires = datetime.now(timezone.utc) + (expires_delta or timedelta(days=settings.ACCESS_TOKEN_EXPIRE_DAYS))
    payload = {
        "sub": str(user_id),
        "email": email,
        "role": UserRole(role).value,
        "exp": expires,
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> Optional[Principal]:
    """Return the principal encoded in the token, or None if it is invalid or expired."""
    if not token:
        return None
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        return Principal(id=int(payload["sub"]), email=payload.get("email") or "", role=UserRole(payload["role"]))
    except (JWTError, KeyError, TypeError, ValueError):
        return None
