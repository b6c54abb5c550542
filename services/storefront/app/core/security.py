"""
Storefront — JWT session tokens
"""
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import jwt

from app.core.config import get_settings

settings = get_settings()

ROLE_KANTIN = "kantin"
ROLE_SUPERADMIN = "superadmin"
ROLES = (ROLE_KANTIN, ROLE_SUPERADMIN)

REVOKED_PREFIX = "revoked:"


def create_access_token(data: dict[str, Any]) -> str:
    payload = data.copy()
    expire = datetime.now(tz=timezone.utc) + timedelta(
        minutes=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES
    )
    payload.update({"exp": expire, "type": "access", "jti": str(uuid.uuid4())})
    return jwt.encode(payload, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> dict[str, Any]:
    """Decode and validate a JWT. Raises JWTError on failure."""
    return jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])


def revoked_key(jti: str) -> str:
    return f"{REVOKED_PREFIX}{jti}"


def seconds_until_expiry(claims: dict[str, Any]) -> int:
    exp = claims.get("exp")
    if not exp:
        return settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES * 60
    return max(1, int(exp - datetime.now(tz=timezone.utc).timestamp()))
