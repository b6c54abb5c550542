"""
Storefront — JWT Authentication Middleware
Shoppers are anonymous; only the vendor dashboard, the super-admin console and
the session endpoints require a Bearer token. A valid token on any other route
is still decoded and attached to request.state.claims.
"""
from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from jose import JWTError

from app.core.config import get_settings
from app.core.redis_client import get_redis
from app.core.security import decode_token, revoked_key

settings = get_settings()

# Paths that DO require authentication
PROTECTED_PREFIXES = (
    "/admin",
    "/dashboard",
    "/auth/me",
    "/auth/logout",
)


def _unauthorized(detail: str) -> JSONResponse:
    return JSONResponse(
        status_code=401,
        content={"detail": detail},
        headers={"WWW-Authenticate": "Bearer"},
    )


def is_protected(path: str) -> bool:
    return any(path == prefix or path.startswith(prefix + "/") for prefix in PROTECTED_PREFIXES)


class JWTAuthMiddleware(BaseHTTPMiddleware):
    """
    Intercepts every request. Validates JWT Bearer token when one is sent.
    Attaches decoded claims to request.state.claims on success.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        request.state.claims = None
        request.state.token = None

        if request.method == "OPTIONS":
            return await call_next(request)

        protected = is_protected(request.url.path)
        auth_header = request.headers.get("Authorization", "")
        if not auth_header.startswith("Bearer "):
            if protected:
                return _unauthorized("Missing or invalid Authorization header. Expected: Bearer <token>")
            return await call_next(request)

        token = auth_header.split(" ", 1)[1]
        try:
            claims = decode_token(token)
        except JWTError as exc:
            if protected:
                return _unauthorized(f"Invalid or expired JWT: {str(exc)}")
            # e.g. a Google access token sent to the upload route
            return await call_next(request)

        if claims.get("jti") and await get_redis().exists(revoked_key(claims["jti"])):
            if protected:
                return _unauthorized("Session has been logged out.")
            return await call_next(request)

        request.state.claims = claims
        request.state.token = token
        return await call_next(request)
