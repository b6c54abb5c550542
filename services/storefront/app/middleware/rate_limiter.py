"""
Storefront — Sliding window rate limiter for logins (Redis-backed)

RATE_LIMIT_MAX_ATTEMPTS attempts per RATE_LIMIT_WINDOW_SECONDS per account,
for both vendor and super-admin logins. Sorted sets (ZADD/ZREMRANGEBYSCORE/
ZCARD) give a true sliding window.
"""
import json
import time

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request as StarletteRequest

from app.core.config import get_settings
from app.core.redis_client import get_redis

settings = get_settings()

RATE_LIMIT_PREFIX = "ratelimit:"
LOGIN_PATHS = {"/auth/kantin/login", "/auth/admin/login"}


def tracking_key(body: bytes, fallback: str) -> str:
    try:
        data = json.loads(body)
    except ValueError:
        return fallback
    if not isinstance(data, dict):
        return fallback
    account = data.get("email") or data.get("username")
    return str(account).strip().lower() if account else fallback


class SlidingWindowRateLimiter(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        if request.method != "POST" or request.url.path.rstrip("/") not in LOGIN_PATHS:
            return await call_next(request)

        body = await request.body()
        client_host = request.client.host if request.client else "unknown"
        key = f"{RATE_LIMIT_PREFIX}{request.url.path.rstrip('/')}:{tracking_key(body, client_host)}"

        redis = get_redis()
        now = time.time()
        window_start = now - settings.RATE_LIMIT_WINDOW_SECONDS

        pipe = redis.pipeline()
        pipe.zremrangebyscore(key, "-inf", window_start)
        pipe.zcard(key)
        pipe.zadd(key, {str(now): now})
        pipe.expire(key, settings.RATE_LIMIT_WINDOW_SECONDS + 1)
        results = await pipe.execute()

        attempt_count = results[1]  # count before this attempt
        if attempt_count >= settings.RATE_LIMIT_MAX_ATTEMPTS:
            return JSONResponse(
                status_code=429,
                content={
                    "detail": (
                        f"Too many login attempts. Maximum {settings.RATE_LIMIT_MAX_ATTEMPTS} "
                        f"attempts per {settings.RATE_LIMIT_WINDOW_SECONDS} seconds."
                    ),
                    "retry_after_seconds": settings.RATE_LIMIT_WINDOW_SECONDS,
                },
                headers={"Retry-After": str(settings.RATE_LIMIT_WINDOW_SECONDS)},
            )

        # Re-attach consumed body so the route can read it
        async def receive():
            return {"type": "http.request", "body": body, "more_body": False}

        return await call_next(StarletteRequest(request.scope, receive))
