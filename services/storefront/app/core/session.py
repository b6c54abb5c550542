"""
Storefront — Session context

Replaces the browser's ambient "who is logged in" global with an explicit
object built per request from the bearer token (if any).

Vendor logins are checked against the vendor accounts sheet, super-admin
logins against configured credentials. Passwords are compared as stored:
in plaintext.
"""
import hmac
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

import redis.asyncio as aioredis

from app.core.config import get_settings
from app.core.security import (
    ROLE_KANTIN,
    ROLE_SUPERADMIN,
    create_access_token,
    decode_token,
    revoked_key,
    seconds_until_expiry,
)

settings = get_settings()
logger = logging.getLogger(__name__)

KantinDirectory = Callable[[], Awaitable[list[dict]]]


class InvalidCredentials(Exception):
    def __init__(self, message: str = "Invalid email or password."):
        super().__init__(message)
        self.message = message


@dataclass(frozen=True)
class Session:
    role: str
    subject: str
    name: str = ""
    kantin_id: str | None = None
    token_id: str | None = None
    expires_in: int = 0

    @classmethod
    def from_claims(cls, claims: dict[str, Any]) -> "Session":
        return cls(
            role=claims.get("role", ""),
            subject=claims.get("sub", ""),
            name=claims.get("name", ""),
            kantin_id=claims.get("kantin_id"),
            token_id=claims.get("jti"),
            expires_in=seconds_until_expiry(claims),
        )


@dataclass(frozen=True)
class LoginResult:
    token: str
    session: Session
    kantin: dict | None = None


def _same(a: str, b: str) -> bool:
    return hmac.compare_digest(a.encode(), b.encode())


class SessionContext:
    def __init__(
        self,
        redis: aioredis.Redis,
        claims: dict[str, Any] | None = None,
        kantin_directory: KantinDirectory | None = None,
    ):
        self.redis = redis
        self.claims = claims
        self.kantin_directory = kantin_directory

    def current_session(self) -> Session | None:
        if not self.claims:
            return None
        return Session.from_claims(self.claims)

    async def login(self, role: str, credentials: dict[str, str]) -> LoginResult:
        """Authenticate and issue a token. Raises ``InvalidCredentials``.

        Gateway errors raised while reading the vendor accounts propagate.
        """
        if role == ROLE_SUPERADMIN:
            return self._login_superadmin(credentials.get("username", ""), credentials.get("password", ""))
        if role == ROLE_KANTIN:
            return await self._login_kantin(credentials.get("email", ""), credentials.get("password", ""))
        raise InvalidCredentials(f"Unknown role '{role}'.")

    def _login_superadmin(self, username: str, password: str) -> LoginResult:
        if not (_same(username, settings.SUPER_ADMIN_USERNAME) and _same(password, settings.SUPER_ADMIN_PASSWORD)):
            logger.info("Rejected super-admin login for %s", username)
            raise InvalidCredentials("Invalid username or password.")

        token = create_access_token({"sub": username, "role": ROLE_SUPERADMIN, "name": username})
        self.claims = decode_token(token)
        logger.info("Super-admin %s logged in", username)
        return LoginResult(token=token, session=Session.from_claims(self.claims))

    async def _login_kantin(self, email: str, password: str) -> LoginResult:
        if self.kantin_directory is None:
            raise InvalidCredentials("Vendor login is not available.")

        wanted = email.strip().lower()
        for kantin in await self.kantin_directory():
            if str(kantin.get("email", "")).strip().lower() != wanted:
                continue
            if not _same(str(kantin.get("password", "")), password):
                break
            token = create_access_token({
                "sub": kantin["id"],
                "role": ROLE_KANTIN,
                "name": kantin.get("name", ""),
                "kantin_id": kantin["id"],
                "owner_id": kantin.get("ownerId", ""),
            })
            self.claims = decode_token(token)
            logger.info("Vendor %s logged in", kantin["id"])
            return LoginResult(token=token, session=Session.from_claims(self.claims), kantin=kantin)

        logger.info("Rejected vendor login for %s", email)
        raise InvalidCredentials()

    async def logout(self) -> bool:
        session = self.current_session()
        if session is None or not session.token_id:
            return False
        await self.redis.set(revoked_key(session.token_id), "1", ex=session.expires_in)
        logger.info("Session %s (%s) logged out", session.subject, session.role)
        self.claims = None
        return True

    async def is_revoked(self) -> bool:
        session = self.current_session()
        if session is None or not session.token_id:
            return False
        return bool(await self.redis.exists(revoked_key(session.token_id)))
