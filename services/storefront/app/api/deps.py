"""
Storefront — FastAPI dependencies

Everything a route needs is built per request from the caller's client id
(``X-Client-Id`` header or ``client_id`` cookie), which namespaces the local
cache the way a browser's localStorage is scoped to one browser.
"""
import logging
import re
import uuid

from fastapi import Depends, HTTPException, Request, Response, status

from app.cache.local_store import LocalCacheStore
from app.cart.service import CartService
from app.core.config import get_settings
from app.core.redis_client import get_redis
from app.core.security import ROLE_KANTIN, ROLE_SUPERADMIN
from app.core.session import Session, SessionContext
from app.gateway.codecs import decode_kantin, decode_transaction, encode_kantin, encode_transaction
from app.gateway.sheets import RemoteSheet, SheetGateway
from app.schemas.cart import CartSummary
from app.storage.drive import DriveUploader
from app.sync.dual_write import DualWriteSynchronizer
from app.sync.notifications import Notifier

settings = get_settings()
logger = logging.getLogger(__name__)

CLIENT_ID_HEADER = "X-Client-Id"
CLIENT_ID_COOKIE = "client_id"
_CLIENT_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,128}$")


# ── client identity & local cache ─────────────────────────────

def get_client_id(request: Request, response: Response) -> str:
    client_id = request.headers.get(CLIENT_ID_HEADER) or request.cookies.get(CLIENT_ID_COOKIE)
    if not client_id:
        client_id = uuid.uuid4().hex
        response.set_cookie(CLIENT_ID_COOKIE, client_id, httponly=True, samesite="lax")
        logger.debug("Issued client id %s", client_id)
    elif not _CLIENT_ID_PATTERN.match(client_id):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid client id.")
    return client_id


def get_local_store(client_id: str = Depends(get_client_id)) -> LocalCacheStore:
    return LocalCacheStore(get_redis(), client_id)


def get_notifier(client_id: str = Depends(get_client_id)) -> Notifier:
    return Notifier(get_redis(), client_id)


def get_cart_service(
    store: LocalCacheStore = Depends(get_local_store),
    notifier: Notifier = Depends(get_notifier),
) -> CartService:
    service = CartService(store)

    async def publish_cart(summary: CartSummary) -> None:
        await notifier.publish("cart_changed", {"count": summary.count, "total": summary.total})

    service.subscribe(publish_cart)
    return service


# ── remote adapters (overridden in tests) ─────────────────────

def get_sheet_gateway() -> SheetGateway:
    return SheetGateway()


def get_drive_uploader() -> DriveUploader:
    return DriveUploader()


# ── synchronizers ─────────────────────────────────────────────

def kantin_synchronizer(
    store: LocalCacheStore,
    gateway: SheetGateway,
    notifier: Notifier,
) -> DualWriteSynchronizer:
    return DualWriteSynchronizer(
        store.kantins,
        RemoteSheet(gateway, settings.SUPER_ADMIN_SCRIPT_URL, settings.SHEET_KANTIN),
        notifier,
        label="Kantin",
        id_prefix="kantin",
        encode=encode_kantin,
        decode=decode_kantin,
        immutable_fields=("id", "ownerId", "createdAt"),
    )


def transaction_synchronizer(
    store: LocalCacheStore,
    gateway: SheetGateway,
    notifier: Notifier,
    kantin: dict,
) -> DualWriteSynchronizer:
    return DualWriteSynchronizer(
        store.transactions,
        RemoteSheet(gateway, kantin.get("spreadsheetApiUrl", ""), settings.SHEET_TRANSACTIONS),
        notifier,
        label="Transaction",
        id_prefix="txn",
        encode=encode_transaction,
        decode=decode_transaction,
        scope=("kantinId", kantin["id"]),
        immutable_fields=("id", "code", "kantinId", "createdAt"),
    )


def get_kantin_sync(
    store: LocalCacheStore = Depends(get_local_store),
    gateway: SheetGateway = Depends(get_sheet_gateway),
    notifier: Notifier = Depends(get_notifier),
) -> DualWriteSynchronizer:
    return kantin_synchronizer(store, gateway, notifier)


async def resolve_kantin(kantin_id: str, sync: DualWriteSynchronizer) -> dict:
    """Find a vendor locally, falling back to a fresh load of the accounts sheet."""
    kantin = await sync.find(kantin_id)
    if kantin:
        return kantin

    outcome = await sync.load()
    for item in outcome.items:
        if item.get("id") == kantin_id:
            return item

    if outcome.error is not None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=outcome.error.message)
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Kantin '{kantin_id}' not found.")


# ── session ───────────────────────────────────────────────────

def get_session_context(
    request: Request,
    gateway: SheetGateway = Depends(get_sheet_gateway),
) -> SessionContext:
    async def kantin_directory() -> list[dict]:
        rows = await gateway.fetch_rows(settings.SUPER_ADMIN_SCRIPT_URL, settings.SHEET_KANTIN)
        return [decode_kantin(row) for row in rows]

    return SessionContext(
        get_redis(),
        claims=getattr(request.state, "claims", None),
        kantin_directory=kantin_directory,
    )


def require_role(role: str):
    def dependency(context: SessionContext = Depends(get_session_context)) -> Session:
        session = context.current_session()
        if session is None:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Not authenticated.",
                headers={"WWW-Authenticate": "Bearer"},
            )
        if session.role != role:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=f"Requires role '{role}'.")
        return session

    return dependency


require_superadmin = require_role(ROLE_SUPERADMIN)
require_kantin = require_role(ROLE_KANTIN)


async def get_current_kantin(
    session: Session = Depends(require_kantin),
    sync: DualWriteSynchronizer = Depends(get_kantin_sync),
) -> dict:
    return await resolve_kantin(session.kantin_id or session.subject, sync)
