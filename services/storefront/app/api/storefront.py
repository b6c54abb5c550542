"""
Storefront — Shopper-facing vendor, menu and checkout routes
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, status

from app.api.deps import (
    get_cart_service,
    get_kantin_sync,
    get_local_store,
    get_notifier,
    get_sheet_gateway,
    resolve_kantin,
    transaction_synchronizer,
)
from app.cache.local_store import LocalCacheStore
from app.cart.reconcile import reconcile_menu
from app.cart.service import CartService
from app.core.config import get_settings
from app.core.ids import generate_transaction_code, new_entity_id, utc_now_iso
from app.gateway.codecs import decode_menu_row
from app.gateway.errors import GatewayError
from app.gateway.sheets import SheetGateway
from app.schemas.kantin import KantinPublic, KantinPublicListResponse
from app.schemas.menu import MenuItem, MenuListResponse
from app.schemas.transaction import CheckoutRequest, Transaction, TransactionResponse, TransactionStatus
from app.sync.dual_write import SOURCE_LOCAL, SOURCE_REMOTE, DualWriteSynchronizer
from app.sync.notifications import Notifier

settings = get_settings()
logger = logging.getLogger(__name__)
router = APIRouter(prefix="/kantin", tags=["storefront"])


async def load_menu(
    kantin: dict,
    store: LocalCacheStore,
    gateway: SheetGateway,
) -> tuple[list[MenuItem], str, str | None]:
    """Fetch a vendor's menu, caching it; fall back to the cached copy."""
    try:
        rows = await gateway.fetch_rows(kantin.get("spreadsheetApiUrl", ""), settings.SHEET_MENUS)
    except GatewayError as exc:
        logger.warning("Menu of %s unavailable, using cache: %s", kantin["id"], exc.message)
        cached = [MenuItem.model_validate(row) for row in await store.get_menus(kantin["id"])]
        return cached, SOURCE_LOCAL, exc.message

    items = [decode_menu_row(row) for row in rows]
    await store.save_menus(kantin["id"], [item.to_row() for item in items])
    return items, SOURCE_REMOTE, None


async def find_menu_item(
    kantin: dict,
    menu_id: str,
    store: LocalCacheStore,
    gateway: SheetGateway,
) -> MenuItem:
    for row in await store.get_menus(kantin["id"]):
        if row.get("id") == menu_id:
            return MenuItem.model_validate(row)

    items, _, error = await load_menu(kantin, store, gateway)
    for item in items:
        if item.id == menu_id:
            return item
    if error:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=error)
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Menu item '{menu_id}' not found.")


@router.get("", response_model=KantinPublicListResponse)
async def list_kantins(sync: DualWriteSynchronizer = Depends(get_kantin_sync)):
    """Vendor list: cached first, replaced by the accounts sheet when reachable."""
    outcome = await sync.load()
    return KantinPublicListResponse(
        items=[KantinPublic.model_validate(item) for item in outcome.items],
        source=outcome.source,
    )


@router.get("/{kantin_id}", response_model=KantinPublic)
async def get_kantin(kantin_id: str, sync: DualWriteSynchronizer = Depends(get_kantin_sync)):
    return KantinPublic.model_validate(await resolve_kantin(kantin_id, sync))


@router.get("/{kantin_id}/menus", response_model=MenuListResponse)
async def list_menus(
    kantin_id: str,
    sync: DualWriteSynchronizer = Depends(get_kantin_sync),
    store: LocalCacheStore = Depends(get_local_store),
    gateway: SheetGateway = Depends(get_sheet_gateway),
    cart: CartService = Depends(get_cart_service),
):
    kantin = await resolve_kantin(kantin_id, sync)
    items, source, error = await load_menu(kantin, store, gateway)
    return MenuListResponse(
        kantin_id=kantin_id,
        items=reconcile_menu(items, await cart.entries()),
        source=source,
        error=error,
    )


@router.post("/{kantin_id}/checkout", response_model=TransactionResponse, status_code=status.HTTP_201_CREATED)
async def checkout(
    kantin_id: str,
    payload: CheckoutRequest,
    sync: DualWriteSynchronizer = Depends(get_kantin_sync),
    store: LocalCacheStore = Depends(get_local_store),
    gateway: SheetGateway = Depends(get_sheet_gateway),
    notifier: Notifier = Depends(get_notifier),
    cart: CartService = Depends(get_cart_service),
):
    """Place an order: snapshot the cart, dual-write the transaction, empty the cart."""
    kantin = await resolve_kantin(kantin_id, sync)
    summary = await cart.summary()
    if not summary.items:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cart is empty.")

    transaction = Transaction(
        id=new_entity_id("txn"),
        code=generate_transaction_code(),
        kantin_id=kantin_id,
        kantin_name=kantin.get("name") or "Kantin",
        customer_name=(payload.customer_name or "").strip() or None,
        items=list(summary.items.values()),
        total=summary.total,
        payment_proof=payload.payment_proof,
        delivery_location=summary.delivery_location,
        status=TransactionStatus.PENDING,
        created_at=utc_now_iso(),
    )

    transactions = transaction_synchronizer(store, gateway, notifier, kantin)
    outcome = await transactions.create(transaction.to_row())
    await cart.clear()

    logger.info("Order %s placed at %s (synced=%s)", transaction.code, kantin_id, outcome.synced)
    return TransactionResponse(
        transaction=Transaction.model_validate(outcome.entity),
        synced=outcome.synced,
        pending_sync=sorted(outcome.pending),
        notifications=notifier.notices(),
    )
