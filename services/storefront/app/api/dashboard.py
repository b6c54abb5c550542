"""
Storefront — Vendor dashboard routes (role: kantin)
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, status

from app.api.deps import (
    get_current_kantin,
    get_kantin_sync,
    get_local_store,
    get_notifier,
    get_sheet_gateway,
    transaction_synchronizer,
)
from app.cache.local_store import LocalCacheStore
from app.gateway.sheets import SheetGateway
from app.schemas.kantin import Kantin, KantinProfileUpdate, KantinStatusRequest, KantinWriteResponse
from app.schemas.transaction import (
    StatusUpdateRequest,
    Transaction,
    TransactionListResponse,
    TransactionResponse,
    TransactionStatus,
    can_transition,
)
from app.sync.dual_write import DualWriteSynchronizer, WriteOutcome
from app.sync.notifications import Notifier

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/dashboard", tags=["dashboard"])


def _kantin_response(outcome: WriteOutcome, notifier: Notifier) -> KantinWriteResponse:
    return KantinWriteResponse(
        kantin=Kantin.model_validate(outcome.entity),
        synced=outcome.synced,
        pending_sync=sorted(outcome.pending),
        notifications=notifier.notices(),
    )


@router.get("", response_model=Kantin)
async def get_dashboard(kantin: dict = Depends(get_current_kantin)):
    return Kantin.model_validate(kantin)


@router.post("/status", response_model=KantinWriteResponse)
async def set_open_status(
    payload: KantinStatusRequest,
    kantin: dict = Depends(get_current_kantin),
    sync: DualWriteSynchronizer = Depends(get_kantin_sync),
    notifier: Notifier = Depends(get_notifier),
):
    """Open or close the shop. Writing the current value again is harmless."""
    outcome = await sync.update(kantin["id"], {"isOpen": payload.is_open}, base=kantin)
    return _kantin_response(outcome, notifier)


@router.put("/profile", response_model=KantinWriteResponse)
async def update_profile(
    payload: KantinProfileUpdate,
    kantin: dict = Depends(get_current_kantin),
    sync: DualWriteSynchronizer = Depends(get_kantin_sync),
    notifier: Notifier = Depends(get_notifier),
):
    changes = payload.model_dump(by_alias=True, exclude_none=True, mode="json")
    if not changes:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Nothing to update.")
    outcome = await sync.update(kantin["id"], changes, base=kantin)
    return _kantin_response(outcome, notifier)


@router.get("/transactions", response_model=TransactionListResponse)
async def list_orders(
    kantin: dict = Depends(get_current_kantin),
    store: LocalCacheStore = Depends(get_local_store),
    gateway: SheetGateway = Depends(get_sheet_gateway),
    notifier: Notifier = Depends(get_notifier),
):
    outcome = await transaction_synchronizer(store, gateway, notifier, kantin).load()
    return TransactionListResponse(
        items=[Transaction.model_validate(item) for item in outcome.items],
        source=outcome.source,
        pending_sync=sorted(outcome.pending),
        error=outcome.error.message if outcome.error else None,
    )


@router.post("/transactions/{transaction_id}/status", response_model=TransactionResponse)
async def update_order_status(
    transaction_id: str,
    payload: StatusUpdateRequest,
    kantin: dict = Depends(get_current_kantin),
    store: LocalCacheStore = Depends(get_local_store),
    gateway: SheetGateway = Depends(get_sheet_gateway),
    notifier: Notifier = Depends(get_notifier),
):
    orders = transaction_synchronizer(store, gateway, notifier, kantin)

    current = await orders.find(transaction_id)
    if current is None:
        outcome = await orders.load()
        current = next((item for item in outcome.items if item.get("id") == transaction_id), None)
    if current is None or current.get("kantinId") != kantin["id"]:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Order '{transaction_id}' not found.")

    current_status = TransactionStatus(current.get("status") or TransactionStatus.PENDING.value)
    if not can_transition(current_status, payload.status):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Cannot change order status from '{current_status.value}' to '{payload.status.value}'.",
        )

    outcome = await orders.update(transaction_id, {"status": payload.status.value})
    logger.info("Order %s: %s -> %s", transaction_id, current_status.value, payload.status.value)
    return TransactionResponse(
        transaction=Transaction.model_validate(outcome.entity),
        synced=outcome.synced,
        pending_sync=sorted(outcome.pending),
        notifications=notifier.notices(),
    )
