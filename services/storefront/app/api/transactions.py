"""
Storefront — Transaction routes

Two surfaces:
  - /api/transactions: raw pass-through to a vendor's script, keeping the
    ``{success, data | error}`` envelope browsers already consume
  - /transactions: the shopper's order history, cache first
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from app.api.deps import (
    get_kantin_sync,
    get_local_store,
    get_notifier,
    get_sheet_gateway,
    resolve_kantin,
    transaction_synchronizer,
)
from app.cache.local_store import LocalCacheStore
from app.core.config import get_settings
from app.gateway.errors import GatewayError
from app.gateway.sheets import SheetGateway
from app.schemas.transaction import Transaction, TransactionListResponse
from app.sync.dual_write import SOURCE_LOCAL, DualWriteSynchronizer, sort_newest_first
from app.sync.notifications import Notifier

settings = get_settings()
logger = logging.getLogger(__name__)
router = APIRouter(tags=["transactions"])


class SaveTransactionRequest(BaseModel):
    scriptUrl: str | None = None
    transaction: dict | None = None


def _failure(message: str, status_code: int) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


# ── pass-through API ──────────────────────────────────────────

@router.post("/api/transactions")
async def save_transaction(payload: SaveTransactionRequest, gateway: SheetGateway = Depends(get_sheet_gateway)):
    if not payload.scriptUrl:
        return _failure("Spreadsheet URL is required", status.HTTP_400_BAD_REQUEST)
    if not payload.transaction:
        return _failure("Transaction data is required", status.HTTP_400_BAD_REQUEST)

    try:
        result = await gateway.create(payload.scriptUrl, settings.SHEET_TRANSACTIONS, payload.transaction)
    except GatewayError as exc:
        logger.warning("Saving transaction failed (%s): %s", exc.kind, exc.message)
        return _failure(exc.message or "Failed to save transaction", status.HTTP_500_INTERNAL_SERVER_ERROR)

    return {"success": True, "message": "Transaction saved successfully", "data": result.data}


@router.get("/api/transactions")
async def fetch_transactions(
    script_url: str | None = Query(None, alias="scriptUrl"),
    gateway: SheetGateway = Depends(get_sheet_gateway),
):
    if not script_url:
        return _failure("Spreadsheet URL is required", status.HTTP_400_BAD_REQUEST)

    try:
        rows = await gateway.fetch_rows(script_url, settings.SHEET_TRANSACTIONS)
    except GatewayError as exc:
        logger.warning("Fetching transactions failed (%s): %s", exc.kind, exc.message)
        return _failure(exc.message or "Failed to fetch transactions", status.HTTP_500_INTERNAL_SERVER_ERROR)

    return {"success": True, "data": sort_newest_first(rows)}


# ── order history ─────────────────────────────────────────────

async def _vendor_transactions(
    kantin_id: str,
    store: LocalCacheStore,
    gateway: SheetGateway,
    notifier: Notifier,
    kantin_sync: DualWriteSynchronizer,
):
    kantin = await resolve_kantin(kantin_id, kantin_sync)
    return await transaction_synchronizer(store, gateway, notifier, kantin).load()


@router.get("/transactions", response_model=TransactionListResponse)
async def list_transactions(
    kantin_id: str | None = Query(None, alias="kantinId"),
    store: LocalCacheStore = Depends(get_local_store),
    gateway: SheetGateway = Depends(get_sheet_gateway),
    notifier: Notifier = Depends(get_notifier),
    kantin_sync: DualWriteSynchronizer = Depends(get_kantin_sync),
):
    """Order history. With ``kantinId`` the vendor's sheet replaces that vendor's cached orders."""
    if not kantin_id:
        items = sort_newest_first(await store.transactions.all())
        return TransactionListResponse(
            items=[Transaction.model_validate(item) for item in items],
            source=SOURCE_LOCAL,
            pending_sync=sorted(await store.transactions.pending_ids()),
        )

    outcome = await _vendor_transactions(kantin_id, store, gateway, notifier, kantin_sync)
    return TransactionListResponse(
        items=[Transaction.model_validate(item) for item in outcome.items],
        source=outcome.source,
        pending_sync=sorted(outcome.pending),
        error=outcome.error.message if outcome.error else None,
    )


def _matches(item: dict, code: str) -> bool:
    return str(item.get("code", "")).lower() == code.lower() or item.get("id") == code


@router.get("/transactions/search", response_model=Transaction)
async def search_transaction(
    code: str = Query(..., min_length=1),
    kantin_id: str | None = Query(None, alias="kantinId"),
    store: LocalCacheStore = Depends(get_local_store),
    gateway: SheetGateway = Depends(get_sheet_gateway),
    notifier: Notifier = Depends(get_notifier),
    kantin_sync: DualWriteSynchronizer = Depends(get_kantin_sync),
):
    """Look an order up by its code (case-insensitive) or id."""
    code = code.strip()
    if kantin_id:
        outcome = await _vendor_transactions(kantin_id, store, gateway, notifier, kantin_sync)
        for item in outcome.items:
            if _matches(item, code):
                return Transaction.model_validate(item)

    for item in await store.transactions.all():
        if _matches(item, code):
            return Transaction.model_validate(item)

    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"No order with code '{code}'.")
