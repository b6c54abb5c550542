"""
Storefront — Super-admin vendor account routes

Every write is a dual write: the caller's cache is updated first, the
accounts sheet second. A failed sheet write leaves the cached change in
place and comes back as a warning, not an error.
"""
from fastapi import APIRouter, Depends, HTTPException, status

from app.api.deps import get_kantin_sync, get_notifier, require_superadmin
from app.core.ids import new_entity_id
from app.core.session import Session
from app.schemas.kantin import Kantin, KantinForm, KantinListResponse, KantinWriteResponse
from app.sync.dual_write import DualWriteSynchronizer, WriteOutcome
from app.sync.notifications import Notifier

router = APIRouter(prefix="/admin/kantins", tags=["admin"])


def _write_response(outcome: WriteOutcome, notifier: Notifier) -> KantinWriteResponse:
    return KantinWriteResponse(
        kantin=Kantin.model_validate(outcome.entity) if outcome.entity else None,
        synced=outcome.synced,
        pending_sync=sorted(outcome.pending),
        notifications=notifier.notices(),
    )


def _not_found(kantin_id: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Kantin '{kantin_id}' not found.")


@router.get("", response_model=KantinListResponse)
async def list_kantins(
    _: Session = Depends(require_superadmin),
    sync: DualWriteSynchronizer = Depends(get_kantin_sync),
):
    outcome = await sync.load()
    return KantinListResponse(
        items=[Kantin.model_validate(item) for item in outcome.items],
        source=outcome.source,
        pending_sync=sorted(outcome.pending),
    )


@router.post("", response_model=KantinWriteResponse, status_code=status.HTTP_201_CREATED)
async def create_kantin(
    payload: KantinForm,
    _: Session = Depends(require_superadmin),
    sync: DualWriteSynchronizer = Depends(get_kantin_sync),
    notifier: Notifier = Depends(get_notifier),
):
    entity = payload.to_row()
    entity["id"] = new_entity_id("kantin")
    entity["ownerId"] = new_entity_id("owner")
    return _write_response(await sync.create(entity), notifier)


@router.put("/{kantin_id}", response_model=KantinWriteResponse)
async def update_kantin(
    kantin_id: str,
    payload: KantinForm,
    _: Session = Depends(require_superadmin),
    sync: DualWriteSynchronizer = Depends(get_kantin_sync),
    notifier: Notifier = Depends(get_notifier),
):
    try:
        outcome = await sync.update(kantin_id, payload.to_row())
    except LookupError:
        raise _not_found(kantin_id)
    return _write_response(outcome, notifier)


@router.delete("/{kantin_id}", response_model=KantinWriteResponse)
async def delete_kantin(
    kantin_id: str,
    _: Session = Depends(require_superadmin),
    sync: DualWriteSynchronizer = Depends(get_kantin_sync),
    notifier: Notifier = Depends(get_notifier),
):
    """Removed locally at once; the sheet delete finishes in the background."""
    try:
        outcome = await sync.delete(kantin_id)
    except LookupError:
        raise _not_found(kantin_id)
    return _write_response(outcome, notifier)
