"""
Storefront — Transaction (order) schemas and status rules
"""
from enum import Enum

from pydantic import Field

from app.schemas.base import CamelModel, Notice
from app.schemas.cart import CartEntry, DeliveryLocation


class TransactionStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    READY = "ready"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


STATUS_RANK: dict[TransactionStatus, int] = {
    TransactionStatus.PENDING: 0,
    TransactionStatus.PROCESSING: 1,
    TransactionStatus.READY: 2,
    TransactionStatus.COMPLETED: 3,
}
TERMINAL_STATUSES = {TransactionStatus.COMPLETED, TransactionStatus.CANCELLED}


def can_transition(current: TransactionStatus, new: TransactionStatus) -> bool:
    """Forward moves (skips included) and cancellation of open orders are allowed.

    Re-writing the current status is accepted as a no-op.
    """
    if current == new:
        return True
    if current in TERMINAL_STATUSES:
        return False
    if new == TransactionStatus.CANCELLED:
        return True
    return STATUS_RANK[new] > STATUS_RANK[current]


class Transaction(CamelModel):
    id: str
    code: str
    kantin_id: str
    kantin_name: str = ""
    customer_name: str | None = None
    items: list[CartEntry] = Field(default_factory=list)
    total: int = 0
    payment_proof: str = ""
    delivery_location: DeliveryLocation | None = None
    status: TransactionStatus = TransactionStatus.PENDING
    created_at: str = ""


class CheckoutRequest(CamelModel):
    customer_name: str | None = Field(None, max_length=255)
    payment_proof: str = Field(..., min_length=1, examples=["https://drive.google.com/uc?export=view&id=abc"])


class StatusUpdateRequest(CamelModel):
    status: TransactionStatus


class TransactionResponse(CamelModel):
    transaction: Transaction
    synced: bool
    pending_sync: list[str] = Field(default_factory=list)
    notifications: list[Notice] = Field(default_factory=list)


class TransactionListResponse(CamelModel):
    items: list[Transaction]
    source: str
    pending_sync: list[str] = Field(default_factory=list)
    error: str | None = None
