"""
Storefront — Cart & delivery location schemas
"""
from pydantic import Field

from app.schemas.base import CamelModel


class CartEntry(CamelModel):
    menu_id: str
    menu_name: str
    quantity: int = Field(..., ge=1)
    price: int = Field(..., ge=0)

    @property
    def line_total(self) -> int:
        return self.price * self.quantity


class DeliveryLocation(CamelModel):
    name: str
    table_number: str
    scanned_at: str


class DeliveryLocationRequest(CamelModel):
    meja: str = Field(..., min_length=1, max_length=200, examples=["Gedung A - Meja 1"])


class CartSummary(CamelModel):
    items: dict[str, CartEntry]
    count: int
    subtotal: int
    delivery_fee: int
    total: int
    delivery_location: DeliveryLocation | None = None


class AddToCartRequest(CamelModel):
    quantity: int = Field(1, examples=[1])


class QuantityChangeRequest(CamelModel):
    quantity: int = Field(..., examples=[2])
    displayed: int | None = Field(None, ge=0)


class SelectorResponse(CamelModel):
    menu_id: str
    quantity: int
    headroom: int | None
    can_increment: bool
    written: bool
    cart: CartSummary
