"""
Storefront — Menu schemas
"""
from app.schemas.base import CamelModel


class MenuItem(CamelModel):
    """A menu row as read from a vendor's ``Menus`` sheet.

    ``quantity`` is ``None`` when the vendor does not track stock; ``0`` means
    sold out.
    """

    id: str
    name: str = ""
    description: str = ""
    price: int = 0
    available: bool = False
    quantity: int | None = None
    image: str = ""


class MenuItemView(MenuItem):
    """A menu row reconciled against the caller's cart."""

    unavailable: bool
    status_label: str | None = None
    cart_quantity: int = 0
    initial_quantity: int = 1
    headroom: int | None = None


class MenuListResponse(CamelModel):
    kantin_id: str
    items: list[MenuItemView]
    source: str
    error: str | None = None
