"""
Storefront — Cart/stock reconciliation

A menu card's quantity selector has to stay consistent with two things that
move independently: what the cart already holds for the item, and the stock
the vendor's sheet reports (which can shrink between page loads).

  headroom = stock − (cart_quantity − displayed)

``cart_quantity`` is the persisted cart amount, ``displayed`` is the
selector's own value; the two differ transiently, and the difference is what
is already spoken for. Untracked stock (``quantity is None``) never clamps.
"""
from dataclasses import dataclass
from typing import Mapping

from app.schemas.cart import CartEntry
from app.schemas.menu import MenuItem, MenuItemView

STATUS_NOT_AVAILABLE = "not_available"
STATUS_SOLD_OUT = "sold_out"


def is_unavailable(item: MenuItem) -> bool:
    return not item.available or (item.quantity is not None and item.quantity < 1)


def status_label(item: MenuItem) -> str | None:
    if not item.available:
        return STATUS_NOT_AVAILABLE
    if is_unavailable(item):
        return STATUS_SOLD_OUT
    return None


def cart_quantity(item: MenuItem, cart: Mapping[str, CartEntry]) -> int:
    entry = cart.get(item.id)
    return entry.quantity if entry else 0


def initial_quantity(item: MenuItem, cart: Mapping[str, CartEntry]) -> int:
    entry = cart.get(item.id)
    return entry.quantity if entry else 1


def headroom(item: MenuItem, in_cart: int, displayed: int) -> int | None:
    if item.quantity is None:
        return None
    return item.quantity - (in_cart - displayed)


@dataclass
class QuantitySelector:
    """Server-side twin of a menu card's −/+ control.

    ``change`` returns the quantity to persist into the cart, or ``None`` when
    nothing may be written (item unavailable, or no unit left once the cart
    is counted). A tracked stock is also a hard cap on the written quantity,
    whatever ``displayed`` the caller reports.
    """

    item: MenuItem
    in_cart: int
    displayed: int

    @classmethod
    def for_item(
        cls,
        item: MenuItem,
        cart: Mapping[str, CartEntry],
        displayed: int | None = None,
    ) -> "QuantitySelector":
        if displayed is None or displayed < 1:
            displayed = initial_quantity(item, cart)
        return cls(item=item, in_cart=cart_quantity(item, cart), displayed=displayed)

    @property
    def unavailable(self) -> bool:
        return is_unavailable(self.item)

    @property
    def headroom(self) -> int | None:
        return headroom(self.item, self.in_cart, self.displayed)

    @property
    def can_increment(self) -> bool:
        limit = self.headroom
        if self.item.quantity is not None and limit is not None:
            limit = min(limit, self.item.quantity)
        return not self.unavailable and (limit is None or self.displayed < limit)

    def change(self, requested: int) -> int | None:
        if self.unavailable:
            return None

        quantity = max(1, requested)
        limit = self.headroom
        if limit is not None and quantity > limit:
            if limit < 1:
                return None
            quantity = limit
        if self.item.quantity is not None:
            quantity = min(quantity, self.item.quantity)

        self.displayed = quantity
        self.in_cart = quantity
        return quantity

    def increment(self) -> int | None:
        return self.change(self.displayed + 1)

    def decrement(self) -> int | None:
        return self.change(self.displayed - 1)

    def add_to_cart(self) -> int | None:
        return self.change(self.displayed)


def reconcile_menu(items: list[MenuItem], cart: Mapping[str, CartEntry]) -> list[MenuItemView]:
    views = []
    for item in items:
        selector = QuantitySelector.for_item(item, cart)
        views.append(MenuItemView(
            **item.model_dump(),
            unavailable=selector.unavailable,
            status_label=status_label(item),
            cart_quantity=selector.in_cart,
            initial_quantity=selector.displayed,
            headroom=selector.headroom,
        ))
    return views
