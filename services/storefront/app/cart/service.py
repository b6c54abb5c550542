"""
Storefront — Cart service

Write-through cart on top of the local cache. Every write notifies the
registered cart-changed listeners so badge counts and totals recompute.
"""
import logging
from typing import Awaitable, Callable

from app.cache.local_store import LocalCacheStore
from app.cart.reconcile import QuantitySelector
from app.core.config import get_settings
from app.schemas.cart import CartEntry, CartSummary, DeliveryLocation
from app.schemas.menu import MenuItem

settings = get_settings()
logger = logging.getLogger(__name__)

CartListener = Callable[[CartSummary], Awaitable[None]]


class CartService:
    def __init__(self, store: LocalCacheStore):
        self.store = store
        self._listeners: list[CartListener] = []

    def subscribe(self, listener: CartListener) -> None:
        self._listeners.append(listener)

    async def entries(self) -> dict[str, CartEntry]:
        entries = {}
        for menu_id, raw in (await self.store.get_cart()).items():
            try:
                entries[menu_id] = CartEntry.model_validate(raw)
            except ValueError:
                logger.warning("Dropping unreadable cart entry %s", menu_id)
        return entries

    async def count(self) -> int:
        return sum(entry.quantity for entry in (await self.entries()).values())

    async def subtotal(self) -> int:
        return sum(entry.line_total for entry in (await self.entries()).values())

    async def summary(self) -> CartSummary:
        entries = await self.entries()
        location = await self.store.get_delivery_location()
        subtotal = sum(entry.line_total for entry in entries.values())
        delivery_fee = settings.DELIVERY_FEE if location else 0
        return CartSummary(
            items=entries,
            count=sum(entry.quantity for entry in entries.values()),
            subtotal=subtotal,
            delivery_fee=delivery_fee,
            total=subtotal + delivery_fee,
            delivery_location=DeliveryLocation.model_validate(location) if location else None,
        )

    async def upsert(self, item: MenuItem, quantity: int) -> None:
        cart = await self.store.get_cart()
        cart[item.id] = CartEntry(
            menu_id=item.id,
            menu_name=item.name,
            quantity=quantity,
            price=item.price,
        ).to_row()
        await self.store.save_cart(cart)
        await self._changed()

    async def remove(self, menu_id: str) -> bool:
        cart = await self.store.get_cart()
        removed = cart.pop(menu_id, None) is not None
        await self.store.save_cart(cart)
        await self._changed()
        return removed

    async def clear(self) -> None:
        await self.store.clear_cart()
        await self._changed()

    async def apply(self, selector: QuantitySelector, quantity: int | None) -> bool:
        """Persist a selector decision; ``None`` means nothing to write."""
        if quantity is None:
            return False
        await self.upsert(selector.item, quantity)
        return True

    async def _changed(self) -> None:
        if not self._listeners:
            return
        summary = await self.summary()
        for listener in self._listeners:
            await listener(summary)
