"""
Storefront — Cart and delivery location routes

Quantity changes go through the server-side quantity selector so the cart can
never hold more than the vendor's sheet reports in stock.
"""
from fastapi import APIRouter, Depends, HTTPException, status

from app.api.deps import get_cart_service, get_kantin_sync, get_local_store, get_sheet_gateway, resolve_kantin
from app.api.storefront import find_menu_item
from app.cache.local_store import LocalCacheStore
from app.cart.delivery import KNOWN_LOCATIONS, parse_meja
from app.cart.reconcile import QuantitySelector
from app.cart.service import CartService
from app.gateway.sheets import SheetGateway
from app.schemas.cart import (
    AddToCartRequest,
    CartSummary,
    DeliveryLocation,
    DeliveryLocationRequest,
    QuantityChangeRequest,
    SelectorResponse,
)
from app.sync.dual_write import DualWriteSynchronizer

router = APIRouter(tags=["cart"])


async def _selector(
    kantin_id: str,
    menu_id: str,
    displayed: int | None,
    cart: CartService,
    sync: DualWriteSynchronizer,
    store: LocalCacheStore,
    gateway: SheetGateway,
) -> QuantitySelector:
    kantin = await resolve_kantin(kantin_id, sync)
    item = await find_menu_item(kantin, menu_id, store, gateway)
    selector = QuantitySelector.for_item(item, await cart.entries(), displayed)
    if selector.unavailable:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"'{item.name}' is not available.")
    return selector


async def _selector_response(selector: QuantitySelector, written: bool, cart: CartService) -> SelectorResponse:
    return SelectorResponse(
        menu_id=selector.item.id,
        quantity=selector.displayed,
        headroom=selector.headroom,
        can_increment=selector.can_increment,
        written=written,
        cart=await cart.summary(),
    )


@router.get("/cart", response_model=CartSummary)
async def get_cart(cart: CartService = Depends(get_cart_service)):
    return await cart.summary()


@router.post("/cart/{kantin_id}/items/{menu_id}", response_model=SelectorResponse)
async def add_to_cart(
    kantin_id: str,
    menu_id: str,
    payload: AddToCartRequest | None = None,
    cart: CartService = Depends(get_cart_service),
    sync: DualWriteSynchronizer = Depends(get_kantin_sync),
    store: LocalCacheStore = Depends(get_local_store),
    gateway: SheetGateway = Depends(get_sheet_gateway),
):
    """Put the selector's current quantity into the cart (replacing, not adding)."""
    displayed = payload.quantity if payload else None
    selector = await _selector(kantin_id, menu_id, displayed, cart, sync, store, gateway)
    written = await cart.apply(selector, selector.add_to_cart())
    return await _selector_response(selector, written, cart)


@router.put("/cart/{kantin_id}/items/{menu_id}", response_model=SelectorResponse)
async def change_quantity(
    kantin_id: str,
    menu_id: str,
    payload: QuantityChangeRequest,
    cart: CartService = Depends(get_cart_service),
    sync: DualWriteSynchronizer = Depends(get_kantin_sync),
    store: LocalCacheStore = Depends(get_local_store),
    gateway: SheetGateway = Depends(get_sheet_gateway),
):
    """Stepper change: clamp to [1, headroom] and persist immediately."""
    selector = await _selector(kantin_id, menu_id, payload.displayed, cart, sync, store, gateway)
    written = await cart.apply(selector, selector.change(payload.quantity))
    return await _selector_response(selector, written, cart)


@router.delete("/cart/items/{menu_id}", response_model=CartSummary)
async def remove_from_cart(menu_id: str, cart: CartService = Depends(get_cart_service)):
    if not await cart.remove(menu_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"'{menu_id}' is not in the cart.")
    return await cart.summary()


@router.delete("/cart", response_model=CartSummary)
async def clear_cart(cart: CartService = Depends(get_cart_service)):
    await cart.clear()
    return await cart.summary()


# ── delivery location ─────────────────────────────────────────

@router.get("/delivery-location", response_model=DeliveryLocation | None)
async def get_delivery_location(store: LocalCacheStore = Depends(get_local_store)):
    location = await store.get_delivery_location()
    return DeliveryLocation.model_validate(location) if location else None


@router.get("/delivery-location/options")
async def delivery_location_options():
    return KNOWN_LOCATIONS


@router.put("/delivery-location", response_model=CartSummary)
async def set_delivery_location(
    payload: DeliveryLocationRequest,
    store: LocalCacheStore = Depends(get_local_store),
    cart: CartService = Depends(get_cart_service),
):
    """Record the scanned table; orders then carry the delivery fee."""
    await store.save_delivery_location(parse_meja(payload.meja).to_row())
    return await cart.summary()


@router.delete("/delivery-location", response_model=CartSummary)
async def clear_delivery_location(
    store: LocalCacheStore = Depends(get_local_store),
    cart: CartService = Depends(get_cart_service),
):
    await store.clear_delivery_location()
    return await cart.summary()
