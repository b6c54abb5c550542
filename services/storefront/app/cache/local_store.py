"""
Storefront — Local cache store

Per-client key/value cache in Redis, playing the part a browser's localStorage
plays for the web client: cart, delivery location, transaction history, vendor
list and the last menu fetched per vendor. Values are stored as JSON strings
under ``<prefix>:<client_id>:<name>``.

Writes here are treated as infallible; callers do not guard them.
"""
import json
from typing import Any, Iterable

import redis.asyncio as aioredis

from app.core.config import get_settings

settings = get_settings()

CART = "cart"
DELIVERY_LOCATION = "delivery_location"
TRANSACTIONS = "transactions"
KANTINS = "kantins"


class LocalCacheStore:
    def __init__(self, redis: aioredis.Redis, client_id: str):
        self.redis = redis
        self.client_id = client_id

    def key(self, name: str) -> str:
        return f"{settings.CACHE_KEY_PREFIX}:{self.client_id}:{name}"

    async def get_json(self, name: str, default: Any = None) -> Any:
        raw = await self.redis.get(self.key(name))
        if raw is None:
            return default
        try:
            return json.loads(raw)
        except ValueError:
            return default

    async def set_json(self, name: str, value: Any) -> None:
        await self.redis.set(self.key(name), json.dumps(value))

    async def delete(self, name: str) -> None:
        await self.redis.delete(self.key(name))

    # ── cart ──────────────────────────────────────────────────

    async def get_cart(self) -> dict[str, dict]:
        cart = await self.get_json(CART, {})
        return cart if isinstance(cart, dict) else {}

    async def save_cart(self, cart: dict[str, dict]) -> None:
        await self.set_json(CART, cart)

    async def clear_cart(self) -> None:
        await self.delete(CART)

    # ── delivery location ─────────────────────────────────────

    async def get_delivery_location(self) -> dict | None:
        location = await self.get_json(DELIVERY_LOCATION)
        return location if isinstance(location, dict) else None

    async def save_delivery_location(self, location: dict) -> None:
        await self.set_json(DELIVERY_LOCATION, location)

    async def clear_delivery_location(self) -> None:
        await self.delete(DELIVERY_LOCATION)

    # ── menus ─────────────────────────────────────────────────

    async def get_menus(self, kantin_id: str) -> list[dict]:
        menus = await self.get_json(f"menus:{kantin_id}", [])
        return menus if isinstance(menus, list) else []

    async def save_menus(self, kantin_id: str, rows: list[dict]) -> None:
        await self.set_json(f"menus:{kantin_id}", rows)

    # ── collections ───────────────────────────────────────────

    def collection(self, name: str) -> "CachedCollection":
        return CachedCollection(self, name)

    @property
    def transactions(self) -> "CachedCollection":
        return self.collection(TRANSACTIONS)

    @property
    def kantins(self) -> "CachedCollection":
        return self.collection(KANTINS)


class CachedCollection:
    """A list of ``{"id": ...}`` records plus its pending-sync set."""

    def __init__(self, store: LocalCacheStore, name: str):
        self.store = store
        self.name = name

    @property
    def pending_key(self) -> str:
        return self.store.key(f"pending:{self.name}")

    @property
    def generation_key(self) -> str:
        return self.store.key(f"generation:{self.name}")

    async def all(self) -> list[dict]:
        items = await self.store.get_json(self.name, [])
        if not isinstance(items, list):
            return []
        return [item for item in items if isinstance(item, dict)]

    async def find(self, entity_id: str) -> dict | None:
        for item in await self.all():
            if item.get("id") == entity_id:
                return item
        return None

    async def filter_by(self, field: str, value: Any) -> list[dict]:
        return [item for item in await self.all() if item.get(field) == value]

    async def save(self, entity: dict) -> None:
        """Insert or replace by id."""
        items = await self.all()
        for index, item in enumerate(items):
            if item.get("id") == entity.get("id"):
                items[index] = entity
                break
        else:
            items.append(entity)
        await self.store.set_json(self.name, items)

    async def delete(self, entity_id: str) -> bool:
        items = await self.all()
        kept = [item for item in items if item.get("id") != entity_id]
        await self.store.set_json(self.name, kept)
        return len(kept) != len(items)

    async def replace_all(self, items: Iterable[dict]) -> None:
        await self.store.set_json(self.name, list(items))

    async def replace_where(self, field: str, value: Any, items: Iterable[dict]) -> None:
        """Swap out every record whose ``field`` equals ``value``; others are kept."""
        kept = [item for item in await self.all() if item.get(field) != value]
        await self.store.set_json(self.name, kept + list(items))

    # ── pending sync ──────────────────────────────────────────

    async def mark_pending(self, entity_id: str) -> None:
        await self.store.redis.sadd(self.pending_key, entity_id)

    async def clear_pending(self, entity_id: str) -> None:
        await self.store.redis.srem(self.pending_key, entity_id)

    async def clear_all_pending(self) -> None:
        await self.store.redis.delete(self.pending_key)

    async def pending_ids(self) -> set[str]:
        return set(await self.store.redis.smembers(self.pending_key))

    # ── load generations ──────────────────────────────────────

    async def next_generation(self) -> int:
        return int(await self.store.redis.incr(self.generation_key))

    async def current_generation(self) -> int:
        raw = await self.store.redis.get(self.generation_key)
        return int(raw) if raw is not None else 0
