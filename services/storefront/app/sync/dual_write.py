"""
Storefront — Dual-write synchronizer

Every mutation of a vendor account or a transaction is a two-step saga:

  1. local commit: write to the client's cache, mark the entity pending-sync
  2. remote commit: mirror to the spreadsheet gateway

Step 1 cannot fail. Step 2 can, and there is no compensation: the local copy
is allowed to diverge until the next successful write or read, and the user
gets a warning instead of an error. Deletes do not wait for step 2 at all;
its outcome surfaces later through the client's notification channel.

Reads go the other way: render what the cache has, then fetch the remote
collection and, if that succeeds, replace the cached collection with it
wholesale. A remote snapshot that arrives after a newer load of the same
collection began is discarded.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Coroutine

from app.cache.local_store import CachedCollection
from app.core.ids import new_entity_id, to_epoch, utc_now_iso
from app.gateway.errors import GatewayError
from app.gateway.sheets import RemoteSheet
from app.sync.notifications import Notifier

logger = logging.getLogger(__name__)

Codec = Callable[[dict], dict]
Renderer = Callable[[list[dict], str], Awaitable[None]]

SOURCE_LOCAL = "local"
SOURCE_REMOTE = "remote"

_background_tasks: set[asyncio.Task] = set()


def _identity(record: dict) -> dict:
    return record


def sort_newest_first(items: list[dict]) -> list[dict]:
    return sorted(items, key=lambda item: to_epoch(item.get("createdAt")), reverse=True)


def schedule(coro: Coroutine) -> asyncio.Task:
    task = asyncio.get_running_loop().create_task(coro)
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)
    return task


async def drain_background_tasks() -> None:
    """Wait for outstanding remote writes (shutdown, tests)."""
    while _background_tasks:
        await asyncio.gather(*list(_background_tasks), return_exceptions=True)


@dataclass
class WriteOutcome:
    entity: dict | None
    items: list[dict]
    synced: bool
    pending: set[str] = field(default_factory=set)
    error: GatewayError | None = None


@dataclass
class LoadOutcome:
    items: list[dict]
    source: str
    pending: set[str] = field(default_factory=set)
    error: GatewayError | None = None
    stale: bool = False


@dataclass(frozen=True)
class SyncMessages:
    label: str
    remote_name: str = "Google Sheets"

    def created(self) -> str:
        return f"{self.label} created."

    def updated(self) -> str:
        return f"{self.label} updated."

    def deleted(self) -> str:
        return f"{self.label} deleted."

    def local_only(self, verb: str, error: str) -> str:
        return (
            f"{self.label} {verb} locally, but could not be saved to {self.remote_name} "
            f"({error}). Please try again."
        )

    def delete_failed(self, error: str) -> str:
        return (
            f"{self.label} was deleted locally, but could not be deleted from "
            f"{self.remote_name} ({error}). Please try again later."
        )


class DualWriteSynchronizer:
    def __init__(
        self,
        collection: CachedCollection,
        remote: RemoteSheet,
        notifier: Notifier,
        *,
        label: str,
        id_prefix: str,
        encode: Codec = _identity,
        decode: Codec = _identity,
        scope: tuple[str, str] | None = None,
        immutable_fields: tuple[str, ...] = ("id", "createdAt"),
    ):
        self.collection = collection
        self.remote = remote
        self.notifier = notifier
        self.messages = SyncMessages(label)
        self.id_prefix = id_prefix
        self.encode = encode
        self.decode = decode
        self.scope = scope
        self.immutable_fields = immutable_fields

    def _in_scope(self, item: dict) -> bool:
        if self.scope is None:
            return True
        field_name, value = self.scope
        return item.get(field_name) == value

    async def view(self) -> list[dict]:
        return sort_newest_first([item for item in await self.collection.all() if self._in_scope(item)])

    async def pending(self) -> set[str]:
        return await self.collection.pending_ids()

    async def find(self, entity_id: str) -> dict | None:
        return await self.collection.find(entity_id)

    async def _mirror(self, call: Callable[[], Awaitable[object]]) -> GatewayError | None:
        try:
            await call()
        except GatewayError as exc:
            logger.warning("Remote mirror of %s failed (%s): %s", self.collection.name, exc.kind, exc.message)
            return exc
        except Exception as exc:
            logger.exception("Remote mirror of %s raised", self.collection.name)
            return GatewayError(str(exc) or exc.__class__.__name__)
        return None

    async def _finish_write(self, entity: dict, verb: str, error: GatewayError | None) -> WriteOutcome:
        entity_id = entity["id"]
        if error is None:
            await self.collection.clear_pending(entity_id)
            message = self.messages.created() if verb == "created" else self.messages.updated()
            await self.notifier.success(message, entity_id)
        else:
            await self.notifier.warning(self.messages.local_only(verb, error.message), entity_id)
        return WriteOutcome(
            entity=entity,
            items=await self.view(),
            synced=error is None,
            pending=await self.pending(),
            error=error,
        )

    async def create(self, entity: dict) -> WriteOutcome:
        entity = dict(entity)
        entity.setdefault("id", new_entity_id(self.id_prefix))
        entity.setdefault("createdAt", utc_now_iso())

        await self.collection.save(entity)
        await self.collection.mark_pending(entity["id"])

        error = await self._mirror(lambda: self.remote.create(self.encode(entity)))
        return await self._finish_write(entity, "created", error)

    async def update(self, entity_id: str, changes: dict, base: dict | None = None) -> WriteOutcome:
        current = await self.collection.find(entity_id) or base
        if current is None:
            raise LookupError(entity_id)

        updated = {**current, **changes}
        for name in self.immutable_fields:
            if name in current:
                updated[name] = current[name]
        updated["id"] = entity_id

        await self.collection.save(updated)
        await self.collection.mark_pending(entity_id)

        error = await self._mirror(lambda: self.remote.update(entity_id, self.encode(updated)))
        return await self._finish_write(updated, "updated", error)

    async def delete(self, entity_id: str) -> WriteOutcome:
        if not await self.collection.delete(entity_id):
            raise LookupError(entity_id)
        await self.collection.mark_pending(entity_id)
        await self.notifier.success(self.messages.deleted(), entity_id)

        schedule(self._delete_remote(entity_id))
        return WriteOutcome(entity=None, items=await self.view(), synced=False, pending=await self.pending())

    async def _delete_remote(self, entity_id: str) -> None:
        error = await self._mirror(lambda: self.remote.delete(entity_id))
        if error is None:
            await self.collection.clear_pending(entity_id)
            logger.info("Remote delete of %s %s confirmed", self.collection.name, entity_id)
            return
        await self.notifier.warning(self.messages.delete_failed(error.message), entity_id)

    async def load(self, render: Renderer | None = None) -> LoadOutcome:
        generation = await self.collection.next_generation()

        local = await self.view()
        if render is not None:
            await render(local, SOURCE_LOCAL)

        try:
            rows = await self.remote.fetch_rows()
        except GatewayError as exc:
            logger.info("Keeping cached %s: %s", self.collection.name, exc.message)
            return LoadOutcome(items=local, source=SOURCE_LOCAL, pending=await self.pending(), error=exc)

        if await self.collection.current_generation() != generation:
            logger.info("Discarding stale %s snapshot (generation %d)", self.collection.name, generation)
            return LoadOutcome(items=local, source=SOURCE_LOCAL, pending=await self.pending(), stale=True)

        records = [record for record in (self.decode(row) for row in rows) if record.get("id")]
        if len(records) != len(rows):
            logger.warning("Skipped %d %s rows without an id", len(rows) - len(records), self.collection.name)
        if self.scope is None:
            await self.collection.replace_all(records)
            await self.collection.clear_all_pending()
        else:
            field_name, value = self.scope
            for record in records:
                if not record.get(field_name):
                    record[field_name] = value
            for item in local:
                await self.collection.clear_pending(item["id"])
            await self.collection.replace_where(field_name, value, records)

        items = await self.view()
        if render is not None:
            await render(items, SOURCE_REMOTE)
        return LoadOutcome(items=items, source=SOURCE_REMOTE, pending=await self.pending())
