"""
Storefront — Client notifications

Toast-style messages for one client. Each notice is logged, kept on the
notifier (so the current response can carry it) and published to the
client's Redis channel, from where the SSE endpoint streams it. Background
work that finishes after the response (remote deletes) still reaches the user
that way.
"""
import json
import logging
from dataclasses import asdict, dataclass

import redis.asyncio as aioredis

from app.core.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)

SUCCESS = "success"
WARNING = "warning"
ERROR = "error"

_LOG_LEVELS = {SUCCESS: logging.INFO, WARNING: logging.WARNING, ERROR: logging.ERROR}


@dataclass(frozen=True)
class Notification:
    level: str
    message: str
    entity_id: str | None = None

    def as_dict(self) -> dict:
        return {"level": self.level, "message": self.message, "entityId": self.entity_id}


def channel_for(client_id: str) -> str:
    return f"{settings.NOTIFICATION_CHANNEL_PREFIX}:{client_id}"


class Notifier:
    def __init__(self, redis: aioredis.Redis, client_id: str):
        self.redis = redis
        self.client_id = client_id
        self.sent: list[Notification] = []

    async def notify(self, level: str, message: str, entity_id: str | None = None) -> Notification:
        notification = Notification(level=level, message=message, entity_id=entity_id)
        self.sent.append(notification)
        logger.log(_LOG_LEVELS.get(level, logging.INFO), "[%s] %s", self.client_id, message)
        await self.publish("notification", notification.as_dict())
        return notification

    async def success(self, message: str, entity_id: str | None = None) -> Notification:
        return await self.notify(SUCCESS, message, entity_id)

    async def warning(self, message: str, entity_id: str | None = None) -> Notification:
        return await self.notify(WARNING, message, entity_id)

    async def error(self, message: str, entity_id: str | None = None) -> Notification:
        return await self.notify(ERROR, message, entity_id)

    async def publish(self, event: str, payload: dict) -> None:
        await self.redis.publish(channel_for(self.client_id), json.dumps({"event": event, "data": payload}))

    def notices(self) -> list[dict]:
        return [asdict(n) for n in self.sent]
