"""
Shared fixtures: fakeredis for the local cache, an in-memory Apps Script
served through httpx.MockTransport, and an ASGI client for the app.
"""
import json
import os

os.environ.setdefault("SUPER_ADMIN_SCRIPT_URL", "https://script.test/admin/exec")
os.environ.setdefault("SUPER_ADMIN_USERNAME", "admin")
os.environ.setdefault("SUPER_ADMIN_PASSWORD", "admin-secret")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")
os.environ.setdefault("METRICS_ENABLED", "false")

import fakeredis.aioredis
import httpx
import pytest
import pytest_asyncio

from app.cache.local_store import LocalCacheStore
from app.core import redis_client
from app.core.security import ROLE_KANTIN, ROLE_SUPERADMIN, create_access_token
from app.gateway.sheets import RemoteSheet, SheetGateway
from app.sync.dual_write import drain_background_tasks
from app.sync.notifications import Notifier

ADMIN_SCRIPT = "https://script.test/admin/exec"
KANTIN_SCRIPT = "https://script.test/kantin-1/exec"
CLIENT_ID = "client-1"

HTML_LOGIN_PAGE = "<!DOCTYPE html><html><head><title>Sign in - Google Accounts</title></head></html>"


class FakeScript:
    """In-memory stand-in for the Apps Script web apps.

    Rows live per (script url, sheet). ``fail`` makes a sheet answer with a
    canned response for the given actions ("read", "create", "update",
    "delete"; all when omitted).
    """

    def __init__(self):
        self.sheets: dict[tuple[str, str], list[dict]] = {}
        self.failures: dict[tuple[str, str], tuple[set[str] | None, dict]] = {}
        self.requests: list[httpx.Request] = []

    def rows(self, url: str, sheet: str) -> list[dict]:
        return self.sheets.setdefault((url, sheet), [])

    def fail(self, url: str, sheet: str, status_code: int = 200, actions: set[str] | None = None, **response) -> None:
        self.failures[(url, sheet)] = (actions, {"status_code": status_code, **response})

    def heal(self, url: str, sheet: str) -> None:
        self.failures.pop((url, sheet), None)

    def calls(self, action: str | None = None) -> list[httpx.Request]:
        return [r for r in self.requests if action is None or self._action(r) == action]

    @staticmethod
    def _action(request: httpx.Request) -> str:
        if request.method == "GET":
            return "read"
        return json.loads(request.content)["action"]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = f"{request.url.scheme}://{request.url.host}{request.url.path}"
        sheet = request.url.params.get("sheet")
        action = self._action(request)

        failure = self.failures.get((url, sheet))
        if failure and (failure[0] is None or action in failure[0]):
            return httpx.Response(**failure[1])

        rows = self.rows(url, sheet)
        if action == "read":
            return httpx.Response(200, json={"data": rows})

        body = json.loads(request.content)
        if action == "create":
            rows.append(body["data"])
            return httpx.Response(200, json={"success": True, "data": body["data"]})

        for index, row in enumerate(rows):
            if row.get("id") == body["id"]:
                if action == "update":
                    rows[index] = {**row, **body["data"]}
                else:
                    del rows[index]
                return httpx.Response(200, json={"success": True})
        return httpx.Response(200, json={"success": False, "error": f"Row {body['id']} not found"})

    def gateway(self) -> SheetGateway:
        return SheetGateway(transport=httpx.MockTransport(self.handler))

    def sheet(self, url: str, name: str) -> RemoteSheet:
        return RemoteSheet(self.gateway(), url, name)


def kantin_row(**overrides) -> dict:
    row = {
        "id": "kantin-1",
        "name": "Kantin Satu",
        "description": "Nasi dan mie",
        "ownerId": "owner-1",
        "email": "satu@kantin.test",
        "password": "rahasia",
        "spreadsheetApiUrl": KANTIN_SCRIPT,
        "spreadsheetUrl": "https://docs.google.com/spreadsheets/d/abc",
        "whatsapp": "08123",
        "coverImage": "",
        "qrisImage": "",
        "isOpen": "TRUE",
        "operatingHours": "[]",
        "createdAt": "2026-01-01T08:00:00.000Z",
    }
    row.update(overrides)
    return row


def menu_row(**overrides) -> dict:
    row = {
        "id": "menu-1",
        "name": "Nasi Goreng",
        "description": "",
        "price": "15000",
        "available": "TRUE",
        "quantity": "5",
        "image": "",
    }
    row.update(overrides)
    return row


def kantin_token(kantin_id: str = "kantin-1") -> str:
    return create_access_token({"sub": kantin_id, "role": ROLE_KANTIN, "name": "Kantin Satu", "kantin_id": kantin_id})


def admin_token() -> str:
    return create_access_token({"sub": "admin", "role": ROLE_SUPERADMIN, "name": "admin"})


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def redis(monkeypatch):
    fake = fakeredis.aioredis.FakeRedis(decode_responses=True)
    monkeypatch.setattr(redis_client, "_redis_client", fake)
    yield fake
    await drain_background_tasks()
    await fake.flushall()
    await fake.aclose()


@pytest.fixture
def script():
    return FakeScript()


@pytest.fixture
def store(redis):
    return LocalCacheStore(redis, CLIENT_ID)


@pytest.fixture
def notifier(redis):
    return Notifier(redis, CLIENT_ID)


@pytest_asyncio.fixture
async def client(redis, script):
    from app.api.deps import get_sheet_gateway
    from app.main import app

    app.dependency_overrides[get_sheet_gateway] = script.gateway
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://test",
        headers={"X-Client-Id": CLIENT_ID},
    ) as c:
        yield c
    app.dependency_overrides.clear()
