"""
Storefront — Remote spreadsheet gateway

Thin adapter over the per-vendor Google Apps Script endpoints that act as the
system's database. Every call is ``<scriptUrl>?sheet=<name>`` with GET for
reads and POST ``{action, id?, data?}`` for writes.

Response bodies come as ``{data: [...]}``, as a bare array or as
``{success, data, error}``, and sometimes as an HTML page. ``parse_response``
collapses them into one ``SheetResponse`` or raises a typed ``GatewayError``,
checked in this order:

  1. HTML page                → HtmlResponseError
  2. not JSON                 → FormatError
  3. explicit error/success:false → AppError
  4. data / array / success:true  → SheetResponse
  5. anything else            → FormatError
"""
import json
import logging
from dataclasses import dataclass
from typing import Any

import httpx

from app.core.config import get_settings
from app.core.ids import epoch_millis, random_suffix
from app.gateway.errors import (
    AppError,
    ConfigError,
    FormatError,
    GatewayError,
    HtmlResponseError,
    TransportError,
)

settings = get_settings()
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SheetResponse:
    success: bool
    data: Any = None
    error: str | None = None

    @classmethod
    def from_error(cls, exc: GatewayError) -> "SheetResponse":
        return cls(success=False, error=exc.message)


def looks_like_html(text: str) -> bool:
    upper = text.upper()
    return text.strip().startswith("<") or "<HTML>" in upper or "<!DOCTYPE" in upper


def parse_response(text: str) -> SheetResponse:
    if looks_like_html(text):
        raise HtmlResponseError(
            "Google Script returned HTML instead of JSON. Please check the script "
            "deployment settings (must be deployed as web app with access for anyone)."
        )

    try:
        payload = json.loads(text)
    except ValueError:
        raise FormatError(f"Invalid JSON response: {text[:200] if text else 'No response'}")

    if isinstance(payload, list):
        return SheetResponse(success=True, data=payload)

    if not isinstance(payload, dict):
        raise FormatError("Invalid response format from Google Script")

    if payload.get("error") or payload.get("success") is False:
        raise AppError(str(payload.get("error") or "Request failed"))

    if "data" in payload:
        return SheetResponse(success=True, data=payload["data"])

    if payload.get("success") is True:
        return SheetResponse(success=True, data=None)

    raise FormatError("Invalid response format from Google Script")


def rows_from(data: Any) -> list[dict]:
    """Pull the row list out of a normalised ``data`` value."""
    if data is None:
        return []
    if isinstance(data, dict) and "data" in data:
        data = data["data"]
    if not isinstance(data, list):
        raise FormatError("Expected a list of rows from Google Script")
    return [row for row in data if isinstance(row, dict)]


class SheetGateway:
    def __init__(
        self,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.timeout = timeout if timeout is not None else settings.HTTP_TIMEOUT_SECONDS
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.timeout,
            transport=self._transport,
            follow_redirects=True,
        )

    async def request(
        self,
        script_url: str,
        sheet: str,
        method: str = "GET",
        payload: dict | None = None,
    ) -> SheetResponse:
        if not script_url:
            raise ConfigError("Google Script URL is not configured")

        # Apps Script responses are cached aggressively upstream.
        params = {"sheet": sheet, "t": str(epoch_millis()), "r": random_suffix()}

        try:
            async with self._client() as client:
                response = await client.request(
                    method,
                    script_url,
                    params=params,
                    json=payload if method == "POST" else None,
                )
        except httpx.TimeoutException:
            raise TransportError(f"Google Script for sheet '{sheet}' did not respond in time.")
        except httpx.RequestError as exc:
            raise TransportError(f"Google Script unreachable: {exc}")

        if not response.is_success:
            logger.warning("Sheet %s answered HTTP %s", sheet, response.status_code)
            detail = response.text[:100]
            raise TransportError(
                f"HTTP {response.status_code}: {response.reason_phrase}" + (f" - {detail}" if detail else ""),
                status_code=response.status_code,
            )

        return parse_response(response.text)

    async def fetch_rows(self, script_url: str, sheet: str) -> list[dict]:
        result = await self.request(script_url, sheet, "GET")
        return rows_from(result.data)

    async def create(self, script_url: str, sheet: str, data: dict) -> SheetResponse:
        return await self.request(script_url, sheet, "POST", {"action": "create", "data": data})

    async def update(self, script_url: str, sheet: str, entity_id: str, data: dict) -> SheetResponse:
        return await self.request(
            script_url, sheet, "POST", {"action": "update", "id": entity_id, "data": data}
        )

    async def delete(self, script_url: str, sheet: str, entity_id: str) -> SheetResponse:
        return await self.request(script_url, sheet, "POST", {"action": "delete", "id": entity_id})


@dataclass(frozen=True)
class RemoteSheet:
    """A gateway bound to one script URL and sheet."""

    gateway: SheetGateway
    script_url: str
    sheet: str

    async def fetch_rows(self) -> list[dict]:
        return await self.gateway.fetch_rows(self.script_url, self.sheet)

    async def create(self, data: dict) -> SheetResponse:
        return await self.gateway.create(self.script_url, self.sheet, data)

    async def update(self, entity_id: str, data: dict) -> SheetResponse:
        return await self.gateway.update(self.script_url, self.sheet, entity_id, data)

    async def delete(self, entity_id: str) -> SheetResponse:
        return await self.gateway.delete(self.script_url, self.sheet, entity_id)
