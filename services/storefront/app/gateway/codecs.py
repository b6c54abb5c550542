"""
Storefront — Row codecs

The sheets only hold flat cell values, so composite fields (order items,
delivery location, operating hours) travel as JSON text and booleans/numbers
often come back as strings. Encoders flatten a record for a remote write;
decoders rebuild it field by field, so one corrupt cell degrades to an empty
value instead of losing the whole row.
"""
import hashlib
import json
import logging
import math
import re
from typing import Any

from app.schemas.menu import MenuItem
from app.schemas.transaction import TransactionStatus

logger = logging.getLogger(__name__)

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")
_NON_SLUG = re.compile(r"[^a-z0-9]+")


def parse_int(value: Any) -> int | None:
    """Lenient integer read: ``"12"``, ``12.0`` and ``"12 porsi"`` are 12.

    Returns ``None`` for blanks, booleans and anything without leading digits.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None
    match = _LEADING_INT.match(str(value))
    return int(match.group(1)) if match else None


def parse_stock(value: Any) -> int | None:
    """``None`` means stock is not tracked; ``0`` means sold out."""
    if value is None or value == "":
        return None
    quantity = parse_int(value)
    if quantity is None:
        return None
    return max(quantity, 0)


def parse_bool(value: Any, default: bool = False) -> bool:
    if isinstance(value, bool):
        return value
    if value is None or value == "":
        return default
    return str(value).strip().lower() == "true"


def fallback_menu_id(row: dict) -> str:
    """Id for a menu row that has none, stable across reads of the same row."""
    slug = _NON_SLUG.sub("-", str(row.get("name") or "").lower()).strip("-")
    if slug:
        return f"menu-{slug}"
    digest = hashlib.sha1(json.dumps(row, sort_keys=True, default=str).encode()).hexdigest()
    return f"menu-{digest[:12]}"


def decode_menu_row(row: dict) -> MenuItem:
    return MenuItem(
        id=str(row.get("id") or fallback_menu_id(row)),
        name=str(row.get("name") or ""),
        description=str(row.get("description") or ""),
        price=parse_int(row.get("price")) or 0,
        available=parse_bool(row.get("available")),
        quantity=parse_stock(row.get("quantity")),
        image=str(row.get("image") or ""),
    )


# ── JSON-in-a-cell fields ─────────────────────────────────────

def encode_json_field(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"))


def decode_list_field(value: Any) -> list[dict]:
    if isinstance(value, list):
        return [item for item in value if isinstance(item, dict)]
    if not isinstance(value, str) or not value.strip().startswith(("[", "{")):
        if value not in (None, ""):
            logger.warning("Unreadable list cell: %r", str(value)[:80])
        return []
    try:
        decoded = json.loads(value)
    except ValueError:
        logger.warning("Corrupt list cell: %r", value[:80])
        return []
    if not isinstance(decoded, list):
        return []
    return [item for item in decoded if isinstance(item, dict)]


def decode_object_field(value: Any) -> dict | None:
    if isinstance(value, dict):
        return value
    if not isinstance(value, str) or not value.strip().startswith("{"):
        return None
    try:
        decoded = json.loads(value)
    except ValueError:
        logger.warning("Corrupt object cell: %r", value[:80])
        return None
    return decoded if isinstance(decoded, dict) else None


# ── transactions ──────────────────────────────────────────────

def _decode_cart_items(value: Any) -> list[dict]:
    items = []
    for raw in decode_list_field(value):
        quantity = parse_int(raw.get("quantity"))
        price = parse_int(raw.get("price"))
        if not raw.get("menuId") or quantity is None or quantity < 1 or price is None or price < 0:
            continue
        items.append({
            "menuId": str(raw["menuId"]),
            "menuName": str(raw.get("menuName") or ""),
            "quantity": quantity,
            "price": price,
        })
    return items


def _decode_location(value: Any) -> dict | None:
    location = decode_object_field(value)
    if not location or not location.get("name"):
        return None
    return {
        "name": str(location["name"]),
        "tableNumber": str(location.get("tableNumber") or ""),
        "scannedAt": str(location.get("scannedAt") or ""),
    }


def encode_transaction(transaction: dict) -> dict:
    row = dict(transaction)
    row["items"] = encode_json_field(transaction.get("items") or [])
    if transaction.get("deliveryLocation"):
        row["deliveryLocation"] = encode_json_field(transaction["deliveryLocation"])
    else:
        row.pop("deliveryLocation", None)
    if not transaction.get("customerName"):
        row.pop("customerName", None)
    return row


def decode_transaction(row: dict) -> dict:
    status = str(row.get("status") or TransactionStatus.PENDING.value).strip().lower()
    if status not in {s.value for s in TransactionStatus}:
        status = TransactionStatus.PENDING.value
    return {
        "id": str(row.get("id") or ""),
        "code": str(row.get("code") or ""),
        "kantinId": str(row.get("kantinId") or ""),
        "kantinName": str(row.get("kantinName") or ""),
        "customerName": str(row["customerName"]) if row.get("customerName") else None,
        "items": _decode_cart_items(row.get("items")),
        "total": parse_int(row.get("total")) or 0,
        "paymentProof": str(row.get("paymentProof") or ""),
        "deliveryLocation": _decode_location(row.get("deliveryLocation")),
        "status": status,
        "createdAt": str(row.get("createdAt") or ""),
    }


# ── vendors ───────────────────────────────────────────────────

def encode_kantin(kantin: dict) -> dict:
    row = dict(kantin)
    row["operatingHours"] = encode_json_field(kantin.get("operatingHours") or [])
    return row


def decode_kantin(row: dict) -> dict:
    hours = []
    for raw in decode_list_field(row.get("operatingHours")):
        if not raw.get("day"):
            continue
        hours.append({
            "day": str(raw["day"]),
            "open": str(raw.get("open") or ""),
            "close": str(raw.get("close") or ""),
            "isClosed": parse_bool(raw.get("isClosed")),
        })
    return {
        "id": str(row.get("id") or ""),
        "name": str(row.get("name") or ""),
        "description": str(row.get("description") or ""),
        "ownerId": str(row.get("ownerId") or ""),
        "email": str(row.get("email") or ""),
        "password": str(row.get("password") or ""),
        "spreadsheetApiUrl": str(row.get("spreadsheetApiUrl") or ""),
        "spreadsheetUrl": str(row.get("spreadsheetUrl") or ""),
        "whatsapp": str(row.get("whatsapp") or ""),
        "coverImage": str(row.get("coverImage") or ""),
        "qrisImage": str(row.get("qrisImage") or ""),
        "isOpen": parse_bool(row.get("isOpen"), default=True),
        "operatingHours": hours,
        "createdAt": str(row.get("createdAt") or ""),
    }
