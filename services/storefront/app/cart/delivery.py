"""
Storefront — Delivery location from a table QR code

The QR printed on a table encodes ``?meja=<building> - <table>``; anything
that does not parse is still accepted as a free-form table under the
generic name "Lokasi".
"""
import re

from app.core.ids import utc_now_iso
from app.schemas.cart import DeliveryLocation

DEFAULT_LOCATION_NAME = "Lokasi"
_TABLE_PATTERN = re.compile(r"(.+?)\s+(Meja\s+\d+)", re.IGNORECASE)

# Tables that have a printed QR code
KNOWN_LOCATIONS = [
    {"id": "lokasi-1", "name": "Gedung A", "tableNumber": "Meja 1"},
    {"id": "lokasi-2", "name": "Gedung A", "tableNumber": "Meja 2"},
    {"id": "lokasi-3", "name": "Gedung A", "tableNumber": "Meja 3"},
    {"id": "lokasi-4", "name": "Gedung B", "tableNumber": "Meja 1"},
    {"id": "lokasi-5", "name": "Gedung B", "tableNumber": "Meja 2"},
    {"id": "lokasi-6", "name": "Gedung C", "tableNumber": "Meja 1"},
    {"id": "lokasi-7", "name": "Gedung C", "tableNumber": "Meja 2"},
    {"id": "lokasi-8", "name": "Ruang Dosen", "tableNumber": "Meja 1"},
    {"id": "lokasi-9", "name": "Ruang Dosen", "tableNumber": "Meja 2"},
    {"id": "lokasi-10", "name": "Perpustakaan", "tableNumber": "Meja 1"},
]


def parse_meja(meja: str, scanned_at: str | None = None) -> DeliveryLocation:
    name, table_number = DEFAULT_LOCATION_NAME, meja

    parts = meja.split(" - ")
    if len(parts) >= 2:
        name, table_number = parts[0], " - ".join(parts[1:])
    else:
        match = _TABLE_PATTERN.search(meja)
        if match:
            name, table_number = match.group(1), match.group(2)

    return DeliveryLocation(
        name=name.strip(),
        table_number=table_number.strip(),
        scanned_at=scanned_at or utc_now_iso(),
    )
