"""
Storefront — identifier and timestamp helpers
"""
import secrets
import string
import time
from datetime import datetime, timezone

_CODE_ALPHABET = string.ascii_uppercase + string.digits


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def epoch_millis() -> int:
    return int(time.time() * 1000)


def new_entity_id(prefix: str) -> str:
    """``<prefix>-<epoch ms>-<random>``; the suffix keeps ids created in the same millisecond apart."""
    return f"{prefix}-{epoch_millis()}-{random_suffix()}"


def random_suffix(length: int = 6) -> str:
    return "".join(secrets.choice(string.ascii_lowercase + string.digits) for _ in range(length))


def generate_transaction_code(now: datetime | None = None) -> str:
    """Short human-readable order code, e.g. ``TRX-20261019-7QK2``."""
    now = now or datetime.now(timezone.utc)
    suffix = "".join(secrets.choice(_CODE_ALPHABET) for _ in range(4))
    return f"TRX-{now:%Y%m%d}-{suffix}"


def to_epoch(value: str | None) -> float:
    """ISO timestamp → epoch seconds; missing or unparseable values sort as 0."""
    if not value:
        return 0.0
    try:
        parsed = datetime.fromisoformat(str(value).strip().replace("Z", "+00:00"))
    except ValueError:
        return 0.0
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.timestamp()
