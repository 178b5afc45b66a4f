import secrets
from typing import Optional
from datetime import datetime, timezone

from inventory_app import config


def make_order_number(prefix: Optional[str] = None) -> str:
    # ORD-1A2B3C4D: короткий префикс + 8 случайных hex-символов
    return f"{prefix or config.ORDER_NUMBER_PREFIX}-{secrets.token_hex(4).upper()}"


def utcnow() -> datetime:
    # naive UTC, как хранится в колонках DateTime
    return datetime.now(timezone.utc).replace(tzinfo=None)
