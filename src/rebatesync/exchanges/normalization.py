"""Value normalization helpers for raw exchange payloads."""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any

logger = logging.getLogger(__name__)

USDT = "USDT"


def to_decimal(value: Any) -> Decimal:
    """Parse a numeric payload field into a Decimal.

    Exchanges send numbers both as JSON numbers and as strings. Empty or
    missing values become zero; unparseable values are logged and become zero.

    Args:
        value: Raw field value

    Returns:
        Parsed Decimal
    """
    if value is None or value == "":
        return Decimal(0)
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        value = repr(value)
    try:
        result = Decimal(str(value).strip())
    except InvalidOperation:
        logger.warning("Unparseable numeric value %r, treating as 0", value)
        return Decimal(0)
    if not result.is_finite():
        logger.warning("Non-finite numeric value %r, treating as 0", value)
        return Decimal(0)
    return result


def to_millis(value: Any, *, unit: str = "ms") -> int:
    """Convert a raw timestamp (ms or s, number or string) to epoch milliseconds."""
    try:
        number = int(Decimal(str(value).strip()))
    except (InvalidOperation, OverflowError) as e:
        raise ValueError(f"Invalid timestamp: {value!r}") from e
    if unit == "s":
        return number * 1000
    if unit == "ms":
        return number
    raise ValueError(f"Unsupported timestamp unit: {unit}")


def trade_date_from_millis(timestamp_ms: int) -> str:
    """Local calendar date (YYYY-MM-DD) of an epoch-milliseconds timestamp."""
    return datetime.fromtimestamp(timestamp_ms / 1000).strftime("%Y-%m-%d")


def usdt_pair(asset: str) -> str:
    """Gate.io style currency pair quoting the asset in USDT.

    - btc -> BTC_USDT
    - BTC_USDT -> BTC_USDT (unchanged)
    """
    asset = asset.strip().upper()
    if asset.endswith(f"_{USDT}"):
        return asset
    return f"{asset}_{USDT}"


def base_asset(pair: str) -> str:
    """Extract the base asset from an underscore or hyphen separated pair.

    - BTC_USDT -> BTC
    - ETH-USDT -> ETH
    - DOGE -> DOGE
    """
    pair = pair.strip().upper()
    for sep in ("_", "-", "/"):
        if sep in pair:
            return pair.split(sep, 1)[0]
    return pair
