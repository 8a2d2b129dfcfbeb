"""Per-cycle USDT price table for exchanges that quote fees in other assets."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Iterable, Mapping

from .normalization import USDT, base_asset, to_decimal, usdt_pair

logger = logging.getLogger(__name__)


class PriceSnapshot:
    """Asset -> USDT price mapping captured once and reused for a whole cycle."""

    def __init__(self, prices: Mapping[str, Decimal], *, source: str = "") -> None:
        self._prices = {asset.upper(): price for asset, price in prices.items()}
        self.source = source

    @classmethod
    def from_pairs(cls, pairs: Mapping[str, Any], *, source: str = "") -> "PriceSnapshot":
        """Build from a pair -> last price mapping, keeping only *_USDT pairs."""
        prices: dict[str, Decimal] = {}
        for pair, last in pairs.items():
            if not pair.upper().endswith(f"_{USDT}"):
                continue
            price = to_decimal(last)
            if price > 0:
                prices[base_asset(pair)] = price
        return cls(prices, source=source)

    @classmethod
    def from_tickers(
        cls,
        tickers: Iterable[Mapping[str, Any]],
        *,
        pair_field: str = "currency_pair",
        price_field: str = "last",
        source: str = "",
    ) -> "PriceSnapshot":
        pairs = {
            str(t[pair_field]): t.get(price_field)
            for t in tickers
            if isinstance(t, Mapping) and t.get(pair_field)
        }
        return cls.from_pairs(pairs, source=source)

    def __len__(self) -> int:
        return len(self._prices)

    def __bool__(self) -> bool:
        return bool(self._prices)

    def price(self, asset: str) -> Decimal | None:
        asset = asset.strip().upper()
        if asset == USDT:
            return Decimal(1)
        return self._prices.get(asset)

    def convert(self, asset: str | None, amount: Any) -> Decimal:
        """Convert an amount of asset into USDT; unknown assets convert to 0."""
        value = to_decimal(amount)
        if not asset:
            logger.warning("[%s] Missing asset for amount %s, cannot convert to USDT", self.source, value)
            return Decimal(0)

        price = self.price(asset)
        if price is None:
            logger.warning(
                "[%s] No price found for %s in snapshot, cannot convert to USDT",
                self.source,
                usdt_pair(asset),
            )
            return Decimal(0)
        return value * price
