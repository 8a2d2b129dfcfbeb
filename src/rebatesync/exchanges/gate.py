"""Gate.io agency rebate adapter."""

from __future__ import annotations

import hashlib
import logging
import time
from datetime import timedelta
from typing import Any, Mapping, Sequence

from ..exceptions import ExchangeAPIError, PriceSnapshotError
from ..models import CommissionRecord, SyncWindow
from .adapter import BaseExchangeAdapter
from .base import BaseSignedClient, ProxyConfig
from .normalization import to_decimal, to_millis, trade_date_from_millis
from .pricing import PriceSnapshot

logger = logging.getLogger(__name__)

TICKERS_PATH = "/spot/tickers"
TRANSACTIONS_PATH = "/rebate/agency/transaction_history"


class GateClient(BaseSignedClient):
    """Gate.io APIv4 client."""

    default_base_url = "https://api.gateio.ws"
    path_prefix = "/api/v4"

    def __init__(
        self,
        api_key: str,
        api_secret: str,
        *,
        base_url: str | None = None,
        proxy: ProxyConfig | None = None,
        timeout: float = 10.0,
        **options: Any,
    ):
        super().__init__(
            "gate",
            api_key,
            api_secret,
            base_url=base_url,
            proxy=proxy,
            timeout=timeout,
            **options,
        )

    def _sign_request(self, method: str, path: str, query: str, body: str) -> dict[str, str]:
        """Gate.io APIv4 signature over method, path, query, payload hash and timestamp."""
        timestamp = str(int(time.time()))
        hashed_payload = hashlib.sha512(body.encode()).hexdigest()
        message = "\n".join([method, path, query, hashed_payload, timestamp])
        signature = self.generate_signature(self.api_secret, message, method="hmac-sha512")
        return {
            "KEY": self.api_key,
            "Timestamp": timestamp,
            "SIGN": signature,
            "Accept": "application/json",
            "Content-Type": "application/json",
        }


class GateAdapter(BaseExchangeAdapter):
    """Agency transaction history from Gate.io.

    Amounts and fees are quoted in arbitrary assets, so every cycle first
    takes a spot ticker snapshot and converts through it.
    """

    identifier = "gate"
    display_name = "Gate.io"
    exchange_id = 7
    default_interval_seconds = 60.0
    test_lookback = timedelta(days=7)
    max_window = timedelta(days=30)
    client_class = GateClient

    def __init__(self, client, **kwargs: Any):
        super().__init__(client, **kwargs)
        self.snapshot: PriceSnapshot | None = None

    async def prepare(self, window: SyncWindow) -> None:
        self.snapshot = None
        logger.info("[%s] Fetching all ticker prices...", self.display_name)
        try:
            tickers = await self.client.get(TICKERS_PATH)
        except ExchangeAPIError as e:
            raise PriceSnapshotError(self.identifier, f"Failed to fetch tickers: {e}", status=e.status) from e

        if not isinstance(tickers, list):
            raise PriceSnapshotError(self.identifier, f"Unexpected ticker payload: {type(tickers).__name__}")

        snapshot = PriceSnapshot.from_tickers(tickers, source=self.display_name)
        if not snapshot:
            raise PriceSnapshotError(
                self.identifier,
                "Ticker snapshot is empty. Skipping this cycle to avoid incorrect data.",
            )
        logger.info("[%s] Ticker snapshot holds %d USDT pairs.", self.display_name, len(snapshot))
        self.snapshot = snapshot

    async def fetch_raw(self, window: SyncWindow) -> Sequence[Mapping[str, Any]]:
        params = {
            "from": window.start_ms // 1000,
            "to": window.end_ms // 1000,
            "limit": self.page_limit,
        }
        response = await self.client.get(TRANSACTIONS_PATH, params)

        if not isinstance(response, dict) or not isinstance(response.get("list"), list):
            raise ExchangeAPIError(
                self.identifier,
                f"API request failed or returned unexpected format: {response!r}"[:500],
            )

        items = response["list"]
        logger.info("[%s] API returned %d records.", self.display_name, len(items))
        self._warn_if_truncated(len(items))
        return items

    def normalize(self, raw_items: Sequence[Mapping[str, Any]]) -> list[CommissionRecord]:
        if self.snapshot is None:
            raise PriceSnapshotError(self.identifier, "No price snapshot for this cycle")

        return super().normalize(raw_items)

    def normalize_item(self, item: Mapping[str, Any]) -> CommissionRecord | None:
        if to_decimal(item.get("fee")) <= 0:
            return None
        timestamp = to_millis(item["transaction_time"], unit="s")
        return CommissionRecord(
            exchange_uid=str(item["user_id"]),
            exchange_id=self.exchange_id,
            trade_volume_usdt=self.snapshot.convert(item.get("amount_asset"), item.get("amount")),
            fee_usdt=self.snapshot.convert(item.get("fee_asset"), item.get("fee")),
            trade_date=trade_date_from_millis(timestamp),
            source_timestamp=timestamp,
        )
