"""Bitget broker commission adapter."""

from __future__ import annotations

import logging
import time
from datetime import timedelta
from typing import Any, Mapping, Sequence

from ..exceptions import ExchangeAPIError
from ..models import CommissionRecord, SyncWindow
from .adapter import BaseExchangeAdapter
from .base import BaseSignedClient, ProxyConfig
from .normalization import to_decimal, to_millis, trade_date_from_millis

logger = logging.getLogger(__name__)

SUCCESS_CODE = "00000"
COMMISSIONS_PATH = "/api/broker/v1/agent/customer-commissions"


class BitgetClient(BaseSignedClient):
    """Bitget REST client."""

    default_base_url = "https://api.bitget.com"

    def __init__(
        self,
        api_key: str,
        api_secret: str,
        *,
        passphrase: str,
        base_url: str | None = None,
        proxy: ProxyConfig | None = None,
        timeout: float = 10.0,
        locale: str = "en-US",
        **options: Any,
    ):
        super().__init__(
            "bitget",
            api_key,
            api_secret,
            passphrase=passphrase,
            base_url=base_url,
            proxy=proxy,
            timeout=timeout,
            **options,
        )
        self.locale = locale

    def _sign_request(self, method: str, path: str, query: str, body: str) -> dict[str, str]:
        """Bitget signature: base64(HMAC-SHA256(timestamp + METHOD + path[?query] + body))."""
        timestamp = str(int(time.time() * 1000))
        message = timestamp + method + path
        if query:
            message += "?" + query
        message += body
        signature = self.generate_signature(self.api_secret, message, encoding="base64")
        return {
            "ACCESS-KEY": self.api_key,
            "ACCESS-SIGN": signature,
            "ACCESS-TIMESTAMP": timestamp,
            "ACCESS-PASSPHRASE": self.passphrase or "",
            "Content-Type": "application/json",
            "locale": self.locale,
        }


class BitgetAdapter(BaseExchangeAdapter):
    """Customer commissions from the Bitget broker agent API, already in USDT."""

    identifier = "bitget"
    display_name = "Bitget"
    exchange_id = 1
    default_interval_seconds = 30.0
    test_lookback = timedelta(days=2)
    client_class = BitgetClient

    async def fetch_raw(self, window: SyncWindow) -> Sequence[Mapping[str, Any]]:
        params = {
            "startTime": str(window.start_ms),
            "endTime": str(window.end_ms),
            "limit": self.page_limit,
        }
        response = await self.client.get(COMMISSIONS_PATH, params)

        if not isinstance(response, dict) or response.get("code") != SUCCESS_CODE:
            msg = response.get("msg") if isinstance(response, dict) else response
            raise ExchangeAPIError(self.identifier, f"API request failed: {msg}")

        data = response.get("data") or {}
        items = list(data.get("commissionList") or [])
        logger.info("[%s] API returned %d records.", self.display_name, len(items))
        self._warn_if_truncated(len(items))
        return items

    def normalize_item(self, item: Mapping[str, Any]) -> CommissionRecord | None:
        fee = to_decimal(item.get("fee"))
        if fee <= 0:
            return None
        timestamp = to_millis(item["date"])
        return CommissionRecord(
            exchange_uid=str(item["uid"]),
            exchange_id=self.exchange_id,
            trade_volume_usdt=to_decimal(item.get("dealAmount")),
            fee_usdt=fee,
            trade_date=trade_date_from_millis(timestamp),
            source_timestamp=timestamp,
        )
