"""XT.COM agent rebate adapter."""

from __future__ import annotations

import logging
import time
from datetime import timedelta
from decimal import Decimal
from typing import Any, Mapping, Sequence
from urllib.parse import unquote, urlencode

from ..exceptions import ExchangeAPIError
from ..models import CommissionRecord, SyncWindow
from .adapter import BaseExchangeAdapter
from .base import BaseSignedClient, ProxyConfig
from .normalization import to_decimal, to_millis, trade_date_from_millis

logger = logging.getLogger(__name__)

REBATE_PATH = "/v4/referal/invite/agent/rebate/data"

SPOT = 1
FUTURES = 2
SUB_TYPES: dict[int, str] = {SPOT: "spot", FUTURES: "futures"}


class XTClient(BaseSignedClient):
    """XT.COM client for the spot-style (sapi/uapi) signature scheme."""

    default_base_url = "https://api.xt.com"

    def __init__(
        self,
        api_key: str,
        api_secret: str,
        *,
        base_url: str | None = None,
        proxy: ProxyConfig | None = None,
        timeout: float = 10.0,
        recv_window: int = 5000,
        **options: Any,
    ):
        super().__init__(
            "xt",
            api_key,
            api_secret,
            base_url=base_url,
            proxy=proxy,
            timeout=timeout,
            **options,
        )
        self.recv_window = recv_window

    def _encode_query(self, params: Mapping[str, Any] | None) -> str:
        # XT signs the parameters sorted by key
        if not params:
            return ""
        return urlencode(sorted(params.items()))

    def _sign_request(self, method: str, path: str, query: str, body: str) -> dict[str, str]:
        """XT signature: HMAC-SHA256 over 'headers#METHOD#path[#query][#body]'."""
        headers = {
            "validate-algorithms": "HmacSHA256",
            "validate-appkey": self.api_key,
            "validate-recvwindow": str(self.recv_window),
            "validate-timestamp": str(int(time.time() * 1000)),
        }
        message = urlencode(headers) + f"#{method}#{path}"
        if query:
            message += f"#{unquote(query)}"
        if body:
            message += f"#{body}"
        headers["validate-signature"] = self.generate_signature(self.api_secret, message)
        headers["Content-Type"] = "application/json"
        return headers


def original_fee(commission: Decimal, rebate_rate: Decimal) -> Decimal:
    """Back out the trading fee from the agent's commission and rebate rate."""
    if rebate_rate == 0:
        return Decimal(0)
    return commission / rebate_rate


class XTAdapter(BaseExchangeAdapter):
    """Spot and futures rebate data from the XT.COM agent API.

    Each sub type is a separate request; both must succeed for the cycle to
    count. Records carry the sub type so the two segments dedup separately.
    """

    identifier = "xt"
    display_name = "XT.COM"
    exchange_id = 5
    default_interval_seconds = 30.0
    test_lookback = timedelta(days=7)
    client_class = XTClient

    @property
    def invite_code(self) -> str | None:
        return self.options.get("invite_code")

    async def fetch_raw(self, window: SyncWindow) -> Sequence[Mapping[str, Any]]:
        items: list[Mapping[str, Any]] = []
        for type_id, type_name in SUB_TYPES.items():
            params: dict[str, Any] = {
                "startTime": window.start_ms,
                "endTime": window.end_ms,
                "type": type_id,
            }
            if self.invite_code:
                params["inviteCode"] = self.invite_code

            response = await self.client.get(REBATE_PATH, params)
            if not (
                isinstance(response, dict)
                and response.get("rc") == 0
                and response.get("mc") == "SUCCESS"
            ):
                raise ExchangeAPIError(
                    self.identifier,
                    f"{type_name} API request failed: {response!r}"[:500],
                )

            result = response.get("result") or {}
            batch = result.get("items") or []
            logger.info("[%s - %s] API returned %d records.", self.display_name, type_name, len(batch))
            for item in batch:
                items.append({"type": type_id, **item})

        return items

    def normalize_item(self, item: Mapping[str, Any]) -> CommissionRecord | None:
        type_id = int(item["type"])
        if type_id == SPOT:
            rate = to_decimal(item.get("spotRebateRate"))
        elif type_id == FUTURES:
            rate = to_decimal(item.get("futuresRebateRate"))
        else:
            rate = Decimal(0)

        fee = original_fee(to_decimal(item.get("commissionAmount")), rate)
        if fee <= 0:
            return None

        timestamp = to_millis(item["date"])
        return CommissionRecord(
            exchange_uid=str(item["uid"]),
            exchange_id=self.exchange_id,
            trade_volume_usdt=to_decimal(item.get("totalTradeUsdtAmount")),
            fee_usdt=fee,
            trade_date=trade_date_from_millis(timestamp),
            source_timestamp=timestamp,
            sub_type=SUB_TYPES.get(type_id, str(type_id)),
        )
