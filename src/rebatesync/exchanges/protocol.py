"""Protocol definitions for signed exchange clients and sync adapters."""

from __future__ import annotations

from typing import Any, Mapping, Protocol, Sequence

from ..models import CommissionRecord, SyncWindow


class SignedClient(Protocol):
    """Authenticated HTTP access to one exchange."""

    name: str

    async def get(self, path: str, params: Mapping[str, Any] | None = None) -> Any:
        """Send a signed GET request.

        Args:
            path: Endpoint path relative to the client's API prefix
            params: Query parameters

        Returns:
            Parsed JSON response body

        Raises:
            ExchangeAPIError: On transport failure or a non-200 status
        """
        ...

    async def close(self) -> None:
        """Close the HTTP session."""
        ...


class ExchangeAdapter(Protocol):
    """Exchange-specific part of a sync cycle.

    The engine drives every exchange through the same sequence:
    compute_window -> prepare -> fetch_raw -> normalize.
    """

    identifier: str
    display_name: str
    exchange_id: int

    @property
    def interval_seconds(self) -> float:
        ...

    def compute_window(self, watermark_ms: int, now_ms: int, *, test_mode: bool = False) -> SyncWindow:
        """Pick the fetch window for this cycle.

        Args:
            watermark_ms: Stored watermark for this exchange
            now_ms: Current time, the window's exclusive end
            test_mode: Use the fixed test lookback instead of the watermark

        Returns:
            SyncWindow, possibly clamped to the exchange's maximum range
        """
        ...

    async def prepare(self, window: SyncWindow) -> None:
        """Load per-cycle data (e.g. a price snapshot) before fetching."""
        ...

    async def fetch_raw(self, window: SyncWindow) -> Sequence[Mapping[str, Any]]:
        """Fetch raw commission items for the window.

        Raises:
            ExchangeAPIError: On transport failure or a non-success envelope
        """
        ...

    def normalize(self, raw_items: Sequence[Mapping[str, Any]]) -> list[CommissionRecord]:
        """Map raw items to records, dropping items with a non-positive fee."""
        ...

    def label(self, record: CommissionRecord) -> str:
        """Human-readable source label used in log lines."""
        ...

    async def close(self) -> None:
        ...
