"""Client for the backend ledger's daily trade data endpoint."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

import aiohttp

from .exceptions import BackendSubmissionError, ConfigurationError
from .models import CommissionRecord
from .settings import BackendSettings

logger = logging.getLogger(__name__)

SUBMIT_PATH = "/admin/add_daily_trade_data"


class BackendClient:
    """Posts normalized commission records to the backend ledger."""

    def __init__(
        self,
        base_url: str,
        *,
        admin_api_key: str | None = None,
        timeout: float = 10.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.admin_api_key = admin_api_key
        self.timeout = timeout
        self.session: aiohttp.ClientSession | None = None

    @classmethod
    def from_settings(cls, settings: BackendSettings) -> "BackendClient":
        if not settings.base_url:
            raise ConfigurationError("backend.base_url (BACKEND_API_URL) is required outside test mode")
        return cls(
            settings.base_url,
            admin_api_key=settings.admin_api_key.get_secret_value() if settings.admin_api_key else None,
            timeout=settings.timeout_seconds,
        )

    async def _ensure_session(self) -> aiohttp.ClientSession:
        if self.session is None:
            self.session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            )
        return self.session

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.admin_api_key:
            headers["X-API-KEY"] = self.admin_api_key
        return headers

    async def submit(self, record: CommissionRecord, label: str = "") -> dict[str, Any]:
        """Submit one record.

        Args:
            record: Normalized record
            label: Source label for log lines (e.g. "XT.COM - spot")

        Returns:
            Parsed response body (empty if the body is not JSON)

        Raises:
            BackendSubmissionError: On transport failure or a non-200 status
        """
        payload = record.to_payload()
        url = f"{self.base_url}{SUBMIT_PATH}"
        logger.info("Submitting trade data for %s: %s", label, json.dumps(payload))

        session = await self._ensure_session()
        try:
            async with session.post(url, json=payload, headers=self._headers()) as resp:
                if resp.status != 200:
                    text = await resp.text()
                    raise BackendSubmissionError(
                        f"Submission failed for {label}: status {resp.status}: {text[:500]}",
                        status=resp.status,
                    )
                try:
                    body = await resp.json(content_type=None)
                except ValueError:
                    body = {}
        except aiohttp.ClientError as e:
            raise BackendSubmissionError(f"Error submitting trade data for {label}: {e}") from e
        except asyncio.TimeoutError as e:
            raise BackendSubmissionError(f"Timed out submitting trade data for {label}") from e

        message = body.get("message") if isinstance(body, dict) else None
        logger.info("Submission successful for %s: %s", label, message)
        return body if isinstance(body, dict) else {}

    async def close(self) -> None:
        if self.session:
            await self.session.close()
            self.session = None
