"""Per-exchange sync watermarks persisted as a single JSON file."""

from __future__ import annotations

import json
import logging
import os
import tempfile
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable

logger = logging.getLogger(__name__)

DEFAULT_LOOKBACK_MS = 10 * 60 * 1000


def now_ms() -> int:
    return int(time.time() * 1000)


def _format_ms(timestamp_ms: int) -> str:
    return datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc).isoformat()


def atomic_write_json(path: Path, payload: Any, indent: int | None = None) -> None:
    """Write JSON through a temp file and os.replace so readers never see a partial file."""
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, temp_path = tempfile.mkstemp(dir=str(path.parent), prefix=f".{path.name}.", text=True)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as temp_file:
            json.dump(payload, temp_file, indent=indent)
            temp_file.flush()
            os.fsync(temp_file.fileno())
        os.replace(temp_path, path)
    finally:
        if os.path.exists(temp_path):
            os.remove(temp_path)


class SyncStateStore:
    """Holds the last synced upper-bound timestamp for each exchange.

    The file is read once at construction and rewritten in full on every
    change. Layout::

        {"bitget": {"lastSyncTimestamp": 1718000000000}, ...}

    A missing watermark defaults to ten minutes before now, which is returned
    but not stored until the first successful advance.
    """

    def __init__(self, path: str | Path, *, clock: Callable[[], int] = now_ms) -> None:
        self.path = Path(path)
        self._clock = clock
        self._state: dict[str, dict[str, Any]] = self._load()

    def _load(self) -> dict[str, dict[str, Any]]:
        if not self.path.exists():
            logger.warning("%s not found. Initializing new state.", self.path)
            return {}

        try:
            logger.info("Loading state from %s", self.path)
            payload = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.error("Failed to load %s: %s. Starting with a fresh state.", self.path, e)
            return {}

        if not isinstance(payload, dict):
            logger.error("Invalid state format in %s: root is not an object. Starting fresh.", self.path)
            return {}

        state: dict[str, dict[str, Any]] = {}
        for exchange, entry in payload.items():
            if isinstance(entry, dict) and isinstance(entry.get("lastSyncTimestamp"), int):
                state[exchange] = dict(entry)
            else:
                logger.warning("Ignoring malformed state entry for %s: %r", exchange, entry)
        return state

    def _persist(self) -> bool:
        try:
            atomic_write_json(self.path, self._state, indent=2)
        except OSError as e:
            logger.error("Failed to save state to %s: %s", self.path, e)
            return False
        return True

    def stored_watermark(self, exchange: str) -> int | None:
        entry = self._state.get(exchange)
        if entry is None:
            return None
        return entry.get("lastSyncTimestamp")

    def get_watermark(self, exchange: str) -> int:
        stored = self.stored_watermark(exchange)
        if stored is not None:
            return stored

        default = self._clock() - DEFAULT_LOOKBACK_MS
        logger.info(
            "[%s] No last sync timestamp found. Using 10 minutes ago for initial sync.",
            exchange,
        )
        return default

    def advance_watermark(self, exchange: str, timestamp: int) -> bool:
        """Move the watermark forward; stale or repeated values are ignored.

        Returns:
            True if the in-memory watermark moved
        """
        current = self.stored_watermark(exchange)
        if current is not None and timestamp <= current:
            logger.debug(
                "[%s] Ignoring watermark %s, not after current %s",
                exchange,
                timestamp,
                current,
            )
            return False

        self._state.setdefault(exchange, {})["lastSyncTimestamp"] = timestamp
        logger.info("[%s] Updating last sync timestamp to: %s", exchange, _format_ms(timestamp))
        self._persist()
        return True

    def reset(self, exchange: str) -> bool:
        if exchange not in self._state:
            return False
        del self._state[exchange]
        logger.info("[%s] Watermark removed", exchange)
        self._persist()
        return True

    def snapshot(self) -> dict[str, int]:
        return {
            exchange: entry["lastSyncTimestamp"]
            for exchange, entry in sorted(self._state.items())
        }
