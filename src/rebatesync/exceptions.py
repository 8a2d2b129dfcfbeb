"""Exceptions shared by the exchange clients, the sync engine and the backend client."""

from __future__ import annotations


class SyncError(Exception):
    """Base exception for sync failures."""


class ExchangeAPIError(SyncError):
    """Raised on a transport failure or a non-success response from an exchange."""

    def __init__(self, exchange: str, message: str, status: int | None = None):
        super().__init__(f"[{exchange}] {message}")
        self.exchange = exchange
        self.status = status


class PriceSnapshotError(ExchangeAPIError):
    """Raised when the ticker snapshot needed for USDT conversion is unavailable."""


class BackendSubmissionError(SyncError):
    """Raised when the backend ledger rejects or never receives a record."""

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status


class ConfigurationError(ValueError):
    """Raised when an exchange or the backend is missing required settings."""
