from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, SecretStr


class ProxySettings(BaseModel):
    enabled: bool = False
    url: str | None = None
    username: str | None = None
    password: SecretStr | None = None

    model_config = {"extra": "forbid"}


class BackendSettings(BaseModel):
    base_url: str | None = None
    admin_api_key: SecretStr | None = None
    timeout_seconds: float = Field(default=10.0, gt=0)

    model_config = {"extra": "forbid"}


class SyncSettings(BaseModel):
    test_mode: bool = False
    state_file: Path = Path("state.json")
    cycle_timeout_seconds: float = Field(default=120.0, gt=0)
    dedup_check_interval_seconds: float = Field(default=1.0, gt=0, le=1.0)

    model_config = {"extra": "forbid"}


class ExchangeCredentials(BaseModel):
    api_key: SecretStr | None = None
    api_secret: SecretStr | None = None
    passphrase: SecretStr | None = None

    model_config = {"extra": "forbid"}


class ExchangeSettings(BaseModel):
    enabled: bool = True
    credentials: ExchangeCredentials | None = None
    interval_seconds: float | None = Field(default=None, gt=0)
    base_url: str | None = None
    options: dict[str, Any] = Field(default_factory=dict)

    model_config = {"extra": "forbid"}


class Settings(BaseModel):
    env: str = "dev"
    proxy: ProxySettings = Field(default_factory=ProxySettings)
    backend: BackendSettings = Field(default_factory=BackendSettings)
    sync: SyncSettings = Field(default_factory=SyncSettings)
    exchanges: dict[str, ExchangeSettings] = Field(default_factory=dict)

    model_config = {"extra": "forbid"}

    def redacted(self) -> dict[str, Any]:
        data = self.model_dump(mode="json")
        for exch in data.get("exchanges", {}).values():
            creds = exch.get("credentials")
            if isinstance(creds, dict):
                if creds.get("api_key") is not None:
                    creds["api_key"] = "***"
                if creds.get("api_secret") is not None:
                    creds["api_secret"] = "***"
                if "passphrase" in creds and creds["passphrase"] is not None:
                    creds["passphrase"] = "***"
        backend = data.get("backend")
        if isinstance(backend, dict) and backend.get("admin_api_key") is not None:
            backend["admin_api_key"] = "***"
        proxy = data.get("proxy")
        if isinstance(proxy, dict) and proxy.get("password") is not None:
            proxy["password"] = "***"
        return data
