"""Factory for creating exchange adapters with their signed clients."""

from __future__ import annotations

from typing import Any, Type

from ..exceptions import ConfigurationError
from .adapter import BaseExchangeAdapter
from .base import ProxyConfig
from .bitget import BitgetAdapter
from .gate import GateAdapter
from .xt import XTAdapter


EXCHANGE_ADAPTERS: dict[str, Type[BaseExchangeAdapter]] = {
    "bitget": BitgetAdapter,
    "gate": GateAdapter,
    "xt": XTAdapter,
}

REQUIRES_PASSPHRASE = {"bitget"}


def create_exchange_adapter(
    exchange: str,
    api_key: str,
    api_secret: str,
    *,
    passphrase: str | None = None,
    base_url: str | None = None,
    interval_seconds: float | None = None,
    proxy: dict[str, Any] | None = None,
    timeout: float = 10.0,
    **options: Any,
) -> BaseExchangeAdapter:
    """Create an exchange adapter and its signed client.

    Args:
        exchange: Exchange identifier (bitget, gate, xt)
        api_key: API key
        api_secret: API secret
        passphrase: API passphrase (required for Bitget)
        base_url: Override for the exchange REST host
        interval_seconds: Override for the exchange's polling interval
        proxy: Proxy configuration (url, username, password)
        timeout: HTTP request timeout in seconds
        **options: Adapter options (e.g. invite_code for XT)

    Returns:
        Configured exchange adapter

    Raises:
        ConfigurationError: If the exchange is not supported
        ConfigurationError: If required credentials are missing
    """
    exchange_lower = exchange.lower()

    if exchange_lower not in EXCHANGE_ADAPTERS:
        supported = ", ".join(EXCHANGE_ADAPTERS.keys())
        raise ConfigurationError(
            f"Unsupported exchange: {exchange}. Supported exchanges: {supported}"
        )

    if not api_key or not api_secret:
        raise ConfigurationError(f"{exchange} requires api_key and api_secret")

    if exchange_lower in REQUIRES_PASSPHRASE and not passphrase:
        raise ConfigurationError(f"{exchange} requires passphrase parameter")

    adapter_class = EXCHANGE_ADAPTERS[exchange_lower]

    proxy_config = None
    if proxy:
        proxy_config = ProxyConfig(
            url=proxy.get("url"),
            username=proxy.get("username"),
            password=proxy.get("password"),
        )

    client_kwargs: dict[str, Any] = {
        "api_key": api_key,
        "api_secret": api_secret,
        "base_url": base_url,
        "proxy": proxy_config,
        "timeout": timeout,
    }
    if passphrase is not None:
        client_kwargs["passphrase"] = passphrase

    client = adapter_class.client_class(**client_kwargs)
    return adapter_class(client, interval_seconds=interval_seconds, **options)
