"""Exchange adapter initialization from settings."""

from __future__ import annotations

import logging
from typing import Any, Dict

from ..exceptions import ConfigurationError
from ..settings import Settings
from .adapter import BaseExchangeAdapter
from .factory import create_exchange_adapter

logger = logging.getLogger(__name__)


def _secret(value) -> str | None:
    return value.get_secret_value() if value is not None else None


def _proxy_options(settings: Settings) -> dict[str, Any] | None:
    proxy = settings.proxy
    if not proxy.enabled or not proxy.url:
        return None
    return {
        "url": proxy.url,
        "username": proxy.username,
        "password": proxy.password.get_secret_value() if proxy.password else None,
    }


def create_exchange_adapters_from_settings(settings: Settings) -> Dict[str, BaseExchangeAdapter]:
    """Create adapters for every enabled exchange with valid credentials.

    An exchange with missing or invalid credentials is reported and left out,
    so its worker never starts.
    """
    adapters: Dict[str, BaseExchangeAdapter] = {}
    proxy = _proxy_options(settings)

    for exchange_name, exchange_config in settings.exchanges.items():
        if not exchange_config.enabled:
            logger.debug("Exchange %s is disabled, skipping", exchange_name)
            continue

        creds = exchange_config.credentials
        if not creds:
            logger.error("Exchange %s has no credentials configured, not starting it", exchange_name)
            continue

        try:
            adapter = create_exchange_adapter(
                exchange=exchange_name,
                api_key=_secret(creds.api_key),
                api_secret=_secret(creds.api_secret),
                passphrase=_secret(creds.passphrase),
                base_url=exchange_config.base_url,
                interval_seconds=exchange_config.interval_seconds,
                proxy=proxy,
                **exchange_config.options,
            )
        except ConfigurationError as e:
            logger.error("Failed to initialize exchange %s: %s", exchange_name, e)
            continue

        adapters[adapter.identifier] = adapter
        logger.info(
            "Initialized %s adapter (interval %ss)",
            adapter.display_name,
            adapter.interval_seconds,
        )

    return adapters
