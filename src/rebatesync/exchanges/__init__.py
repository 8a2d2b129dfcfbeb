"""Exchange adapters and signed REST clients."""

from .protocol import ExchangeAdapter, SignedClient
from .adapter import BaseExchangeAdapter
from .base import BaseSignedClient, ProxyConfig
from .factory import create_exchange_adapter, EXCHANGE_ADAPTERS
from .init import create_exchange_adapters_from_settings

__all__ = [
    "ExchangeAdapter",
    "SignedClient",
    "BaseExchangeAdapter",
    "BaseSignedClient",
    "ProxyConfig",
    "create_exchange_adapter",
    "create_exchange_adapters_from_settings",
    "EXCHANGE_ADAPTERS",
]
