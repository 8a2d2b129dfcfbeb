"""Tests for exchange adapter factory and settings-driven initialization."""

import pytest

from rebatesync.exceptions import ConfigurationError
from rebatesync.exchanges.bitget import BitgetAdapter, BitgetClient
from rebatesync.exchanges.factory import EXCHANGE_ADAPTERS, create_exchange_adapter
from rebatesync.exchanges.gate import GateAdapter, GateClient
from rebatesync.exchanges.init import create_exchange_adapters_from_settings
from rebatesync.exchanges.xt import XTAdapter, XTClient
from rebatesync.settings import Settings


def test_supported_exchanges():
    assert set(EXCHANGE_ADAPTERS) == {"bitget", "gate", "xt"}


def test_create_bitget_adapter(api_key, api_secret, passphrase):
    adapter = create_exchange_adapter("Bitget", api_key, api_secret, passphrase=passphrase)

    assert isinstance(adapter, BitgetAdapter)
    assert isinstance(adapter.client, BitgetClient)
    assert adapter.client.passphrase == passphrase


def test_bitget_requires_passphrase(api_key, api_secret):
    with pytest.raises(ConfigurationError, match="passphrase"):
        create_exchange_adapter("bitget", api_key, api_secret)


def test_missing_credentials(api_key):
    with pytest.raises(ConfigurationError, match="api_key and api_secret"):
        create_exchange_adapter("gate", api_key, "")


def test_unsupported_exchange(api_key, api_secret):
    with pytest.raises(ConfigurationError, match="Unsupported exchange"):
        create_exchange_adapter("binance", api_key, api_secret)


def test_options_and_overrides(api_key, api_secret):
    adapter = create_exchange_adapter(
        "xt",
        api_key,
        api_secret,
        base_url="https://sapi.xt.com/",
        interval_seconds=15,
        proxy={"url": "http://proxy:3128", "username": "u", "password": "p"},
        invite_code="INV",
    )

    assert isinstance(adapter, XTAdapter)
    assert isinstance(adapter.client, XTClient)
    assert adapter.client.get_base_url() == "https://sapi.xt.com"
    assert adapter.client.proxy.proxy_url == "http://u:p@proxy:3128"
    assert adapter.interval_seconds == 15
    assert adapter.invite_code == "INV"


def test_adapters_from_settings_skip_unusable_exchanges(api_key, api_secret):
    settings = Settings.model_validate(
        {
            "exchanges": {
                "gate": {"credentials": {"api_key": api_key, "api_secret": api_secret}},
                "bitget": {"credentials": {"api_key": api_key, "api_secret": api_secret}},
                "xt": {"enabled": False, "credentials": {"api_key": api_key, "api_secret": api_secret}},
            }
        }
    )

    adapters = create_exchange_adapters_from_settings(settings)

    assert list(adapters) == ["gate"]
    assert isinstance(adapters["gate"], GateAdapter)
    assert isinstance(adapters["gate"].client, GateClient)
    assert adapters["gate"].client.proxy.proxy_url is None


def test_adapters_from_settings_without_credentials():
    settings = Settings.model_validate({"exchanges": {"gate": {}, "xt": {"credentials": {"api_key": "k"}}}})
    assert create_exchange_adapters_from_settings(settings) == {}
