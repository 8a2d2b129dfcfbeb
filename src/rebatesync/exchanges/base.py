"""Base client class for signed exchange REST access."""

from __future__ import annotations

import asyncio
import base64
import hashlib
import hmac
import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Mapping
from urllib.parse import urlencode

import aiohttp

from ..exceptions import ExchangeAPIError

logger = logging.getLogger(__name__)


class ProxyConfig:
    """HTTP proxy configuration."""

    def __init__(self, url: str | None = None, username: str | None = None, password: str | None = None):
        self.url = url
        self.username = username
        self.password = password

    @property
    def proxy_url(self) -> str | None:
        if not self.url:
            return None
        if self.username and self.password:
            protocol = self.url.split("://")[0] if "://" in self.url else "http"
            rest = self.url.split("://")[1] if "://" in self.url else self.url
            return f"{protocol}://{self.username}:{self.password}@{rest}"
        return self.url


class BaseSignedClient(ABC):
    """Base class for exchange clients that sign every request."""

    default_base_url = "https://api.example.com"
    path_prefix = ""

    def __init__(
        self,
        name: str,
        api_key: str,
        api_secret: str,
        *,
        passphrase: str | None = None,
        base_url: str | None = None,
        proxy: ProxyConfig | None = None,
        timeout: float = 10.0,
        **options: Any,
    ):
        """Initialize exchange client.

        Args:
            name: Exchange identifier
            api_key: API key
            api_secret: API secret
            passphrase: API passphrase (Bitget)
            base_url: Override for the REST host
            proxy: Proxy configuration
            timeout: Total request timeout in seconds
            **options: Additional exchange-specific options
        """
        self.name = name
        self.api_key = api_key
        self.api_secret = api_secret
        self.passphrase = passphrase
        self.base_url = base_url
        self.proxy = proxy or ProxyConfig()
        self.timeout = timeout
        self.options = options
        self.session: aiohttp.ClientSession | None = None

    @staticmethod
    def generate_signature(
        secret: str,
        message: str,
        method: str = "hmac-sha256",
        encoding: str = "hex",
    ) -> str:
        """Generate an HMAC signature.

        Args:
            secret: Secret key
            message: Message to sign
            method: hmac-sha256 or hmac-sha512
            encoding: hex or base64

        Returns:
            Encoded signature
        """
        if method == "hmac-sha256":
            digest = hmac.new(secret.encode(), message.encode(), hashlib.sha256)
        elif method == "hmac-sha512":
            digest = hmac.new(secret.encode(), message.encode(), hashlib.sha512)
        else:
            raise ValueError(f"Unsupported signature method: {method}")

        if encoding == "hex":
            return digest.hexdigest()
        if encoding == "base64":
            return base64.b64encode(digest.digest()).decode()
        raise ValueError(f"Unsupported signature encoding: {encoding}")

    def get_base_url(self) -> str:
        return (self.base_url or self.default_base_url).rstrip("/")

    async def _ensure_session(self) -> aiohttp.ClientSession:
        if self.session is None:
            self.session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            )
        return self.session

    def _encode_query(self, params: Mapping[str, Any] | None) -> str:
        if not params:
            return ""
        return urlencode(params)

    @abstractmethod
    def _sign_request(self, method: str, path: str, query: str, body: str) -> dict[str, str]:
        """Build the authentication headers for one request.

        Args:
            method: Upper-case HTTP method
            path: Full request path including the API prefix
            query: Encoded query string exactly as sent (no leading '?')
            body: Serialized JSON body, or an empty string
        """
        ...

    async def request(
        self,
        method: str,
        path: str,
        params: Mapping[str, Any] | None = None,
        body: Mapping[str, Any] | None = None,
    ) -> Any:
        method = method.upper()
        full_path = f"{self.path_prefix}{path}"
        query = self._encode_query(params)
        body_str = json.dumps(body) if body else ""
        headers = self._sign_request(method, full_path, query, body_str)

        url = f"{self.get_base_url()}{full_path}"
        if query:
            url = f"{url}?{query}"

        logger.debug("[%s] %s %s", self.name, method, url)
        session = await self._ensure_session()
        try:
            async with session.request(
                method,
                url,
                data=body_str or None,
                headers=headers,
                proxy=self.proxy.proxy_url,
            ) as resp:
                if resp.status != 200:
                    text = await resp.text()
                    raise ExchangeAPIError(
                        self.name,
                        f"HTTP {resp.status} from {full_path}: {text[:500]}",
                        status=resp.status,
                    )
                return await resp.json(content_type=None)
        except aiohttp.ClientError as e:
            raise ExchangeAPIError(self.name, f"Request to {full_path} failed: {e}") from e
        except asyncio.TimeoutError as e:
            raise ExchangeAPIError(self.name, f"Request to {full_path} timed out") from e
        except ValueError as e:
            raise ExchangeAPIError(self.name, f"Invalid JSON from {full_path}: {e}") from e

    async def get(self, path: str, params: Mapping[str, Any] | None = None) -> Any:
        return await self.request("GET", path, params=params)

    async def close(self) -> None:
        """Close connections."""
        if self.session:
            await self.session.close()
            self.session = None
