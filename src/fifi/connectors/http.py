"""Shared httpx plumbing for the remote connectors."""

from __future__ import annotations

from typing import Any

import httpx

from fifi.core.errors import ConfigError, ConnectorError
from fifi.core.logging import get_logger

logger = get_logger(__name__)


class HttpConnector:
    """Base class wrapping an ``httpx.AsyncClient``.

    Subclasses call :meth:`_request`, which converts transport failures and
    non-2xx answers into ``error_class`` with the URL and status attached.
    Pass ``client`` to share a pool or to inject ``httpx.MockTransport`` in
    tests.
    """

    name = "http"
    error_class: type[ConnectorError] = ConnectorError

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        if not base_url:
            raise ConfigError(f"{self.name} connector requires a base URL")
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)
        self._owns_client = client is None

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise self.error_class(f"{self.name} request failed: {e}", cause=e).with_context(url=url) from e

        if response.is_error:
            raise self.error_class(
                f"{self.name} returned {response.status_code}"
            ).with_context(url=str(response.request.url), http_status=response.status_code)

        logger.debug("connector.response", connector=self.name, url=url, status=response.status_code)
        return response

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args) -> None:
        await self.aclose()
