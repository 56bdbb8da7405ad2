"""Inventory service client."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from fifi.connectors.http import HttpConnector
from fifi.dispatch.models import System

HOSTS_PATH = "/api/inventory/v1/hosts"


class InventoryClient(HttpConnector):
    """Batch system lookup.

    Ids are requested in chunks of ``page_size``; a chunk answering 404
    (every id unknown) contributes nothing rather than failing the batch.
    """

    name = "inventory"

    def __init__(self, base_url: str, *, page_size: int = 50, **kwargs: Any) -> None:
        super().__init__(base_url, **kwargs)
        self.page_size = page_size

    async def _fetch_chunk(self, ids: Sequence[str]) -> list[dict[str, Any]]:
        url = f"{HOSTS_PATH}/{','.join(ids)}/system_profile"
        try:
            response = await self._request("GET", url, params={"per_page": len(ids)})
        except self.error_class as e:
            if e.context.http_status == 404:
                return []
            raise
        return response.json().get("results", [])

    async def get_system_details(self, ids: Sequence[str]) -> dict[str, System]:
        unique = list(dict.fromkeys(ids))
        details: dict[str, System] = {}
        for start in range(0, len(unique), self.page_size):
            for record in await self._fetch_chunk(unique[start:start + self.page_size]):
                system = System.from_dict(record)
                details[system.id] = system
        return details
