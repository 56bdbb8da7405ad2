"""Sources service client.

A satellite instance is registered in sources with ``source_ref`` equal to
its satellite id; its receptor endpoints hang off the source record.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from typing import Any

from fifi.connectors.http import HttpConnector

SOURCES_PATH = "/api/sources/v3.0/sources"


class SourcesClient(HttpConnector):
    name = "sources"

    async def _find_sources(self, ids: Sequence[str]) -> list[dict[str, Any]]:
        params = [("filter[source_ref][eq][]", satellite_id) for satellite_id in ids]
        response = await self._request("GET", SOURCES_PATH, params=params)
        return response.json().get("data", [])

    async def _endpoints(self, source_id: str) -> list[dict[str, Any]]:
        response = await self._request("GET", f"{SOURCES_PATH}/{source_id}/endpoints")
        return response.json().get("data", [])

    async def get_source_info(self, ids: Sequence[str]) -> dict[str, dict[str, Any]]:
        if not ids:
            return {}

        sources = await self._find_sources(ids)
        endpoints = await asyncio.gather(*[self._endpoints(source["id"]) for source in sources])

        return {
            source["source_ref"]: {**source, "endpoints": source_endpoints}
            for source, source_endpoints in zip(sources, endpoints)
        }
