"""Receptor controller client."""

from __future__ import annotations

from typing import Any

from fifi.connectors.http import HttpConnector
from fifi.core.errors import ChannelDispatchError

STATUS_PATH = "/connection/status"
JOB_PATH = "/job"


class ReceptorClient(HttpConnector):
    """Connection probe and job submission.

    Both calls raise :class:`ChannelDispatchError` on transport failure or
    a non-2xx answer.
    """

    name = "receptor"
    error_class = ChannelDispatchError

    async def get_connection_status(self, account: str, node: str) -> dict[str, Any] | None:
        response = await self._request("POST", STATUS_PATH, json={"account": account, "node_id": node})
        return response.json() or None

    async def post_initial_request(self, envelope: dict[str, Any]) -> dict[str, Any]:
        response = await self._request("POST", JOB_PATH, json=envelope)
        body = response.json()
        if not isinstance(body, dict) or "id" not in body:
            raise ChannelDispatchError("receptor accepted the job without returning an id").with_context(
                url=JOB_PATH, recipient=envelope.get("recipient")
            )
        return body
