"""
Collaborator protocols consumed by the dispatch core.

The dispatch pipeline never talks to a concrete HTTP client, generator or
database directly. It depends on these structural protocols, so tests can
pass plain fakes and deployments can pass the httpx clients from
:mod:`fifi.connectors` and the SQLAlchemy store from :mod:`fifi.orm`.

Protocols:
    InventoryConnector  -- batch system lookup, tolerant of unknown ids
    SourcesConnector    -- satellite id -> source (with receptor endpoints)
    ReceptorConnector   -- connection probe + job submission
    PlaybookGenerator   -- issue normalization, playbook rendering, system resolution
    PlaybookRunStore    -- atomic persistence of a run record

Guardrails:
    ❌ DON'T: Add implementation logic to protocol classes
    ✅ DO: Keep protocols pure contracts; implementations live in their modules
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Protocol, runtime_checkable

from fifi.dispatch.models import (
    Issue,
    PlaybookRun,
    PlaybookRunExecutor,
    PlaybookRunSystem,
    Remediation,
    System,
)


@runtime_checkable
class InventoryConnector(Protocol):
    """Inventory lookup."""

    async def get_system_details(self, ids: Sequence[str]) -> dict[str, System]:
        """Return details keyed by id. Unknown ids are simply absent."""
        ...


@runtime_checkable
class SourcesConnector(Protocol):
    """Source / receptor endpoint lookup."""

    async def get_source_info(self, ids: Sequence[str]) -> dict[str, dict[str, Any]]:
        """Return ``{satellite_id: {"name": ..., "endpoints": [...]}}``."""
        ...


@runtime_checkable
class ReceptorConnector(Protocol):
    """Receptor controller channel."""

    async def get_connection_status(self, account: str, node: str) -> dict[str, Any] | None:
        """Return ``{"status": "connected" | "disconnected"}`` or ``None``."""
        ...

    async def post_initial_request(self, envelope: dict[str, Any]) -> dict[str, Any]:
        """Submit a work or cancel request.

        Raises:
            ChannelDispatchError: transport failure or remote rejection.
        """
        ...


@runtime_checkable
class PlaybookGenerator(Protocol):
    """Playbook generation collaborator."""

    def normalize_issues(self, issues: list[Issue]) -> list[Issue]: ...

    async def generate_playbook(
        self, issues: list[Issue], remediation: Remediation, *, auto_reboot: bool
    ) -> dict[str, Any]:
        """Return at least ``{"yaml": <rendered playbook>}``."""
        ...

    async def resolve_systems(self, issues: list[Issue]) -> list[dict[str, Any]]:
        """Return issues whose systems are resolved to execution-ready hosts."""
        ...


@runtime_checkable
class PlaybookRunStore(Protocol):
    """Run persistence."""

    def insert_playbook_run(
        self,
        run: PlaybookRun,
        executors: list[PlaybookRunExecutor],
        systems: list[PlaybookRunSystem],
    ) -> None:
        """Write the run, its executors and its systems in one transaction."""
        ...


__all__ = [
    "InventoryConnector",
    "SourcesConnector",
    "ReceptorConnector",
    "PlaybookGenerator",
    "PlaybookRunStore",
]
