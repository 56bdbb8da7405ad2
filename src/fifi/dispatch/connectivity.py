"""Connectivity aggregation: which systems belong to which executor, and can we reach it.

ARCHITECTURE
────────────
::

    remediation.issues
      │  distinct, sorted system ids
      ▼
    InventoryConnector.get_system_details   (unknown ids dropped)
      │  group by satellite id, dedupe by host identity
      ▼
    SourcesConnector.get_source_info        (one batched call)
      │  default endpoint → receptor
      ▼
    ReceptorConnector.get_connection_status (asyncio.gather, per group)
      │
      ▼
    STATUS_RULES  → ExecutorStatus

A failed connection probe never aborts sibling probes; the group is simply
reported as not connected.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from fifi.connectors.protocols import InventoryConnector, ReceptorConnector, SourcesConnector
from fifi.core.logging import get_logger
from fifi.dispatch.models import (
    Executor,
    ExecutorStatus,
    Remediation,
    System,
    get_satellite_id,
    system_to_host,
)

logger = get_logger(__name__)


@dataclass
class SatelliteGroup:
    """Intermediate per-satellite aggregation state."""

    id: str | None
    systems: list[System] = field(default_factory=list)
    source: dict[str, Any] | None = None
    receptor: dict[str, Any] | None = None
    receptor_status: str | None = None


# Evaluated in order; the first matching predicate decides the status.
STATUS_RULES: tuple[tuple[Callable[[SatelliteGroup], bool], ExecutorStatus], ...] = (
    (lambda group: not group.id, ExecutorStatus.NO_EXECUTOR),
    (lambda group: not group.source, ExecutorStatus.NO_SOURCE),
    (lambda group: not group.receptor, ExecutorStatus.NO_RECEPTOR),
    (lambda group: group.receptor_status != "connected", ExecutorStatus.DISCONNECTED),
)


def derive_status(group: SatelliteGroup) -> ExecutorStatus:
    for predicate, status in STATUS_RULES:
        if predicate(group):
            return status
    return ExecutorStatus.CONNECTED


def executor_name(group: SatelliteGroup) -> str | None:
    if group.source:
        return group.source.get("name")
    if group.id:
        return f"Satellite {group.id}"
    return None


def get_receptor(source: dict[str, Any] | None) -> dict[str, Any] | None:
    """The source's default endpoint, if any."""
    if not source:
        return None
    for endpoint in source.get("endpoints") or []:
        if endpoint.get("default") is True:
            return endpoint
    return None


def collect_system_ids(remediation: Remediation) -> list[str]:
    return sorted({system.system_id for issue in remediation.issues for system in issue.systems})


def unique_by_host(systems: list[System]) -> list[System]:
    """Sort by id and keep the first system for each host identity.

    Two inventory records that resolve to the same host cannot be told
    apart in executor responses, so only one of them is dispatched.
    """
    seen: set[str] = set()
    result = []
    for system in sorted(systems, key=lambda s: s.id):
        host = system_to_host(system)
        if host not in seen:
            seen.add(host)
            result.append(system)
    return result


def group_by_satellite(systems: list[System]) -> list[SatelliteGroup]:
    grouped: dict[str | None, list[System]] = {}
    for system in systems:
        grouped.setdefault(get_satellite_id(system.facts), []).append(system)

    return [
        SatelliteGroup(id=satellite_id, systems=unique_by_host(members))
        for satellite_id, members in grouped.items()
    ]


class ConnectivityAggregator:
    """Resolves executors and their connectivity for a remediation."""

    def __init__(
        self,
        inventory: InventoryConnector,
        sources: SourcesConnector,
        receptor: ReceptorConnector,
    ) -> None:
        self._inventory = inventory
        self._sources = sources
        self._receptor = receptor

    async def fetch_systems(self, ids: list[str]) -> list[System]:
        details = await self._inventory.get_system_details(ids)
        return [details[system_id] for system_id in ids if details.get(system_id)]

    async def fetch_receptor_status(self, group: SatelliteGroup, account: str) -> str | None:
        if not group.receptor:
            return None

        node = group.receptor.get("receptor_node")
        try:
            result = await self._receptor.get_connection_status(account, node)
        except Exception as e:
            logger.warning(
                "connectivity.probe_failed",
                executor=group.id,
                receptor_node=node,
                error=str(e),
            )
            return None

        return (result or {}).get("status")

    async def get_connection_status(self, remediation: Remediation, account: str) -> list[Executor]:
        system_ids = collect_system_ids(remediation)
        systems = await self.fetch_systems(system_ids)
        groups = group_by_satellite(systems)

        satellite_ids = [group.id for group in groups if group.id]
        source_info = await self._sources.get_source_info(satellite_ids) if satellite_ids else {}

        for group in groups:
            group.source = source_info.get(group.id) if group.id else None
            group.receptor = get_receptor(group.source)

        statuses = await asyncio.gather(
            *[self.fetch_receptor_status(group, account) for group in groups]
        )
        for group, status in zip(groups, statuses):
            group.receptor_status = status

        executors = [normalize(group) for group in groups]

        logger.info(
            "connectivity.resolved",
            remediation_id=remediation.id,
            systems=len(systems),
            executors=len(executors),
            connected=sum(1 for e in executors if e.status is ExecutorStatus.CONNECTED),
        )

        return executors


def normalize(group: SatelliteGroup) -> Executor:
    receptor = group.receptor or {}
    return Executor(
        sat_id=group.id,
        status=derive_status(group),
        systems=list(group.systems),
        receptor_id=receptor.get("receptor_node"),
        endpoint_id=receptor.get("id"),
        name=executor_name(group),
    )
