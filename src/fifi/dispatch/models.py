"""Dispatch domain models.

Defines the data structures shared by the dispatch pipeline:
- Remediation / Issue / IssueSystem: the caller-owned input snapshot
- System: an inventory record
- Executor: a normalized dispatch target with its connectivity status
- PlaybookRun / PlaybookRunExecutor / PlaybookRunSystem: the persisted run record
- DispatchConfig: immutable policy parameters

Wire envelopes sent to the receptor controller live in
:mod:`fifi.dispatch.formats`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

SATELLITE_NAMESPACE = "satellite"
SATELLITE_ID_FACT = "satellite_instance_id"
SYSTEM_FIELDS = ("id", "ansible_host", "hostname", "display_name")


class ExecutorStatus(str, Enum):
    """Connectivity status of an executor.

    Only ``CONNECTED`` executors are eligible for dispatch.
    """

    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    NO_EXECUTOR = "no_executor"
    NO_SOURCE = "no_source"
    NO_RECEPTOR = "no_receptor"


class RunStatus(str, Enum):
    """Status of a run executor / run system row at creation time."""

    PENDING = "pending"
    FAILURE = "failure"


# ── Input snapshot ───────────────────────────────────────────────────────


@dataclass
class IssueSystem:
    """Reference from an issue to an inventory system."""

    system_id: str
    resolved: bool = False
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class Issue:
    """A remediation issue and the systems it applies to."""

    id: str
    systems: list[IssueSystem] = field(default_factory=list)
    resolution: str | None = None


@dataclass
class Remediation:
    """The remediation being dispatched. Read-only to the dispatch core."""

    id: str
    account_number: str
    name: str | None = None
    auto_reboot: bool = True
    issues: list[Issue] = field(default_factory=list)


@dataclass
class System:
    """Inventory system record.

    ``facts`` is a list of ``{"namespace": ..., "facts": {...}}`` bags as
    returned by the inventory service.
    """

    id: str
    ansible_host: str | None = None
    hostname: str | None = None
    display_name: str | None = None
    facts: list[dict[str, Any]] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> System:
        return cls(
            id=data["id"],
            ansible_host=data.get("ansible_host"),
            hostname=data.get("hostname"),
            display_name=data.get("display_name"),
            facts=list(data.get("facts") or []),
        )

    def to_dict(self) -> dict[str, Any]:
        """Public fields only; facts are never returned to callers."""
        return {name: getattr(self, name) for name in SYSTEM_FIELDS}


def system_to_host(system: System) -> str:
    """Host identity the executor uses to address a system."""
    return system.ansible_host or system.hostname or system.id


def get_satellite_id(facts: list[dict[str, Any]] | None) -> str | None:
    """Return the satellite instance id from inventory facts, if any."""
    for bag in facts or []:
        if bag.get("namespace") == SATELLITE_NAMESPACE:
            return (bag.get("facts") or {}).get(SATELLITE_ID_FACT)
    return None


# ── Executors ────────────────────────────────────────────────────────────


@dataclass
class Executor:
    """Normalized executor as returned by the connectivity aggregator.

    Sentinel executors (``sat_id`` is ``None``) group every system that is
    not satellite-managed and are never dispatched to.
    """

    sat_id: str | None
    status: ExecutorStatus
    systems: list[System] = field(default_factory=list)
    receptor_id: str | None = None
    endpoint_id: str | None = None
    name: str | None = None

    @property
    def type(self) -> str | None:
        return "satellite" if self.sat_id else None

    def to_dict(self) -> dict[str, Any]:
        return {
            "satId": self.sat_id,
            "receptorId": self.receptor_id,
            "endpointId": self.endpoint_id,
            "systems": [system.to_dict() for system in self.systems],
            "type": self.type,
            "name": self.name,
            "status": self.status.value,
        }


# ── Persisted run record ─────────────────────────────────────────────────


@dataclass
class PlaybookRun:
    id: str
    remediation_id: str
    created_by: str


@dataclass
class PlaybookRunExecutor:
    """One row per dispatched executor.

    ``receptor_job_id`` is ``None`` when dispatching the work request
    failed; the row is still recorded with ``RunStatus.FAILURE``.
    """

    id: str
    executor_id: str
    executor_name: str | None
    receptor_node_id: str
    status: RunStatus
    receptor_job_id: str | None
    playbook: str
    text_update_full: bool
    text_update_interval: int
    playbook_run_id: str


@dataclass
class PlaybookRunSystem:
    id: str
    system_id: str
    system_name: str
    status: RunStatus
    playbook_run_executor_id: str


# ── Policy parameters ────────────────────────────────────────────────────


@dataclass(frozen=True)
class DispatchConfig:
    """Immutable dispatch policy parameters.

    ``text_update_full=False`` selects the dynamic policy, where update mode
    and interval depend on the number of connected executors.
    """

    text_update_full: bool = True
    text_update_interval: int = 5000
    small_fleet: int = 200
    large_fleet: int = 400
    small_fleet_interval: int = 5000
    medium_fleet_interval: int = 30000
    large_fleet_interval: int = 60000

    @property
    def dynamic(self) -> bool:
        return self.text_update_full is False
