"""Turns dispatch outcomes into a persisted playbook run."""

from __future__ import annotations

import asyncio
import uuid
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from fifi.connectors.protocols import PlaybookRunStore
from fifi.core.logging import get_logger
from fifi.dispatch.builder import PreparedRequest
from fifi.dispatch.models import (
    PlaybookRun,
    PlaybookRunExecutor,
    PlaybookRunSystem,
    Remediation,
    RunStatus,
    system_to_host,
)

logger = get_logger(__name__)


@dataclass
class RunRecord:
    run: PlaybookRun
    executors: list[PlaybookRunExecutor] = field(default_factory=list)
    systems: list[PlaybookRunSystem] = field(default_factory=list)


def build_run_record(
    remediation: Remediation,
    playbook_run_id: str,
    requests: Sequence[PreparedRequest],
    responses: Sequence[dict[str, Any] | None],
    username: str,
    text_update_full: bool,
    text_update_interval: int,
) -> RunRecord:
    """Build run, executor and system rows.

    ``responses[i]`` is ``None`` when dispatching ``requests[i]`` failed; the
    executor is still recorded, with every row marked ``failure``.
    """
    if len(requests) != len(responses):
        raise ValueError(f"{len(requests)} requests but {len(responses)} responses")

    record = RunRecord(
        run=PlaybookRun(id=playbook_run_id, remediation_id=remediation.id, created_by=username)
    )

    for prepared, response in zip(requests, responses):
        executor = prepared.executor
        dispatched = response is not None
        status = RunStatus.PENDING if dispatched else RunStatus.FAILURE
        row_id = str(uuid.uuid4())

        record.executors.append(
            PlaybookRunExecutor(
                id=row_id,
                executor_id=executor.sat_id,
                executor_name=executor.name,
                receptor_node_id=executor.receptor_id,
                status=status,
                receptor_job_id=response["id"] if dispatched else None,
                playbook=prepared.playbook,
                text_update_full=text_update_full,
                text_update_interval=text_update_interval,
                playbook_run_id=playbook_run_id,
            )
        )
        record.systems.extend(
            PlaybookRunSystem(
                id=str(uuid.uuid4()),
                system_id=system.id,
                system_name=system_to_host(system),
                status=status,
                playbook_run_executor_id=row_id,
            )
            for system in executor.systems
        )

    return record


class RunRecorder:
    def __init__(self, store: PlaybookRunStore) -> None:
        self._store = store

    async def store(
        self,
        remediation: Remediation,
        playbook_run_id: str,
        requests: Sequence[PreparedRequest],
        responses: Sequence[dict[str, Any] | None],
        username: str,
        text_update_full: bool,
        text_update_interval: int,
    ) -> RunRecord:
        record = build_run_record(
            remediation,
            playbook_run_id,
            requests,
            responses,
            username,
            text_update_full,
            text_update_interval,
        )

        await asyncio.to_thread(self._store.insert_playbook_run, record.run, record.executors, record.systems)

        logger.info(
            "run.recorded",
            playbook_run_id=playbook_run_id,
            remediation_id=remediation.id,
            executors=len(record.executors),
            systems=len(record.systems),
        )
        return record
