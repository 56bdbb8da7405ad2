"""Run store queries."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from fifi.core.errors import RunStoreError
from fifi.core.logging import get_logger
from fifi.dispatch.models import PlaybookRun, PlaybookRunExecutor, PlaybookRunSystem, RunStatus
from fifi.orm.tables import PlaybookRunExecutorTable, PlaybookRunSystemTable, PlaybookRunTable

logger = get_logger(__name__)


class PlaybookRunQueries:
    """SQLAlchemy-backed :class:`~fifi.connectors.protocols.PlaybookRunStore`."""

    def __init__(self, sessions: sessionmaker) -> None:
        self._sessions = sessions

    def insert_playbook_run(
        self,
        run: PlaybookRun,
        executors: list[PlaybookRunExecutor],
        systems: list[PlaybookRunSystem],
    ) -> None:
        """Insert the run with all its executor and system rows in one transaction."""
        try:
            with self._sessions.begin() as session:
                session.add(
                    PlaybookRunTable(id=run.id, remediation_id=run.remediation_id, created_by=run.created_by)
                )
                session.add_all(
                    PlaybookRunExecutorTable(
                        id=executor.id,
                        executor_id=executor.executor_id,
                        executor_name=executor.executor_name,
                        receptor_node_id=executor.receptor_node_id,
                        receptor_job_id=executor.receptor_job_id,
                        status=executor.status.value,
                        playbook=executor.playbook,
                        text_update_full=executor.text_update_full,
                        text_update_interval=executor.text_update_interval,
                        playbook_run_id=executor.playbook_run_id,
                    )
                    for executor in executors
                )
                session.add_all(
                    PlaybookRunSystemTable(
                        id=system.id,
                        system_id=system.system_id,
                        system_name=system.system_name,
                        status=system.status.value,
                        playbook_run_executor_id=system.playbook_run_executor_id,
                    )
                    for system in systems
                )
        except SQLAlchemyError as e:
            logger.error("run_store.insert_failed", playbook_run_id=run.id, error=str(e))
            raise RunStoreError(f"could not store playbook run {run.id}", cause=e).with_context(
                playbook_run_id=run.id
            ) from e

    def get_playbook_run(self, playbook_run_id: str) -> PlaybookRun | None:
        with self._sessions() as session:
            row = session.get(PlaybookRunTable, playbook_run_id)
            if row is None:
                return None
            return PlaybookRun(id=row.id, remediation_id=row.remediation_id, created_by=row.created_by)

    def get_run_executors(self, playbook_run_id: str) -> list[PlaybookRunExecutor]:
        """Executor records of a run, as consumed by cancellation."""
        stmt = (
            select(PlaybookRunExecutorTable)
            .where(PlaybookRunExecutorTable.playbook_run_id == playbook_run_id)
            .order_by(PlaybookRunExecutorTable.executor_id)
        )
        with self._sessions() as session:
            return [
                PlaybookRunExecutor(
                    id=row.id,
                    executor_id=row.executor_id,
                    executor_name=row.executor_name,
                    receptor_node_id=row.receptor_node_id,
                    status=RunStatus(row.status),
                    receptor_job_id=row.receptor_job_id,
                    playbook=row.playbook,
                    text_update_full=row.text_update_full,
                    text_update_interval=row.text_update_interval,
                    playbook_run_id=row.playbook_run_id,
                )
                for row in session.scalars(stmt)
            ]

    def get_run_systems(self, playbook_run_executor_id: str) -> list[PlaybookRunSystem]:
        stmt = (
            select(PlaybookRunSystemTable)
            .where(PlaybookRunSystemTable.playbook_run_executor_id == playbook_run_executor_id)
            .order_by(PlaybookRunSystemTable.system_name)
        )
        with self._sessions() as session:
            return [
                PlaybookRunSystem(
                    id=row.id,
                    system_id=row.system_id,
                    system_name=row.system_name,
                    status=RunStatus(row.status),
                    playbook_run_executor_id=row.playbook_run_executor_id,
                )
                for row in session.scalars(stmt)
            ]
