"""Dispatch service: the operations exposed to the routing layer.

::

    get_connection_status(remediation, account)        -> [Executor]
    create_playbook_run(status, remediation, username,
                        excludes=None, response_mode=None) -> run id | None
    cancel_playbook_run(account, run_id, executors)    -> None

``create_playbook_run`` validates everything (excludes, response mode)
before any remote call, prepares all requests concurrently, dispatches
them sequentially with the first executor as canary, and only then
persists the run in one transaction.
"""

from __future__ import annotations

import asyncio
import uuid
from collections.abc import Sequence

from fifi.connectors.inventory import InventoryClient
from fifi.connectors.protocols import (
    InventoryConnector,
    PlaybookGenerator,
    PlaybookRunStore,
    ReceptorConnector,
    SourcesConnector,
)
from fifi.connectors.receptor import ReceptorClient
from fifi.connectors.sources import SourcesClient
from fifi.core.logging import LogContext, configure_logging, get_logger
from fifi.core.settings import FifiSettings, get_settings
from fifi.dispatch.builder import PreparedRequest, RequestBuilder
from fifi.dispatch.cancellation import Canceller
from fifi.dispatch.connectivity import ConnectivityAggregator
from fifi.dispatch.dispatcher import Dispatcher
from fifi.dispatch.models import DispatchConfig, Executor, PlaybookRunExecutor, Remediation
from fifi.dispatch.policy import filter_executors, find_response_interval, find_response_mode
from fifi.dispatch.probes import DispatchReporter, EventReporter, NullReporter
from fifi.dispatch.recorder import RunRecorder
from fifi.orm import FifiBase, PlaybookRunQueries, create_fifi_engine, fifi_session_factory

logger = get_logger(__name__)


def generate_playbook_run_id() -> str:
    return str(uuid.uuid4())


class FifiService:
    """Wires the dispatch components together around injected collaborators."""

    def __init__(
        self,
        *,
        inventory: InventoryConnector,
        sources: SourcesConnector,
        receptor: ReceptorConnector,
        generator: PlaybookGenerator,
        store: PlaybookRunStore,
        config: DispatchConfig | None = None,
        reporter: DispatchReporter | None = None,
    ) -> None:
        self.config = config or DispatchConfig()
        self.reporter = reporter or NullReporter()
        self.connectivity = ConnectivityAggregator(inventory, sources, receptor)
        self.builder = RequestBuilder(generator)
        self.dispatcher = Dispatcher(receptor, self.reporter)
        self.recorder = RunRecorder(store)
        self.canceller = Canceller(receptor, self.reporter)

    async def get_connection_status(self, remediation: Remediation, account: str) -> list[Executor]:
        return await self.connectivity.get_connection_status(remediation, account)

    async def create_playbook_run(
        self,
        status: Sequence[Executor],
        remediation: Remediation,
        username: str,
        excludes: Sequence[str] | None = None,
        response_mode: str | None = None,
    ) -> str | None:
        """Dispatch the remediation to every connected executor and record the run.

        Returns:
            The new playbook run id, or ``None`` when no executor is eligible.

        Raises:
            UnknownExcludeError: an exclude does not name a known executor.
            ValidationError: unknown ``response_mode``.
            ChannelDispatchError: the canary executor could not be reached;
                nothing was persisted.
        """
        playbook_run_id = generate_playbook_run_id()
        executors = filter_executors(status, excludes, self.reporter)
        text_update_full = find_response_mode(response_mode, executors, self.config)
        text_update_interval = find_response_interval(executors, self.config)

        if not executors:
            logger.info("run.no_executors", remediation_id=remediation.id)
            return None

        async with LogContext(playbook_run_id=playbook_run_id, remediation_id=remediation.id):
            requests = await self._prepare_all(
                executors, remediation, playbook_run_id, text_update_full, text_update_interval
            )

            responses = await self.dispatcher.dispatch(requests, remediation, playbook_run_id)

            await self.recorder.store(
                remediation,
                playbook_run_id,
                requests,
                responses,
                username,
                text_update_full,
                text_update_interval,
            )

        return playbook_run_id

    async def _prepare_all(
        self,
        executors: Sequence[Executor],
        remediation: Remediation,
        playbook_run_id: str,
        text_update_full: bool,
        text_update_interval: int,
    ) -> list[PreparedRequest]:
        """Prepare one request per executor concurrently.

        The first preparation failure cancels the others and is re-raised
        as is.
        """
        try:
            async with asyncio.TaskGroup() as tg:
                tasks = [
                    tg.create_task(
                        self.builder.prepare(
                            executor,
                            remediation,
                            playbook_run_id,
                            text_update_full,
                            text_update_interval,
                        )
                    )
                    for executor in executors
                ]
        except ExceptionGroup as group:
            raise group.exceptions[0] from None
        return [task.result() for task in tasks]

    async def cancel_playbook_run(
        self,
        account_number: str,
        playbook_run_id: str,
        executors: Sequence[PlaybookRunExecutor],
    ) -> None:
        async with LogContext(playbook_run_id=playbook_run_id):
            await self.canceller.cancel(account_number, playbook_run_id, executors)


def build_service(
    settings: FifiSettings | None,
    generator: PlaybookGenerator,
    *,
    reporter: DispatchReporter | None = None,
) -> FifiService:
    """Wire a :class:`FifiService` from settings using the httpx clients and the SQL run store.

    With ``settings=None`` the process-wide settings are used. Logging is
    configured at the settings' ``log_level``.
    """
    if settings is None:
        settings = get_settings()
    configure_logging(level=settings.log_level)

    engine = create_fifi_engine(settings.database_url)
    FifiBase.metadata.create_all(engine)

    return FifiService(
        inventory=InventoryClient(
            settings.inventory_url,
            timeout=settings.http_timeout,
            page_size=settings.inventory_page_size,
        ),
        sources=SourcesClient(settings.sources_url, timeout=settings.http_timeout),
        receptor=ReceptorClient(settings.receptor_url, timeout=settings.http_timeout),
        generator=generator,
        store=PlaybookRunQueries(fifi_session_factory(engine)),
        config=settings.dispatch_config(),
        reporter=reporter or EventReporter(),
    )
