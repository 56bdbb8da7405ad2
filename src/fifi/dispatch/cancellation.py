"""Best-effort cancel broadcast to the executors of a playbook run."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from fifi.connectors.protocols import ReceptorConnector
from fifi.core.logging import get_logger
from fifi.dispatch import formats
from fifi.dispatch.dispatcher import TOLERATE_ALL, map_series
from fifi.dispatch.models import PlaybookRunExecutor
from fifi.dispatch.probes import DispatchReporter, NullReporter, safe_report

logger = get_logger(__name__)


@dataclass
class CancelRequest:
    executor: PlaybookRunExecutor
    request: formats.ReceptorRequest


def prepare_cancel_request(account_number: str, executor: PlaybookRunExecutor, playbook_run_id: str) -> CancelRequest:
    request = formats.receptor_cancel_request(
        formats.playbook_cancel_request(playbook_run_id),
        account_number,
        executor.receptor_node_id,
    )
    return CancelRequest(executor=executor, request=request)


class Canceller:
    """Sends cancel requests to every executor; never raises on send failures."""

    def __init__(self, receptor: ReceptorConnector, reporter: DispatchReporter | None = None) -> None:
        self._receptor = receptor
        self._reporter = reporter or NullReporter()

    async def cancel(
        self,
        account_number: str,
        playbook_run_id: str,
        executors: Sequence[PlaybookRunExecutor],
    ) -> list[dict[str, Any] | None]:
        requests = [prepare_cancel_request(account_number, executor, playbook_run_id) for executor in executors]

        async def send(cancel: CancelRequest) -> dict[str, Any]:
            response = await self._receptor.post_initial_request(cancel.request.to_wire())
            safe_report(self._reporter.cancel_dispatched, cancel.request, cancel.executor, response, playbook_run_id)
            return response

        responses = await map_series(
            requests,
            send,
            TOLERATE_ALL,
            executor_id=lambda cancel: cancel.executor.executor_id,
            message="error sending cancel request to executor",
        )

        logger.info(
            "cancel.complete",
            playbook_run_id=playbook_run_id,
            sent=sum(1 for r in responses if r is not None),
            failed=sum(1 for r in responses if r is None),
        )
        return responses
