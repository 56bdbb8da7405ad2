"""Dispatch reporters.

The dispatcher, the cancellation fan-out and the exclusion filter report
what they did through an injected :class:`DispatchReporter`. Reporting is
fire-and-forget: :func:`safe_report` logs and drops any reporter failure so
it can never change dispatch control flow.

Implementations:
    EventReporter  -- logs and publishes ``fifi.*`` events on the event bus
    NullReporter   -- does nothing
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Protocol, runtime_checkable

from fifi.core.events import publish_event
from fifi.core.logging import get_logger
from fifi.dispatch.formats import ReceptorRequest
from fifi.dispatch.models import Executor, PlaybookRunExecutor, Remediation

logger = get_logger(__name__)

EVENT_SOURCE = "fifi.dispatch"


@runtime_checkable
class DispatchReporter(Protocol):
    def executors_excluded(self, excludes: list[str]) -> None: ...

    def work_request_prepared(
        self,
        request: ReceptorRequest,
        executor: Executor,
        remediation: Remediation,
        playbook_run_id: str,
    ) -> None: ...

    def job_dispatched(
        self,
        request: ReceptorRequest,
        executor: Executor,
        response: dict[str, Any],
        remediation: Remediation,
        playbook_run_id: str,
    ) -> None: ...

    def cancel_dispatched(
        self,
        request: ReceptorRequest,
        executor: PlaybookRunExecutor,
        response: dict[str, Any],
        playbook_run_id: str,
    ) -> None: ...


def safe_report(call: Callable[..., None], *args: Any, **kwargs: Any) -> None:
    """Invoke a reporter hook, logging (not raising) on failure."""
    try:
        call(*args, **kwargs)
    except Exception as e:
        logger.warning("probes.report_failed", hook=getattr(call, "__name__", repr(call)), error=str(e))


class NullReporter:
    def executors_excluded(self, excludes: list[str]) -> None:
        pass

    def work_request_prepared(self, request, executor, remediation, playbook_run_id) -> None:
        pass

    def job_dispatched(self, request, executor, response, remediation, playbook_run_id) -> None:
        pass

    def cancel_dispatched(self, request, executor, response, playbook_run_id) -> None:
        pass


class EventReporter:
    """Logs each dispatch step and publishes it on the event bus."""

    def __init__(self, source: str = EVENT_SOURCE) -> None:
        self._source = source

    def _emit(self, event_type: str, payload: dict[str, Any], correlation_id: str | None = None) -> None:
        logger.info(event_type, **payload)
        publish_event(event_type, self._source, payload, correlation_id=correlation_id)

    def executors_excluded(self, excludes: list[str]) -> None:
        self._emit("fifi.executors_excluded", {"excludes": list(excludes), "count": len(excludes)})

    def work_request_prepared(self, request, executor, remediation, playbook_run_id) -> None:
        self._emit(
            "fifi.work_request_prepared",
            {
                "remediation_id": remediation.id,
                "playbook_run_id": playbook_run_id,
                "executor_id": executor.sat_id,
                "recipient": request.recipient,
                "hosts": len(request.payload.hosts),
            },
            correlation_id=playbook_run_id,
        )

    def job_dispatched(self, request, executor, response, remediation, playbook_run_id) -> None:
        self._emit(
            "fifi.job_dispatched",
            {
                "remediation_id": remediation.id,
                "playbook_run_id": playbook_run_id,
                "executor_id": executor.sat_id,
                "recipient": request.recipient,
                "receptor_job_id": response.get("id"),
            },
            correlation_id=playbook_run_id,
        )

    def cancel_dispatched(self, request, executor, response, playbook_run_id) -> None:
        self._emit(
            "fifi.cancel_dispatched",
            {
                "playbook_run_id": playbook_run_id,
                "executor_id": executor.executor_id,
                "recipient": request.recipient,
                "receptor_job_id": response.get("id"),
            },
            correlation_id=playbook_run_id,
        )
