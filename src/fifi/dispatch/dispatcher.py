"""Sequential fan-out of receptor requests with per-position failure policies.

ORDERING
────────
Requests go out strictly one at a time, in input order. The first one is
the canary; if it fails, the run is abandoned before anything is stored:

::

    index 0       PropagateFailure  ── failure raises ChannelDispatchError,
                                       nothing else is attempted
    index 1..n    ToleratedFailure  ── failure is logged, response is None,
                                       dispatch continues

Cancellation uses :data:`TOLERATE_ALL`: every position is tolerant.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Sequence
from typing import Any, TypeVar

from fifi.connectors.protocols import ReceptorConnector
from fifi.core.errors import ChannelDispatchError, ChannelDispatchWarning
from fifi.core.logging import get_logger
from fifi.dispatch.builder import PreparedRequest
from fifi.dispatch.models import Remediation
from fifi.dispatch.probes import DispatchReporter, NullReporter, safe_report

logger = get_logger(__name__)

T = TypeVar("T")


class FailurePolicy(ABC):
    """What to do when sending to one executor fails."""

    @abstractmethod
    def handle(self, error: Exception, executor_id: str | None, message: str) -> None:
        """Raise to abort the fan-out, or return to record a ``None`` response."""
        ...


class PropagateFailure(FailurePolicy):
    """Abort the whole fan-out."""

    def handle(self, error: Exception, executor_id: str | None, message: str) -> None:
        if isinstance(error, ChannelDispatchError):
            raise error.with_context(executor_id=executor_id)
        raise ChannelDispatchError(message, cause=error).with_context(executor_id=executor_id) from error


class ToleratedFailure(FailurePolicy):
    """Log and carry on."""

    def handle(self, error: Exception, executor_id: str | None, message: str) -> None:
        warning = ChannelDispatchWarning(message, cause=error).with_context(executor_id=executor_id)
        logger.error("dispatch.send_failed", executor=executor_id, error=warning)


class PositionalPolicy:
    """Maps a position in the fan-out to a :class:`FailurePolicy`."""

    def __init__(self, first: FailurePolicy, rest: FailurePolicy) -> None:
        self.first = first
        self.rest = rest

    def for_index(self, index: int) -> FailurePolicy:
        return self.first if index == 0 else self.rest


CANARY_FIRST = PositionalPolicy(first=PropagateFailure(), rest=ToleratedFailure())
TOLERATE_ALL = PositionalPolicy(first=ToleratedFailure(), rest=ToleratedFailure())


async def map_series(
    items: Sequence[T],
    send: Callable[[T], Awaitable[dict[str, Any]]],
    policy: PositionalPolicy,
    executor_id: Callable[[T], str | None],
    message: str,
) -> list[dict[str, Any] | None]:
    """Await ``send`` for each item in order, applying *policy* on failure."""
    responses: list[dict[str, Any] | None] = []
    for index, item in enumerate(items):
        try:
            responses.append(await send(item))
        except Exception as e:
            policy.for_index(index).handle(e, executor_id(item), message)
            responses.append(None)
    return responses


class Dispatcher:
    """Sends prepared work requests to the receptor controller."""

    def __init__(
        self,
        receptor: ReceptorConnector,
        reporter: DispatchReporter | None = None,
        policy: PositionalPolicy = CANARY_FIRST,
    ) -> None:
        self._receptor = receptor
        self._reporter = reporter or NullReporter()
        self._policy = policy

    async def dispatch(
        self,
        requests: Sequence[PreparedRequest],
        remediation: Remediation,
        playbook_run_id: str,
    ) -> list[dict[str, Any] | None]:
        """Return one response (or ``None`` for a tolerated failure) per request, in order.

        Raises:
            ChannelDispatchError: if the canary request fails.
        """

        async def send(prepared: PreparedRequest) -> dict[str, Any]:
            safe_report(
                self._reporter.work_request_prepared,
                prepared.request,
                prepared.executor,
                remediation,
                playbook_run_id,
            )
            response = await self._receptor.post_initial_request(prepared.request.to_wire())
            safe_report(
                self._reporter.job_dispatched,
                prepared.request,
                prepared.executor,
                response,
                remediation,
                playbook_run_id,
            )
            return response

        responses = await map_series(
            requests,
            send,
            self._policy,
            executor_id=lambda prepared: prepared.executor.sat_id,
            message="error sending Playbook to executor",
        )

        logger.info(
            "dispatch.complete",
            playbook_run_id=playbook_run_id,
            dispatched=sum(1 for r in responses if r is not None),
            failed=sum(1 for r in responses if r is None),
        )
        return responses
