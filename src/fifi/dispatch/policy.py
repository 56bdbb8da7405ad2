"""Dispatch policy: which executors to dispatch to, and how they should report back.

Pure functions. Configuration is passed in as a :class:`DispatchConfig`;
nothing here reads settings or performs I/O (the optional reporter is a
fire-and-forget notification).

Update mode is a boolean on the wire: ``True`` asks executors for full
status text updates, ``False`` for incremental (diff) ones.
"""

from __future__ import annotations

from collections.abc import Sequence

from fifi.core.errors import UnknownExcludeError, ValidationError
from fifi.dispatch.models import DispatchConfig, Executor, ExecutorStatus
from fifi.dispatch.probes import DispatchReporter, safe_report

DIFF_MODE = False
FULL_MODE = True

RESPONSE_MODES = {"diff": DIFF_MODE, "full": FULL_MODE}


def filter_executors(
    status: Sequence[Executor],
    excludes: Sequence[str] | None = None,
    reporter: DispatchReporter | None = None,
) -> list[Executor]:
    """Apply caller excludes, then keep connected executors (order preserved).

    Raises:
        UnknownExcludeError: if any exclude does not name a known executor.
            No exclusion is applied in that case.
    """
    if excludes:
        known = {executor.sat_id for executor in status}
        unknown = [exclude for exclude in excludes if exclude not in known]
        if unknown:
            raise UnknownExcludeError(unknown)

        if reporter is not None:
            safe_report(reporter.executors_excluded, list(excludes))

        status = [executor for executor in status if executor.sat_id not in excludes]

    return [executor for executor in status if executor.status is ExecutorStatus.CONNECTED]


def find_response_mode(
    response_mode: str | None,
    executors: Sequence[Executor],
    config: DispatchConfig,
) -> bool:
    """Resolve the update mode.

    An explicit ``"full"``/``"diff"`` wins. Otherwise the dynamic policy
    picks full updates for small fleets and diff updates for large ones,
    and the static policy always uses the configured default.
    """
    if response_mode:
        if response_mode not in RESPONSE_MODES:
            raise ValidationError(
                f'Response Mode "{response_mode}" does not exist',
                code="UNKNOWN_RESPONSEMODE",
            )
        return RESPONSE_MODES[response_mode]

    if config.dynamic:
        return FULL_MODE if len(executors) < config.small_fleet else DIFF_MODE

    return config.text_update_full


def find_response_interval(executors: Sequence[Executor], config: DispatchConfig) -> int:
    """Status update interval in milliseconds."""
    if not config.dynamic:
        return config.text_update_interval

    size = len(executors)
    if size < config.small_fleet:
        return config.small_fleet_interval
    if size < config.large_fleet:
        return config.medium_fleet_interval
    return config.large_fleet_interval
