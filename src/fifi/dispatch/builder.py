"""Per-executor work request preparation."""

from __future__ import annotations

import copy
from dataclasses import dataclass

from fifi.connectors.protocols import PlaybookGenerator
from fifi.dispatch import formats
from fifi.dispatch.models import Executor, Issue, Remediation, System, system_to_host


@dataclass
class PreparedRequest:
    """Everything needed to dispatch to, and later record, one executor."""

    executor: Executor
    request: formats.ReceptorRequest
    playbook: str


def filter_issues_per_executor(systems: list[System], issues: list[Issue]) -> list[Issue]:
    """Narrow *issues* to the executor's systems, dropping issues left empty.

    Works on a deep copy so sibling executors (and the caller) never see
    each other's narrowing.
    """
    executor_system_ids = {system.id for system in systems}
    filtered = []
    for issue in copy.deepcopy(issues):
        issue.systems = [s for s in issue.systems if s.system_id in executor_system_ids]
        if issue.systems:
            filtered.append(issue)
    return filtered


def executor_hosts(systems: list[System], issues: list[Issue]) -> list[str]:
    """Host identities of the executor's systems referenced by *issues*, in system order.

    Uses the same identity as host dedupe and the recorded run systems.
    """
    referenced = {s.system_id for issue in issues for s in issue.systems}
    return list(dict.fromkeys(system_to_host(system) for system in systems if system.id in referenced))


class RequestBuilder:
    """Builds receptor work requests; holds no per-call state."""

    def __init__(self, generator: PlaybookGenerator) -> None:
        self._generator = generator

    async def prepare(
        self,
        executor: Executor,
        remediation: Remediation,
        playbook_run_id: str,
        text_update_full: bool,
        text_update_interval: int,
    ) -> PreparedRequest:
        filtered = filter_issues_per_executor(executor.systems, remediation.issues)
        issues = self._generator.normalize_issues(filtered)

        playbook = await self._generator.generate_playbook(
            issues, remediation, auto_reboot=remediation.auto_reboot
        )
        resolved_issues = await self._generator.resolve_systems(issues)

        payload = formats.playbook_run_request(
            remediation.name,
            executor_hosts(executor.systems, filtered),
            resolved_issues,
            playbook["yaml"],
            playbook_run_id,
            text_update_full,
            text_update_interval,
        )
        request = formats.receptor_work_request(payload, remediation.account_number, executor.receptor_id)

        return PreparedRequest(executor=executor, request=request, playbook=playbook["yaml"])
