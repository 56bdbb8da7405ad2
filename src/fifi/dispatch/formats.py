"""Wire formats for the receptor controller.

Work request::

    {
      "account": "540155",
      "recipient": "node-a",
      "directive": "receptor_satellite:execute",
      "payload": {
        "type": "playbook_run",
        "playbook_run_id": "...",
        "playbook_run_name": "...",
        "playbook": "<rendered yaml>",
        "hosts": ["host1", "host2"],
        "issues": [...],
        "config": {"text_update_full": true, "text_update_interval": 5000}
      }
    }

Cancel request carries ``{"type": "playbook_run_cancel", "playbook_run_id"}``
with directive ``receptor_satellite:cancel``.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

EXECUTE_DIRECTIVE = "receptor_satellite:execute"
CANCEL_DIRECTIVE = "receptor_satellite:cancel"


class PlaybookRunConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    text_update_full: bool
    text_update_interval: int = Field(gt=0, description="Milliseconds")


class PlaybookRunPayload(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["playbook_run"] = "playbook_run"
    playbook_run_id: str
    playbook_run_name: str | None = None
    playbook: str
    hosts: list[str]
    issues: list[dict[str, Any]]
    config: PlaybookRunConfig


class PlaybookCancelPayload(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["playbook_run_cancel"] = "playbook_run_cancel"
    playbook_run_id: str


class ReceptorRequest(BaseModel):
    """Envelope addressed to a single receptor node."""

    model_config = ConfigDict(frozen=True)

    account: str
    recipient: str
    directive: str
    payload: PlaybookRunPayload | PlaybookCancelPayload

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


def playbook_run_request(
    remediation_name: str | None,
    hosts: list[str],
    resolved_issues: list[dict[str, Any]],
    playbook: str,
    playbook_run_id: str,
    text_update_full: bool,
    text_update_interval: int,
) -> PlaybookRunPayload:
    return PlaybookRunPayload(
        playbook_run_id=playbook_run_id,
        playbook_run_name=remediation_name,
        playbook=playbook,
        hosts=hosts,
        issues=resolved_issues,
        config=PlaybookRunConfig(
            text_update_full=text_update_full,
            text_update_interval=text_update_interval,
        ),
    )


def playbook_cancel_request(playbook_run_id: str) -> PlaybookCancelPayload:
    return PlaybookCancelPayload(playbook_run_id=playbook_run_id)


def receptor_work_request(payload: PlaybookRunPayload, account: str, recipient: str) -> ReceptorRequest:
    return ReceptorRequest(account=account, recipient=recipient, directive=EXECUTE_DIRECTIVE, payload=payload)


def receptor_cancel_request(payload: PlaybookCancelPayload, account: str, recipient: str) -> ReceptorRequest:
    return ReceptorRequest(account=account, recipient=recipient, directive=CANCEL_DIRECTIVE, payload=payload)
