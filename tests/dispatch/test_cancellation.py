"""Tests for the cancel broadcast."""

from __future__ import annotations

import pytest

from fifi.dispatch.cancellation import Canceller, prepare_cancel_request
from tests._support.fakes import FakeReceptor, RecordingReporter, make_run_executor


class TestPrepareCancelRequest:
    def test_envelope(self):
        cancel = prepare_cancel_request("540155", make_run_executor("sat-1"), "run-1")
        assert cancel.request.to_wire() == {
            "account": "540155",
            "recipient": "node-sat-1",
            "directive": "receptor_satellite:cancel",
            "payload": {"type": "playbook_run_cancel", "playbook_run_id": "run-1"},
        }


class TestCanceller:
    @pytest.mark.asyncio
    async def test_one_attempt_per_executor_in_order(self):
        receptor = FakeReceptor()
        executors = [make_run_executor("sat-1"), make_run_executor("sat-2"), make_run_executor("sat-3")]

        responses = await Canceller(receptor).cancel("540155", "run-1", executors)

        assert receptor.recipients == ["node-sat-1", "node-sat-2", "node-sat-3"]
        assert all(r is not None for r in responses)

    @pytest.mark.asyncio
    async def test_all_failures_still_resolve(self):
        receptor = FakeReceptor(failing={"node-sat-1", "node-sat-2"})
        executors = [make_run_executor("sat-1"), make_run_executor("sat-2")]

        responses = await Canceller(receptor).cancel("540155", "run-1", executors)

        assert responses == [None, None]
        assert receptor.recipients == ["node-sat-1", "node-sat-2"]

    @pytest.mark.asyncio
    async def test_first_failure_does_not_stop_the_rest(self):
        receptor = FakeReceptor(failing={"node-sat-1"})
        executors = [make_run_executor("sat-1"), make_run_executor("sat-2")]

        responses = await Canceller(receptor).cancel("540155", "run-1", executors)

        assert responses == [None, {"id": "job-node-sat-2"}]

    @pytest.mark.asyncio
    async def test_reporter_only_sees_successful_sends(self):
        reporter = RecordingReporter()
        receptor = FakeReceptor(failing={"node-sat-2"})
        executors = [make_run_executor("sat-1"), make_run_executor("sat-2")]

        await Canceller(receptor, reporter).cancel("540155", "run-1", executors)

        assert reporter.events == [("cancelled", "sat-1")]

    @pytest.mark.asyncio
    async def test_no_executors(self):
        receptor = FakeReceptor()
        assert await Canceller(receptor).cancel("540155", "run-1", []) == []
        assert receptor.posted == []
