"""Tests for run record construction and storage."""

from __future__ import annotations

import pytest

from fifi.dispatch.builder import PreparedRequest
from fifi.dispatch.formats import playbook_run_request, receptor_work_request
from fifi.dispatch.models import RunStatus
from fifi.dispatch.recorder import RunRecorder, build_run_record
from tests._support.fakes import FakeStore, make_executor, make_remediation, make_system


def _prepared(sat_id, system_ids):
    executor = make_executor(sat_id, [make_system(s, sat_id) for s in system_ids])
    payload = playbook_run_request("name", system_ids, [], f"# {sat_id}\n", "run-1", True, 5000)
    request = receptor_work_request(payload, "540155", executor.receptor_id)
    return PreparedRequest(executor=executor, request=request, playbook=f"# {sat_id}\n")


class TestBuildRunRecord:
    def test_statuses_follow_responses(self):
        requests = [_prepared("sat-1", ["s1", "s2"]), _prepared("sat-2", ["s3"]), _prepared("sat-3", ["s4"])]
        responses = [{"id": "job-1"}, None, {"id": "job-3"}]

        record = build_run_record(make_remediation({}), "run-1", requests, responses, "jdoe", True, 5000)

        assert record.run.id == "run-1"
        assert record.run.remediation_id == "rem-1"
        assert record.run.created_by == "jdoe"

        assert [e.status for e in record.executors] == [RunStatus.PENDING, RunStatus.FAILURE, RunStatus.PENDING]
        assert [e.receptor_job_id for e in record.executors] == ["job-1", None, "job-3"]
        assert [e.executor_id for e in record.executors] == ["sat-1", "sat-2", "sat-3"]

        status_by_executor = {e.id: e.status for e in record.executors}
        for system in record.systems:
            assert system.status is status_by_executor[system.playbook_run_executor_id]
        assert [s.system_id for s in record.systems] == ["s1", "s2", "s3", "s4"]

    def test_executor_rows_carry_dispatch_details(self):
        record = build_run_record(
            make_remediation({}), "run-1", [_prepared("sat-1", ["s1"])], [{"id": "job-1"}], "jdoe", False, 30000
        )
        [executor] = record.executors
        assert executor.executor_name == "Satellite sat-1"
        assert executor.receptor_node_id == "node-sat-1"
        assert executor.playbook == "# sat-1\n"
        assert executor.text_update_full is False
        assert executor.text_update_interval == 30000
        assert executor.playbook_run_id == "run-1"
        assert record.systems[0].system_name == "s1.example.com"

    def test_row_ids_are_unique(self):
        requests = [_prepared("sat-1", ["s1", "s2"]), _prepared("sat-2", ["s3"])]
        record = build_run_record(make_remediation({}), "run-1", requests, [{"id": "a"}, {"id": "b"}], "u", True, 5000)
        ids = [e.id for e in record.executors] + [s.id for s in record.systems]
        assert len(ids) == len(set(ids))

    def test_length_mismatch(self):
        with pytest.raises(ValueError):
            build_run_record(make_remediation({}), "run-1", [_prepared("sat-1", ["s1"])], [], "u", True, 5000)


class TestRunRecorder:
    @pytest.mark.asyncio
    async def test_single_store_call(self):
        store = FakeStore()
        requests = [_prepared("sat-1", ["s1"]), _prepared("sat-2", ["s2"])]

        record = await RunRecorder(store).store(
            make_remediation({}), "run-1", requests, [{"id": "a"}, None], "jdoe", True, 5000
        )

        assert len(store.inserts) == 1
        run, executors, systems = store.inserts[0]
        assert run is record.run
        assert len(executors) == 2
        assert len(systems) == 2
