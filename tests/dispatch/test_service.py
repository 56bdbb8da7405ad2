"""End-to-end tests for the dispatch service with in-memory collaborators."""

from __future__ import annotations

import asyncio

import pytest
import structlog

from fifi.connectors.receptor import ReceptorClient
from fifi.core.errors import ChannelDispatchError, UnknownExcludeError, ValidationError
from fifi.core.settings import FifiSettings
from fifi.dispatch.models import DispatchConfig, ExecutorStatus, RunStatus, System
from fifi.dispatch.probes import EventReporter
from fifi.dispatch.service import FifiService, build_service, generate_playbook_run_id
from fifi.orm import PlaybookRunQueries
from tests._support.fakes import (
    FakeGenerator,
    FakeInventory,
    FakeReceptor,
    FakeSources,
    FakeStore,
    RecordingReporter,
    make_executor,
    make_remediation,
    make_run_executor,
    make_source,
    make_system,
)


def _service(receptor=None, store=None, config=None, reporter=None, systems=(), sources=None, generator=None):
    return FifiService(
        inventory=FakeInventory(list(systems)),
        sources=FakeSources(sources or {}),
        receptor=receptor or FakeReceptor(),
        generator=generator or FakeGenerator(),
        store=store or FakeStore(),
        config=config,
        reporter=reporter,
    )


def _status():
    return [
        make_executor("sat-1", [make_system("s1", "sat-1"), make_system("s2", "sat-1")]),
        make_executor("sat-2", [make_system("s3", "sat-2")]),
        make_executor("sat-3", [make_system("s4", "sat-3")], status=ExecutorStatus.DISCONNECTED),
        make_executor(None, [make_system("s5")], status=ExecutorStatus.NO_EXECUTOR),
    ]


REMEDIATION_SYSTEMS = {"i1": ["s1", "s2", "s3", "s4", "s5"]}


class StalledSiblingGenerator(FakeGenerator):
    """Fails for ``s1`` once the generation for any other system is underway."""

    def __init__(self) -> None:
        super().__init__()
        self.sibling_started = asyncio.Event()
        self.sibling_cancelled = False

    async def generate_playbook(self, issues, remediation, *, auto_reboot):
        system_ids = {s.system_id for issue in issues for s in issue.systems}
        if "s1" in system_ids:
            await self.sibling_started.wait()
            raise RuntimeError("playbook generator unavailable")
        self.sibling_started.set()
        try:
            await asyncio.Event().wait()
        except asyncio.CancelledError:
            self.sibling_cancelled = True
            raise


class TestGeneratePlaybookRunId:
    def test_unique(self):
        assert generate_playbook_run_id() != generate_playbook_run_id()


# ── create_playbook_run ──────────────────────────────────────────────────


class TestCreatePlaybookRun:
    @pytest.mark.asyncio
    async def test_happy_path(self):
        receptor = FakeReceptor()
        store = FakeStore()
        service = _service(receptor, store)

        run_id = await service.create_playbook_run(_status(), make_remediation(REMEDIATION_SYSTEMS), "jdoe")

        assert run_id is not None
        assert receptor.recipients == ["node-sat-1", "node-sat-2"]
        [(run, executors, systems)] = store.inserts
        assert run.id == run_id
        assert run.created_by == "jdoe"
        assert [e.executor_id for e in executors] == ["sat-1", "sat-2"]
        assert all(e.status is RunStatus.PENDING for e in executors)
        assert sorted(s.system_id for s in systems) == ["s1", "s2", "s3"]

    @pytest.mark.asyncio
    async def test_each_envelope_only_carries_its_own_hosts(self):
        receptor = FakeReceptor()
        await _service(receptor).create_playbook_run(_status(), make_remediation(REMEDIATION_SYSTEMS), "jdoe")
        hosts = {p["recipient"]: p["payload"]["hosts"] for p in receptor.posted}
        assert hosts == {
            "node-sat-1": ["s1.example.com", "s2.example.com"],
            "node-sat-2": ["s3.example.com"],
        }

    @pytest.mark.asyncio
    async def test_sent_hosts_match_recorded_system_names(self):
        receptor = FakeReceptor()
        store = FakeStore()
        status = [
            make_executor(
                "sat-1",
                [System(id="s1", ansible_host="10.0.0.5", hostname="s1.example.com"), make_system("s2", "sat-1")],
            )
        ]

        await _service(receptor, store).create_playbook_run(status, make_remediation({"i1": ["s1", "s2"]}), "jdoe")

        [(_, _, systems)] = store.inserts
        [posted] = receptor.posted
        assert posted["payload"]["hosts"] == ["10.0.0.5", "s2.example.com"]
        assert posted["payload"]["hosts"] == [s.system_name for s in systems]

    @pytest.mark.asyncio
    async def test_canary_failure_persists_nothing(self):
        receptor = FakeReceptor(failing={"node-sat-1"})
        store = FakeStore()

        with pytest.raises(ChannelDispatchError):
            await _service(receptor, store).create_playbook_run(
                _status(), make_remediation(REMEDIATION_SYSTEMS), "jdoe"
            )

        assert receptor.recipients == ["node-sat-1"]
        assert store.inserts == []

    @pytest.mark.asyncio
    async def test_preparation_failure_cancels_siblings(self):
        receptor = FakeReceptor()
        store = FakeStore()
        generator = StalledSiblingGenerator()

        with pytest.raises(RuntimeError, match="playbook generator unavailable"):
            await _service(receptor, store, generator=generator).create_playbook_run(
                _status(), make_remediation(REMEDIATION_SYSTEMS), "jdoe"
            )

        assert generator.sibling_cancelled is True
        assert receptor.posted == []
        assert store.inserts == []

    @pytest.mark.asyncio
    async def test_partial_failure_recorded(self):
        status = [
            make_executor("sat-1", [make_system("s1", "sat-1")]),
            make_executor("sat-2", [make_system("s2", "sat-2"), make_system("s3", "sat-2")]),
            make_executor("sat-3", [make_system("s4", "sat-3")]),
        ]
        receptor = FakeReceptor(failing={"node-sat-2"})
        store = FakeStore()

        await _service(receptor, store).create_playbook_run(
            status, make_remediation({"i1": ["s1", "s2", "s3", "s4"]}), "jdoe"
        )

        [(_, executors, systems)] = store.inserts
        assert [e.status for e in executors] == [RunStatus.PENDING, RunStatus.FAILURE, RunStatus.PENDING]
        by_system = {s.system_id: s.status for s in systems}
        assert by_system == {
            "s1": RunStatus.PENDING,
            "s2": RunStatus.FAILURE,
            "s3": RunStatus.FAILURE,
            "s4": RunStatus.PENDING,
        }

    @pytest.mark.asyncio
    async def test_no_connected_executors(self):
        receptor = FakeReceptor()
        store = FakeStore()
        status = [make_executor("sat-1", status=ExecutorStatus.DISCONNECTED)]

        run_id = await _service(receptor, store).create_playbook_run(status, make_remediation({"i1": ["s1"]}), "u")

        assert run_id is None
        assert receptor.posted == []
        assert store.inserts == []

    @pytest.mark.asyncio
    async def test_everything_excluded(self):
        store = FakeStore()
        run_id = await _service(store=store).create_playbook_run(
            _status(), make_remediation(REMEDIATION_SYSTEMS), "u", excludes=["sat-1", "sat-2"]
        )
        assert run_id is None
        assert store.inserts == []

    @pytest.mark.asyncio
    async def test_excludes(self):
        receptor = FakeReceptor()
        reporter = RecordingReporter()
        await _service(receptor, reporter=reporter).create_playbook_run(
            _status(), make_remediation(REMEDIATION_SYSTEMS), "u", excludes=["sat-1"]
        )
        assert receptor.recipients == ["node-sat-2"]
        assert reporter.events[0] == ("excluded", ["sat-1"])

    @pytest.mark.asyncio
    async def test_unknown_exclude_before_any_side_effect(self):
        receptor = FakeReceptor()
        store = FakeStore()

        with pytest.raises(UnknownExcludeError) as exc_info:
            await _service(receptor, store).create_playbook_run(
                _status(), make_remediation(REMEDIATION_SYSTEMS), "u", excludes=["sat-1", "ghost"]
            )

        assert exc_info.value.unknown_ids == ["ghost"]
        assert receptor.posted == []
        assert store.inserts == []

    @pytest.mark.asyncio
    async def test_unknown_response_mode_before_any_side_effect(self):
        receptor = FakeReceptor()
        with pytest.raises(ValidationError):
            await _service(receptor).create_playbook_run(
                _status(), make_remediation(REMEDIATION_SYSTEMS), "u", response_mode="verbose"
            )
        assert receptor.posted == []

    @pytest.mark.asyncio
    async def test_response_mode_recorded_and_sent(self):
        receptor = FakeReceptor()
        store = FakeStore()
        await _service(receptor, store).create_playbook_run(
            _status(), make_remediation(REMEDIATION_SYSTEMS), "u", response_mode="diff"
        )
        assert all(p["payload"]["config"]["text_update_full"] is False for p in receptor.posted)
        [(_, executors, _)] = store.inserts
        assert all(e.text_update_full is False for e in executors)
        assert all(e.text_update_interval == 5000 for e in executors)

    @pytest.mark.asyncio
    async def test_dynamic_config_picks_full_for_small_fleets(self):
        receptor = FakeReceptor()
        await _service(receptor, config=DispatchConfig(text_update_full=False)).create_playbook_run(
            _status(), make_remediation(REMEDIATION_SYSTEMS), "u"
        )
        configs = [p["payload"]["config"] for p in receptor.posted]
        assert configs == [{"text_update_full": True, "text_update_interval": 5000}] * 2

    @pytest.mark.asyncio
    async def test_same_run_id_everywhere(self):
        receptor = FakeReceptor()
        store = FakeStore()
        run_id = await _service(receptor, store).create_playbook_run(
            _status(), make_remediation(REMEDIATION_SYSTEMS), "u"
        )
        assert {p["payload"]["playbook_run_id"] for p in receptor.posted} == {run_id}
        [(run, executors, _)] = store.inserts
        assert {e.playbook_run_id for e in executors} == {run_id}


# ── get_connection_status ────────────────────────────────────────────────


class TestGetConnectionStatus:
    @pytest.mark.asyncio
    async def test_delegates_to_aggregator(self):
        service = _service(
            systems=[make_system("s1", "sat-1"), make_system("s2")],
            sources={"sat-1": make_source("sat-1")},
        )
        executors = await service.get_connection_status(make_remediation({"i1": ["s1", "s2"]}), "540155")
        assert {e.sat_id: e.status for e in executors} == {
            "sat-1": ExecutorStatus.CONNECTED,
            None: ExecutorStatus.NO_EXECUTOR,
        }

    @pytest.mark.asyncio
    async def test_status_feeds_run_creation(self):
        receptor = FakeReceptor()
        store = FakeStore()
        service = _service(
            receptor,
            store,
            systems=[make_system("s1", "sat-1"), make_system("s2")],
            sources={"sat-1": make_source("sat-1")},
        )
        remediation = make_remediation({"i1": ["s1", "s2"]})

        status = await service.get_connection_status(remediation, "540155")
        run_id = await service.create_playbook_run(status, remediation, "jdoe")

        assert run_id is not None
        assert receptor.recipients == ["node-sat-1"]
        [(_, _, systems)] = store.inserts
        assert [s.system_id for s in systems] == ["s1"]


# ── cancel_playbook_run ──────────────────────────────────────────────────


class TestCancelPlaybookRun:
    @pytest.mark.asyncio
    async def test_broadcast_tolerates_failures(self):
        receptor = FakeReceptor(failing={"node-sat-1"})
        reporter = RecordingReporter()
        executors = [make_run_executor("sat-1"), make_run_executor("sat-2")]

        result = await _service(receptor, reporter=reporter).cancel_playbook_run("540155", "run-1", executors)

        assert result is None
        assert receptor.recipients == ["node-sat-1", "node-sat-2"]
        assert reporter.events == [("cancelled", "sat-2")]


# ── build_service ────────────────────────────────────────────────────────


class TestBuildService:
    @pytest.fixture(autouse=True)
    def restore_structlog(self):
        yield
        structlog.reset_defaults()

    def test_wires_http_clients_and_sql_store(self):
        settings = FifiSettings(
            database_url="sqlite://",
            receptor_url="http://receptor:9090",
            text_update_full=False,
        )
        service = build_service(settings, FakeGenerator())

        assert isinstance(service.recorder._store, PlaybookRunQueries)
        assert isinstance(service.dispatcher._receptor, ReceptorClient)
        assert isinstance(service.reporter, EventReporter)
        assert service.config.dynamic is True
