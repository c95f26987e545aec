from __future__ import annotations

from pathlib import Path
from typing import Any, List

import pytest

from conftest import API_BASE, FakeApi, ManualScheduler
from testdash.services.errors import JobBackendUnavailable
from testdash.services.hybrid_store import HybridStore
from testdash.services.local_store import LocalCacheStore
from testdash.services.storage import TestDashStorage, build_storage
from testdash.services.store import ChangeEvent
from testdash.settings import Settings


def _settings(tmp_path: Path, **overrides: Any) -> Settings:
    return Settings(storage_path=tmp_path / "cache.json", api_base=API_BASE, **overrides)


@pytest.mark.unit
def test_local_mode_uses_the_cache_only(tmp_path: Path, scheduler: ManualScheduler) -> None:
    storage = build_storage(_settings(tmp_path), scheduler=scheduler)

    for entity in ("executors", "definitions", "runs", "suites"):
        assert isinstance(storage.store(entity), LocalCacheStore)
    assert storage.jobs.enabled is False
    with pytest.raises(JobBackendUnavailable):
        storage.jobs.health()
    with pytest.raises(ValueError):
        storage.store("artifacts")


@pytest.mark.unit
def test_remote_mode_builds_hybrid_stores(tmp_path: Path, scheduler: ManualScheduler) -> None:
    storage = build_storage(_settings(tmp_path, use_remote_api=True), scheduler=scheduler)

    assert all(
        isinstance(storage.store(entity), HybridStore)
        for entity in ("executors", "definitions", "runs", "suites")
    )
    assert storage.jobs.enabled is True


@pytest.mark.unit
def test_initialize_seeds_sample_data(tmp_path: Path, scheduler: ManualScheduler) -> None:
    storage = build_storage(_settings(tmp_path), scheduler=scheduler)
    storage.initialize()

    assert [item["id"] for item in storage.executors.get_items()] == ["k6", "pytest"]
    assert [item["id"] for item in storage.definitions.get_items()] == ["api-tests", "load-tests"]
    assert [item["id"] for item in storage.suites.get_items()] == ["nightly"]
    assert (tmp_path / "cache.json").exists()


@pytest.mark.integration
def test_runs_go_to_the_api_in_wire_format(fake_api: FakeApi, tmp_path: Path, scheduler: ManualScheduler) -> None:
    fake_api.collections["test-definitions"] = [
        {"id": "d1", "name": "Smoke", "image": "alpine", "commands": ["true"], "executorId": "sh"}
    ]
    storage = build_storage(_settings(tmp_path, use_remote_api=True), scheduler=scheduler)

    run = storage.create_run("d1")

    stored = fake_api.collections["test-runs"][0]
    assert stored["definition_id"] == "d1"
    assert stored["commands"] == ["true"]
    assert "createdAt" not in stored
    assert run["id"].startswith("test-")
    assert [item["id"] for item in storage.list_runs()] == [run["id"]]


@pytest.mark.integration
def test_offline_api_falls_back_to_the_cache(fake_api: FakeApi, tmp_path: Path, scheduler: ManualScheduler) -> None:
    fake_api.offline = True
    reasons: List[str] = []
    storage = build_storage(_settings(tmp_path, use_remote_api=True), scheduler=scheduler, on_fallback=reasons.append)
    storage.initialize()

    run = storage.create_run("api-tests")
    finished = storage.finish_run(run["id"], "completed", duration=3)

    assert finished["status"] == "completed"
    assert storage.list_runs()[0]["id"] == run["id"]
    assert reasons
    with pytest.raises(JobBackendUnavailable):
        storage.jobs.job_status("job-1")


@pytest.mark.integration
def test_subscribe_to_runs_reports_new_runs(tmp_path: Path, scheduler: ManualScheduler) -> None:
    storage: TestDashStorage = build_storage(_settings(tmp_path), scheduler=scheduler)
    storage.initialize()
    received: List[ChangeEvent[Any]] = []

    unsubscribe = storage.subscribe_to_runs(received.append)
    scheduler.tick()
    received.clear()
    run = storage.create_run("load-tests")
    scheduler.tick()
    unsubscribe()

    assert [(event.kind.value, event.item["id"]) for event in received] == [("INSERT", run["id"])]


@pytest.mark.integration
def test_job_backend_passthrough(fake_api: FakeApi, tmp_path: Path, scheduler: ManualScheduler) -> None:
    fake_api.extra[("GET", "k8s/health")] = {"kubernetes_connected": True}
    fake_api.extra[("GET", "k8s/jobs/job-1/status")] = {"job_name": "job-1", "status": "running"}
    storage = build_storage(_settings(tmp_path, use_remote_api=True), scheduler=scheduler)

    assert storage.jobs.health() == {"kubernetes_connected": True}
    assert storage.jobs.job_status("job-1")["status"] == "running"

    fake_api.failures["GET"] = 500
    with pytest.raises(JobBackendUnavailable):
        storage.jobs.run_logs("test-1")
