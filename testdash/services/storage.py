from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional

from fastapi import Depends

from testdash.services.entities import (
    EntitySpec,
    build_entity_store,
    definition_spec,
    executor_spec,
    run_spec,
    suite_spec,
)
from testdash.services.hybrid_store import FallbackHook
from testdash.services.job_backend import JobBackendClient
from testdash.services.kv import JsonFileKeyValueStore
from testdash.services.runs import RunOptions, RunWorkflow
from testdash.services.scheduler import Scheduler
from testdash.services.store import ChangeEvent, EntityStore, Unsubscribe
from testdash.settings import Settings, load_settings

LOGGER = logging.getLogger("testdash.storage")

Record = Dict[str, Any]


class TestDashStorage:
    """Entry point for the dashboard: one store per entity plus the run workflow."""

    __test__ = False  # not a pytest test class

    def __init__(
        self,
        *,
        executors: EntityStore[Record],
        definitions: EntityStore[Record],
        runs: EntityStore[Record],
        suites: EntityStore[Record],
        jobs: JobBackendClient,
        workflow: Optional[RunWorkflow] = None,
    ) -> None:
        self.executors = executors
        self.definitions = definitions
        self.runs = runs
        self.suites = suites
        self.jobs = jobs
        self.workflow = workflow or RunWorkflow(definitions, runs)

    def store(self, entity: str) -> EntityStore[Record]:
        stores = {
            "executors": self.executors,
            "definitions": self.definitions,
            "runs": self.runs,
            "suites": self.suites,
        }
        try:
            return stores[entity]
        except KeyError:
            raise ValueError(f"Unknown entity type '{entity}'") from None

    def initialize(self) -> None:
        for store in (self.executors, self.definitions, self.runs, self.suites):
            store.initialize()

    # -- Runs ---------------------------------------------------------------------
    def create_run(self, definition_id: str, options: Optional[RunOptions] = None) -> Record:
        return self.workflow.create_run(definition_id, options)

    def finish_run(self, run_id: str, status: str, **kwargs: Any) -> Record:
        return self.workflow.finish_run(run_id, status, **kwargs)

    def retry_run(self, run_id: str) -> Record:
        return self.workflow.retry_run(run_id)

    def subscribe_to_runs(self, callback: Callable[[ChangeEvent[Record]], None]) -> Unsubscribe:
        return self.runs.subscribe(callback)

    def list_runs(self) -> List[Record]:
        return self.runs.get_items()


def build_storage(
    settings: Settings,
    *,
    kv: Optional[JsonFileKeyValueStore] = None,
    scheduler: Optional[Scheduler] = None,
    on_fallback: Optional[FallbackHook] = None,
) -> TestDashStorage:
    """Compose the storage graph for the given settings.

    ``settings.use_remote_api`` selects hybrid (remote + local) stores;
    otherwise every entity is served by the local cache alone.
    """
    kv = kv or JsonFileKeyValueStore(settings.storage_path)

    def _build(spec: EntitySpec) -> EntityStore[Record]:
        return build_entity_store(spec, kv, settings, scheduler=scheduler, on_fallback=on_fallback)

    jobs = JobBackendClient(
        settings.api_base if settings.use_remote_api else None,
        timeout=settings.request_timeout,
    )
    mode = "hybrid" if settings.use_remote_api else "local"
    LOGGER.info("Building %s storage (cache file %s)", mode, kv.path)
    return TestDashStorage(
        executors=_build(executor_spec()),
        definitions=_build(definition_spec()),
        runs=_build(run_spec(settings.run_history_limit)),
        suites=_build(suite_spec()),
        jobs=jobs,
    )


_storage: Optional[TestDashStorage] = None


def get_storage() -> TestDashStorage:
    """FastAPI dependency to retrieve the singleton storage instance."""
    global _storage
    if _storage is None:
        _storage = build_storage(load_settings())
        _storage.initialize()
    return _storage


StorageDep = Depends(get_storage)
