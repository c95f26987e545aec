"""Per-entity store configuration for executors, definitions, runs and suites."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from testdash.constants import (
    DEFINITIONS_ENDPOINT,
    DEFINITIONS_KEY,
    EXECUTORS_ENDPOINT,
    EXECUTORS_KEY,
    RUNS_ENDPOINT,
    RUNS_KEY,
    SAMPLE_DEFINITIONS,
    SAMPLE_EXECUTORS,
    SAMPLE_RUNS,
    SAMPLE_SUITES,
    SUITES_ENDPOINT,
    SUITES_KEY,
)
from testdash.services.hybrid_store import FallbackHook, HybridStore
from testdash.services.kv import JsonFileKeyValueStore
from testdash.services.local_store import LocalCacheStore
from testdash.services.remote_store import RemoteStore
from testdash.services.scheduler import Scheduler
from testdash.services.store import EntityStore, Identity, InsertMode, StoreConfig
from testdash.services.transforms import run_to_wire, runs_from_wire, suite_to_wire, suites_from_wire
from testdash.settings import Settings


def record_id(item: Dict[str, Any]) -> str:
    value = item.get("id") if isinstance(item, dict) else None
    return "" if value is None else str(value)


@dataclass(frozen=True)
class EntitySpec:
    name: str
    config: StoreConfig
    identity: Identity = record_id


def executor_spec() -> EntitySpec:
    return EntitySpec(
        name="executors",
        config=StoreConfig(
            storage_key=EXECUTORS_KEY,
            endpoint=EXECUTORS_ENDPOINT,
            default_items=SAMPLE_EXECUTORS,
        ),
    )


def definition_spec() -> EntitySpec:
    return EntitySpec(
        name="definitions",
        config=StoreConfig(
            storage_key=DEFINITIONS_KEY,
            endpoint=DEFINITIONS_ENDPOINT,
            default_items=SAMPLE_DEFINITIONS,
        ),
    )


def run_spec(history_limit: int = 50) -> EntitySpec:
    return EntitySpec(
        name="runs",
        config=StoreConfig(
            storage_key=RUNS_KEY,
            endpoint=RUNS_ENDPOINT,
            default_items=SAMPLE_RUNS,
            insert_mode=InsertMode.prepend,
            max_items=history_limit,
            transform_request=run_to_wire,
            transform_response=runs_from_wire,
        ),
    )


def suite_spec() -> EntitySpec:
    return EntitySpec(
        name="suites",
        config=StoreConfig(
            storage_key=SUITES_KEY,
            endpoint=SUITES_ENDPOINT,
            default_items=SAMPLE_SUITES,
            transform_request=suite_to_wire,
            transform_response=suites_from_wire,
        ),
    )


def build_entity_store(
    spec: EntitySpec,
    kv: JsonFileKeyValueStore,
    settings: Settings,
    *,
    scheduler: Optional[Scheduler] = None,
    on_fallback: Optional[FallbackHook] = None,
) -> EntityStore[Dict[str, Any]]:
    """Compose the store for one entity.

    Local-only mode returns the cache directly; remote mode wraps the REST
    store and the cache in a :class:`HybridStore`.
    """
    local = LocalCacheStore(
        kv,
        spec.config,
        spec.identity,
        scheduler=scheduler,
        poll_interval=settings.local_poll_interval,
    )
    if not settings.use_remote_api:
        return local
    remote = RemoteStore(
        settings.api_base,
        spec.config,
        spec.identity,
        timeout=settings.request_timeout,
        scheduler=scheduler,
        poll_interval=settings.remote_poll_interval,
    )
    return HybridStore(remote, local, on_fallback=on_fallback, name=spec.name)
