from __future__ import annotations

import uuid
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel

from testdash.schemas import (
    Definition,
    DefinitionBase,
    DefinitionCreate,
    Executor,
    ExecutorBase,
    ExecutorCreate,
    Run,
    RunCreate,
    RunFinish,
    RunUpsert,
    Suite,
    SuiteBase,
    SuiteCreate,
)
from testdash.services.errors import (
    DefinitionNotFound,
    InvalidRunTransition,
    JobBackendUnavailable,
    RunNotFound,
)
from testdash.services.runs import RunOptions
from testdash.services.storage import StorageDep, TestDashStorage
from testdash.services.store import EntityStore
from testdash.services.transforms import utcnow_iso

router = APIRouter(prefix="/api", tags=["api"])

Record = Dict[str, Any]


def _dump(payload: BaseModel) -> Record:
    return payload.model_dump(mode="json", by_alias=True, exclude_none=True)


async def _get_or_404(store: EntityStore[Record], item_id: str, label: str) -> Record:
    record = await run_in_threadpool(store.get_item_by_id, item_id)
    if not record:
        raise HTTPException(status_code=404, detail=f"{label} not found")
    return record


async def _create(store: EntityStore[Record], payload: BaseModel) -> Record:
    record = _dump(payload)
    record["id"] = record.get("id") or str(uuid.uuid4())
    record.setdefault("createdAt", utcnow_iso())
    return await run_in_threadpool(store.save_item, record)


async def _replace(store: EntityStore[Record], item_id: str, payload: BaseModel) -> Record:
    existing = await run_in_threadpool(store.get_item_by_id, item_id)
    record = _dump(payload)
    record["id"] = item_id
    created_at = (existing or {}).get("createdAt")
    record["createdAt"] = record.get("createdAt") or created_at or utcnow_iso()
    return await run_in_threadpool(store.save_item, record)


async def _delete(store: EntityStore[Record], item_id: str, label: str) -> None:
    deleted = await run_in_threadpool(store.delete_item, item_id)
    if not deleted:
        raise HTTPException(status_code=502, detail=f"{label} deletion was not acknowledged")


# Executors -----------------------------------------------------------------------
@router.get("/executors", response_model=List[Executor])
async def list_executors(storage: TestDashStorage = StorageDep) -> List[Record]:
    return await run_in_threadpool(storage.executors.get_items)


@router.post("/executors", response_model=Executor, status_code=201)
async def create_executor(payload: ExecutorCreate, storage: TestDashStorage = StorageDep) -> Record:
    return await _create(storage.executors, payload)


@router.get("/executors/{executor_id}", response_model=Executor)
async def get_executor(executor_id: str, storage: TestDashStorage = StorageDep) -> Record:
    return await _get_or_404(storage.executors, executor_id, "Executor")


@router.put("/executors/{executor_id}", response_model=Executor)
async def replace_executor(
    executor_id: str, payload: ExecutorBase, storage: TestDashStorage = StorageDep
) -> Record:
    return await _replace(storage.executors, executor_id, payload)


@router.delete("/executors/{executor_id}", status_code=204)
async def delete_executor(executor_id: str, storage: TestDashStorage = StorageDep) -> None:
    await _delete(storage.executors, executor_id, "Executor")


# Definitions ---------------------------------------------------------------------
@router.get("/definitions", response_model=List[Definition])
async def list_definitions(storage: TestDashStorage = StorageDep) -> List[Record]:
    return await run_in_threadpool(storage.definitions.get_items)


@router.post("/definitions", response_model=Definition, status_code=201)
async def create_definition(
    payload: DefinitionCreate, storage: TestDashStorage = StorageDep
) -> Record:
    return await _create(storage.definitions, payload)


@router.get("/definitions/{definition_id}", response_model=Definition)
async def get_definition(definition_id: str, storage: TestDashStorage = StorageDep) -> Record:
    return await _get_or_404(storage.definitions, definition_id, "Definition")


@router.put("/definitions/{definition_id}", response_model=Definition)
async def replace_definition(
    definition_id: str, payload: DefinitionBase, storage: TestDashStorage = StorageDep
) -> Record:
    return await _replace(storage.definitions, definition_id, payload)


@router.delete("/definitions/{definition_id}", status_code=204)
async def delete_definition(definition_id: str, storage: TestDashStorage = StorageDep) -> None:
    await _delete(storage.definitions, definition_id, "Definition")


# Runs ----------------------------------------------------------------------------
@router.get("/runs", response_model=List[Run])
async def list_runs(
    definition_id: Optional[str] = None,
    status: Optional[str] = None,
    storage: TestDashStorage = StorageDep,
) -> List[Record]:
    items = await run_in_threadpool(storage.list_runs)
    if definition_id:
        items = [it for it in items if it.get("definitionId") == definition_id]
    if status:
        items = [it for it in items if it.get("status") == status]
    return items


@router.post("/runs", response_model=Run, status_code=201)
async def create_run(payload: RunCreate, storage: TestDashStorage = StorageDep) -> Record:
    options = RunOptions(name=payload.name, image=payload.image, commands=payload.commands)
    try:
        return await run_in_threadpool(storage.create_run, payload.definition_id, options)
    except DefinitionNotFound:
        raise HTTPException(status_code=404, detail="Definition not found")


@router.get("/runs/{run_id}", response_model=Run)
async def get_run(run_id: str, storage: TestDashStorage = StorageDep) -> Record:
    return await _get_or_404(storage.runs, run_id, "Run")


@router.put("/runs/{run_id}", response_model=Run)
async def replace_run(run_id: str, payload: RunUpsert, storage: TestDashStorage = StorageDep) -> Record:
    return await _replace(storage.runs, run_id, payload)


@router.delete("/runs/{run_id}", status_code=204)
async def delete_run(run_id: str, storage: TestDashStorage = StorageDep) -> None:
    await _delete(storage.runs, run_id, "Run")


@router.post("/runs/{run_id}/finish", response_model=Run)
async def finish_run(run_id: str, payload: RunFinish, storage: TestDashStorage = StorageDep) -> Record:
    try:
        return await run_in_threadpool(
            storage.finish_run,
            run_id,
            payload.status.value,
            duration=payload.duration,
            logs=payload.logs,
        )
    except RunNotFound:
        raise HTTPException(status_code=404, detail="Run not found")
    except InvalidRunTransition as exc:
        raise HTTPException(status_code=400, detail=str(exc))


@router.post("/runs/{run_id}/retry", response_model=Run, status_code=201)
async def retry_run(run_id: str, storage: TestDashStorage = StorageDep) -> Record:
    try:
        return await run_in_threadpool(storage.retry_run, run_id)
    except RunNotFound:
        raise HTTPException(status_code=404, detail="Run not found")
    except InvalidRunTransition as exc:
        raise HTTPException(status_code=400, detail=str(exc))


@router.get("/runs/{run_id}/logs")
async def get_run_logs(run_id: str, storage: TestDashStorage = StorageDep) -> Record:
    try:
        return await run_in_threadpool(storage.jobs.run_logs, run_id)
    except JobBackendUnavailable as exc:
        raise HTTPException(status_code=503, detail=exc.message)


# Suites --------------------------------------------------------------------------
@router.get("/suites", response_model=List[Suite])
async def list_suites(storage: TestDashStorage = StorageDep) -> List[Record]:
    return await run_in_threadpool(storage.suites.get_items)


@router.post("/suites", response_model=Suite, status_code=201)
async def create_suite(payload: SuiteCreate, storage: TestDashStorage = StorageDep) -> Record:
    return await _create(storage.suites, payload)


@router.get("/suites/{suite_id}", response_model=Suite)
async def get_suite(suite_id: str, storage: TestDashStorage = StorageDep) -> Record:
    return await _get_or_404(storage.suites, suite_id, "Suite")


@router.put("/suites/{suite_id}", response_model=Suite)
async def replace_suite(
    suite_id: str, payload: SuiteBase, storage: TestDashStorage = StorageDep
) -> Record:
    return await _replace(storage.suites, suite_id, payload)


@router.delete("/suites/{suite_id}", status_code=204)
async def delete_suite(suite_id: str, storage: TestDashStorage = StorageDep) -> None:
    await _delete(storage.suites, suite_id, "Suite")


# Job backend ---------------------------------------------------------------------
@router.get("/health")
async def health(storage: TestDashStorage = StorageDep) -> Record:
    try:
        return await run_in_threadpool(storage.jobs.health)
    except JobBackendUnavailable as exc:
        raise HTTPException(status_code=503, detail=exc.message)


@router.get("/jobs/{job_name}/logs")
async def get_job_logs(job_name: str, storage: TestDashStorage = StorageDep) -> Record:
    try:
        return await run_in_threadpool(storage.jobs.job_logs, job_name)
    except JobBackendUnavailable as exc:
        raise HTTPException(status_code=503, detail=exc.message)


@router.get("/jobs/{job_name}/status")
async def get_job_status(job_name: str, storage: TestDashStorage = StorageDep) -> Record:
    try:
        return await run_in_threadpool(storage.jobs.job_status, job_name)
    except JobBackendUnavailable as exc:
        raise HTTPException(status_code=503, detail=exc.message)


@router.delete("/jobs/{job_name}")
async def delete_job(job_name: str, storage: TestDashStorage = StorageDep) -> Record:
    try:
        return await run_in_threadpool(storage.jobs.delete_job, job_name)
    except JobBackendUnavailable as exc:
        raise HTTPException(status_code=503, detail=exc.message)
