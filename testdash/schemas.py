from __future__ import annotations

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Records travel as camelCase JSON; Python code uses snake_case names."""

    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
        "extra": "allow",
    }


# Executors -----------------------------------------------------------------------
class ExecutorBase(CamelModel):
    name: str
    image: str
    description: Optional[str] = None
    command: Optional[List[str]] = None
    supported_file_types: Optional[List[str]] = None
    env: Optional[Dict[str, str]] = None


class ExecutorCreate(ExecutorBase):
    id: Optional[str] = None
    created_at: Optional[str] = None


class Executor(ExecutorBase):
    id: str
    created_at: Optional[str] = None


# Definitions ---------------------------------------------------------------------
class DefinitionBase(CamelModel):
    name: str
    image: str
    commands: List[str] = Field(default_factory=list)
    description: str = ""
    executor_id: Optional[str] = None
    variables: Optional[Dict[str, str]] = None
    labels: Optional[List[str]] = None
    source: Optional[str] = None


class DefinitionCreate(DefinitionBase):
    id: Optional[str] = None
    created_at: Optional[str] = None


class Definition(DefinitionBase):
    id: str
    created_at: Optional[str] = None


# Runs ----------------------------------------------------------------------------
class RunStatus(str, Enum):
    running = "running"
    completed = "completed"
    failed = "failed"


class RunBase(CamelModel):
    name: str
    image: str
    command: List[str] = Field(default_factory=list)
    status: RunStatus = RunStatus.running
    definition_id: Optional[str] = None
    executor_id: Optional[str] = None
    suite_id: Optional[str] = None
    variables: Optional[Dict[str, str]] = None
    artifacts: Optional[List[str]] = None
    duration: Optional[int] = Field(default=None, ge=0)
    retries: Optional[int] = Field(default=None, ge=0)
    logs: Optional[List[str]] = None
    k8s_job_name: Optional[str] = None
    pod_scheduled: Optional[str] = None
    container_created: Optional[str] = None
    container_started: Optional[str] = None
    completed: Optional[str] = None
    failed: Optional[str] = None


class RunUpsert(RunBase):
    created_at: Optional[str] = None


class Run(RunBase):
    id: str
    created_at: str


class RunCreate(CamelModel):
    """Materialize a run from a definition, optionally overriding its settings."""

    definition_id: str
    name: Optional[str] = None
    image: Optional[str] = None
    commands: Optional[List[str]] = None


class RunFinish(CamelModel):
    status: RunStatus
    duration: Optional[int] = Field(default=None, ge=0)
    logs: Optional[List[str]] = None

    @field_validator("status")
    @classmethod
    def validate_terminal(cls, value: RunStatus) -> RunStatus:
        if value is RunStatus.running:
            raise ValueError("A run can only finish as 'completed' or 'failed'.")
        return value


# Suites --------------------------------------------------------------------------
class ExecutionMode(str, Enum):
    sequential = "sequential"
    parallel = "parallel"


class SuiteBase(CamelModel):
    name: str
    description: str = ""
    test_definition_ids: List[str] = Field(default_factory=list)
    execution_mode: ExecutionMode = ExecutionMode.sequential
    labels: Optional[List[str]] = None


class SuiteCreate(SuiteBase):
    id: Optional[str] = None
    created_at: Optional[str] = None


class Suite(SuiteBase):
    id: str
    created_at: Optional[str] = None
