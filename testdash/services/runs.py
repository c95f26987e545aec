from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from testdash.constants import TERMINAL_RUN_STATUSES
from testdash.services.errors import DefinitionNotFound, InvalidRunTransition, RunNotFound
from testdash.services.store import EntityStore
from testdash.services.transforms import utcnow_iso

LOGGER = logging.getLogger("testdash.runs")


class RunIdGenerator:
    """Issue ``test-<epoch ms>`` ids that strictly increase within a process."""

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._last = 0

    def __call__(self) -> str:
        with self._lock:
            candidate = int(self._clock() * 1000)
            if candidate <= self._last:
                candidate = self._last + 1
            self._last = candidate
        return f"test-{candidate}"


@dataclass(frozen=True)
class RunOptions:
    """Overrides applied when materializing a run from a definition.

    Any field left as ``None`` is taken from the definition; ``name`` defaults
    to ``"<definition name> Run"``.
    """

    name: Optional[str] = None
    image: Optional[str] = None
    commands: Optional[List[str]] = None


class RunWorkflow:
    def __init__(
        self,
        definitions: EntityStore[Dict[str, Any]],
        runs: EntityStore[Dict[str, Any]],
        *,
        id_factory: Optional[Callable[[], str]] = None,
        now: Callable[[], str] = utcnow_iso,
    ) -> None:
        self._definitions = definitions
        self._runs = runs
        self._next_id = id_factory or RunIdGenerator()
        self._now = now

    def create_run(self, definition_id: str, options: Optional[RunOptions] = None) -> Dict[str, Any]:
        definition = self._definitions.get_item_by_id(definition_id)
        if definition is None:
            raise DefinitionNotFound(definition_id)
        options = options or RunOptions()
        run = {
            "id": self._next_id(),
            "name": options.name if options.name is not None else f"{definition.get('name')} Run",
            "image": options.image if options.image is not None else definition.get("image"),
            "command": list(
                options.commands if options.commands is not None else definition.get("commands") or []
            ),
            "status": "running",
            "createdAt": self._now(),
            "definitionId": definition.get("id", definition_id),
            "executorId": definition.get("executorId"),
            "variables": dict(definition.get("variables") or {}),
            "artifacts": [],
            "logs": ["> Starting test..."],
        }
        LOGGER.info("Creating run %s from definition %s", run["id"], definition_id)
        return self._runs.save_item(run)

    def finish_run(
        self,
        run_id: str,
        status: str,
        *,
        duration: Optional[int] = None,
        logs: Optional[List[str]] = None,
    ) -> Dict[str, Any]:
        """Move a running run into one of its terminal states."""
        run = self._runs.get_item_by_id(run_id)
        if run is None:
            raise RunNotFound(run_id)
        current = run.get("status", "running")
        if status not in TERMINAL_RUN_STATUSES or current in TERMINAL_RUN_STATUSES:
            raise InvalidRunTransition(run_id, current, status)
        updated = dict(run)
        updated["status"] = status
        updated[status] = self._now()
        if duration is not None:
            updated["duration"] = duration
        if logs:
            updated["logs"] = list(run.get("logs") or []) + list(logs)
        return self._runs.save_item(updated)

    def retry_run(self, run_id: str) -> Dict[str, Any]:
        """Start a fresh run with the same settings as a finished one.

        The source run keeps its terminal status; definition and executor
        references are copied as-is, even when they no longer resolve.
        """
        source = self._runs.get_item_by_id(run_id)
        if source is None:
            raise RunNotFound(run_id)
        current = source.get("status", "running")
        if current not in TERMINAL_RUN_STATUSES:
            raise InvalidRunTransition(run_id, current, "retry")
        run = {
            "id": self._next_id(),
            "name": source.get("name"),
            "image": source.get("image"),
            "command": list(source.get("command") or []),
            "status": "running",
            "createdAt": self._now(),
            "definitionId": source.get("definitionId"),
            "executorId": source.get("executorId"),
            "variables": dict(source.get("variables") or {}),
            "artifacts": [],
            "retries": int(source.get("retries") or 0) + 1,
            "logs": [f"> Retrying run {run_id}..."],
        }
        if source.get("suiteId"):
            run["suiteId"] = source["suiteId"]
        LOGGER.info("Retrying run %s as %s", run_id, run["id"])
        return self._runs.save_item(run)
