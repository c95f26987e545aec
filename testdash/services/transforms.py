"""Record adapters between the dashboard shape and the backend wire format.

Dashboard records use camelCase keys and short legacy ids; the job backend
speaks snake_case and expects UUIDs for definition references.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from pydantic.alias_generators import to_camel, to_snake

NIL_UUID = "00000000-0000-0000-0000-000000000000"
_UUID_PREFIX = "00000000-0000-0000-0000-"
_UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE
)
_FRACTION = re.compile(r"\.(\d+)")

RUN_RENAMED_FIELDS = ("createdAt", "definitionId", "executorId")
SUITE_RENAMED_FIELDS = ("executionMode", "testDefinitionIds", "createdAt")


def utcnow_iso() -> str:
    return format_timestamp(datetime.now(tz=timezone.utc))


def format_timestamp(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: Any) -> Optional[datetime]:
    if not value or not isinstance(value, str):
        return None
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    # fromisoformat on 3.10 only takes 3 or 6 fractional digits.
    text = _FRACTION.sub(lambda match: "." + match.group(1)[:6].ljust(6, "0"), text, count=1)
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def is_uuid(value: str) -> bool:
    return bool(_UUID_PATTERN.match(value or ""))


def to_backend_uuid(item_id: str) -> str:
    """Map a short legacy id onto the nil-UUID template.

    The id is left-padded with ``0`` to 12 characters and its first 12
    characters fill the last group. UUID-shaped ids pass through unchanged.
    Ids longer than 12 characters that share a prefix collide.
    """
    if is_uuid(item_id):
        return item_id
    return _UUID_PREFIX + item_id.rjust(12, "0")[:12]


def rename_to_snake(record: Dict[str, Any], fields: Iterable[str]) -> Dict[str, Any]:
    """Return a copy with the given camelCase keys renamed to snake_case."""
    renamed = dict(record)
    for name in fields:
        if name in renamed:
            renamed[to_snake(name)] = renamed.pop(name)
    return renamed


def rename_to_camel(record: Dict[str, Any], fields: Iterable[str]) -> Dict[str, Any]:
    renamed = dict(record)
    for name in fields:
        snake = to_snake(name)
        if snake in renamed:
            renamed[to_camel(snake)] = renamed.pop(snake)
    return renamed


# -- Runs -----------------------------------------------------------------------
def run_to_wire(run: Dict[str, Any]) -> Dict[str, Any]:
    payload = rename_to_snake(run, RUN_RENAMED_FIELDS)
    if "command" in payload and "commands" not in payload:
        payload["commands"] = payload.pop("command")
    return payload


def runs_from_wire(data: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Convert backend runs, drop undated ones and sort newest first."""
    runs: List[Dict[str, Any]] = []
    for raw in data:
        run = rename_to_camel(raw, RUN_RENAMED_FIELDS)
        if "commands" in run and "command" not in run:
            run["command"] = run.pop("commands")
        created = parse_timestamp(run.get("createdAt"))
        if created is None:
            continue
        run["createdAt"] = format_timestamp(created)
        runs.append(run)
    runs.sort(key=lambda item: parse_timestamp(item["createdAt"]), reverse=True)
    return runs


# -- Suites ---------------------------------------------------------------------
def suite_to_wire(suite: Dict[str, Any]) -> Dict[str, Any]:
    payload = rename_to_snake(suite, SUITE_RENAMED_FIELDS)
    payload["id"] = suite.get("id") or NIL_UUID
    payload["test_definition_ids"] = [
        to_backend_uuid(str(definition_id))
        for definition_id in payload.get("test_definition_ids") or []
    ]
    payload["labels"] = suite.get("labels") or []
    payload["description"] = suite.get("description") or ""
    payload["created_at"] = suite.get("createdAt") or utcnow_iso()
    return payload


def suites_from_wire(data: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [
        {
            "id": raw.get("id"),
            "name": raw.get("name"),
            "description": raw.get("description") or "",
            "testDefinitionIds": raw.get("test_definition_ids") or [],
            "executionMode": raw.get("execution_mode"),
            "createdAt": raw.get("created_at") or utcnow_iso(),
            "labels": raw.get("labels") or [],
        }
        for raw in data
    ]
