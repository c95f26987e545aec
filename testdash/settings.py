from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from testdash.services.errors import ConfigurationError

DEFAULT_API_BASE = "http://localhost:3001/api"
DEFAULT_STORAGE_PATH = "dev.testdash.json"


def _as_bool(value: str) -> bool:
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _as_positive_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from exc
    if value <= 0:
        raise ConfigurationError(f"{name} must be greater than zero.")
    return value


def _as_positive_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from exc
    if value <= 0:
        raise ConfigurationError(f"{name} must be greater than zero.")
    return value


@dataclass(frozen=True)
class Settings:
    use_remote_api: bool = False
    api_base: str = DEFAULT_API_BASE
    storage_path: Path = Path(DEFAULT_STORAGE_PATH)
    request_timeout: float = 10.0
    remote_poll_interval: float = 5.0
    local_poll_interval: float = 10.0
    run_history_limit: int = 50


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    env = os.environ if environ is None else environ
    return Settings(
        use_remote_api=_as_bool(env.get("TESTDASH_USE_REMOTE_API", "false")),
        api_base=env.get("TESTDASH_API_BASE", "").strip() or DEFAULT_API_BASE,
        storage_path=Path(env.get("TESTDASH_STORAGE_PATH", "").strip() or DEFAULT_STORAGE_PATH),
        request_timeout=_as_positive_float(env, "TESTDASH_REQUEST_TIMEOUT", 10.0),
        remote_poll_interval=_as_positive_float(env, "TESTDASH_REMOTE_POLL_INTERVAL", 5.0),
        local_poll_interval=_as_positive_float(env, "TESTDASH_LOCAL_POLL_INTERVAL", 10.0),
        run_history_limit=_as_positive_int(env, "TESTDASH_RUN_HISTORY_LIMIT", 50),
    )
