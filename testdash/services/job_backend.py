from __future__ import annotations

import logging
import urllib.error
import urllib.parse
from typing import Any, Dict, Optional

from testdash.services.errors import JobBackendUnavailable, TransientRemoteError
from testdash.services.remote_store import DEFAULT_TIMEOUT, normalize_base_url, request_json

LOGGER = logging.getLogger("testdash.job_backend")


class JobBackendClient:
    """Pass-through access to the job backend's Kubernetes endpoints."""

    def __init__(self, base_url: Optional[str], *, timeout: float = DEFAULT_TIMEOUT) -> None:
        # ``None`` means local-only mode: every call reports the backend as unavailable.
        self._base_url = normalize_base_url(base_url) if base_url else None
        self._timeout = timeout

    @property
    def enabled(self) -> bool:
        return self._base_url is not None

    def _call(self, method: str, path: str) -> Dict[str, Any]:
        if self._base_url is None:
            raise JobBackendUnavailable("Kubernetes integration not available in local storage mode")
        url = f"{self._base_url}/{path}"
        try:
            _status, data = request_json(method, url, timeout=self._timeout)
        except (urllib.error.HTTPError, TransientRemoteError) as exc:
            LOGGER.warning("%s %s failed: %s", method, url, exc)
            raise JobBackendUnavailable() from exc
        return data if isinstance(data, dict) else {}

    def health(self) -> Dict[str, Any]:
        return self._call("GET", "k8s/health")

    def run_logs(self, run_id: str) -> Dict[str, Any]:
        return self._call("GET", f"test-runs/{_quote(run_id)}/logs")

    def job_logs(self, job_name: str) -> Dict[str, Any]:
        return self._call("GET", f"k8s/jobs/{_quote(job_name)}/logs")

    def job_status(self, job_name: str) -> Dict[str, Any]:
        return self._call("GET", f"k8s/jobs/{_quote(job_name)}/status")

    def delete_job(self, job_name: str) -> Dict[str, Any]:
        return self._call("DELETE", f"k8s/jobs/{_quote(job_name)}")


def _quote(value: str) -> str:
    return urllib.parse.quote(str(value), safe="")
