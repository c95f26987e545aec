from __future__ import annotations

import json
import urllib.error
import urllib.request
from typing import Any, Callable, Dict, List, Optional, Tuple
from urllib.parse import unquote, urlparse

import pytest

API_BASE = "http://api.test/api"


class ManualTimer:
    def __init__(self, interval: float, callback: Callable[[], None], name: Optional[str]) -> None:
        self.interval = interval
        self.callback = callback
        self.name = name
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Scheduler whose timers only fire when the test calls ``tick``."""

    def __init__(self) -> None:
        self.timers: List[ManualTimer] = []

    def every(self, interval: float, callback: Callable[[], None], *, name: Optional[str] = None) -> ManualTimer:
        timer = ManualTimer(interval, callback, name)
        self.timers.append(timer)
        return timer

    @property
    def active(self) -> List[ManualTimer]:
        return [timer for timer in self.timers if not timer.cancelled]

    def tick(self) -> None:
        for timer in self.active:
            timer.callback()


class _Response:
    def __init__(self, status: int, body: bytes) -> None:
        self.status = status
        self._body = body

    def read(self) -> bytes:
        return self._body

    def __enter__(self) -> "_Response":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        return None


class FakeApi:
    """In-memory stand-in for the job backend REST API.

    Collections hold wire-format records keyed by endpoint name. ``failures``
    maps an HTTP method to a status code the API answers with instead, and
    ``offline`` makes every request fail at the transport level.
    """

    def __init__(self, base: str = API_BASE) -> None:
        self.base = base.rstrip("/")
        self.collections: Dict[str, List[Dict[str, Any]]] = {}
        self.extra: Dict[Tuple[str, str], Any] = {}
        self.failures: Dict[str, int] = {}
        self.offline = False
        self.calls: List[Tuple[str, str, Any]] = []
        self._next_id = 1

    def urlopen(self, req: urllib.request.Request, timeout: float = 10) -> _Response:
        method = req.get_method()
        url = req.full_url
        payload = json.loads(req.data.decode("utf-8")) if req.data else None
        self.calls.append((method, url, payload))
        if self.offline:
            raise urllib.error.URLError("connection refused")
        if method in self.failures:
            raise urllib.error.HTTPError(url, self.failures[method], "failure", {}, None)
        path = urlparse(url).path[len(urlparse(self.base).path):].strip("/")
        if (method, path) in self.extra:
            return self._json(200, self.extra[(method, path)])
        parts = [unquote(part) for part in path.split("/")]
        collection = self.collections.setdefault(parts[0], [])
        if len(parts) == 1 and method == "GET":
            return self._json(200, collection)
        if len(parts) == 1 and method == "POST":
            record = dict(payload)
            record["id"] = record.get("id") or f"srv-{self._next_id}"
            self._next_id += 1
            collection.append(record)
            return self._json(201, record)
        item_id = parts[1]
        index = next((pos for pos, it in enumerate(collection) if str(it.get("id")) == item_id), None)
        if method == "PUT":
            record = dict(payload)
            if index is None:
                collection.append(record)
            else:
                collection[index] = record
            return self._json(200, record)
        if method == "DELETE":
            if index is None:
                raise urllib.error.HTTPError(url, 404, "not found", {}, None)
            del collection[index]
            return _Response(204, b"")
        raise urllib.error.HTTPError(url, 405, "method not allowed", {}, None)

    @staticmethod
    def _json(status: int, body: Any) -> _Response:
        return _Response(status, json.dumps(body).encode("utf-8"))


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def fake_api(monkeypatch: pytest.MonkeyPatch) -> FakeApi:
    api = FakeApi()
    monkeypatch.setattr(urllib.request, "urlopen", api.urlopen)
    return api
