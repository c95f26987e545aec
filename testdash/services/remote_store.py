from __future__ import annotations

import json
import logging
import urllib.error
import urllib.parse
import urllib.request
from typing import Any, List, Optional, Tuple

from testdash.services.change_feed import subscribe as subscribe_to_store
from testdash.services.errors import ConfigurationError, TransientRemoteError
from testdash.services.scheduler import Scheduler
from testdash.services.store import (
    ChangeCallback,
    Identity,
    StoreConfig,
    Unsubscribe,
    require_identity,
)

LOGGER = logging.getLogger("testdash.remote_store")

DEFAULT_TIMEOUT = 10.0


def normalize_base_url(base_url: str) -> str:
    parsed = urllib.parse.urlparse(base_url or "")
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        raise ConfigurationError(f"Malformed API base URL: {base_url!r}")
    return base_url.rstrip("/")


def request_json(
    method: str,
    url: str,
    *,
    payload: Any = None,
    timeout: float = DEFAULT_TIMEOUT,
    decode: bool = True,
) -> Tuple[int, Any]:
    """Send one JSON request and return ``(status, decoded body)``.

    ``urllib`` raises ``HTTPError`` for non-2xx answers; it is left to the
    caller. Transport failures are wrapped in :class:`TransientRemoteError`.
    """
    body = None
    headers = {"Accept": "application/json"}
    if payload is not None:
        body = json.dumps(payload).encode("utf-8")
        headers["Content-Type"] = "application/json"
    req = urllib.request.Request(url, data=body, method=method, headers=headers)
    LOGGER.debug("%s %s", method, url)
    try:
        with urllib.request.urlopen(req, timeout=timeout) as resp:
            status = getattr(resp, "status", 200)
            raw = resp.read()
    except urllib.error.HTTPError:
        raise
    except (urllib.error.URLError, OSError) as exc:
        raise TransientRemoteError(f"{method} {url} failed: {exc}") from exc
    if not raw or not decode:
        return status, None
    try:
        return status, json.loads(raw.decode("utf-8"))
    except ValueError as exc:
        raise TransientRemoteError(f"{method} {url} returned invalid JSON") from exc


class RemoteStore:
    """CRUD store for one record type served by the REST API.

    ``transform_request`` maps a record onto the wire body; ``transform_response``
    maps a list of wire records back onto records.
    """

    def __init__(
        self,
        base_url: str,
        config: StoreConfig,
        identity: Identity,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        scheduler: Optional[Scheduler] = None,
        poll_interval: Optional[float] = None,
    ) -> None:
        endpoint = (config.endpoint or "").strip("/")
        if not endpoint:
            raise ConfigurationError("A remote store needs a non-empty endpoint.")
        self._base_url = normalize_base_url(base_url)
        self._endpoint = endpoint
        self._config = config
        self.identity = require_identity(identity)
        self._timeout = timeout
        self._scheduler = scheduler
        self._poll_interval = poll_interval or config.poll_interval

    @property
    def config(self) -> StoreConfig:
        return self._config

    @property
    def collection_url(self) -> str:
        return f"{self._base_url}/{self._endpoint}"

    def item_url(self, item_id: str) -> str:
        return f"{self.collection_url}/{urllib.parse.quote(str(item_id), safe='')}"

    def _transform_many(self, data: List[Any]) -> List[Any]:
        if self._config.transform_response is None:
            return data
        return list(self._config.transform_response(data))

    def get_items(self) -> List[Any]:
        try:
            _status, data = request_json("GET", self.collection_url, timeout=self._timeout)
        except urllib.error.HTTPError as exc:
            raise TransientRemoteError(
                f"Failed to fetch {self._endpoint}: HTTP {exc.code}", status=exc.code
            ) from exc
        if not isinstance(data, list):
            raise TransientRemoteError(f"Failed to fetch {self._endpoint}: expected a JSON array")
        return self._transform_many(data)

    def save_item(self, item: Any) -> Any:
        item_id = self.identity(item)
        if item_id:
            method, url = "PUT", self.item_url(item_id)
        else:
            method, url = "POST", self.collection_url
        payload = self._config.transform_request(item) if self._config.transform_request else item
        try:
            _status, data = request_json(method, url, payload=payload, timeout=self._timeout)
        except urllib.error.HTTPError as exc:
            raise TransientRemoteError(
                f"Failed to save {self._endpoint}: HTTP {exc.code}", status=exc.code
            ) from exc
        if data is None:
            return item
        if isinstance(data, dict):
            transformed = self._transform_many([data])
            return transformed[0] if transformed else item
        return data

    def delete_item(self, item_id: str) -> bool:
        try:
            status, _data = request_json(
                "DELETE", self.item_url(item_id), timeout=self._timeout, decode=False
            )
        except urllib.error.HTTPError as exc:
            LOGGER.info("DELETE %s answered HTTP %s", self.item_url(item_id), exc.code)
            return False
        return 200 <= status < 300

    def get_item_by_id(self, item_id: str) -> Optional[Any]:
        for item in self.get_items():
            if self.identity(item) == item_id:
                return item
        return None

    def subscribe(self, callback: ChangeCallback) -> Unsubscribe:
        return subscribe_to_store(
            self,
            callback,
            self._poll_interval,
            scheduler=self._scheduler,
            name=f"remote-{self._endpoint}",
        )

    def initialize(self) -> None:
        return None
