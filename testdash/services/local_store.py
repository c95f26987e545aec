from __future__ import annotations

import copy
import logging
from typing import Any, List, Optional

from testdash.services.change_feed import subscribe as subscribe_to_store
from testdash.services.kv import JsonFileKeyValueStore
from testdash.services.scheduler import Scheduler
from testdash.services.store import (
    ChangeCallback,
    Identity,
    InsertMode,
    StoreConfig,
    Unsubscribe,
    require_identity,
)

LOGGER = logging.getLogger("testdash.local_store")


class LocalCacheStore:
    """CRUD store for one record type persisted under a single key.

    Reads fall back to the configured default items while the key is absent;
    ``initialize`` is the only operation that writes the defaults out.
    """

    def __init__(
        self,
        kv: JsonFileKeyValueStore,
        config: StoreConfig,
        identity: Identity,
        *,
        scheduler: Optional[Scheduler] = None,
        poll_interval: Optional[float] = None,
    ) -> None:
        self._kv = kv
        self._config = config
        self.identity = require_identity(identity)
        self._scheduler = scheduler
        self._poll_interval = poll_interval or config.poll_interval

    @property
    def config(self) -> StoreConfig:
        return self._config

    @property
    def storage_key(self) -> str:
        return self._config.storage_key

    def _defaults(self) -> List[Any]:
        return copy.deepcopy(list(self._config.default_items))

    def get_items(self) -> List[Any]:
        try:
            stored = self._kv.get(self.storage_key)
        except Exception as exc:
            LOGGER.warning("Failed to read %s, using defaults: %s", self.storage_key, exc)
            return self._defaults()
        if stored is None:
            return self._defaults()
        if not isinstance(stored, list):
            LOGGER.warning("Stored value for %s is not a list, using defaults", self.storage_key)
            return self._defaults()
        return stored

    def save_item(self, item: Any) -> Any:
        item_id = self.identity(item)
        with self._kv.lock(self.storage_key):
            items = self.get_items()
            index = next(
                (pos for pos, existing in enumerate(items) if self.identity(existing) == item_id),
                None,
            )
            if index is not None:
                items[index] = item
            elif self._config.insert_mode is InsertMode.prepend:
                items.insert(0, item)
            else:
                items.append(item)
            max_items = self._config.max_items
            if max_items is not None and len(items) > max_items:
                evicted = len(items) - max_items
                # Evict from the end opposite to where new items go.
                if self._config.insert_mode is InsertMode.prepend:
                    del items[max_items:]
                else:
                    del items[:evicted]
                LOGGER.debug("Evicted %d item(s) from %s", evicted, self.storage_key)
            self._kv.set(self.storage_key, items)
        return item

    def delete_item(self, item_id: str) -> bool:
        with self._kv.lock(self.storage_key):
            items = [item for item in self.get_items() if self.identity(item) != item_id]
            self._kv.set(self.storage_key, items)
        return True

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
            name=f"local-{self.storage_key}",
        )

    def initialize(self) -> None:
        with self._kv.lock(self.storage_key):
            if not self._kv.has(self.storage_key):
                self._kv.set(self.storage_key, self._defaults())
