"""Pseudo real-time change notifications built by polling a store.

Every subscription snapshots ``store.get_items()`` on its own timer and
classifies the differences against the previous snapshot as INSERT, UPDATE or
DELETE events.
"""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from testdash.services.scheduler import Scheduler, TimerHandle, get_scheduler
from testdash.services.store import (
    ChangeCallback,
    ChangeEvent,
    ChangeKind,
    EntityStore,
    Identity,
    Unsubscribe,
)

LOGGER = logging.getLogger("testdash.change_feed")


def _fingerprint(item: Any) -> str:
    return json.dumps(item, sort_keys=True, default=str)


def diff_snapshots(
    previous: Iterable[Any],
    current: Iterable[Any],
    identity: Identity,
) -> List[ChangeEvent[Any]]:
    """Classify the differences between two snapshots.

    Inserts come first, then updates, then deletes. Each identity appears in
    at most one event; if a snapshot repeats an identity its last occurrence
    wins.
    """
    before: Dict[str, Any] = {identity(item): item for item in previous}
    after: Dict[str, Any] = {}
    for item in current:
        after[identity(item)] = item

    inserted: List[ChangeEvent[Any]] = []
    updated: List[ChangeEvent[Any]] = []
    for item_id, item in after.items():
        if item_id not in before:
            inserted.append(ChangeEvent(ChangeKind.INSERT, item))
        elif _fingerprint(before[item_id]) != _fingerprint(item):
            updated.append(ChangeEvent(ChangeKind.UPDATE, item))
    deleted = [
        ChangeEvent(ChangeKind.DELETE, item)
        for item_id, item in before.items()
        if item_id not in after
    ]
    return inserted + updated + deleted


@dataclass
class PollState:
    previous: List[Any] = field(default_factory=list)
    ticks: int = 0
    failures: int = 0


class Subscription:
    """One polling subscription; owns its timer and its previous snapshot."""

    def __init__(
        self,
        store: EntityStore[Any],
        callback: ChangeCallback,
        interval: float,
        *,
        identity: Optional[Identity] = None,
        scheduler: Optional[Scheduler] = None,
        name: str = "change-feed",
    ) -> None:
        self._store = store
        self._callback = callback
        self._interval = interval
        self._identity = identity or store.identity
        self._scheduler = scheduler or get_scheduler()
        self._name = name
        self._state = PollState()
        self._active = threading.Event()
        self._emit_lock = threading.RLock()
        self._timer: Optional[TimerHandle] = None

    @property
    def state(self) -> PollState:
        return self._state

    @property
    def active(self) -> bool:
        return self._active.is_set()

    def start(self) -> Unsubscribe:
        self._active.set()
        self._timer = self._scheduler.every(self._interval, self.poll, name=self._name)
        return self.unsubscribe

    def poll(self) -> None:
        """Run one tick: snapshot, diff, emit."""
        if not self.active:
            return
        try:
            snapshot = list(self._store.get_items())
        except Exception as exc:
            self._state.failures += 1
            LOGGER.warning("Polling error in %s: %s", self._name, exc)
            return
        if not self.active:
            return
        events = diff_snapshots(self._state.previous, snapshot, self._identity)
        self._state.previous = snapshot
        self._state.ticks += 1
        with self._emit_lock:
            for event in events:
                if not self.active:
                    return
                try:
                    self._callback(event)
                except Exception:
                    LOGGER.exception("Change callback failed in %s", self._name)

    def unsubscribe(self) -> None:
        self._active.clear()
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        # Wait out an emission already in progress on another thread.
        with self._emit_lock:
            pass


def subscribe(
    store: EntityStore[Any],
    callback: ChangeCallback,
    interval: float,
    *,
    identity: Optional[Identity] = None,
    scheduler: Optional[Scheduler] = None,
    name: str = "change-feed",
) -> Unsubscribe:
    subscription = Subscription(
        store,
        callback,
        interval,
        identity=identity,
        scheduler=scheduler,
        name=name,
    )
    return subscription.start()
