from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Generic, List, Optional, TypeVar

from testdash.services.store import ChangeCallback, EntityStore, Unsubscribe

LOGGER = logging.getLogger("testdash.hybrid_store")

U = TypeVar("U")

FallbackHook = Callable[[str], None]
ErrorHook = Callable[[BaseException, str], None]


@dataclass(frozen=True)
class Attempt(Generic[U]):
    ok: bool
    value: Optional[U] = None
    error: Optional[BaseException] = None


def attempt(operation: Callable[[], U]) -> Attempt[U]:
    """Run ``operation`` and report its outcome instead of raising."""
    try:
        return Attempt(ok=True, value=operation())
    except Exception as exc:
        return Attempt(ok=False, error=exc)


def _noop_unsubscribe() -> None:
    return None


def _describe(error: Optional[BaseException]) -> str:
    if error is None:
        return "Unknown error"
    return str(error) or type(error).__name__


class HybridStore:
    """Remote-first store that falls back to the local cache on failure.

    The remote error is logged and handed to ``on_fallback``; only a failure of
    the local store reaches the caller.
    """

    def __init__(
        self,
        remote: EntityStore[Any],
        local: EntityStore[Any],
        *,
        on_fallback: Optional[FallbackHook] = None,
        on_error: Optional[ErrorHook] = None,
        name: str = "hybrid",
    ) -> None:
        self._remote = remote
        self._local = local
        self._on_fallback = on_fallback
        self._on_error = on_error
        self._name = name
        self.identity = local.identity

    @property
    def remote(self) -> EntityStore[Any]:
        return self._remote

    @property
    def local(self) -> EntityStore[Any]:
        return self._local

    def _notify_fallback(self, reason: str, error: Optional[BaseException]) -> None:
        if self._on_fallback is not None:
            try:
                self._on_fallback(reason)
            except Exception:
                LOGGER.exception("on_fallback hook failed for %s", self._name)
        if self._on_error is not None and error is not None:
            try:
                self._on_error(error, f"{self._name}: API call failed")
            except Exception:
                LOGGER.exception("on_error hook failed for %s", self._name)

    def _with_fallback(self, action: str, remote_call: Callable[[], U], local_call: Callable[[], U]) -> U:
        outcome = attempt(remote_call)
        if outcome.ok:
            return outcome.value  # type: ignore[return-value]
        reason = _describe(outcome.error)
        LOGGER.warning("%s %s failed, falling back to local storage: %s", self._name, action, reason)
        self._notify_fallback(reason, outcome.error)
        return local_call()

    def get_items(self) -> List[Any]:
        return self._with_fallback("get_items", self._remote.get_items, self._local.get_items)

    def save_item(self, item: Any) -> Any:
        return self._with_fallback(
            "save_item",
            lambda: self._remote.save_item(item),
            lambda: self._local.save_item(item),
        )

    def delete_item(self, item_id: str) -> bool:
        return self._with_fallback(
            "delete_item",
            lambda: self._remote.delete_item(item_id),
            lambda: self._local.delete_item(item_id),
        )

    def get_item_by_id(self, item_id: str) -> Optional[Any]:
        return self._with_fallback(
            "get_item_by_id",
            lambda: self._remote.get_item_by_id(item_id),
            lambda: self._local.get_item_by_id(item_id),
        )

    def subscribe(self, callback: ChangeCallback) -> Unsubscribe:
        remote = attempt(lambda: self._remote.subscribe(callback))
        if remote.ok and callable(remote.value):
            return remote.value  # type: ignore[return-value]
        reason = _describe(remote.error) if not remote.ok else "API subscription unavailable"
        LOGGER.warning("%s subscription failed, falling back to local storage: %s", self._name, reason)
        self._notify_fallback("API subscription failed", remote.error)

        local = attempt(lambda: self._local.subscribe(callback))
        if local.ok and callable(local.value):
            return local.value  # type: ignore[return-value]
        LOGGER.error("%s local subscription failed as well: %s", self._name, _describe(local.error))
        return _noop_unsubscribe

    def initialize(self) -> None:
        self._remote.initialize()
        self._local.initialize()
