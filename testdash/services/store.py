"""Shared contract of every entity store.

A store holds one record type and exposes the same CRUD + subscribe surface
whether it talks to the remote API, the local cache, or both.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Generic, List, Optional, Protocol, TypeVar

from testdash.services.errors import ConfigurationError

T = TypeVar("T")

Record = Dict[str, Any]
Identity = Callable[[Any], str]
Unsubscribe = Callable[[], None]


class InsertMode(str, Enum):
    append = "append"
    prepend = "prepend"


class ChangeKind(str, Enum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


@dataclass(frozen=True)
class ChangeEvent(Generic[T]):
    kind: ChangeKind
    item: T


ChangeCallback = Callable[[ChangeEvent[Any]], None]


@dataclass
class StoreConfig:
    """Per-entity storage settings.

    ``default_items`` seed the local cache, ``max_items`` caps it after each
    insert, and the transform hooks adapt records to the remote wire format.
    ``poll_interval`` is the change feed period in seconds.
    """

    storage_key: str
    endpoint: str
    default_items: List[Any] = field(default_factory=list)
    insert_mode: InsertMode = InsertMode.append
    max_items: Optional[int] = None
    transform_request: Optional[Callable[[Any], Any]] = None
    transform_response: Optional[Callable[[Any], Any]] = None
    poll_interval: float = 10.0

    def __post_init__(self) -> None:
        self.insert_mode = InsertMode(self.insert_mode)
        if self.max_items is not None and self.max_items < 1:
            raise ConfigurationError("max_items must be a positive integer when set.")
        if self.poll_interval <= 0:
            raise ConfigurationError("poll_interval must be a positive number of seconds.")


class EntityStore(Protocol[T]):
    identity: Identity

    def get_items(self) -> List[T]: ...

    def save_item(self, item: T) -> T: ...

    def delete_item(self, item_id: str) -> bool: ...

    def get_item_by_id(self, item_id: str) -> Optional[T]: ...

    def subscribe(self, callback: ChangeCallback) -> Unsubscribe: ...

    def initialize(self) -> None: ...


def require_identity(identity: Optional[Identity]) -> Identity:
    if identity is None or not callable(identity):
        raise ConfigurationError("An identity function is required to build a store.")
    return identity
