from __future__ import annotations


class StorageError(Exception):
    """Base class for every failure raised by the storage layer."""


class TransientRemoteError(StorageError):
    """The remote API could not be reached or answered with a non-2xx status."""

    def __init__(self, message: str, *, status: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status = status


class LocalPersistenceError(StorageError):
    """The local cache could not serialize or write its document."""


class ConfigurationError(StorageError):
    """A store was constructed with an unusable configuration."""


class DefinitionNotFound(StorageError):
    def __init__(self, definition_id: str) -> None:
        super().__init__("Definition not found")
        self.definition_id = definition_id


class RunNotFound(StorageError):
    def __init__(self, run_id: str) -> None:
        super().__init__("Run not found")
        self.run_id = run_id


class InvalidRunTransition(StorageError):
    def __init__(self, run_id: str, current: str, requested: str) -> None:
        super().__init__(f"Run {run_id} cannot move from '{current}' to '{requested}'")
        self.run_id = run_id
        self.current = current
        self.requested = requested


class JobBackendUnavailable(StorageError):
    def __init__(self, message: str = "Kubernetes integration not available") -> None:
        super().__init__(message)
        self.message = message
