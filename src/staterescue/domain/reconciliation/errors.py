"""Error taxonomy shared by the store ports and the reconciliation core.

Store adapters translate their transport-specific failures into these types so
the core can decide, without knowing the backend, whether a failure ends the
pass (``StoreUnavailableError``), only the current action
(``StoreConflictError``/``AlreadyExistsError``), or nothing at all
(``NotFoundError`` while looking for something that may legitimately be gone).
"""

from __future__ import annotations


class StoreError(RuntimeError):
    """Base class for failures reported by an object or policy store."""

    def __init__(self, message: str, *, namespace: str | None = None, name: str | None = None):
        super().__init__(message)
        self.namespace = namespace
        self.name = name


class NotFoundError(StoreError):
    """The requested object does not exist (or vanished between list and get)."""


class AlreadyExistsError(StoreError):
    """A create raced with another writer that created the same name first."""


class StoreConflictError(StoreError):
    """An update was rejected because the object changed since it was read."""


class StoreUnavailableError(StoreError):
    """The store could not be reached or failed to process the request."""


class MalformedStateError(ValueError):
    """A backup name cannot be reduced to a valid original name."""

    def __init__(self, message: str, *, name: str) -> None:
        super().__init__(message)
        self.name = name


__all__ = [
    "AlreadyExistsError",
    "MalformedStateError",
    "NotFoundError",
    "StoreConflictError",
    "StoreError",
    "StoreUnavailableError",
]
