# postflow: Ports (Protocol Interfaces)
# Abstract interfaces for adapters; no implementations here

from postflow.core.ports.clock import ClockPort
from postflow.core.ports.identity import IdentityPort
from postflow.core.ports.storage import (
    KeyNotFoundError,
    ObjectStoragePort,
    StorageError,
    StoredObject,
)
from postflow.core.ports.store import (
    BatchTooLargeError,
    DocumentStoreError,
    DocumentStorePort,
)
from postflow.core.ports.validation import ValidationPort

__all__ = [
    # Clock
    "ClockPort",
    # Identity
    "IdentityPort",
    # Object storage
    "KeyNotFoundError",
    "ObjectStoragePort",
    "StorageError",
    "StoredObject",
    # Document store
    "BatchTooLargeError",
    "DocumentStoreError",
    "DocumentStorePort",
    # Validation
    "ValidationPort",
]
