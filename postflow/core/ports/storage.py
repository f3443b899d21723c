"""
Object Storage Port.

Protocol-based interface for the hosted object storage that receives inline
images and cover images.
Implementations: Local filesystem (now), bucket storage (future).

Invariants:
- put_object overwrites an existing key, so retrying with the same key converges
- delete_object is best-effort; callers treat its errors as non-fatal
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


@dataclass
class StoredObject:
    """Metadata for a stored object."""

    key: str
    url: str
    size_bytes: int
    content_type: str
    sha256: str


class ObjectStoragePort(Protocol):
    """
    Object storage port interface.

    Keys are slash separated paths (e.g. "post_cover_images/<post id>").
    Objects are addressed by URL once written.
    """

    async def put_object(self, key: str, data: bytes, content_type: str) -> str:
        """
        Store bytes under key, replacing any existing object.

        Returns:
            Public URL of the stored object

        Raises:
            StorageError: If the write fails
        """
        ...

    async def delete_object(self, url: str) -> None:
        """
        Delete the object addressed by url.

        Raises:
            KeyNotFoundError: If nothing is stored at that URL
            StorageError: If the URL is outside this storage or deletion fails
        """
        ...


class StorageError(Exception):
    """Base class for storage errors."""


class KeyNotFoundError(StorageError):
    """Raised when key doesn't exist."""

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(f"Key not found: {key}")
