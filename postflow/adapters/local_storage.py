"""
Local Filesystem Object Storage Adapter.

Implements ObjectStoragePort using the local filesystem.
Stands in for hosted bucket storage in development and tests.

Invariants:
- put overwrites an existing key; the metadata sha256 always matches the bytes
- URLs are public_base_url + "/" + key, so a URL maps back to exactly one key
"""

from __future__ import annotations

import asyncio
import hashlib
import json
import logging
import os
from pathlib import Path

from postflow.core.ports.storage import KeyNotFoundError, StorageError, StoredObject

logger = logging.getLogger(__name__)


class LocalObjectStorage:
    """
    Local filesystem implementation of ObjectStoragePort.

    Stores objects as files with accompanying metadata JSON.
    Directory structure: {base_path}/{key}

    Example key: "post_cover_images/abc123" -> {base_path}/post_cover_images/abc123.bin + .meta.json
    """

    def __init__(
        self,
        base_path: str | Path,
        public_base_url: str,
        *,
        create_dirs: bool = True,
    ) -> None:
        """
        Initialize local object storage.

        Args:
            base_path: Root directory for storage
            public_base_url: URL prefix under which stored objects are served
            create_dirs: Whether to create directories if they don't exist
        """
        self.base_path = Path(base_path)
        self.public_base_url = public_base_url.rstrip("/")

        if create_dirs:
            self.base_path.mkdir(parents=True, exist_ok=True)

    def _key_to_paths(self, key: str) -> tuple[Path, Path]:
        """Convert storage key to file paths (data and metadata)."""
        parts = [p for p in key.split("/") if p]
        if not parts or any(p in (".", "..") for p in parts):
            raise StorageError(f"Invalid storage key: {key!r}")
        safe_key = "/".join(parts)
        data_path = self.base_path / f"{safe_key}.bin"
        meta_path = self.base_path / f"{safe_key}.meta.json"
        return data_path, meta_path

    def url_for(self, key: str) -> str:
        return f"{self.public_base_url}/{key.lstrip('/')}"

    def key_for(self, url: str) -> str:
        """Map a public URL back to its storage key."""
        prefix = self.public_base_url + "/"
        if not url.startswith(prefix):
            raise StorageError(f"URL is not served by this storage: {url}")
        return url[len(prefix) :]

    # --- Sync API ---

    def put(self, key: str, data: bytes, content_type: str) -> StoredObject:
        """Store object bytes under key, replacing any previous object."""
        data_path, meta_path = self._key_to_paths(key)
        sha256_hex = hashlib.sha256(data).hexdigest()

        data_path.parent.mkdir(parents=True, exist_ok=True)

        # Write to a temp file first so readers never see a partial object
        tmp_path = data_path.with_suffix(".tmp")
        with open(tmp_path, "wb") as f:
            f.write(data)
        os.replace(tmp_path, data_path)

        metadata = StoredObject(
            key=key,
            url=self.url_for(key),
            size_bytes=len(data),
            content_type=content_type,
            sha256=sha256_hex,
        )

        with open(meta_path, "w") as f:
            json.dump(
                {
                    "key": metadata.key,
                    "url": metadata.url,
                    "size_bytes": metadata.size_bytes,
                    "content_type": metadata.content_type,
                    "sha256": metadata.sha256,
                },
                f,
            )

        return metadata

    def get(self, key: str) -> tuple[bytes, StoredObject]:
        """Retrieve object bytes by key."""
        data_path, meta_path = self._key_to_paths(key)

        if not data_path.exists():
            raise KeyNotFoundError(key)

        with open(data_path, "rb") as f:
            data = f.read()

        return data, self._load_metadata(meta_path, key)

    def exists(self, key: str) -> bool:
        """Check if key exists in storage."""
        data_path, _ = self._key_to_paths(key)
        return data_path.exists()

    def delete(self, key: str) -> None:
        """Delete object by key."""
        data_path, meta_path = self._key_to_paths(key)

        if not data_path.exists():
            raise KeyNotFoundError(key)

        data_path.unlink()
        if meta_path.exists():
            meta_path.unlink()

    # --- ObjectStoragePort ---

    async def put_object(self, key: str, data: bytes, content_type: str) -> str:
        try:
            stored = await asyncio.to_thread(self.put, key, data, content_type)
        except OSError as e:
            raise StorageError(f"Could not write {key}: {e}") from e
        logger.debug("Stored %s (%d bytes)", key, stored.size_bytes)
        return stored.url

    async def delete_object(self, url: str) -> None:
        key = self.key_for(url)
        try:
            await asyncio.to_thread(self.delete, key)
        except OSError as e:
            raise StorageError(f"Could not delete {key}: {e}") from e
        logger.debug("Deleted %s", key)

    def _load_metadata(self, meta_path: Path, key: str) -> StoredObject:
        """Load metadata from JSON file."""
        if not meta_path.exists():
            # Reconstruct metadata if missing
            data_path = meta_path.with_name(meta_path.name.replace(".meta.json", ".bin"))
            with open(data_path, "rb") as f:
                data = f.read()
            return StoredObject(
                key=key,
                url=self.url_for(key),
                size_bytes=len(data),
                content_type="application/octet-stream",
                sha256=hashlib.sha256(data).hexdigest(),
            )

        with open(meta_path) as f:
            meta = json.load(f)

        return StoredObject(
            key=meta["key"],
            url=meta["url"],
            size_bytes=meta["size_bytes"],
            content_type=meta["content_type"],
            sha256=meta["sha256"],
        )


def create_local_storage(
    base_path: str | Path | None = None,
    public_base_url: str = "http://localhost:8000/storage",
    *,
    env_var: str = "STORAGE_PATH",
    default_path: str = "./storage",
) -> LocalObjectStorage:
    """
    Factory function to create LocalObjectStorage from config.

    Args:
        base_path: Explicit base path (overrides env var)
        public_base_url: URL prefix for stored objects
        env_var: Environment variable name for storage path
        default_path: Default path if not configured

    Returns:
        Configured LocalObjectStorage instance
    """
    if base_path is None:
        base_path = os.environ.get(env_var, default_path)

    return LocalObjectStorage(base_path, public_base_url)
