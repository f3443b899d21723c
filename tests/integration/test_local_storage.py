import asyncio
import json

import pytest

from postflow.adapters.local_storage import LocalObjectStorage, create_local_storage
from postflow.core.ports.storage import KeyNotFoundError, StorageError

BASE_URL = "http://localhost:8000/storage"


@pytest.fixture
def storage(tmp_path):
    return LocalObjectStorage(tmp_path / "blobs", BASE_URL)


def test_put_returns_public_url(storage, tmp_path):
    url = asyncio.run(storage.put_object("post_images/u1/a.png_1", b"png", "image/png"))

    assert url == f"{BASE_URL}/post_images/u1/a.png_1"
    folder = tmp_path / "blobs" / "post_images" / "u1"
    assert (folder / "a.png_1.bin").read_bytes() == b"png"
    meta = json.loads((folder / "a.png_1.meta.json").read_text())
    assert meta["content_type"] == "image/png"
    assert meta["url"] == url


def test_put_overwrites(storage):
    asyncio.run(storage.put_object("post_cover_images/p1", b"one", "image/png"))
    asyncio.run(storage.put_object("post_cover_images/p1", b"two", "image/jpeg"))

    data, meta = storage.get("post_cover_images/p1")
    assert data == b"two"
    assert meta.content_type == "image/jpeg"
    assert meta.size_bytes == 3


def test_delete_by_url(storage):
    url = asyncio.run(storage.put_object("post_images/u1/a", b"x", "image/png"))

    asyncio.run(storage.delete_object(url))

    assert not storage.exists("post_images/u1/a")


def test_delete_missing(storage):
    with pytest.raises(KeyNotFoundError):
        asyncio.run(storage.delete_object(f"{BASE_URL}/post_images/u1/nope"))


def test_delete_foreign_url(storage):
    with pytest.raises(StorageError):
        asyncio.run(storage.delete_object("https://elsewhere.example.com/a.png"))


def test_rejects_traversal(storage):
    with pytest.raises(StorageError):
        asyncio.run(storage.put_object("../escape", b"x", "image/png"))


def test_factory_reads_env(tmp_path, monkeypatch):
    monkeypatch.setenv("STORAGE_PATH", str(tmp_path / "env"))
    storage = create_local_storage(public_base_url=BASE_URL + "/")
    assert storage.base_path == tmp_path / "env"
    assert storage.public_base_url == BASE_URL
