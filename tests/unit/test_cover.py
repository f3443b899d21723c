"""
Cover image coordinator tests.
"""

from __future__ import annotations

import asyncio

import pytest

from postflow.components.cover import CoverImageCoordinator, cover_storage_key
from postflow.core.errors import UploadError
from postflow.rules.models import StorageRules


@pytest.fixture
def coordinator(storage) -> CoverImageCoordinator:
    return CoverImageCoordinator(storage)


def test_key_depends_only_on_post_id(coordinator) -> None:
    assert coordinator.storage_key("p1") == "post_cover_images/p1"
    assert cover_storage_key("covers", "p1") == "covers/p1"


def test_custom_prefix(storage) -> None:
    coordinator = CoverImageCoordinator(storage, StorageRules(cover_image_prefix="covers"))
    assert coordinator.storage_key("p1") == "covers/p1"


def test_upload_returns_url(coordinator, storage, png) -> None:
    url = asyncio.run(coordinator.upload(png, "p1"))

    assert url == "https://cdn.example.com/post_cover_images/p1"
    assert storage.objects[url] == png.data


def test_retry_overwrites_same_object(coordinator, storage, png) -> None:
    first = asyncio.run(coordinator.upload(png, "p1"))
    replacement = png.model_copy(update={"data": b"\x89PNG new"})
    second = asyncio.run(coordinator.upload(replacement, "p1"))

    assert first == second
    assert len(storage.objects) == 1
    assert storage.objects[first] == b"\x89PNG new"


def test_missing_post_id(coordinator, png) -> None:
    with pytest.raises(UploadError) as exc:
        asyncio.run(coordinator.upload(png, ""))
    assert exc.value.code == "missing_post_id"


def test_storage_failure(coordinator, storage, png) -> None:
    storage.fail_put = True
    with pytest.raises(UploadError) as exc:
        asyncio.run(coordinator.upload(png, "p1"))
    assert exc.value.code == "cover_upload_failed"
    assert exc.value.retryable is True
