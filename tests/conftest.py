import os
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from postflow.adapters.identity import StaticIdentity
from postflow.context import PipelineContext
from postflow.core.ports.storage import KeyNotFoundError, StorageError
from postflow.domain.entities import IdentitySnapshot, ImageFile
from postflow.rules.loader import load_rules
from postflow.rules.models import PipelineRules

BASE_URL = "https://cdn.example.com"

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


class MockClock:
    """Fixed clock for deterministic keys and timestamps."""

    def __init__(self, fixed_time: datetime | None = None) -> None:
        self._time = fixed_time or datetime(2024, 6, 15, 12, 0, 0, tzinfo=UTC)

    def now(self) -> datetime:
        return self._time

    def advance(self, delta: timedelta) -> None:
        self._time = self._time + delta


class InMemoryStorage:
    """ObjectStoragePort kept in a dict, with injectable delete failures."""

    def __init__(self, base_url: str = BASE_URL) -> None:
        self.base_url = base_url
        self.objects: dict[str, bytes] = {}
        self.fail_delete: set[str] = set()
        self.fail_put = False
        self.deleted: list[str] = []

    async def put_object(self, key: str, data: bytes, content_type: str) -> str:
        if self.fail_put:
            raise StorageError("storage offline")
        url = f"{self.base_url}/{key}"
        self.objects[url] = data
        return url

    async def delete_object(self, url: str) -> None:
        if url in self.fail_delete:
            raise StorageError("permission denied")
        if url not in self.objects:
            raise KeyNotFoundError(url)
        del self.objects[url]
        self.deleted.append(url)


@pytest.fixture
def clock() -> MockClock:
    return MockClock()


@pytest.fixture
def storage() -> InMemoryStorage:
    return InMemoryStorage()


@pytest.fixture
def author() -> IdentitySnapshot:
    return IdentitySnapshot(
        user_id="author-1",
        name="Ada Lovelace",
        username="ada",
        avatar="https://cdn.example.com/avatars/ada.png",
    )


@pytest.fixture
def identity(author: IdentitySnapshot) -> StaticIdentity:
    return StaticIdentity(author, followers=["f1", "f2", "f3"])


@pytest.fixture
def png() -> ImageFile:
    return ImageFile(filename="diagram.png", content_type="image/png", data=PNG_BYTES)


@pytest.fixture
def rules() -> PipelineRules:
    """REAL rules from the project root; tests run from there."""
    return load_rules(Path("pipeline.yaml").resolve())


@pytest.fixture
def test_ctx(tmp_path, rules: PipelineRules, identity: StaticIdentity) -> PipelineContext:
    """
    Full PipelineContext backed by a temporary SQLite DB and storage directory.
    Fan-out runs inline so tests can assert on notifications right away.
    """
    rules = rules.model_copy(
        update={"fanout": rules.fanout.model_copy(update={"mode": "await"})}
    )
    db_path = os.path.join(tmp_path, "postflow.db")
    storage_path = os.path.join(tmp_path, "storage")
    return PipelineContext.create(
        db_path=db_path, storage_path=storage_path, rules=rules, identity=identity
    )
