import asyncio
import sqlite3
from datetime import UTC, datetime

import pytest

from postflow.adapters.sqlite_store import SQLiteDocumentStore
from postflow.core.ports.store import BatchTooLargeError, DocumentStoreError
from postflow.domain.entities import (
    IdentitySnapshot,
    NotificationDetails,
    NotificationRecord,
    PostDocument,
)

NOW = datetime(2024, 6, 15, 12, 0, 0, tzinfo=UTC)


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "test.db")


@pytest.fixture
def store(db_path):
    return SQLiteDocumentStore(db_path)


def _doc(**overrides):
    values = {
        "title": "Analytical Engines",
        "content": "<p>Body</p>",
        "tags": ["History"],
        "tags_lower": ["history"],
        "title_for_search": ["analytical", "engines"],
        "author_id": "author-1",
        "author_name": "Ada Lovelace",
        "author_username": "ada",
        "created_at": NOW,
        "updated_at": NOW,
    }
    values.update(overrides)
    return PostDocument(**values)


def _record(receiver_id, notification_id=None):
    sender = IdentitySnapshot(user_id="author-1", name="Ada Lovelace", username="ada")
    return NotificationRecord(
        notification_id=notification_id or f"n-{receiver_id}",
        receiver_id=receiver_id,
        sender_id="author-1",
        sender_details=sender,
        receiver_details=IdentitySnapshot(user_id=receiver_id),
        notification_details=NotificationDetails(post_id="p1", post_title="Analytical Engines"),
        created_at=NOW,
    )


def test_create_and_get_post(store):
    post_id = asyncio.run(store.create_post(_doc(likes=["u1"], total_reads=3)))

    post = asyncio.run(store.get_post(post_id))

    assert post is not None
    assert post.id == post_id
    assert post.title == "Analytical Engines"
    assert post.tags == ["History"]
    assert post.likes == ["u1"]
    assert post.total_reads == 3
    assert post.created_at == NOW
    assert post.document() == _doc(likes=["u1"], total_reads=3)


def test_get_missing_post(store):
    assert asyncio.run(store.get_post("missing")) is None


def test_update_post_replaces_document(store):
    post_id = asyncio.run(store.create_post(_doc()))

    asyncio.run(store.update_post(post_id, _doc(title="Revised", cover_image="https://x/c")))

    post = asyncio.run(store.get_post(post_id))
    assert post.title == "Revised"
    assert post.cover_image == "https://x/c"


def test_update_missing_post(store):
    with pytest.raises(DocumentStoreError):
        asyncio.run(store.update_post("missing", _doc()))


def test_ids_are_unique(store):
    ids = {asyncio.run(store.create_post(_doc())) for _ in range(5)}
    assert len(ids) == 5


def test_batch_write_round_trip(store):
    asyncio.run(store.batch_write([_record("f1"), _record("f2")]))

    records = store.list_notifications()
    assert [r.receiver_id for r in records] == ["f1", "f2"]
    assert records[0].read_status is False
    assert records[0].notification_details.post_id == "p1"
    assert store.list_notifications("f2")[0].notification_id == "n-f2"


def test_batch_is_all_or_nothing(store):
    # Second record collides with the first on the primary key
    batch = [_record("f1", "dup"), _record("f2", "dup")]

    with pytest.raises(DocumentStoreError):
        asyncio.run(store.batch_write(batch))

    assert store.list_notifications() == []


def test_batch_limit(db_path):
    store = SQLiteDocumentStore(db_path, max_batch_size=2)
    with pytest.raises(BatchTooLargeError):
        asyncio.run(store.batch_write([_record("a"), _record("b"), _record("c")]))
    assert store.list_notifications() == []


def test_empty_batch_is_noop(store):
    asyncio.run(store.batch_write([]))
    assert store.list_notifications() == []


def test_external_connection(tmp_path):
    conn = sqlite3.connect(str(tmp_path / "shared.db"), check_same_thread=False)
    try:
        store = SQLiteDocumentStore(str(tmp_path / "shared.db"), conn)
        post_id = asyncio.run(store.create_post(_doc()))
        assert asyncio.run(store.get_post(post_id)).title == "Analytical Engines"
    finally:
        conn.close()
