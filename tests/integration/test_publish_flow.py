"""
End-to-end publish against SQLite and filesystem storage.
"""

import asyncio

from postflow.components.publish import PublishState
from postflow.domain.entities import ImageFile

BODY = "<p>An essay about engines that is comfortably longer than fifty characters.</p>"


def _image(name):
    return ImageFile(filename=name, content_type="image/png", data=b"\x89PNG " + name.encode())


def test_create_then_edit(test_ctx, tmp_path):
    session = test_ctx.new_session()
    session.set_title("Analytical Engines")
    session.set_tags(["History", "Math"])
    session.set_body(BODY)
    session.select_cover(_image("cover.png"))

    async def create():
        kept = await session.insert_image(_image("kept.png"))
        dropped = await session.insert_image(_image("dropped.png"))
        session.set_body(session.draft.body.replace(dropped, kept))
        return kept, dropped, await session.publish()

    kept, dropped, created = asyncio.run(create())

    assert created.clean
    post = asyncio.run(test_ctx.store.get_post(created.post.id))
    assert post.cover_image == f"http://localhost:8000/storage/post_cover_images/{post.id}"
    assert kept in post.content
    assert dropped not in post.content

    # Orphan removed from disk, kept image and cover still there
    assert test_ctx.storage.exists(test_ctx.storage.key_for(kept))
    assert not test_ctx.storage.exists(test_ctx.storage.key_for(dropped))
    assert test_ctx.storage.exists(f"post_cover_images/{post.id}")

    notifications = test_ctx.store.list_notifications()
    assert sorted(n.receiver_id for n in notifications) == ["f1", "f2", "f3"]
    assert {n.notification_details.post_id for n in notifications} == {post.id}

    # Edit: new session loaded from the store
    editing = asyncio.run(test_ctx.edit_session(post.id))
    editing.set_body(BODY)
    edited = asyncio.run(editing.publish())

    assert edited.mode == "edit"
    assert PublishState.FANNING_OUT not in edited.states
    stored = asyncio.run(test_ctx.store.get_post(post.id))
    assert stored.content == BODY
    assert stored.created_at == post.created_at
    assert stored.cover_image == post.cover_image
    # Image dropped from an earlier version is not a session upload, so it stays
    assert test_ctx.storage.exists(test_ctx.storage.key_for(kept))
    assert len(test_ctx.store.list_notifications()) == 3
