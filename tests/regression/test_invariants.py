import asyncio
from datetime import timedelta

import pytest

from postflow.components.assets import AssetLifecycleManager
from postflow.components.references import extract_asset_refs
from postflow.components.richtext import html_to_markdown, markdown_to_html
from postflow.domain.entities import ImageFile

CDN = "https://cdn.example.com"


@pytest.fixture
def manager(storage, clock):
    return AssetLifecycleManager(storage, clock)


def _upload_many(manager, clock, names):
    async def run():
        urls = []
        for name in names:
            clock.advance(timedelta(seconds=1))
            file = ImageFile(filename=name, content_type="image/png", data=name.encode())
            urls.append(await manager.upload_inline_image(file, "u1"))
        return urls

    return asyncio.run(run())


# --- Referenced assets are never purged ---
def test_referenced_upload_is_never_purged(manager, storage, clock):
    """An uploaded image still in the body survives reconcile and purge."""
    kept, dropped = _upload_many(manager, clock, ["kept.png", "dropped.png"])
    body = f'<p>text</p><p><img src="{kept}"></p>'

    orphans = manager.reconcile(body)
    report = asyncio.run(manager.purge(orphans))

    assert kept not in orphans
    assert report.deleted == [dropped]
    assert kept in storage.objects


def test_referenced_upload_with_angle_bracket_in_alt_survives(manager, storage, clock):
    """A raw '>' inside a quoted attribute must not hide the src that follows."""
    (kept,) = _upload_many(manager, clock, ["kept.png"])
    body = f'<p>text</p><p><img alt="x > y" src="{kept}"></p>'

    orphans = manager.reconcile(body, "rich")
    report = asyncio.run(manager.purge(orphans))

    assert orphans == frozenset()
    assert report.deleted == []
    assert kept in storage.objects
    assert extract_asset_refs(body, "rich") == extract_asset_refs(
        markdown_to_html(html_to_markdown(body)), "rich"
    )


@pytest.mark.parametrize("mode", ["rich", "lite"])
def test_reconcile_never_returns_referenced(manager, clock, mode):
    urls = _upload_many(manager, clock, [f"{i}.png" for i in range(6)])
    referenced = urls[::2]
    rich = "".join(f'<p><img src="{u}"></p>' for u in referenced)
    body = rich if mode == "rich" else html_to_markdown(rich)

    orphans = manager.reconcile(body, mode)

    assert orphans.isdisjoint(extract_asset_refs(body, mode))
    assert orphans == frozenset(urls[1::2])


def test_purge_ignores_refs_from_other_sessions(manager, storage):
    """Passing a URL the session never uploaded deletes nothing."""
    storage.objects[f"{CDN}/post_images/u1/old.png"] = b"old"

    report = asyncio.run(manager.purge({f"{CDN}/post_images/u1/old.png"}))

    assert report.attempted == 0
    assert f"{CDN}/post_images/u1/old.png" in storage.objects


# --- Round trip keeps every image URL ---
def test_round_trip_keeps_urls_with_query_strings():
    url = f"{CDN}/post_images/u1/a.png_20240101T000000000000Z?alt=media&token=t_1"
    rich = f'<p>x</p><p><img src="{url.replace("&", "&amp;")}"></p>'

    back = markdown_to_html(html_to_markdown(rich))

    assert extract_asset_refs(back, "rich") == frozenset({url})
