"""Tests for durable stores and the screenshot store."""

import base64
import os
import shutil
import tempfile
import time
from pathlib import Path

import pytest

from welabel.exceptions import StorageError
from welabel.screenshot_store import ScreenshotStore
from welabel.storage import (
    FileDurableStore,
    SqliteDurableStore,
    create_store,
    validate_key,
)


@pytest.fixture
def temp_dir():
    """Create temporary data directory."""
    temp_dir = tempfile.mkdtemp()
    yield Path(temp_dir)
    shutil.rmtree(temp_dir)


@pytest.fixture(params=["files", "sqlite"])
def store(request, temp_dir):
    """Each durable store backend over a fresh directory."""
    return create_store(request.param, temp_dir)


@pytest.mark.asyncio
async def test_write_then_read(store):
    await store.write("sessions/abc.json", b'{"id": "abc"}')

    assert await store.read("sessions/abc.json") == b'{"id": "abc"}'


@pytest.mark.asyncio
async def test_read_missing_returns_none(store):
    assert await store.read("sessions/missing.json") is None


@pytest.mark.asyncio
async def test_write_replaces_whole_value(store):
    await store.write("projects/p.json", b"first version, longer")
    await store.write("projects/p.json", b"second")

    assert await store.read("projects/p.json") == b"second"


@pytest.mark.asyncio
async def test_list_filters_by_prefix(store):
    for key in ("sessions/a.json", "sessions/a_interactions.json", "projects/x.json"):
        await store.write(key, b"{}")

    assert await store.list("sessions/") == ["sessions/a.json", "sessions/a_interactions.json"]
    assert await store.list("projects/") == ["projects/x.json"]
    assert await store.list("nothing/") == []


@pytest.mark.asyncio
async def test_list_prefix_with_like_wildcards(store):
    """Underscores and percent signs in prefixes are literal."""
    await store.write("a_b/one.json", b"{}")
    await store.write("axb/two.json", b"{}")

    assert await store.list("a_b/") == ["a_b/one.json"]


@pytest.mark.parametrize("key", ["", "/abs.json", "../escape.json", "a/../b.json", "a//b.json", "a\\b.json"])
def test_invalid_keys_rejected(key):
    with pytest.raises(StorageError):
        validate_key(key)


@pytest.mark.asyncio
async def test_file_store_leaves_no_temp_files(temp_dir):
    store = FileDurableStore(temp_dir)

    await store.write("sessions/s.json", b"data")

    assert sorted(p.name for p in (temp_dir / "sessions").iterdir()) == ["s.json"]


@pytest.mark.asyncio
async def test_file_store_write_failure_raises_storage_error(temp_dir):
    store = FileDurableStore(temp_dir)
    # A file where a directory is needed
    (temp_dir / "sessions").write_text("not a directory")

    with pytest.raises(StorageError):
        await store.write("sessions/s.json", b"data")


@pytest.mark.asyncio
async def test_sqlite_store_initializes_once(temp_dir):
    store = SqliteDurableStore(temp_dir / "nested" / "welabel.db")

    await store.initialize()
    await store.initialize()
    await store.write("k/v.json", b"1")

    assert (temp_dir / "nested" / "welabel.db").exists()
    assert await store.read("k/v.json") == b"1"


def test_create_store_rejects_unknown_backend(temp_dir):
    with pytest.raises(ValueError):
        create_store("s3", temp_dir)


@pytest.mark.asyncio
async def test_screenshot_store_saves_bytes_and_data_urls(temp_dir):
    screenshots = ScreenshotStore(temp_dir / "screenshots")
    png = b"\x89PNG\r\n\x1a\nfake"

    raw_path = await screenshots.save("raw.png", png)
    url_path = await screenshots.save(
        "url.png", "data:image/png;base64," + base64.b64encode(png).decode()
    )

    assert raw_path.read_bytes() == png
    assert url_path.read_bytes() == png
    assert screenshots.exists("raw.png")
    assert await screenshots.read("url.png") == png


@pytest.mark.asyncio
async def test_screenshot_store_rejects_bad_input(temp_dir):
    screenshots = ScreenshotStore(temp_dir)

    with pytest.raises(StorageError):
        await screenshots.save("../outside.png", b"x")
    with pytest.raises(StorageError):
        await screenshots.save("bad.png", "not base64 !!")
    with pytest.raises(StorageError):
        await screenshots.read("missing.png")

    assert not screenshots.exists("../outside.png")


@pytest.mark.asyncio
async def test_screenshot_cleanup_removes_old_files(temp_dir):
    screenshots = ScreenshotStore(temp_dir)
    old = await screenshots.save("old.png", b"old")
    await screenshots.save("new.png", b"new")
    two_days_ago = time.time() - 48 * 3600
    os.utime(old, (two_days_ago, two_days_ago))

    removed = await screenshots.cleanup_old(max_age_hours=24)

    assert removed == 1
    assert not screenshots.exists("old.png")
    assert screenshots.exists("new.png")
