"""Tests for service wiring from settings."""

import shutil
import tempfile
from pathlib import Path

import pytest

from welabel.config import Settings
from welabel.exceptions import SessionNotFoundError
from welabel.models import Rect
from welabel.recording import CapturedScreenshot, ScreenshotCapturer, StaticPermissions
from welabel.services import Services, summarize
from welabel.storage import FileDurableStore, SqliteDurableStore


class OneShotCapturer(ScreenshotCapturer):
    async def capture(self):
        return CapturedScreenshot(file_name="frame.png", bounds=Rect(width=10, height=10))


@pytest.fixture
def temp_dir():
    """Create temporary data directory."""
    temp_dir = tempfile.mkdtemp()
    yield Path(temp_dir)
    shutil.rmtree(temp_dir)


def _settings(temp_dir, **overrides):
    return Settings(DATA_DIR=str(temp_dir), ANTHROPIC_API_KEY=None, **overrides)


def test_backend_selection(temp_dir):
    assert isinstance(Services(_settings(temp_dir)).store, FileDurableStore)

    services = Services(_settings(temp_dir, STORE_BACKEND="sqlite"))

    assert isinstance(services.store, SqliteDurableStore)
    assert services.store.db_path == temp_dir / "welabel.db"
    assert services.captioning is None


def test_captioning_enabled_by_api_key(temp_dir):
    services = Services(Settings(DATA_DIR=str(temp_dir), ANTHROPIC_API_KEY="test-key", CAPTION_MAX_TOKENS=42))

    assert services.captioning is not None
    assert services.captioning.max_tokens == 42


def test_recorder_uses_recording_settings(temp_dir):
    services = Services(
        _settings(
            temp_dir,
            SCREENSHOT_INTERVAL_SECONDS=2.5,
            MOUSE_MOVE_THRESHOLD=12.0,
            SCREENSHOT_KEY_CODES=[36, 76],
        )
    )

    recorder = services.create_recorder(StaticPermissions(), OneShotCapturer())

    assert recorder.session_log is services.session_log
    assert recorder.screenshot_interval == 2.5
    assert recorder.event_mapper.move_threshold == 12.0
    assert recorder.screenshot_key_codes == frozenset({36, 76})


@pytest.mark.asyncio
async def test_load_session_round_trip(temp_dir):
    services = Services(_settings(temp_dir))
    recorder = services.create_recorder(StaticPermissions(), OneShotCapturer())

    session = await recorder.start_recording()
    await recorder.stop_recording()
    await recorder.wait_for_pending_saves()

    loaded = await services.load_session(session.id)
    summary = summarize(loaded)

    assert summary.interaction_count == 1
    assert summary.screenshot_count == 1
    assert summary.is_active is False

    with pytest.raises(SessionNotFoundError):
        await services.load_session("missing")
