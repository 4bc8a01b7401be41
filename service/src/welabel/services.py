"""Wiring of the long-lived services from settings."""

import logging
from typing import Optional

from .analysis.analyzer import RelationshipAnalyzer
from .captioning import AnthropicCaptioningService, CaptioningService
from .config import Settings
from .exceptions import SessionNotFoundError
from .export import SessionExporter
from .models.api import SessionSummary
from .recording.events import EventMapper
from .recording.providers import ElementTreeProvider, PermissionChecker, ScreenshotCapturer
from .recording.recorder import Recorder
from .screenshot_store import ScreenshotStore
from .session.log import SessionLog
from .session.models import RecordingSession
from .session.store import SessionStore
from .storage import create_store

logger = logging.getLogger(__name__)


class Services:
    """Long-lived service objects shared by the HTTP app and the CLI."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.store = create_store(settings.STORE_BACKEND, settings.data_path)
        self.session_store = SessionStore(self.store)
        self.session_log = SessionLog(self.session_store)
        self.screenshot_store = ScreenshotStore(settings.screenshots_dir)
        self.exporter = SessionExporter(self.screenshot_store, settings.EXPORT_FORMAT_VERSION)
        self.analyzer = RelationshipAnalyzer()
        self.captioning: Optional[CaptioningService] = None
        if settings.ANTHROPIC_API_KEY:
            self.captioning = AnthropicCaptioningService(
                api_key=settings.ANTHROPIC_API_KEY,
                model=settings.CAPTION_MODEL,
                max_tokens=settings.CAPTION_MAX_TOKENS,
            )

        logger.info(
            f"Services ready: data={settings.data_path}, store={settings.STORE_BACKEND}, "
            f"captioning={'on' if self.captioning else 'off'}"
        )

    async def load_session(self, session_id: str) -> RecordingSession:
        """
        Load a persisted session for the outer surfaces.

        Raises:
            SessionNotFoundError: No session was saved under ``session_id``.
            DecodeError: The session header is malformed.
            StorageError: Durable read failure.
        """
        session = await self.session_log.load(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    def create_recorder(
        self,
        permissions: PermissionChecker,
        screenshot_capturer: ScreenshotCapturer,
        element_provider: Optional[ElementTreeProvider] = None,
    ) -> Recorder:
        """Recorder over this session log, tuned from settings."""
        return Recorder(
            self.session_log,
            permissions,
            screenshot_capturer,
            element_provider=element_provider,
            event_mapper=EventMapper(self.settings.MOUSE_MOVE_THRESHOLD),
            screenshot_interval=self.settings.SCREENSHOT_INTERVAL_SECONDS,
            screenshot_key_codes=self.settings.SCREENSHOT_KEY_CODES,
        )

    async def shutdown(self) -> None:
        if self.captioning is not None:
            await self.captioning.shutdown()


def summarize(session: RecordingSession) -> SessionSummary:
    return SessionSummary(
        id=session.id,
        start_time=session.start_time.isoformat(),
        end_time=session.end_time.isoformat() if session.end_time else None,
        project_id=session.project_id,
        interaction_count=session.interaction_count,
        screenshot_count=len(session.screenshots()),
        is_active=session.is_active,
    )
