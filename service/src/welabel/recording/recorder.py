"""Recording orchestration: permissions, timers, event intake and saving."""

import asyncio
import logging
from enum import Enum
from typing import Iterable, List, Optional, Set

from ..exceptions import (
    AlreadyRecordingError,
    NotRecordingError,
    RecordingPermissionError,
    StorageError,
)
from ..models.interactions import (
    InteractionBase,
    KeyInteraction,
    MouseClickInteraction,
    ScreenshotInteraction,
    UIElementAction,
    UIElementInteraction,
)
from ..session.log import SessionLog
from ..session.models import RecordingSession
from ..types import RecordingListener
from .events import EventMapper, RawInputEvent
from .providers import ElementTreeProvider, PermissionChecker, ScreenshotCapturer

logger = logging.getLogger(__name__)


class RecordingEvent(str, Enum):
    """Recorder state transitions reported to listeners."""

    STARTED = "started"
    STOPPED = "stopped"
    FAILED = "failed"


class Recorder:
    """
    Drives one recording at a time.

    Features:
    - Permission check before any session is created
    - Periodic screenshots while recording, plus screenshots on clicks and
      configured keys
    - Clicked UI elements recorded when the element provider can resolve them
    - Sessions saved in the background after stop

    Listeners are called as ``listener(event, error)`` where ``error`` is set
    only for ``RecordingEvent.FAILED``.
    """

    def __init__(
        self,
        session_log: SessionLog,
        permissions: PermissionChecker,
        screenshot_capturer: ScreenshotCapturer,
        element_provider: Optional[ElementTreeProvider] = None,
        event_mapper: Optional[EventMapper] = None,
        screenshot_interval: float = 1.0,
        screenshot_key_codes: Iterable[int] = (36,),
    ):
        self.session_log = session_log
        self.permissions = permissions
        self.screenshot_capturer = screenshot_capturer
        self.element_provider = element_provider
        self.event_mapper = event_mapper or EventMapper()
        self.screenshot_interval = screenshot_interval
        self.screenshot_key_codes = frozenset(screenshot_key_codes)

        self._session: Optional[RecordingSession] = None
        self._timer_task: Optional[asyncio.Task[None]] = None
        self._pending_saves: Set[asyncio.Task[None]] = set()
        self._listeners: List[RecordingListener] = []

    @property
    def is_recording(self) -> bool:
        return self._session is not None

    @property
    def session(self) -> Optional[RecordingSession]:
        return self._session

    def subscribe(self, listener: RecordingListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def unsubscribe(self, listener: RecordingListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self, event: RecordingEvent, error: Optional[Exception] = None) -> None:
        for listener in list(self._listeners):
            try:
                listener(event, error)
            except Exception as e:
                logger.error(f"Recording listener failed on {event.value}: {e}", exc_info=True)

    async def start_recording(self, project_id: Optional[str] = None) -> RecordingSession:
        """
        Start a new session and begin capturing.

        Raises:
            AlreadyRecordingError: A recording is in progress.
            RecordingPermissionError: A required permission is missing; no
                session is created.
        """
        if self._session is not None:
            raise AlreadyRecordingError(self._session.id)

        missing = self.permissions.missing_permission()
        if missing is not None:
            error = RecordingPermissionError(missing)
            logger.warning(f"Cannot start recording: {error.message}")
            self._notify(RecordingEvent.FAILED, error)
            raise error

        session = await self.session_log.start(project_id=project_id)
        self._session = session
        self.event_mapper.reset()
        self._timer_task = asyncio.create_task(self._periodic_screenshots())
        logger.info(f"Started recording session {session.id}")

        await self.capture_screenshot()
        self._notify(RecordingEvent.STARTED)
        return session

    async def stop_recording(self) -> RecordingSession:
        """
        Stop capturing and end the session.

        The session is saved in the background; see wait_for_pending_saves().

        Raises:
            NotRecordingError: Nothing is recording.
        """
        session = self._session
        if session is None:
            raise NotRecordingError()

        self._session = None
        await self._stop_timer()
        self.event_mapper.reset()
        self.session_log.end(session)

        task = asyncio.create_task(self._save(session))
        self._pending_saves.add(task)
        task.add_done_callback(self._pending_saves.discard)

        logger.info(f"Stopped recording session {session.id}")
        self._notify(RecordingEvent.STOPPED)
        return session

    async def wait_for_pending_saves(self) -> None:
        """Wait for background saves scheduled by stop_recording()."""
        if self._pending_saves:
            await asyncio.gather(*list(self._pending_saves))

    async def _save(self, session: RecordingSession) -> None:
        if not await self.session_log.save(session):
            self._notify(
                RecordingEvent.FAILED,
                StorageError(f"Failed to save session {session.id}"),
            )

    async def _stop_timer(self) -> None:
        task, self._timer_task = self._timer_task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _periodic_screenshots(self) -> None:
        while True:
            await asyncio.sleep(self.screenshot_interval)
            await self.capture_screenshot()

    async def capture_screenshot(self) -> Optional[ScreenshotInteraction]:
        """Capture a screenshot into the current session, if recording."""
        session = self._session
        if session is None:
            return None

        try:
            captured = await self.screenshot_capturer.capture()
        except Exception as e:
            logger.warning(f"Screenshot capture failed: {e}")
            return None
        if captured is None:
            return None

        interaction = ScreenshotInteraction(
            image_file_name=captured.file_name,
            screen_bounds=captured.bounds,
        )
        if not self.session_log.append(session, interaction):
            return None

        logger.debug(f"Screenshot saved: {captured.file_name}")
        return interaction

    async def handle_event(self, event: RawInputEvent) -> Optional[InteractionBase]:
        """
        Record one raw input event.

        Returns:
            The recorded interaction, or None if the event was filtered out
            or nothing is recording.
        """
        session = self._session
        if session is None:
            return None

        interaction = self.event_mapper.map(event)
        if interaction is None or not self.session_log.append(session, interaction):
            return None

        if isinstance(interaction, MouseClickInteraction):
            await self.capture_screenshot()
            await self._record_clicked_element(session, interaction)
        elif (
            isinstance(interaction, KeyInteraction)
            and interaction.is_down
            and interaction.key_code in self.screenshot_key_codes
        ):
            await self.capture_screenshot()

        return interaction

    async def _record_clicked_element(
        self, session: RecordingSession, click: MouseClickInteraction
    ) -> None:
        if self.element_provider is None:
            return

        loop = asyncio.get_event_loop()
        try:
            # Accessibility lookups block
            element = await loop.run_in_executor(
                None, self.element_provider.element_at, click.position
            )
        except Exception as e:
            logger.warning(f"Element lookup failed at {click.position}: {e}")
            return

        if element is None:
            return

        logger.debug(f"Clicked element: {element.short_description}")
        self.session_log.append(
            session,
            UIElementInteraction(
                timestamp=click.timestamp,
                element_info=element,
                action=UIElementAction.CLICK,
                position=click.position,
            ),
        )
