"""Collaborators the recorder depends on: permissions, screen capture, UI trees."""

import asyncio
import logging
import uuid
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Callable, Optional, Tuple

from ..analysis.tree import ElementTree, SnapshotElementTree
from ..models.base import RecordModel
from ..models.element import UIElementInfo
from ..models.geometry import Point, Rect
from ..screenshot_store import ScreenshotStore

logger = logging.getLogger(__name__)


class CapturedScreenshot(RecordModel):
    """A screenshot already written to the screenshot store."""

    file_name: str
    bounds: Rect


class PermissionChecker(ABC):
    """OS capabilities required to record."""

    @abstractmethod
    def has_accessibility_access(self) -> bool:
        pass

    @abstractmethod
    def has_screen_recording_access(self) -> bool:
        pass

    def missing_permission(self) -> Optional[str]:
        """Name of the first missing capability, or None when all are granted."""
        if not self.has_accessibility_access():
            return "accessibility"
        if not self.has_screen_recording_access():
            return "screen recording"
        return None


class StaticPermissions(PermissionChecker):
    """Fixed answers, for headless runs and tests."""

    def __init__(self, accessibility: bool = True, screen_recording: bool = True):
        self.accessibility = accessibility
        self.screen_recording = screen_recording

    def has_accessibility_access(self) -> bool:
        return self.accessibility

    def has_screen_recording_access(self) -> bool:
        return self.screen_recording


class ScreenshotCapturer(ABC):
    """Captures the screen into the screenshot store."""

    @abstractmethod
    async def capture(self) -> Optional[CapturedScreenshot]:
        """
        Capture the main screen.

        Returns:
            The stored screenshot, or None when nothing could be captured.
        """
        pass


# Returns PNG bytes and the captured screen bounds, or None
FrameGrabber = Callable[[], Optional[Tuple[bytes, Rect]]]


class StoreScreenshotCapturer(ScreenshotCapturer):
    """
    Writes frames from a grabber function to a ScreenshotStore.

    Files are named ``screenshot_<epoch ms>_<random suffix>.png`` so that
    back-to-back captures never share a file. The grabber is blocking and
    runs in the default executor.
    """

    def __init__(self, store: ScreenshotStore, grab: FrameGrabber):
        self.store = store
        self.grab = grab

    @staticmethod
    def file_name_for(moment: datetime) -> str:
        return f"screenshot_{int(moment.timestamp() * 1000)}_{uuid.uuid4().hex[:8]}.png"

    async def capture(self) -> Optional[CapturedScreenshot]:
        loop = asyncio.get_event_loop()
        frame = await loop.run_in_executor(None, self.grab)
        if frame is None:
            logger.debug("Frame grabber returned nothing")
            return None

        data, bounds = frame
        file_name = self.file_name_for(datetime.now())
        await self.store.save(file_name, data)
        return CapturedScreenshot(file_name=file_name, bounds=bounds)


class ElementTreeProvider(ABC):
    """Source of UI element snapshots (the OS accessibility API)."""

    @abstractmethod
    def element_at(self, position: Point) -> Optional[UIElementInfo]:
        """Deepest element under a screen position."""
        pass

    @abstractmethod
    def focused_element(self) -> Optional[UIElementInfo]:
        pass

    @abstractmethod
    def tree_for(self, element: UIElementInfo) -> Optional[ElementTree]:
        """Parent/children context for an element returned by this provider."""
        pass


class SnapshotElementTreeProvider(ElementTreeProvider):
    """Answers element queries from a fixed UI snapshot."""

    def __init__(self, root: UIElementInfo):
        self.tree = SnapshotElementTree(root)

    def element_at(self, position: Point) -> Optional[UIElementInfo]:
        root = self.tree.root
        if not root.frame.contains_point(position):
            return None

        current = root
        while True:
            children = self.tree.children_of(current)
            # Last child wins: later siblings are drawn on top
            hit = next(
                (child for child in reversed(children) if child.frame.contains_point(position)),
                None,
            )
            if hit is None:
                return current
            current = hit

    def focused_element(self) -> Optional[UIElementInfo]:
        return next((element for element in self.tree if element.has_focus), None)

    def tree_for(self, element: UIElementInfo) -> Optional[ElementTree]:
        return self.tree
