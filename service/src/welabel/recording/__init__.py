"""Recording: raw event intake, external collaborators and orchestration."""

from .events import EventMapper, RawEventKind, RawInputEvent
from .providers import (
    CapturedScreenshot,
    ElementTreeProvider,
    PermissionChecker,
    ScreenshotCapturer,
    SnapshotElementTreeProvider,
    StaticPermissions,
    StoreScreenshotCapturer,
)
from .recorder import Recorder, RecordingEvent

__all__ = [
    "CapturedScreenshot",
    "ElementTreeProvider",
    "EventMapper",
    "PermissionChecker",
    "RawEventKind",
    "RawInputEvent",
    "Recorder",
    "RecordingEvent",
    "ScreenshotCapturer",
    "SnapshotElementTreeProvider",
    "StaticPermissions",
    "StoreScreenshotCapturer",
]
