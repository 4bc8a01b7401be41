"""Common type definitions for WeLabel Recorder.

TypedDict shapes for the JSON documents written to the durable store and
to export directories, so that callers avoid bare Dict[str, Any].
"""

from typing import Any, Callable, Dict, Optional, TypedDict


class SessionHeaderDict(TypedDict):
    """Session header stored at ``sessions/<id>.json``."""
    id: str
    startTime: str
    endTime: Optional[str]
    projectId: Optional[str]
    interactionCount: int


class StoredInteractionDict(TypedDict):
    """One durable interaction envelope."""
    type: str
    data: Dict[str, Any]


class ExportMetadataDict(TypedDict):
    """``metadata.json`` of an exported session."""
    id: str
    startTime: str
    endTime: str
    interactionCount: int
    screenshotCount: int
    exportDate: str
    version: str


class FlattenedInteraction(TypedDict, total=False):
    """Flat export record; only the keys for its ``type`` are present."""
    type: str
    timestamp: float
    x: float
    y: float
    button: str
    clickCount: int
    fromX: float
    fromY: float
    toX: float
    toY: float
    deltaX: float
    deltaY: float
    keyCode: int
    characters: str
    modifiers: int
    filename: str
    width: float
    height: float
    action: str
    elementRole: str
    elementTitle: str


# Recorder state listener, see recording.recorder.RecordingEvent
RecordingListener = Callable[..., None]
