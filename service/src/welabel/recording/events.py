"""Raw input events and their mapping to recorded interactions."""

import logging
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import Field

from ..models.base import RecordModel
from ..models.geometry import Point
from ..models.interactions import (
    InteractionBase,
    KeyInteraction,
    MouseButton,
    MouseClickInteraction,
    MouseMoveInteraction,
    MouseScrollInteraction,
)

logger = logging.getLogger(__name__)


class RawEventKind(str, Enum):
    """Input event kinds delivered by the OS event source."""

    MOUSE_DOWN = "mouseDown"
    MOUSE_MOVED = "mouseMoved"
    SCROLL_WHEEL = "scrollWheel"
    KEY_DOWN = "keyDown"
    KEY_UP = "keyUp"


class RawInputEvent(RecordModel):
    """One event as reported by the event source, before filtering."""

    kind: RawEventKind
    position: Point = Field(default_factory=Point)
    timestamp: datetime = Field(default_factory=datetime.now)
    button_number: int = 0
    click_count: int = Field(default=1, ge=0)
    key_code: int = Field(default=0, ge=0)
    characters: Optional[str] = None
    modifier_flags: int = Field(default=0, ge=0)
    delta_x: float = 0.0
    delta_y: float = 0.0


class EventMapper:
    """
    Turns raw events into interactions.

    Mouse moves are throttled: the first move only primes the tracker, and
    later moves are reported once the pointer has travelled more than
    ``move_threshold`` from the last reported position.
    """

    def __init__(self, move_threshold: float = 5.0):
        self.move_threshold = move_threshold
        self._last_position: Optional[Point] = None

    def reset(self) -> None:
        """Forget the tracked pointer position."""
        self._last_position = None

    def map(self, event: RawInputEvent) -> Optional[InteractionBase]:
        if event.kind == RawEventKind.MOUSE_DOWN:
            return MouseClickInteraction(
                timestamp=event.timestamp,
                position=event.position,
                button=MouseButton.from_button_number(event.button_number),
                click_count=event.click_count,
            )

        if event.kind == RawEventKind.MOUSE_MOVED:
            return self._map_move(event)

        if event.kind == RawEventKind.SCROLL_WHEEL:
            return MouseScrollInteraction(
                timestamp=event.timestamp,
                position=event.position,
                delta_x=event.delta_x,
                delta_y=event.delta_y,
            )

        if event.kind in (RawEventKind.KEY_DOWN, RawEventKind.KEY_UP):
            return KeyInteraction(
                timestamp=event.timestamp,
                is_down=event.kind == RawEventKind.KEY_DOWN,
                key_code=event.key_code,
                characters=event.characters,
                modifiers=event.modifier_flags,
            )

        logger.debug(f"Ignoring raw event {event.kind}")
        return None

    def _map_move(self, event: RawInputEvent) -> Optional[MouseMoveInteraction]:
        last = self._last_position
        if last is None:
            self._last_position = event.position
            return None

        if last.distance_to(event.position) <= self.move_threshold:
            return None

        self._last_position = event.position
        return MouseMoveInteraction(
            timestamp=event.timestamp,
            from_position=last,
            to_position=event.position,
        )
