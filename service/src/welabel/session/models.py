"""Recording session and project models."""

import threading
import uuid
from datetime import datetime
from typing import Iterable, List, Optional, Tuple

from pydantic import Field

from ..models.base import RecordModel
from ..models.interactions import InteractionBase, ScreenshotInteraction


def local_time(value: Optional[datetime]) -> Optional[datetime]:
    """Naive local time; aware values are converted so all session times compare."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)


class RecordingSession:
    """
    One recording: an id, a time span and an append-only interaction list.

    The session is active until ``end_time`` is set. Interactions can be
    appended from the event thread while readers take snapshots, so the list
    is guarded by a lock and exposed only as a tuple.
    """

    def __init__(
        self,
        session_id: Optional[str] = None,
        start_time: Optional[datetime] = None,
        end_time: Optional[datetime] = None,
        project_id: Optional[str] = None,
        interactions: Iterable[InteractionBase] = (),
    ) -> None:
        self.id = session_id or str(uuid.uuid4())
        self.start_time = local_time(start_time) or datetime.now()
        self.end_time = local_time(end_time)
        self.project_id = project_id
        self._interactions: List[InteractionBase] = list(interactions)
        self._lock = threading.Lock()
        # Corrupt entries dropped when this session was loaded
        self.skipped_entries = 0

    @property
    def is_active(self) -> bool:
        return self.end_time is None

    @property
    def interactions(self) -> Tuple[InteractionBase, ...]:
        with self._lock:
            return tuple(self._interactions)

    @property
    def interaction_count(self) -> int:
        with self._lock:
            return len(self._interactions)

    def add_interaction(self, interaction: InteractionBase) -> None:
        with self._lock:
            self._interactions.append(interaction)

    def screenshots(self) -> List[ScreenshotInteraction]:
        """Screenshot interactions in recording order."""
        return [i for i in self.interactions if isinstance(i, ScreenshotInteraction)]

    def __repr__(self) -> str:
        state = "active" if self.is_active else "ended"
        return f"<RecordingSession {self.id} {state} interactions={self.interaction_count}>"


class Project(RecordModel):
    """A named group of sessions, in recording order."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.now)
    session_ids: Tuple[str, ...] = ()

    def add_session_id(self, session_id: str) -> "Project":
        """Return a copy that includes ``session_id`` (no duplicates)."""
        if session_id in self.session_ids:
            return self
        return self.model_copy(update={"session_ids": (*self.session_ids, session_id)})
