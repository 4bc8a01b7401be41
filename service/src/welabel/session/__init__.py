"""Recording sessions, projects and their persistence."""

from .log import DEFAULT_PROJECT_NAME, SessionLog
from .models import Project, RecordingSession
from .store import SessionStore

__all__ = [
    "DEFAULT_PROJECT_NAME",
    "Project",
    "RecordingSession",
    "SessionLog",
    "SessionStore",
]
