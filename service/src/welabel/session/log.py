"""Session lifecycle: start, append, end, persist and reload recordings."""

import asyncio
import logging
import threading
from datetime import datetime
from typing import Dict, List, Optional

from ..exceptions import (
    AlreadyRecordingError,
    DecodeError,
    EncodeError,
    NoActiveSessionError,
    SessionAlreadyEndedError,
    StorageError,
)
from ..models.interactions import InteractionBase, encode_interaction
from .models import Project, RecordingSession
from .store import SessionStore

logger = logging.getLogger(__name__)

DEFAULT_PROJECT_NAME = "Untitled Project"


class SessionLog:
    """
    Owns the current and last recording sessions and their persistence.

    Features:
    - At most one current session; starting another is rejected
    - Append-only interactions, validated for encodability on append
    - Persistence through SessionStore, failures reported not raised
    - Projects grouping sessions, with an auto-created default project

    ``current_session`` and ``last_session`` may be read from any thread.
    """

    def __init__(self, store: SessionStore):
        self.store = store
        self._lock = threading.Lock()
        self._current: Optional[RecordingSession] = None
        self._last: Optional[RecordingSession] = None
        self._projects: Dict[str, Project] = {}
        self._current_project_id: Optional[str] = None
        self._project_lock = asyncio.Lock()

    @property
    def current_session(self) -> Optional[RecordingSession]:
        with self._lock:
            return self._current

    @property
    def last_session(self) -> Optional[RecordingSession]:
        with self._lock:
            return self._last

    async def start(
        self,
        session_id: Optional[str] = None,
        start_time: Optional[datetime] = None,
        project_id: Optional[str] = None,
    ) -> RecordingSession:
        """
        Create an empty, active session and make it current.

        The session is attached to ``project_id`` when given, otherwise to
        the current project.

        Raises:
            AlreadyRecordingError: Another session is current.
        """
        current = self.current_session
        if current is not None:
            raise AlreadyRecordingError(current.id)

        project = await self.find_project(project_id) if project_id else await self.current_project()
        if project is None:
            logger.warning(f"Unknown project {project_id}, session will not be grouped")

        with self._lock:
            if self._current is not None:
                raise AlreadyRecordingError(self._current.id)
            session = RecordingSession(
                session_id=session_id,
                start_time=start_time,
                project_id=project.id if project else project_id,
            )
            self._current = session

        if project is not None:
            await self._attach_to_project(project, session.id)

        logger.info(f"Started session {session.id}")
        return session

    def append(self, session: RecordingSession, interaction: InteractionBase) -> bool:
        """
        Append an interaction to an active session.

        Returns:
            True if appended; False if the session has ended or the
            interaction cannot be encoded (the interaction is dropped).
        """
        if not session.is_active:
            logger.warning(f"Dropping interaction for ended session {session.id}")
            return False

        try:
            encode_interaction(interaction)
        except EncodeError as e:
            logger.warning(f"Dropping unencodable interaction in session {session.id}: {e.message}")
            return False

        session.add_interaction(interaction)
        return True

    def end(self, session: Optional[RecordingSession] = None) -> RecordingSession:
        """
        Close a session (the current one by default).

        Raises:
            NoActiveSessionError: No session given and none is current.
            SessionAlreadyEndedError: The session already has an end time.
        """
        with self._lock:
            target = session or self._current
            if target is None:
                raise NoActiveSessionError()
            if not target.is_active:
                raise SessionAlreadyEndedError(target.id)

            target.end_time = max(datetime.now(), target.start_time)
            if target is self._current:
                self._current = None
            self._last = target

        logger.info(f"Ended session {target.id} ({target.interaction_count} interactions)")
        return target

    async def save(self, session: RecordingSession) -> bool:
        """Persist a session; returns False (and logs) on failure."""
        try:
            await self.store.save_session(session)
        except (StorageError, EncodeError) as e:
            logger.error(f"Failed to save session {session.id}: {e.message} {e.detail}".rstrip())
            return False
        return True

    async def load(self, session_id: str) -> Optional[RecordingSession]:
        """
        Load a persisted session.

        Returns:
            The session, or None if it was never saved.

        Raises:
            DecodeError: The session header is malformed.
            StorageError: Durable read failure.
        """
        return await self.store.load_session(session_id)

    async def list_all(self) -> List[RecordingSession]:
        """All known sessions, newest first; unreadable ones are skipped."""
        sessions: Dict[str, RecordingSession] = {}

        for session_id in await self.store.list_session_ids():
            try:
                session = await self.store.load_session(session_id)
            except (DecodeError, StorageError) as e:
                logger.warning(f"Skipping unreadable session {session_id}: {e.message}")
                continue
            if session is not None:
                sessions[session.id] = session

        last = self.last_session
        if last is not None and last.id not in sessions:
            sessions[last.id] = last

        return sorted(sessions.values(), key=lambda s: s.start_time, reverse=True)

    async def create_project(self, name: str, description: Optional[str] = None) -> Project:
        """Create, persist and select a new project."""
        project = Project(name=name, description=description)
        async with self._project_lock:
            self._projects[project.id] = project
            self._current_project_id = project.id
        await self._save_project(project)
        logger.info(f"Created project {project.id} ({name})")
        return project

    async def current_project(self) -> Project:
        """
        The selected project.

        Falls back to the newest stored project, and creates
        "Untitled Project" when there is none.
        """
        async with self._project_lock:
            if self._current_project_id in self._projects:
                return self._projects[self._current_project_id]

            stored = await self._list_stored_projects()
            if stored:
                project = stored[0]
            else:
                project = Project(name=DEFAULT_PROJECT_NAME)
                await self._save_project(project)
                logger.info(f"Created default project {project.id}")

            self._projects[project.id] = project
            self._current_project_id = project.id
            return project

    async def select_project(self, project_id: str) -> Optional[Project]:
        project = await self.find_project(project_id)
        if project is not None:
            async with self._project_lock:
                self._current_project_id = project.id
        return project

    async def find_project(self, project_id: str) -> Optional[Project]:
        if project_id in self._projects:
            return self._projects[project_id]
        try:
            project = await self.store.load_project(project_id)
        except (DecodeError, StorageError) as e:
            logger.warning(f"Could not load project {project_id}: {e.message}")
            return None
        if project is not None:
            self._projects[project.id] = project
        return project

    async def list_projects(self) -> List[Project]:
        """Stored and in-memory projects, newest first."""
        projects = {p.id: p for p in await self._list_stored_projects()}
        projects.update(self._projects)
        return sorted(projects.values(), key=lambda p: p.created_at, reverse=True)

    async def _list_stored_projects(self) -> List[Project]:
        try:
            return await self.store.list_projects()
        except StorageError as e:
            logger.warning(f"Could not list projects: {e.message}")
            return []

    async def _attach_to_project(self, project: Project, session_id: str) -> None:
        async with self._project_lock:
            updated = self._projects.get(project.id, project).add_session_id(session_id)
            self._projects[updated.id] = updated
        await self._save_project(updated)

    async def _save_project(self, project: Project) -> None:
        try:
            await self.store.save_project(project)
        except StorageError as e:
            logger.error(f"Failed to save project {project.id}: {e.message}")
