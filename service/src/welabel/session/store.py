"""Maps sessions and projects onto durable store keys."""

import json
import logging
from datetime import datetime
from typing import Any, List, Optional

from pydantic import ValidationError

from ..exceptions import DecodeError, EncodeError, StorageError
from ..models.interactions import decode_stored_interaction, encode_stored_interaction
from ..storage import DurableStore
from ..types import SessionHeaderDict, StoredInteractionDict
from .models import Project, RecordingSession

logger = logging.getLogger(__name__)

SESSIONS_PREFIX = "sessions/"
PROJECTS_PREFIX = "projects/"
HEADER_SUFFIX = ".json"
INTERACTIONS_SUFFIX = "_interactions.json"


def _is_valid_id(record_id: str) -> bool:
    return bool(record_id) and "/" not in record_id and "\\" not in record_id and record_id not in (".", "..")


def _dumps(document: Any) -> bytes:
    return json.dumps(document, indent=2, allow_nan=False).encode("utf-8")


def _loads(raw: bytes, what: str) -> Any:
    try:
        return json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise DecodeError(f"Malformed {what}", detail=str(e)) from e


class SessionStore:
    """
    Session and project persistence over a DurableStore.

    Layout:
    - ``sessions/<id>.json``: session header
    - ``sessions/<id>_interactions.json``: list of ``{"type", "data"}`` envelopes
    - ``projects/<id>.json``: project record

    The header is written last, so a listed session always has its
    interactions document in place.
    """

    def __init__(self, store: DurableStore):
        self.store = store
        # Interaction entries skipped while loading, across all sessions
        self.decode_failures = 0

    @staticmethod
    def header_key(session_id: str) -> str:
        return f"{SESSIONS_PREFIX}{session_id}{HEADER_SUFFIX}"

    @staticmethod
    def interactions_key(session_id: str) -> str:
        return f"{SESSIONS_PREFIX}{session_id}{INTERACTIONS_SUFFIX}"

    @staticmethod
    def project_key(project_id: str) -> str:
        return f"{PROJECTS_PREFIX}{project_id}{HEADER_SUFFIX}"

    async def save_session(self, session: RecordingSession) -> None:
        """
        Persist a session header and its interactions.

        Raises:
            StorageError: Invalid id or durable write failure.
            EncodeError: An interaction could not be serialized.
        """
        if not _is_valid_id(session.id):
            raise StorageError(f"Invalid session id: {session.id!r}")

        interactions = session.interactions
        entries: List[StoredInteractionDict] = [
            encode_stored_interaction(interaction) for interaction in interactions
        ]
        header: SessionHeaderDict = {
            "id": session.id,
            "startTime": session.start_time.isoformat(),
            "endTime": session.end_time.isoformat() if session.end_time else None,
            "projectId": session.project_id,
            "interactionCount": len(entries),
        }

        try:
            await self.store.write(self.interactions_key(session.id), _dumps(entries))
            await self.store.write(self.header_key(session.id), _dumps(header))
        except ValueError as e:
            raise EncodeError(f"Session {session.id} is not valid JSON", detail=str(e)) from e

        logger.debug(f"Saved session {session.id} ({len(entries)} interactions)")

    async def load_session(self, session_id: str) -> Optional[RecordingSession]:
        """
        Load a session by id.

        Returns:
            The session, or None if no header exists for ``session_id``.

        Raises:
            DecodeError: The header is malformed.
            StorageError: Durable read failure.
        """
        if not _is_valid_id(session_id):
            return None

        raw_header = await self.store.read(self.header_key(session_id))
        if raw_header is None:
            return None

        header = _loads(raw_header, f"header for session {session_id}")
        session = self._session_from_header(header, session_id)

        raw_entries = await self.store.read(self.interactions_key(session_id))
        entries = _loads(raw_entries, f"interactions for session {session_id}") if raw_entries else []
        if not isinstance(entries, list):
            raise DecodeError(f"Interactions for session {session_id} must be a list")

        for position, entry in enumerate(entries):
            try:
                session.add_interaction(decode_stored_interaction(entry))
            except DecodeError as e:
                session.skipped_entries += 1
                self.decode_failures += 1
                logger.warning(
                    f"Skipping corrupt interaction {position} in session {session_id}: {e.message}"
                )

        return session

    @staticmethod
    def _session_from_header(header: Any, session_id: str) -> RecordingSession:
        if not isinstance(header, dict):
            raise DecodeError(f"Header for session {session_id} must be a JSON object")

        stored_id = header.get("id")
        if stored_id != session_id:
            raise DecodeError(
                f"Header id {stored_id!r} does not match session {session_id}"
            )

        try:
            start_time = datetime.fromisoformat(header["startTime"])
            end_value = header.get("endTime")
            end_time = datetime.fromisoformat(end_value) if end_value is not None else None
        except (KeyError, TypeError, ValueError) as e:
            raise DecodeError(f"Malformed header for session {session_id}", detail=str(e)) from e

        project_id = header.get("projectId")
        if project_id is not None and not isinstance(project_id, str):
            raise DecodeError(f"Malformed project id for session {session_id}")

        return RecordingSession(
            session_id=session_id,
            start_time=start_time,
            end_time=end_time,
            project_id=project_id,
        )

    async def list_session_ids(self) -> List[str]:
        keys = await self.store.list(SESSIONS_PREFIX)
        ids = []
        for key in keys:
            name = key[len(SESSIONS_PREFIX):]
            if "/" in name or name.endswith(INTERACTIONS_SUFFIX) or not name.endswith(HEADER_SUFFIX):
                continue
            ids.append(name[: -len(HEADER_SUFFIX)])
        return ids

    async def save_project(self, project: Project) -> None:
        if not _is_valid_id(project.id):
            raise StorageError(f"Invalid project id: {project.id!r}")
        await self.store.write(self.project_key(project.id), _dumps(project.to_dict()))

    async def load_project(self, project_id: str) -> Optional[Project]:
        """
        Load a project by id.

        Raises:
            DecodeError: The project record is malformed.
        """
        if not _is_valid_id(project_id):
            return None

        raw = await self.store.read(self.project_key(project_id))
        if raw is None:
            return None

        try:
            return Project.model_validate(_loads(raw, f"project {project_id}"))
        except ValidationError as e:
            raise DecodeError(f"Malformed project {project_id}", detail=str(e)) from e

    async def list_projects(self) -> List[Project]:
        """All readable projects, newest first."""
        projects = []
        for key in await self.store.list(PROJECTS_PREFIX):
            name = key[len(PROJECTS_PREFIX):]
            if "/" in name or not name.endswith(HEADER_SUFFIX):
                continue
            try:
                project = await self.load_project(name[: -len(HEADER_SUFFIX)])
            except DecodeError as e:
                logger.warning(f"Skipping unreadable project {name}: {e.message}")
                continue
            if project is not None:
                projects.append(project)

        return sorted(projects, key=lambda p: p.created_at, reverse=True)
