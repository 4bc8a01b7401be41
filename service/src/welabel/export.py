"""Portable export of recorded sessions."""

import asyncio
import json
import logging
import shutil
from datetime import datetime
from pathlib import Path
from typing import Any, List, Optional, Set

import aiofiles

from .exceptions import StorageError
from .models.interactions import (
    InteractionBase,
    KeyInteraction,
    MouseClickInteraction,
    MouseMoveInteraction,
    MouseScrollInteraction,
    ScreenshotInteraction,
    UIElementInteraction,
)
from .screenshot_store import ScreenshotStore
from .session.models import RecordingSession
from .types import ExportMetadataDict, FlattenedInteraction

logger = logging.getLogger(__name__)

METADATA_FILE = "metadata.json"
INTERACTIONS_FILE = "interactions.json"
SCREENSHOTS_DIR = "screenshots"


def flatten_interaction(interaction: InteractionBase) -> Optional[FlattenedInteraction]:
    """
    Flat, analysis-friendly record for one interaction.

    Timestamps become seconds since the epoch. Returns None for objects that
    are not a known interaction variant.
    """
    timestamp = interaction.timestamp.timestamp()

    if isinstance(interaction, MouseClickInteraction):
        return {
            "type": "mouseClick",
            "timestamp": timestamp,
            "x": interaction.position.x,
            "y": interaction.position.y,
            "button": interaction.button.value,
            "clickCount": interaction.click_count,
        }
    if isinstance(interaction, MouseMoveInteraction):
        return {
            "type": "mouseMove",
            "timestamp": timestamp,
            "fromX": interaction.from_position.x,
            "fromY": interaction.from_position.y,
            "toX": interaction.to_position.x,
            "toY": interaction.to_position.y,
        }
    if isinstance(interaction, MouseScrollInteraction):
        return {
            "type": "mouseScroll",
            "timestamp": timestamp,
            "x": interaction.position.x,
            "y": interaction.position.y,
            "deltaX": interaction.delta_x,
            "deltaY": interaction.delta_y,
        }
    if isinstance(interaction, KeyInteraction):
        return {
            "type": "keyDown" if interaction.is_down else "keyUp",
            "timestamp": timestamp,
            "keyCode": interaction.key_code,
            "characters": interaction.characters or "",
            "modifiers": interaction.modifiers,
        }
    if isinstance(interaction, ScreenshotInteraction):
        return {
            "type": "screenshot",
            "timestamp": timestamp,
            "filename": interaction.image_file_name,
            "width": interaction.screen_bounds.width,
            "height": interaction.screen_bounds.height,
        }
    if isinstance(interaction, UIElementInteraction):
        return {
            "type": "uiElement",
            "timestamp": timestamp,
            "action": interaction.action.value,
            "x": interaction.position.x,
            "y": interaction.position.y,
            "elementRole": interaction.element_info.role,
            "elementTitle": interaction.element_info.title or "",
        }
    return None


class SessionExporter:
    """
    Writes a session as a self-contained directory.

    Layout of ``<destination>/<session id>/``:
    - ``metadata.json``: session summary
    - ``interactions.json``: flattened interaction records
    - ``screenshots/``: every referenced screenshot, copied once
    """

    def __init__(self, screenshot_store: ScreenshotStore, format_version: str = "1.0"):
        self.screenshot_store = screenshot_store
        self.format_version = format_version

    def build_metadata(self, session: RecordingSession) -> ExportMetadataDict:
        now = datetime.now()
        return {
            "id": session.id,
            "startTime": session.start_time.isoformat(),
            "endTime": (session.end_time or now).isoformat(),
            "interactionCount": session.interaction_count,
            "screenshotCount": len(session.screenshots()),
            "exportDate": now.isoformat(),
            "version": self.format_version,
        }

    def flatten(self, session: RecordingSession) -> List[FlattenedInteraction]:
        records = []
        for interaction in session.interactions:
            record = flatten_interaction(interaction)
            if record is None:
                logger.warning(f"Skipping unknown interaction type: {type(interaction).__name__}")
                continue
            records.append(record)
        return records

    async def export_to_portable_format(
        self, session: RecordingSession, destination_dir: Path
    ) -> Optional[Path]:
        """
        Export a session under ``destination_dir``.

        Args:
            session: Session to export (active sessions export a snapshot)
            destination_dir: Parent directory of the export

        Returns:
            The export directory, or None if the metadata or interactions
            could not be written. Missing screenshots do not fail the export.
        """
        if "/" in session.id or session.id in ("", ".", ".."):
            logger.error(f"Cannot export session with id {session.id!r}")
            return None

        export_dir = Path(destination_dir) / session.id
        screenshots_dir = export_dir / SCREENSHOTS_DIR

        try:
            screenshots_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Failed to create export directory {export_dir}: {e}")
            return None

        if not await self._write_json(export_dir / METADATA_FILE, self.build_metadata(session)):
            logger.error(f"Failed to save metadata for session {session.id}")
            return None

        if not await self._write_json(export_dir / INTERACTIONS_FILE, self.flatten(session)):
            logger.error(f"Failed to export interactions for session {session.id}")
            return None

        copied = await self.copy_screenshots(session, screenshots_dir)
        logger.info(f"Exported session {session.id} to {export_dir} ({copied} screenshot(s))")
        return export_dir

    async def _write_json(self, path: Path, document: Any) -> bool:
        try:
            content = json.dumps(document, indent=2, allow_nan=False)
            async with aiofiles.open(path, "w", encoding="utf-8") as f:
                await f.write(content)
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Error saving JSON to {path}: {e}")
            return False
        return True

    async def copy_screenshots(self, session: RecordingSession, directory: Path) -> int:
        """Copy each referenced screenshot once; returns how many were copied."""
        loop = asyncio.get_event_loop()
        copied: Set[str] = set()

        for screenshot in session.screenshots():
            filename = screenshot.image_file_name
            if filename in copied:
                logger.debug(f"Skipping duplicate screenshot: {filename}")
                continue

            try:
                source = self.screenshot_store.path_for(filename)
            except StorageError as e:
                logger.warning(f"Skipping screenshot: {e.message}")
                continue

            if not source.is_file():
                logger.warning(f"Screenshot not found, skipping: {filename}")
                continue

            try:
                await loop.run_in_executor(None, shutil.copy2, source, directory / filename)
            except OSError as e:
                logger.warning(f"Error copying screenshot {filename}: {e}")
                continue

            copied.add(filename)

        return len(copied)

    async def create_archive(self, export_dir: Path) -> Optional[Path]:
        """
        Zip an export directory next to itself.

        Returns:
            Path of ``<export_dir>.zip``, or None on failure.
        """
        export_dir = Path(export_dir)
        if not export_dir.is_dir():
            logger.error(f"Export directory not found: {export_dir}")
            return None

        loop = asyncio.get_event_loop()
        try:
            archive = await loop.run_in_executor(
                None,
                lambda: shutil.make_archive(
                    str(export_dir),
                    "zip",
                    root_dir=str(export_dir.parent),
                    base_dir=export_dir.name,
                ),
            )
        except OSError as e:
            logger.error(f"Failed to archive {export_dir}: {e}")
            return None

        return Path(archive)
