"""Async screenshot storage with automatic cleanup."""

import asyncio
import base64
import binascii
import logging
from datetime import datetime, timedelta
from pathlib import Path
from typing import Union

import aiofiles

from .exceptions import StorageError

logger = logging.getLogger(__name__)


class ScreenshotStore:
    """
    Directory of screenshot files referenced by name from interactions.

    Features:
    - Non-blocking base64 decode
    - Async file writes
    - Automatic old file cleanup
    """

    def __init__(self, directory: Path):
        self.screenshots_dir = Path(directory)
        self.screenshots_dir.mkdir(parents=True, exist_ok=True)

    def path_for(self, filename: str) -> Path:
        """
        Absolute path of a stored screenshot.

        Raises:
            StorageError: If ``filename`` is not a plain file name.
        """
        if not filename or Path(filename).name != filename or filename in (".", ".."):
            raise StorageError(f"Invalid screenshot file name: {filename!r}")
        return self.screenshots_dir / filename

    def exists(self, filename: str) -> bool:
        try:
            return self.path_for(filename).is_file()
        except StorageError:
            return False

    async def save(self, filename: str, data: Union[bytes, str]) -> Path:
        """
        Save a screenshot and return its path.

        Args:
            filename: Plain file name, e.g. ``screenshot_1700000000.png``
            data: Raw image bytes, base64 text, or a ``data:`` URL

        Returns:
            Path: Location of the saved file

        Raises:
            StorageError: Invalid name, undecodable base64, or write failure.
        """
        filepath = self.path_for(filename)

        if isinstance(data, str):
            # Handle data URL format (data:image/png;base64,...)
            base64_str = data.split(",", 1)[1] if "," in data else data
            loop = asyncio.get_event_loop()
            try:
                # Decode in thread pool to avoid blocking event loop
                image_data = await loop.run_in_executor(
                    None, lambda: base64.b64decode(base64_str, validate=True)
                )
            except binascii.Error as e:
                raise StorageError(f"Invalid base64 screenshot {filename}", detail=str(e)) from e
        else:
            image_data = data

        try:
            async with aiofiles.open(filepath, "wb") as f:
                await f.write(image_data)
        except OSError as e:
            logger.error(f"Failed to save screenshot: {e}", exc_info=True)
            raise StorageError(f"Failed to save screenshot {filename}", detail=str(e)) from e

        logger.debug(f"Saved screenshot: {filename} ({len(image_data)} bytes)")
        return filepath

    async def read(self, filename: str) -> bytes:
        """
        Read a stored screenshot.

        Raises:
            StorageError: Missing or unreadable file.
        """
        try:
            async with aiofiles.open(self.path_for(filename), "rb") as f:
                return await f.read()
        except OSError as e:
            raise StorageError(f"Failed to read screenshot {filename}", detail=str(e)) from e

    async def cleanup_old(self, max_age_hours: int = 24) -> int:
        """
        Delete screenshots older than max_age_hours.

        Args:
            max_age_hours: Maximum age in hours

        Returns:
            int: Number of files removed
        """
        cutoff = datetime.now() - timedelta(hours=max_age_hours)
        removed_count = 0

        for screenshot in self.screenshots_dir.iterdir():
            if not screenshot.is_file():
                continue
            try:
                file_mtime = datetime.fromtimestamp(screenshot.stat().st_mtime)
                if file_mtime < cutoff:
                    screenshot.unlink()
                    removed_count += 1
            except OSError as e:
                logger.warning(f"Failed to delete {screenshot}: {e}")

        if removed_count > 0:
            logger.info(f"Cleaned up {removed_count} old screenshot(s)")

        return removed_count
