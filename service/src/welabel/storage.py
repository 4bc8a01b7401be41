"""Durable key/value storage for session records."""

import asyncio
import logging
import os
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path, PurePosixPath
from typing import List, Optional

import aiofiles
import aiosqlite

from .exceptions import StorageError

logger = logging.getLogger(__name__)

TEMP_SUFFIX = ".tmp"


def validate_key(key: str) -> PurePosixPath:
    """
    Check that a key is a relative, slash-separated path inside the store.

    Raises:
        StorageError: For empty, absolute or parent-escaping keys.
    """
    if not key or "\\" in key or "\x00" in key:
        raise StorageError(f"Invalid storage key: {key!r}")
    path = PurePosixPath(key)
    if path.is_absolute() or any(part in ("", ".", "..") for part in key.split("/")):
        raise StorageError(f"Invalid storage key: {key!r}")
    return path


class DurableStore(ABC):
    """
    Abstract byte store addressed by slash-separated keys.

    Writes replace the previous value for a key as a whole; a reader never
    observes a partially written value.
    """

    @abstractmethod
    async def write(self, key: str, data: bytes) -> None:
        """
        Store ``data`` under ``key``.

        Raises:
            StorageError: If the value could not be persisted.
        """
        pass

    @abstractmethod
    async def read(self, key: str) -> Optional[bytes]:
        """
        Return the value for ``key``, or None when absent.

        Raises:
            StorageError: If the value exists but could not be read.
        """
        pass

    @abstractmethod
    async def list(self, prefix: str = "") -> List[str]:
        """Return all keys starting with ``prefix``, sorted."""
        pass


class FileDurableStore(DurableStore):
    """
    One file per key under a base directory.

    Features:
    - Async file IO via aiofiles
    - Atomic replace through a temp file in the target directory
    - Key validation keeps every write inside the base directory
    """

    def __init__(self, base_dir: Path):
        self.base_dir = Path(base_dir)
        self.base_dir.mkdir(parents=True, exist_ok=True)

    def _path_for(self, key: str) -> Path:
        return self.base_dir.joinpath(*validate_key(key).parts)

    async def write(self, key: str, data: bytes) -> None:
        path = self._path_for(key)
        temp_path = path.with_name(f".{path.name}{TEMP_SUFFIX}")
        loop = asyncio.get_event_loop()

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(temp_path, "wb") as f:
                await f.write(data)
            await loop.run_in_executor(None, os.replace, temp_path, path)
        except OSError as e:
            logger.error(f"Failed to write {key}: {e}")
            try:
                temp_path.unlink()
            except OSError:
                pass
            raise StorageError(f"Failed to write {key}", detail=str(e)) from e

        logger.debug(f"Wrote {key} ({len(data)} bytes)")

    async def read(self, key: str) -> Optional[bytes]:
        path = self._path_for(key)
        try:
            async with aiofiles.open(path, "rb") as f:
                return await f.read()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageError(f"Failed to read {key}", detail=str(e)) from e

    async def list(self, prefix: str = "") -> List[str]:
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(None, self._list_sync, prefix)

    def _list_sync(self, prefix: str) -> List[str]:
        keys = []
        for path in self.base_dir.rglob("*"):
            if not path.is_file() or path.name.endswith(TEMP_SUFFIX):
                continue
            key = path.relative_to(self.base_dir).as_posix()
            if key.startswith(prefix):
                keys.append(key)
        return sorted(keys)


class SqliteDurableStore(DurableStore):
    """
    Blob table in a single SQLite database.

    Schema creation is lazy and idempotent; the first operation creates it.
    """

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._initialized = False
        self._lock = asyncio.Lock()

    async def initialize(self) -> None:
        """Initialize database schema (idempotent)."""
        async with self._lock:
            if self._initialized:
                return

            try:
                async with aiosqlite.connect(self.db_path) as db:
                    await db.execute("""
                        CREATE TABLE IF NOT EXISTS records (
                            key TEXT PRIMARY KEY,
                            value BLOB NOT NULL,
                            updated_at TEXT NOT NULL
                        )
                    """)
                    await db.commit()
            except aiosqlite.Error as e:
                raise StorageError(f"Failed to initialize {self.db_path}", detail=str(e)) from e

            logger.info(f"SqliteDurableStore initialized at {self.db_path}")
            self._initialized = True

    async def write(self, key: str, data: bytes) -> None:
        validate_key(key)
        await self.initialize()

        try:
            async with aiosqlite.connect(self.db_path) as db:
                await db.execute(
                    """
                    INSERT INTO records (key, value, updated_at)
                    VALUES (?, ?, ?)
                    ON CONFLICT(key) DO UPDATE SET
                        value = excluded.value,
                        updated_at = excluded.updated_at
                    """,
                    (key, data, datetime.now().isoformat()),
                )
                await db.commit()
        except aiosqlite.Error as e:
            logger.error(f"Failed to write {key}: {e}")
            raise StorageError(f"Failed to write {key}", detail=str(e)) from e

    async def read(self, key: str) -> Optional[bytes]:
        validate_key(key)
        await self.initialize()

        try:
            async with aiosqlite.connect(self.db_path) as db:
                async with db.execute(
                    "SELECT value FROM records WHERE key = ?", (key,)
                ) as cursor:
                    row = await cursor.fetchone()
        except aiosqlite.Error as e:
            raise StorageError(f"Failed to read {key}", detail=str(e)) from e

        return bytes(row[0]) if row else None

    async def list(self, prefix: str = "") -> List[str]:
        await self.initialize()

        # Escape SQL LIKE special characters
        escaped = prefix.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")

        try:
            async with aiosqlite.connect(self.db_path) as db:
                async with db.execute(
                    "SELECT key FROM records WHERE key LIKE ? ESCAPE '\\' ORDER BY key",
                    (f"{escaped}%",),
                ) as cursor:
                    rows = await cursor.fetchall()
        except aiosqlite.Error as e:
            raise StorageError(f"Failed to list {prefix!r}", detail=str(e)) from e

        # LIKE is case-insensitive for ASCII; keys are not
        return [row[0] for row in rows if row[0].startswith(prefix)]


def create_store(backend: str, data_dir: Path) -> DurableStore:
    """
    Build the durable store selected in settings.

    Args:
        backend: ``"files"`` or ``"sqlite"``
        data_dir: Root data directory

    Raises:
        ValueError: Unknown backend name.
    """
    data_dir = Path(data_dir)
    if backend == "files":
        return FileDurableStore(data_dir)
    if backend == "sqlite":
        return SqliteDurableStore(data_dir / "welabel.db")
    raise ValueError(f"Unknown store backend: {backend}")
