# components/state/snapshot_store.py
"""
Key-value snapshot storage for room state.

Each room is stored as JSON text under its room id, with a backup copy
under "{room_id}-backup". Other documents (e.g. notification history)
share the same key space.

Backends:
- InMemoryBackend: dict, for tests and throwaway runs
- JsonFileBackend: one "<key>.json" file per key in a directory
"""

import asyncio
import copy
import json
import re
from pathlib import Path
from typing import Any, Protocol

from components.events.logging_system import EventCategory, EventSeverity, get_logger
from components.state.room_state import RoomState, SensorReading, SnapshotError

logger = get_logger(__name__)

BACKUP_SUFFIX = "-backup"

ROOM_ID_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]*$")


def backup_key(room_id: str) -> str:
    return f"{room_id}{BACKUP_SUFFIX}"


def validate_key(key: str) -> str:
    """Check a storage key.

    Raises:
        ValueError: If key is empty or contains path-like characters
    """
    if not key or not isinstance(key, str) or not ROOM_ID_PATTERN.match(key):
        raise ValueError(f"Invalid storage key: {key!r}")
    return key


class StorageBackend(Protocol):
    """Synchronous key -> text storage."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> bool: ...

    def keys(self) -> list[str]: ...


class InMemoryBackend:
    def __init__(self):
        self._data: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> bool:
        return self._data.pop(key, None) is not None

    def keys(self) -> list[str]:
        return sorted(self._data)


class JsonFileBackend:
    """Stores each key as "<directory>/<key>.json".

    Writes go to a temporary file first and are then renamed into place,
    so a crash never leaves a half-written snapshot behind.
    """

    def __init__(self, directory: Path | str):
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def get(self, key: str) -> str | None:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set(self, key: str, value: str) -> None:
        path = self._path(key)
        tmp_path = path.with_suffix(".json.tmp")
        tmp_path.write_text(value, encoding="utf-8")
        tmp_path.replace(path)

    def delete(self, key: str) -> bool:
        path = self._path(key)
        if not path.exists():
            return False
        path.unlink()
        return True

    def keys(self) -> list[str]:
        return sorted(p.stem for p in self.directory.glob("*.json"))


class SnapshotStore:
    """
    Async snapshot store for room state.

    All operations are serialised by one asyncio lock. Loading never fails:
    a missing or corrupt snapshot yields a default RoomState and a logged
    warning.

    Example:
        >>> store = SnapshotStore(InMemoryBackend())
        >>> await store.save_room("room1", state)
        >>> await store.backup_room("room1")
        >>> restored = await store.load_room_backup("room1")
    """

    def __init__(self, backend: StorageBackend | None = None):
        self.backend = backend or InMemoryBackend()
        self._lock = asyncio.Lock()

    # ----------------------------------------------------------------
    # Room snapshots
    # ----------------------------------------------------------------

    async def save_room(self, room_id: str, state: RoomState) -> None:
        """Persist the durable part of a room's state under its room id."""
        await self._write(validate_key(room_id), state.to_snapshot())
        logger.debug(f"Saved snapshot for room '{room_id}'")

    async def load_room(
        self, room_id: str, sensors: list[SensorReading] | None = None
    ) -> RoomState:
        """Load a room snapshot, falling back to a default RoomState."""
        return await self._load_state(validate_key(room_id), room_id, sensors)

    async def backup_room(self, room_id: str, state: RoomState | None = None) -> bool:
        """Copy a room snapshot to its backup key.

        Args:
            room_id: Room to back up
            state: State to back up (defaults to the last saved snapshot)

        Returns:
            True if a backup was written, False if there was nothing to back up
        """
        key = validate_key(room_id)
        if state is not None:
            await self._write(backup_key(key), state.to_snapshot())
        else:
            raw = await self._read(key)
            if raw is None:
                logger.warning(f"No snapshot to back up for room '{room_id}'")
                return False
            async with self._lock:
                self.backend.set(backup_key(key), raw)

        await logger.log_event(
            severity=EventSeverity.INFO,
            category=EventCategory.PERSISTENCE,
            message=f"Backup created for room '{room_id}'",
            room=room_id,
        )
        return True

    async def load_room_backup(
        self, room_id: str, sensors: list[SensorReading] | None = None
    ) -> RoomState:
        """Load a room's backup snapshot, falling back to a default RoomState."""
        key = backup_key(validate_key(room_id))
        return await self._load_state(key, room_id, sensors)

    async def has_snapshot(self, room_id: str, backup: bool = False) -> bool:
        key = validate_key(room_id)
        if backup:
            key = backup_key(key)
        return await self._read(key) is not None

    async def delete_room(self, room_id: str) -> bool:
        """Remove a room's snapshot and its backup."""
        key = validate_key(room_id)
        async with self._lock:
            removed = self.backend.delete(key)
            removed = self.backend.delete(backup_key(key)) or removed
        if removed:
            logger.info(f"Deleted snapshots for room '{room_id}'")
        return removed

    async def keys(self) -> list[str]:
        async with self._lock:
            return self.backend.keys()

    # ----------------------------------------------------------------
    # Generic documents
    # ----------------------------------------------------------------

    async def save_document(self, key: str, document: Any) -> None:
        await self._write(validate_key(key), document)

    async def load_document(self, key: str, default: Any = None) -> Any:
        """Load a JSON document, returning ``default`` if missing or corrupt."""
        raw = await self._read(validate_key(key))
        if raw is None:
            return default
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning(f"Corrupt document '{key}' ignored: {e}")
            return default

    # ----------------------------------------------------------------
    # Internals
    # ----------------------------------------------------------------

    async def _read(self, key: str) -> str | None:
        """Raw text under ``key``; unreadable data counts as missing."""
        async with self._lock:
            try:
                return self.backend.get(key)
            except (OSError, UnicodeDecodeError) as e:
                logger.warning(f"Unreadable snapshot '{key}' ignored: {e}")
                return None

    async def _write(self, key: str, document: Any) -> None:
        text = json.dumps(document)
        async with self._lock:
            self.backend.set(key, text)

    async def _load_state(
        self, key: str, room_id: str, sensors: list[SensorReading] | None
    ) -> RoomState:
        raw = await self._read(key)
        if raw is None:
            logger.warning(f"No snapshot '{key}' for room '{room_id}', using defaults")
            return RoomState(sensors=copy.deepcopy(sensors or []))

        try:
            return RoomState.from_snapshot(json.loads(raw), sensors=sensors)
        except (json.JSONDecodeError, SnapshotError) as e:
            logger.warning(
                f"Corrupt snapshot '{key}' for room '{room_id}', using defaults: {e}"
            )
            return RoomState(sensors=copy.deepcopy(sensors or []))


def create_snapshot_store(config: dict[str, Any] | None = None) -> SnapshotStore:
    """Build a SnapshotStore from the ``persistence`` config section.

    Raises:
        ValueError: If the backend name is unknown
    """
    config = config or {}
    backend_name = str(config.get("backend", "memory")).lower()

    if backend_name == "memory":
        backend: StorageBackend = InMemoryBackend()
    elif backend_name == "file":
        backend = JsonFileBackend(config.get("directory", "data/snapshots"))
    else:
        raise ValueError(f"Unknown persistence backend: {backend_name}")

    logger.info(f"Snapshot store using '{backend_name}' backend")
    return SnapshotStore(backend)
