# components/state/room_registry.py
"""
Registry of drying rooms.

Maps room ids to their RoomSupervisor and is the single command entry
point for callers. Commands for one room are serialised by a per-room
asyncio lock; rooms are independent of each other.

After each command the registry:
- persists the room snapshot when the command is durable
- writes an audit entry for durable commands
- logs raised and cleared alerts as alarms
- feeds the notification centre
- publishes the CommandResult to subscribers
"""

import asyncio
import inspect
from collections.abc import Awaitable, Callable
from dataclasses import asdict, dataclass
from typing import Any

from components.events.logging_system import AlarmPriority, AlarmState, get_logger
from components.notifications.notification_center import NotificationCenter
from components.state.room_state import (
    Alert,
    AlertSeverity,
    OperatingMode,
    RoomStatus,
    SensorReading,
)
from components.state.snapshot_store import BACKUP_SUFFIX, ROOM_ID_PATTERN, SnapshotStore
from components.supervisor.commands import Command, CommandResult
from components.supervisor.room_supervisor import RoomSupervisor
from components.time.simulation_time import SimulationTime

logger = get_logger(__name__)

ResultCallback = Callable[[CommandResult], Awaitable[None] | None]

_ALARM_PRIORITIES = {
    AlertSeverity.WARNING: AlarmPriority.MEDIUM,
    AlertSeverity.ERROR: AlarmPriority.HIGH,
}


@dataclass
class RoomEntry:
    """Registry bookkeeping for one room."""

    supervisor: RoomSupervisor
    lock: asyncio.Lock
    commands_handled: int = 0


class RoomRegistry:
    """
    Owns every room supervisor and dispatches commands to them.

    Example:
        >>> registry = RoomRegistry(snapshot_store=store)
        >>> await registry.register_room("room1", "Drying Room 1", sensors)
        >>> result = await registry.dispatch("room1", SetMode(OperatingMode.AUTOMATIC))
        >>> result.state.timer.running
        True
    """

    def __init__(
        self,
        snapshot_store: SnapshotStore | None = None,
        notification_center: NotificationCenter | None = None,
    ):
        self.snapshot_store = snapshot_store
        self.notification_center = notification_center
        self._rooms: dict[str, RoomEntry] = {}
        self._subscribers: list[ResultCallback] = []
        self._lock = asyncio.Lock()
        self._sim_time = SimulationTime()

    # ----------------------------------------------------------------
    # Room registration
    # ----------------------------------------------------------------

    async def register_room(
        self,
        room_id: str,
        room_name: str = "",
        sensors: list[SensorReading] | None = None,
        restore: bool = True,
    ) -> RoomSupervisor:
        """Create a supervisor for a room.

        Args:
            room_id: Unique room identifier
            room_name: Human-readable room name
            sensors: Sensor layout for the room
            restore: Restore the last saved snapshot if the store has one

        Returns:
            The new RoomSupervisor

        Raises:
            ValueError: If room_id is not a valid storage key (letters, digits,
                "_", "." and "-", starting with a letter or digit) or ends
                with "-backup"
        """
        if not isinstance(room_id, str) or not ROOM_ID_PATTERN.match(room_id):
            raise ValueError(
                f"Invalid room id {room_id!r}: use letters, digits, '_', '.' or '-'"
            )
        if room_id.endswith(BACKUP_SUFFIX):
            raise ValueError(f"Room id {room_id!r} clashes with backup keys")

        supervisor = RoomSupervisor(room_id, room_name, sensors=sensors)

        if restore and self.snapshot_store is not None:
            if await self.snapshot_store.has_snapshot(room_id):
                state = await self.snapshot_store.load_room(room_id, sensors=sensors)
                supervisor.restore(state)

        async with self._lock:
            already_exists = room_id in self._rooms
            self._rooms[room_id] = RoomEntry(supervisor=supervisor, lock=asyncio.Lock())

        if self.notification_center is not None:
            self.notification_center.forget_room(room_id)
            self.notification_center.record_alerts(
                room_id, supervisor.room_name, supervisor.alerts
            )

        if already_exists:
            logger.warning(f"Room {room_id} already registered, replaced with new supervisor")
        else:
            logger.info(
                f"Registered room: {room_id} "
                f"(name={supervisor.room_name}, sensors={len(supervisor.state.sensors)})"
            )
        return supervisor

    async def unregister_room(self, room_id: str) -> bool:
        async with self._lock:
            if room_id not in self._rooms:
                logger.warning(f"Cannot unregister non-existent room: {room_id}")
                return False
            del self._rooms[room_id]

        if self.notification_center is not None:
            self.notification_center.forget_room(room_id)
        logger.info(f"Unregistered room: {room_id}")
        return True

    def get_supervisor(self, room_id: str) -> RoomSupervisor:
        """
        Raises:
            KeyError: If the room is not registered
        """
        return self._entry(room_id).supervisor

    def room_ids(self) -> list[str]:
        return list(self._rooms)

    def _entry(self, room_id: str) -> RoomEntry:
        entry = self._rooms.get(room_id)
        if entry is None:
            raise KeyError(f"Unknown room: {room_id}")
        return entry

    # ----------------------------------------------------------------
    # Subscriptions
    # ----------------------------------------------------------------

    def subscribe(self, callback: ResultCallback) -> None:
        """Receive every CommandResult. Callbacks may be sync or async."""
        if callback not in self._subscribers:
            self._subscribers.append(callback)

    def unsubscribe(self, callback: ResultCallback) -> bool:
        if callback in self._subscribers:
            self._subscribers.remove(callback)
            return True
        return False

    async def _publish(self, result: CommandResult) -> None:
        for callback in list(self._subscribers):
            try:
                outcome = callback(result)
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception as e:
                logger.error(
                    f"Subscriber {callback!r} failed for room '{result.room_id}': {e}",
                    exc_info=True,
                )

    # ----------------------------------------------------------------
    # Command dispatch
    # ----------------------------------------------------------------

    async def dispatch(
        self, room_id: str, command: Command, durable: bool | None = None
    ) -> CommandResult:
        """Apply a command to one room.

        Args:
            room_id: Target room
            command: Supervisor command
            durable: Persist the new snapshot (defaults to the command's flag)

        Returns:
            CommandResult from the room supervisor

        Raises:
            KeyError: If the room is not registered
        """
        entry = self._entry(room_id)
        supervisor = entry.supervisor
        persist = command.durable if durable is None else durable

        async with entry.lock:
            previous_alerts = supervisor.alerts
            result = supervisor.handle(command)
            entry.commands_handled += 1

            if persist and self.snapshot_store is not None:
                await self.snapshot_store.save_room(room_id, supervisor.state)

        if command.durable:
            await logger.log_audit(
                f"{command.name} on room '{room_id}'",
                action=command.name,
                room=room_id,
                data={"command": asdict(command), "changed": result.changed},
            )

        await self._log_alert_changes(room_id, previous_alerts, list(result.alerts))
        await self._notify(result, supervisor.room_name)
        await self._publish(result)
        return result

    async def _log_alert_changes(
        self, room_id: str, previous: list[Alert], current: list[Alert]
    ) -> None:
        previous_ids = {alert.id for alert in previous}
        current_ids = {alert.id for alert in current}

        for alert in current:
            if alert.id not in previous_ids:
                await logger.log_alarm(
                    alert.message,
                    priority=_ALARM_PRIORITIES[alert.severity],
                    state=AlarmState.ACTIVE,
                    room=room_id,
                    event_id=alert.id,
                )
        for alert in previous:
            if alert.id not in current_ids:
                await logger.log_alarm(
                    f"Cleared: {alert.message}",
                    priority=_ALARM_PRIORITIES[alert.severity],
                    state=AlarmState.CLEARED,
                    room=room_id,
                    event_id=alert.id,
                )

    async def _notify(self, result: CommandResult, room_name: str) -> None:
        if self.notification_center is None:
            return
        if self.notification_center.record_result(result, room_name):
            await self.notification_center.save()

    # ----------------------------------------------------------------
    # Persistence
    # ----------------------------------------------------------------

    def _require_store(self) -> SnapshotStore:
        if self.snapshot_store is None:
            raise RuntimeError("No snapshot store configured")
        return self.snapshot_store

    async def save_room(self, room_id: str) -> None:
        store = self._require_store()
        entry = self._entry(room_id)
        async with entry.lock:
            await store.save_room(room_id, entry.supervisor.state)

    async def save_all(self) -> int:
        for room_id in self.room_ids():
            await self.save_room(room_id)
        return len(self._rooms)

    async def backup_room(self, room_id: str) -> bool:
        """Write the room's current state to its backup key."""
        store = self._require_store()
        entry = self._entry(room_id)
        async with entry.lock:
            backed_up = await store.backup_room(room_id, entry.supervisor.snapshot())
        await logger.log_audit(
            f"Backup of room '{room_id}'", action="backup", room=room_id
        )
        return backed_up

    async def restore_backup(self, room_id: str) -> CommandResult:
        """Replace the room's state with its backup and save it as current."""
        store = self._require_store()
        entry = self._entry(room_id)
        supervisor = entry.supervisor

        async with entry.lock:
            previous_alerts = supervisor.alerts
            state = await store.load_room_backup(room_id, sensors=supervisor.state.sensors)
            result = supervisor.restore(state)
            await store.save_room(room_id, supervisor.state)

        await logger.log_audit(
            f"Restored backup of room '{room_id}'", action="restore_backup", room=room_id
        )
        await self._log_alert_changes(room_id, previous_alerts, list(result.alerts))
        await self._notify(result, supervisor.room_name)
        await self._publish(result)
        return result

    # ----------------------------------------------------------------
    # Status reporting
    # ----------------------------------------------------------------

    def get_room_status(self, room_id: str) -> dict[str, Any]:
        return self.get_supervisor(room_id).get_status()

    async def get_summary(self) -> dict[str, Any]:
        """Get high-level summary of all rooms."""
        async with self._lock:
            entries = dict(self._rooms)

        statuses = {status.value: 0 for status in RoomStatus}
        modes = {mode.value: 0 for mode in OperatingMode}
        alert_count = 0
        running = 0
        for entry in entries.values():
            state = entry.supervisor.state
            statuses[state.status.value] += 1
            modes[state.mode.value] += 1
            alert_count += len(state.alerts)
            running += int(state.timer.running)

        return {
            "simulation_time": self._sim_time.now(),
            "rooms": {
                "total": len(entries),
                "by_status": statuses,
                "by_mode": modes,
                "timers_running": running,
            },
            "alerts": alert_count,
            "commands_handled": sum(e.commands_handled for e in entries.values()),
        }
