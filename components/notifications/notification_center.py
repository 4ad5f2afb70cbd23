# components/notifications/notification_center.py
"""
Cross-room notification history.

Turns newly raised room alerts and notable supervisor events into
notifications an operator can review and dismiss. The history is bounded
and persisted as one JSON document under the "historical-alerts" key.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from components.events.logging_system import get_logger
from components.state.room_state import Alert, AlertSeverity
from components.state.snapshot_store import SnapshotStore
from components.supervisor.commands import CommandResult, SupervisorEvent

logger = get_logger(__name__)

HISTORY_KEY = "historical-alerts"


class NotificationLevel(Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


_ALERT_LEVELS = {
    AlertSeverity.WARNING: NotificationLevel.WARNING,
    AlertSeverity.ERROR: NotificationLevel.ERROR,
}


@dataclass
class Notification:
    """One entry in the notification history."""

    room_id: str
    room_name: str
    message: str
    level: NotificationLevel
    title: str = ""
    source: str = ""
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    timestamp: datetime = field(default_factory=datetime.now)
    dismissed: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "roomId": self.room_id,
            "roomName": self.room_name,
            "title": self.title,
            "message": self.message,
            "type": self.level.value,
            "source": self.source,
            "timestamp": self.timestamp.isoformat(),
            "dismissed": self.dismissed,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Notification":
        """Rebuild a persisted notification.

        Raises:
            ValueError: If the entry is malformed
        """
        try:
            return cls(
                id=str(data["id"]),
                room_id=str(data["roomId"]),
                room_name=str(data.get("roomName", "")),
                title=str(data.get("title", "")),
                message=str(data["message"]),
                level=NotificationLevel(data.get("type", "warning")),
                source=str(data.get("source", "")),
                timestamp=datetime.fromisoformat(data["timestamp"]),
                dismissed=bool(data.get("dismissed", False)),
            )
        except (KeyError, TypeError) as e:
            raise ValueError(f"Invalid notification {data!r}: {e}") from e


class NotificationCenter:
    """
    Collects notifications across rooms.

    An alert produces a notification only when it appears: an alert id that
    was already raised for the room in the previous alert list is not
    reported again until it clears and comes back.

    Example:
        >>> center = NotificationCenter(store)
        >>> await center.load()
        >>> center.record_result(result, "Drying Room 1")
        >>> await center.save()
    """

    def __init__(self, store: SnapshotStore | None = None, max_history: int = 500):
        self.store = store
        self.max_history = max_history
        self._history: list[Notification] = []
        self._raised: dict[str, set[str]] = {}

    # ----------------------------------------------------------------
    # Recording
    # ----------------------------------------------------------------

    def record_alerts(
        self, room_id: str, room_name: str, alerts: list[Alert] | tuple[Alert, ...]
    ) -> list[Notification]:
        """Create notifications for alerts not raised in the previous list."""
        previous = self._raised.get(room_id, set())
        current = {alert.id for alert in alerts}
        self._raised[room_id] = current

        created = []
        for alert in alerts:
            if alert.id in previous:
                continue
            created.append(
                self._add(
                    Notification(
                        room_id=room_id,
                        room_name=room_name,
                        title=alert.title,
                        message=alert.message,
                        level=_ALERT_LEVELS[alert.severity],
                        source=alert.id,
                    )
                )
            )
        return created

    def record_result(self, result: CommandResult, room_name: str = "") -> list[Notification]:
        """Record the alerts and events of one command result."""
        room_name = room_name or result.room_id
        created = self.record_alerts(result.room_id, room_name, result.alerts)

        if result.has_event(SupervisorEvent.TIMER_COMPLETED):
            created.append(
                self.notify(
                    result.room_id,
                    room_name,
                    "Drying cycle finished.",
                    NotificationLevel.INFO,
                    title="Drying Process Complete",
                    source=SupervisorEvent.TIMER_COMPLETED.value,
                )
            )
        return created

    def notify(
        self,
        room_id: str,
        room_name: str,
        message: str,
        level: NotificationLevel = NotificationLevel.INFO,
        title: str = "",
        source: str = "",
    ) -> Notification:
        return self._add(
            Notification(
                room_id=room_id,
                room_name=room_name,
                title=title,
                message=message,
                level=level,
                source=source,
            )
        )

    def forget_room(self, room_id: str) -> None:
        self._raised.pop(room_id, None)

    def _add(self, notification: Notification) -> Notification:
        self._history.append(notification)
        if len(self._history) > self.max_history:
            self._history = self._history[-self.max_history :]
        logger.debug(
            f"Notification [{notification.level.value}] "
            f"{notification.room_name}: {notification.message}"
        )
        return notification

    # ----------------------------------------------------------------
    # Queries and operator actions
    # ----------------------------------------------------------------

    def active(self, room_id: str | None = None) -> list[Notification]:
        """Notifications not dismissed yet, oldest first."""
        return [
            n
            for n in self._history
            if not n.dismissed and (room_id is None or n.room_id == room_id)
        ]

    def history(self, limit: int | None = None) -> list[Notification]:
        if limit is None:
            return list(self._history)
        return self._history[-limit:] if limit > 0 else []

    def dismiss(self, notification_id: str) -> bool:
        for notification in self._history:
            if notification.id == notification_id and not notification.dismissed:
                notification.dismissed = True
                return True
        return False

    def dismiss_all(self, room_id: str | None = None) -> int:
        """Dismiss every active notification (optionally for one room)."""
        count = 0
        for notification in self.active(room_id):
            notification.dismissed = True
            count += 1
        return count

    def clear_history(self) -> int:
        count = len(self._history)
        self._history.clear()
        logger.info(f"Notification history cleared ({count} entries)")
        return count

    # ----------------------------------------------------------------
    # Persistence
    # ----------------------------------------------------------------

    async def load(self) -> int:
        """Load history from the store. Malformed entries are skipped."""
        if self.store is None:
            return 0

        raw = await self.store.load_document(HISTORY_KEY, default=[])
        if not isinstance(raw, list):
            logger.warning(f"Ignoring malformed '{HISTORY_KEY}' document")
            return 0

        loaded = []
        for entry in raw:
            try:
                loaded.append(Notification.from_dict(entry))
            except ValueError as e:
                logger.warning(f"Skipping notification: {e}")

        self._history = loaded[-self.max_history :]
        return len(self._history)

    async def save(self) -> None:
        if self.store is None:
            return
        await self.store.save_document(
            HISTORY_KEY, [n.to_dict() for n in self._history]
        )
