# components/events/logging_system.py
"""
Structured logging system for the drying room supervisor.

Provides:
- Plain-text console logging stamped with simulation time
- Rotating JSON-lines file logging
- Operator audit trail (mode changes, setpoints, device toggles)
- Alarm logging for raised and cleared room alerts

Every room gets its own named logger so log lines and JSON records carry
the room id as context.
"""

import asyncio
import json
import logging
import logging.handlers
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from components.time.simulation_time import SimulationTime

__all__ = [
    "EventSeverity",
    "EventCategory",
    "AlarmPriority",
    "AlarmState",
    "LogEntry",
    "SimTimeFormatter",
    "JSONFormatter",
    "RoomLogger",
    "configure_logging",
    "get_logger",
]

# ----------------------------------------------------------------
# Event classification
# ----------------------------------------------------------------


class EventSeverity(Enum):
    """Event severity levels. Lower number = higher severity."""

    CRITICAL = 1  # Safety interlock failure, plant shutdown
    ALERT = 2  # Immediate operator action required
    ERROR = 3
    WARNING = 4
    NOTICE = 5  # Normal but significant (operator commands)
    INFO = 6
    DEBUG = 7


class EventCategory(Enum):
    """Event categories."""

    SAFETY = "safety"  # Door and emergency stop interlocks
    PROCESS = "process"  # Drying process (timer, setpoints)
    ALARM = "alarm"  # Raised/cleared room alerts
    AUDIT = "audit"  # Operator commands
    SYSTEM = "system"
    PERSISTENCE = "persistence"  # Snapshot save/load/backup


class AlarmPriority(Enum):
    """Alarm priority levels (ISA 18.2)."""

    CRITICAL = 1
    HIGH = 2
    MEDIUM = 3
    LOW = 4


class AlarmState(Enum):
    """Alarm states per ISA 18.2."""

    ACTIVE = "ACTIVE"
    ACKNOWLEDGED = "ACKNOWLEDGED"
    CLEARED = "CLEARED"
    SUPPRESSED = "SUPPRESSED"


LOGGING_TO_SEVERITY = {
    logging.CRITICAL: EventSeverity.CRITICAL,
    logging.ERROR: EventSeverity.ERROR,
    logging.WARNING: EventSeverity.WARNING,
    logging.INFO: EventSeverity.INFO,
    logging.DEBUG: EventSeverity.DEBUG,
}

SEVERITY_TO_LOGGING = {
    EventSeverity.CRITICAL: logging.CRITICAL,
    EventSeverity.ALERT: logging.CRITICAL,
    EventSeverity.ERROR: logging.ERROR,
    EventSeverity.WARNING: logging.WARNING,
    EventSeverity.NOTICE: logging.INFO,
    EventSeverity.INFO: logging.INFO,
    EventSeverity.DEBUG: logging.DEBUG,
}


# ----------------------------------------------------------------
# Structured log entry
# ----------------------------------------------------------------


@dataclass
class LogEntry:
    """Structured log entry for supervisor events."""

    simulation_time: float
    wall_time: float
    severity: EventSeverity
    category: EventCategory
    message: str

    room: str = ""
    component: str = ""
    user: str = ""
    event_id: str = ""

    data: dict[str, Any] = field(default_factory=dict)

    alarm_priority: AlarmPriority | None = None
    alarm_state: AlarmState | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialisation."""
        entry_dict = {
            "simulation_time": self.simulation_time,
            "wall_time": self.wall_time,
            "severity": self.severity.name,
            "category": self.category.value,
            "message": self.message,
        }

        if self.room:
            entry_dict["room"] = self.room
        if self.component:
            entry_dict["component"] = self.component
        if self.user:
            entry_dict["user"] = self.user
        if self.event_id:
            entry_dict["event_id"] = self.event_id
        if self.data:
            entry_dict["data"] = self.data
        if self.alarm_priority:
            entry_dict["alarm_priority"] = self.alarm_priority.name
        if self.alarm_state:
            entry_dict["alarm_state"] = self.alarm_state.value

        return entry_dict

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), default=str)

    def to_human_readable(self) -> str:
        sim_time_str = f"[SIM:{self.simulation_time:10.2f}s]"
        severity_str = f"[{self.severity.name:8s}]"
        room_str = f"{self.room}:" if self.room else ""

        return f"{sim_time_str} {severity_str} {room_str} {self.message}"


# ----------------------------------------------------------------
# Formatters
# ----------------------------------------------------------------


class SimTimeFormatter(logging.Formatter):
    """Format log records with simulation time prefix."""

    def __init__(self, sim_time: SimulationTime):
        super().__init__(
            fmt="[SIM:%(sim_time)8.2fs] [%(levelname)8s] %(name)s: %(message)s"
        )
        self.sim_time = sim_time

    def format(self, record: logging.LogRecord) -> str:
        record.sim_time = self.sim_time.now()
        return super().format(record)


class JSONFormatter(logging.Formatter):
    """Format log records as one JSON object per line."""

    def __init__(self, room: str = ""):
        super().__init__()
        self.room = room
        self.sim_time = SimulationTime()

    def format(self, record: logging.LogRecord) -> str:
        severity = LOGGING_TO_SEVERITY.get(record.levelno, EventSeverity.INFO)

        log_entry = LogEntry(
            simulation_time=self.sim_time.now(),
            wall_time=record.created,
            severity=severity,
            category=EventCategory.SYSTEM,
            message=record.getMessage(),
            room=self.room,
            component=record.name,
        )

        if record.exc_info:
            log_entry.data["exception"] = self.formatException(record.exc_info)

        return log_entry.to_json()


# ----------------------------------------------------------------
# Room logger
# ----------------------------------------------------------------


class RoomLogger:
    """
    Logger wrapper carrying room context.

    Wraps Python's logging with:
    - Console output stamped with simulation time
    - Optional rotating JSON file per room
    - In-memory audit trail for operator commands and alarms
    """

    def __init__(
        self,
        name: str,
        room: str = "",
        log_dir: Path | None = None,
        enable_json: bool = True,
        enable_console: bool = True,
        max_audit_entries: int = 10000,
    ):
        """
        Initialise room logger.

        Args:
            name: Logger name (typically module name)
            room: Room id for context
            log_dir: Directory for log files (None = no file logging)
            enable_json: Enable JSON formatted logs (requires log_dir)
            enable_console: Enable console output
            max_audit_entries: Maximum audit trail entries to retain
        """
        self.name = name
        self.room = room
        self.log_dir = log_dir

        self.sim_time = SimulationTime()

        logger_name = f"{name}.{room}" if room else name
        self.logger = logging.getLogger(logger_name)
        self.logger.setLevel(logging.DEBUG)
        self.logger.propagate = False

        self.logger.handlers.clear()

        if enable_console:
            self._add_console_handler()

        if enable_json and log_dir:
            self._add_json_handler()

        self.audit_trail: list[LogEntry] = []
        self._audit_lock = asyncio.Lock()
        self._max_audit_entries = max_audit_entries

    def _add_console_handler(self) -> None:
        handler = logging.StreamHandler()
        handler.setLevel(logging.INFO)
        handler.setFormatter(SimTimeFormatter(self.sim_time))
        self.logger.addHandler(handler)

    def _add_json_handler(self) -> None:
        """Add JSON file handler with rotation."""
        if not self.log_dir:
            return

        self.log_dir.mkdir(parents=True, exist_ok=True)
        log_file = self.log_dir / f"{self.room or 'plant'}.json.log"

        # Rotating file handler (10MB max, 5 backups)
        handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=10 * 1024 * 1024,
            backupCount=5,
        )
        handler.setLevel(logging.DEBUG)
        handler.setFormatter(JSONFormatter(room=self.room))
        self.logger.addHandler(handler)

    # ----------------------------------------------------------------
    # Standard logging methods
    # ----------------------------------------------------------------

    def debug(self, message: str, **kwargs) -> None:
        self.logger.debug(message, **kwargs)

    def info(self, message: str, **kwargs) -> None:
        self.logger.info(message, **kwargs)

    def warning(self, message: str, **kwargs) -> None:
        self.logger.warning(message, **kwargs)

    def error(self, message: str, **kwargs) -> None:
        self.logger.error(message, **kwargs)

    def critical(self, message: str, **kwargs) -> None:
        self.logger.critical(message, **kwargs)

    def exception(self, message: str, **kwargs) -> None:
        self.logger.exception(message, **kwargs)

    # ----------------------------------------------------------------
    # Structured logging
    # ----------------------------------------------------------------

    async def log_event(
        self,
        severity: EventSeverity,
        category: EventCategory,
        message: str,
        **kwargs,
    ) -> LogEntry:
        """
        Log a structured event.

        Audit and alarm events are also kept in the in-memory audit trail.

        Args:
            severity: Event severity level
            category: Event category
            message: Event message
            **kwargs: Additional LogEntry fields (user, component, data, etc.)

        Returns:
            LogEntry that was created
        """
        room = kwargs.pop("room", self.room)

        entry = LogEntry(
            simulation_time=self.sim_time.now(),
            wall_time=time.time(),
            severity=severity,
            category=category,
            message=message,
            room=room,
            **kwargs,
        )

        self.logger.log(
            SEVERITY_TO_LOGGING.get(severity, logging.INFO),
            entry.to_human_readable(),
        )

        if category in (EventCategory.AUDIT, EventCategory.ALARM):
            async with self._audit_lock:
                self.audit_trail.append(entry)
                if len(self.audit_trail) > self._max_audit_entries:
                    self.audit_trail = self.audit_trail[-self._max_audit_entries :]

        return entry

    async def log_audit(
        self, message: str, user: str = "", action: str = "", **kwargs
    ) -> LogEntry:
        """Log an operator command to the audit trail."""
        data = kwargs.pop("data", {})
        data["action"] = action

        return await self.log_event(
            severity=EventSeverity.NOTICE,
            category=EventCategory.AUDIT,
            message=message,
            user=user,
            data=data,
            **kwargs,
        )

    async def log_alarm(
        self,
        message: str,
        priority: AlarmPriority,
        state: AlarmState = AlarmState.ACTIVE,
        **kwargs,
    ) -> LogEntry:
        """Log an alarm transition (raised, cleared, ...)."""
        severity_map = {
            AlarmPriority.CRITICAL: EventSeverity.CRITICAL,
            AlarmPriority.HIGH: EventSeverity.ALERT,
            AlarmPriority.MEDIUM: EventSeverity.WARNING,
            AlarmPriority.LOW: EventSeverity.NOTICE,
        }
        severity = severity_map.get(priority, EventSeverity.WARNING)
        if state == AlarmState.CLEARED:
            severity = EventSeverity.INFO

        return await self.log_event(
            severity=severity,
            category=EventCategory.ALARM,
            message=message,
            alarm_priority=priority,
            alarm_state=state,
            **kwargs,
        )

    # ----------------------------------------------------------------
    # Audit trail access
    # ----------------------------------------------------------------

    async def get_audit_trail(
        self,
        limit: int = 100,
        category: EventCategory | None = None,
    ) -> list[LogEntry]:
        """Get audit trail entries (most recent last)."""
        async with self._audit_lock:
            entries = self.audit_trail
            if category:
                entries = [e for e in entries if e.category == category]
            return entries[-limit:]

    async def clear_audit_trail(self) -> int:
        """Clear audit trail and return number of entries removed."""
        async with self._audit_lock:
            count = len(self.audit_trail)
            self.audit_trail.clear()
            return count


# ----------------------------------------------------------------
# Global logger factory
# ----------------------------------------------------------------

_loggers: dict[str, RoomLogger] = {}
_loggers_lock = threading.Lock()
_default_log_dir: Path | None = None
_default_enable_json: bool = True
_default_enable_console: bool = True


def configure_logging(
    log_dir: Path | str | None = None,
    enable_json: bool = True,
    enable_console: bool = True,
) -> None:
    """
    Configure global logging settings.

    Only loggers created after this call pick the settings up.
    """
    global _default_log_dir, _default_enable_json, _default_enable_console

    if log_dir:
        _default_log_dir = Path(log_dir)
        _default_log_dir.mkdir(parents=True, exist_ok=True)
    else:
        _default_log_dir = None

    _default_enable_json = enable_json
    _default_enable_console = enable_console


def get_logger(name: str, room: str = "", **kwargs) -> RoomLogger:
    """
    Get or create a room logger.

    Thread-safe logger factory.

    Args:
        name: Logger name (typically __name__)
        room: Room id for context
        **kwargs: Additional RoomLogger arguments

    Returns:
        RoomLogger instance
    """
    logger_key = f"{name}:{room}"

    with _loggers_lock:
        if logger_key not in _loggers:
            if "log_dir" not in kwargs and _default_log_dir:
                kwargs["log_dir"] = _default_log_dir
            kwargs.setdefault("enable_json", _default_enable_json)
            kwargs.setdefault("enable_console", _default_enable_console)

            _loggers[logger_key] = RoomLogger(name, room, **kwargs)

        return _loggers[logger_key]
