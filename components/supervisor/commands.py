# components/supervisor/commands.py
"""
Commands accepted by RoomSupervisor.handle() and the result it returns.

Every command is a small immutable record. ``durable`` marks commands whose
effect the registry persists to the snapshot store by default (setpoints,
mode changes, device toggles).
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar

from components.state.room_state import Alert, OperatingMode, RoomState, SensorKind


class SupervisorEvent(Enum):
    """Discrete happenings reported alongside a command result."""

    MODE_CHANGED = "mode_changed"
    DOOR_OPENED = "door_opened"
    DOOR_CLOSED = "door_closed"
    EMERGENCY_STOP_ACTIVATED = "emergency_stop_activated"
    EMERGENCY_STOP_RELEASED = "emergency_stop_released"
    TIMER_STARTED = "timer_started"
    TIMER_STOPPED = "timer_stopped"
    TIMER_RESET = "timer_reset"
    TIMER_COMPLETED = "timer_completed"
    ALARM_MUTED = "alarm_muted"
    CONNECTION_LOST = "connection_lost"
    CONNECTION_RESTORED = "connection_restored"


@dataclass(frozen=True)
class Command:
    """Base class for supervisor commands."""

    durable: ClassVar[bool] = False

    @property
    def name(self) -> str:
        return type(self).__name__


# ----------------------------------------------------------------
# Mode and devices
# ----------------------------------------------------------------


@dataclass(frozen=True)
class SetMode(Command):
    durable: ClassVar[bool] = True

    mode: OperatingMode


@dataclass(frozen=True)
class ToggleHeater(Command):
    durable: ClassVar[bool] = True

    index: int


@dataclass(frozen=True)
class ToggleAirDryer(Command):
    durable: ClassVar[bool] = True


@dataclass(frozen=True)
class ToggleFan(Command):
    durable: ClassVar[bool] = True

    index: int


# ----------------------------------------------------------------
# Interlocks
# ----------------------------------------------------------------


@dataclass(frozen=True)
class SetDoorOpen(Command):
    open: bool


@dataclass(frozen=True)
class SetEmergencyStop(Command):
    durable: ClassVar[bool] = True

    active: bool


# ----------------------------------------------------------------
# Setpoints
# ----------------------------------------------------------------


@dataclass(frozen=True)
class SetTargetTemperature(Command):
    durable: ClassVar[bool] = True

    value: float


@dataclass(frozen=True)
class SetTargetHumidity(Command):
    durable: ClassVar[bool] = True

    value: float


@dataclass(frozen=True)
class SetDryingDuration(Command):
    durable: ClassVar[bool] = True

    minutes: float


# ----------------------------------------------------------------
# Countdown
# ----------------------------------------------------------------


@dataclass(frozen=True)
class TimerTick(Command):
    pass


@dataclass(frozen=True)
class ToggleTimerRun(Command):
    pass


@dataclass(frozen=True)
class ResetTimer(Command):
    pass


@dataclass(frozen=True)
class MuteAlarm(Command):
    muted: bool


# ----------------------------------------------------------------
# Sensor feed
# ----------------------------------------------------------------


@dataclass(frozen=True)
class SensorUpdate:
    """One value pushed by a sensor source."""

    sensor_id: int
    kind: SensorKind
    value: float


@dataclass(frozen=True)
class PushSensorReadings(Command):
    readings: tuple[SensorUpdate, ...] = ()
    connected: bool | None = None


@dataclass(frozen=True)
class SetConnectionStatus(Command):
    connected: bool


# ----------------------------------------------------------------
# Result
# ----------------------------------------------------------------


@dataclass(frozen=True)
class CommandResult:
    """Outcome of one command.

    Attributes:
        room_id: Room the command was applied to
        command: The command itself
        state: Independent copy of the room state after the command
        alerts: Alert list derived from that state
        events: Events raised while applying the command
        changed: Whether the state differs from before the command
    """

    room_id: str
    command: Command
    state: RoomState
    alerts: tuple[Alert, ...] = ()
    events: tuple[SupervisorEvent, ...] = field(default_factory=tuple)
    changed: bool = False

    def has_event(self, event: SupervisorEvent) -> bool:
        return event in self.events
