# components/state/room_state.py
"""
State model for a single drying room.

A RoomState is owned exclusively by one RoomSupervisor. It holds the
operating mode, the two safety interlock inputs (door, emergency stop),
device outputs, setpoints, the drying countdown, the latest sensor values
and the derived alert list.

Also defines the snapshot format persisted by SnapshotStore.
"""

import copy
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

HEATER_COUNT = 4
FAN_COUNT = 2

TEMPERATURE_RANGE_C = (20, 100)
HUMIDITY_RANGE_PCT = (10, 90)
DRYING_DURATION_RANGE_MINUTES = (60, 4320)

DEFAULT_TEMPERATURE_C = 60
DEFAULT_HUMIDITY_PCT = 45
DEFAULT_DRYING_DURATION_MINUTES = 1440

SNAPSHOT_VERSION = 1


class SnapshotError(ValueError):
    """Raised when a persisted snapshot cannot be turned back into a RoomState."""


class OperatingMode(Enum):
    """Room operating mode."""

    MANUAL = "manual"
    AUTOMATIC = "automatic"


class RoomStatus(Enum):
    """Presented room status. EMERGENCY_STOPPED wins over DOOR_OPEN."""

    NORMAL = "normal"
    DOOR_OPEN = "door_open"
    EMERGENCY_STOPPED = "emergency_stopped"


STATUS_MESSAGES = {
    RoomStatus.NORMAL: "Normal Operation",
    RoomStatus.DOOR_OPEN: "Door Open",
    RoomStatus.EMERGENCY_STOPPED: "Emergency Stop Activated",
}


class SensorKind(Enum):
    """Kind of environmental sensor."""

    TEMPERATURE = "temperature"
    HUMIDITY = "humidity"

    @property
    def unit(self) -> str:
        return "°C" if self is SensorKind.TEMPERATURE else "%"


class AlertSeverity(Enum):
    """Alert severity."""

    WARNING = "warning"
    ERROR = "error"


def clamp_int(value: float, bounds: tuple[int, int]) -> int:
    """Round ``value`` to an integer and clamp it into ``bounds``.

    Raises:
        ValueError: If value is NaN or infinite
    """
    if not math.isfinite(value):
        raise ValueError(f"Cannot clamp non-finite value {value}")
    low, high = bounds
    return max(low, min(high, int(round(value))))


# ----------------------------------------------------------------
# State components
# ----------------------------------------------------------------


@dataclass
class DeviceOutputs:
    """Device command outputs.

    Attributes:
        heaters: One flag per heater bank
        air_dryer: Air dryer (dehumidifier) output
        fans: One flag per circulation fan
    """

    heaters: list[bool] = field(default_factory=lambda: [False] * HEATER_COUNT)
    air_dryer: bool = False
    fans: list[bool] = field(default_factory=lambda: [False] * FAN_COUNT)

    def force_off(self) -> None:
        """De-energise every output."""
        self.heaters = [False] * len(self.heaters)
        self.air_dryer = False
        self.fans = [False] * len(self.fans)

    def any_on(self) -> bool:
        return any(self.heaters) or self.air_dryer or any(self.fans)


@dataclass
class Targets:
    """Operator setpoints. Independent of mode and never drive actuation."""

    temperature_c: int = DEFAULT_TEMPERATURE_C
    humidity_pct: int = DEFAULT_HUMIDITY_PCT
    drying_duration_minutes: int = DEFAULT_DRYING_DURATION_MINUTES

    @property
    def drying_duration_seconds(self) -> int:
        return self.drying_duration_minutes * 60


@dataclass
class TimerState:
    """Drying countdown state.

    Attributes:
        remaining_seconds: Seconds left in the current cycle
        running: Whether the countdown is ticking
        total_seconds: Cycle length at the last (re)start or reset
        alarm_active: Countdown reached zero and nobody reset it yet
        alarm_muted: Operator silenced the completion alarm
    """

    remaining_seconds: int = DEFAULT_DRYING_DURATION_MINUTES * 60
    running: bool = False
    total_seconds: int = DEFAULT_DRYING_DURATION_MINUTES * 60
    alarm_active: bool = False
    alarm_muted: bool = False


@dataclass
class SensorReading:
    """Latest value of one sensor and its acceptable band."""

    id: int
    kind: SensorKind
    value: float
    min_threshold: float
    max_threshold: float
    name: str = ""

    @property
    def label(self) -> str:
        return self.name or f"{self.kind.value.capitalize()} {self.id}"

    @property
    def unit(self) -> str:
        return self.kind.unit

    def in_range(self) -> bool:
        return self.min_threshold <= self.value <= self.max_threshold

    @classmethod
    def from_config(cls, data: dict[str, Any]) -> "SensorReading":
        """Build a reading from a rooms.yml sensor entry.

        Raises:
            ValueError: If the entry is missing fields or has an unknown kind
        """
        try:
            return cls(
                id=int(data["id"]),
                kind=SensorKind(str(data["kind"]).lower()),
                value=float(data.get("value", 0.0)),
                min_threshold=float(data["min_threshold"]),
                max_threshold=float(data["max_threshold"]),
                name=str(data.get("name", "")),
            )
        except (KeyError, TypeError) as e:
            raise ValueError(f"Invalid sensor configuration {data!r}: {e}") from e


@dataclass(frozen=True)
class Alert:
    """Derived advisory record with a stable id."""

    id: str
    severity: AlertSeverity
    message: str
    title: str = ""

    def to_dict(self) -> dict[str, str]:
        return {
            "id": self.id,
            "severity": self.severity.value,
            "title": self.title,
            "message": self.message,
        }


# ----------------------------------------------------------------
# Room state
# ----------------------------------------------------------------


@dataclass
class RoomState:
    """Complete state of one drying room."""

    mode: OperatingMode = OperatingMode.MANUAL
    door_open: bool = False
    emergency_stop: bool = False
    devices: DeviceOutputs = field(default_factory=DeviceOutputs)
    targets: Targets = field(default_factory=Targets)
    timer: TimerState = field(default_factory=TimerState)
    sensors: list[SensorReading] = field(default_factory=list)
    alerts: list[Alert] = field(default_factory=list)
    connected: bool = True

    @property
    def interlock_active(self) -> bool:
        return self.door_open or self.emergency_stop

    @property
    def status(self) -> RoomStatus:
        if self.emergency_stop:
            return RoomStatus.EMERGENCY_STOPPED
        if self.door_open:
            return RoomStatus.DOOR_OPEN
        return RoomStatus.NORMAL

    @property
    def status_message(self) -> str:
        return STATUS_MESSAGES[self.status]

    def copy(self) -> "RoomState":
        return copy.deepcopy(self)

    def find_sensor(self, sensor_id: int, kind: SensorKind) -> SensorReading | None:
        for sensor in self.sensors:
            if sensor.id == sensor_id and sensor.kind == kind:
                return sensor
        return None

    # ----------------------------------------------------------------
    # Snapshot serialisation
    # ----------------------------------------------------------------

    def to_snapshot(self) -> dict[str, Any]:
        """Serialise the durable part of the state.

        Sensors, alerts, connection status and the running flag are runtime
        data and are not persisted.
        """
        return {
            "version": SNAPSHOT_VERSION,
            "mode": self.mode.value,
            "doorOpen": self.door_open,
            "emergencyStop": self.emergency_stop,
            "devices": {
                "heaters": list(self.devices.heaters),
                "airDryer": self.devices.air_dryer,
                "fans": list(self.devices.fans),
            },
            "targets": {
                "temperatureC": self.targets.temperature_c,
                "humidityPct": self.targets.humidity_pct,
                "dryingDurationMinutes": self.targets.drying_duration_minutes,
            },
            "timer": {
                "remainingSeconds": self.timer.remaining_seconds,
                "totalSeconds": self.timer.total_seconds,
            },
        }

    @classmethod
    def from_snapshot(
        cls, data: Any, sensors: list[SensorReading] | None = None
    ) -> "RoomState":
        """Rebuild a RoomState from a snapshot dict.

        Setpoints are clamped into range. Safety invariants are *not*
        re-applied here; RoomSupervisor.restore() does that.

        Args:
            data: Snapshot produced by to_snapshot()
            sensors: Sensor layout to attach (snapshots carry no sensors)

        Raises:
            SnapshotError: If the snapshot is malformed
        """
        if not isinstance(data, dict):
            raise SnapshotError(f"Snapshot must be a mapping, got {type(data).__name__}")

        try:
            devices = data["devices"]
            targets = data["targets"]
            timer = data["timer"]

            heaters = [bool(v) for v in devices["heaters"]]
            fans = [bool(v) for v in devices["fans"]]
            if len(heaters) != HEATER_COUNT or len(fans) != FAN_COUNT:
                raise SnapshotError(
                    f"Snapshot device layout {len(heaters)} heaters / {len(fans)} fans "
                    f"does not match {HEATER_COUNT}/{FAN_COUNT}"
                )

            duration = clamp_int(
                float(targets["dryingDurationMinutes"]), DRYING_DURATION_RANGE_MINUTES
            )
            total_seconds = int(timer["totalSeconds"])
            if total_seconds <= 0:
                total_seconds = duration * 60
            remaining_seconds = max(0, min(int(timer["remainingSeconds"]), total_seconds))

            return cls(
                mode=OperatingMode(data["mode"]),
                door_open=bool(data["doorOpen"]),
                emergency_stop=bool(data["emergencyStop"]),
                devices=DeviceOutputs(
                    heaters=heaters,
                    air_dryer=bool(devices["airDryer"]),
                    fans=fans,
                ),
                targets=Targets(
                    temperature_c=clamp_int(
                        float(targets["temperatureC"]), TEMPERATURE_RANGE_C
                    ),
                    humidity_pct=clamp_int(
                        float(targets["humidityPct"]), HUMIDITY_RANGE_PCT
                    ),
                    drying_duration_minutes=duration,
                ),
                timer=TimerState(
                    remaining_seconds=remaining_seconds,
                    running=False,
                    total_seconds=total_seconds,
                ),
                sensors=copy.deepcopy(sensors) if sensors else [],
            )
        except SnapshotError:
            raise
        except (KeyError, TypeError, ValueError, OverflowError) as e:
            raise SnapshotError(f"Malformed snapshot: {e}") from e
