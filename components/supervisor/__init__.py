# components/supervisor/__init__.py
"""
Supervisory control for tobacco drying rooms.

- RoomSupervisor: per-room state machine (mode, interlocks, outputs)
- CountdownTimer: drying cycle countdown
- Commands: immutable inputs accepted by RoomSupervisor.handle()
- Alert derivation from sensors, interlocks and connection status
"""

from components.supervisor.alerts import alerts_for_state, derive_alerts
from components.supervisor.commands import (
    Command,
    CommandResult,
    MuteAlarm,
    PushSensorReadings,
    ResetTimer,
    SensorUpdate,
    SetConnectionStatus,
    SetDoorOpen,
    SetDryingDuration,
    SetEmergencyStop,
    SetMode,
    SetTargetHumidity,
    SetTargetTemperature,
    SupervisorEvent,
    TimerTick,
    ToggleAirDryer,
    ToggleFan,
    ToggleHeater,
    ToggleTimerRun,
)
from components.supervisor.countdown import CountdownTimer, format_hms
from components.supervisor.room_supervisor import RoomSupervisor

__all__ = [
    # Supervisor
    "RoomSupervisor",
    "CountdownTimer",
    "format_hms",
    # Alerts
    "derive_alerts",
    "alerts_for_state",
    # Commands
    "Command",
    "CommandResult",
    "SupervisorEvent",
    "SetMode",
    "ToggleHeater",
    "ToggleAirDryer",
    "ToggleFan",
    "SetDoorOpen",
    "SetEmergencyStop",
    "SetTargetTemperature",
    "SetTargetHumidity",
    "SetDryingDuration",
    "TimerTick",
    "ToggleTimerRun",
    "ResetTimer",
    "MuteAlarm",
    "SensorUpdate",
    "PushSensorReadings",
    "SetConnectionStatus",
]
