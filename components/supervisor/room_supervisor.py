# components/supervisor/room_supervisor.py
"""
Supervisory state machine for one drying room.

The room has two orthogonal dimensions: operating mode (MANUAL, AUTOMATIC)
and interlock (normal, door open, emergency stopped). Every command is a
synchronous, total function on the room state: inputs are clamped or
ignored, never rejected.

Safety rules, applied after every command in this order:
1. Door open or emergency stop: all outputs off, countdown stopped.
2. Emergency stop: mode forced back to MANUAL.
3. AUTOMATIC with interlocks clear: every heater and the air dryer on.
   Fans are left to the operator in both modes.

The supervisor is not reentrant. Callers serialise access per room
(see RoomRegistry).
"""

import copy
import math
from collections.abc import Callable
from datetime import datetime
from typing import Any

from components.events.logging_system import get_logger
from components.state.room_state import (
    DRYING_DURATION_RANGE_MINUTES,
    HUMIDITY_RANGE_PCT,
    TEMPERATURE_RANGE_C,
    Alert,
    OperatingMode,
    RoomState,
    RoomStatus,
    SensorReading,
    clamp_int,
)
from components.supervisor.alerts import alerts_for_state
from components.supervisor.commands import (
    Command,
    CommandResult,
    MuteAlarm,
    PushSensorReadings,
    ResetTimer,
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
from components.supervisor.countdown import CountdownTimer


class RoomSupervisor:
    """
    Owns one room's RoomState and applies commands to it.

    Example:
        >>> supervisor = RoomSupervisor("room1", "Drying Room 1")
        >>> supervisor.handle(SetDryingDuration(120)).state.timer.total_seconds
        7200
        >>> supervisor.handle(SetMode(OperatingMode.AUTOMATIC)).state.timer.running
        True
    """

    def __init__(
        self,
        room_id: str,
        room_name: str = "",
        sensors: list[SensorReading] | None = None,
        state: RoomState | None = None,
    ):
        """
        Initialise supervisor.

        Args:
            room_id: Unique room identifier
            room_name: Human-readable name used in alert messages
            sensors: Sensor layout (ignored when ``state`` carries sensors)
            state: Initial state (defaults to a fresh RoomState)

        Raises:
            ValueError: If room_id is empty
        """
        if not room_id or not isinstance(room_id, str):
            raise ValueError("room_id must be a non-empty string")

        self.room_id = room_id
        self.room_name = room_name or room_id
        self.logger = get_logger(self.__class__.__name__, room=room_id)

        self._state = state.copy() if state is not None else RoomState()
        if sensors and not self._state.sensors:
            self._state.sensors = copy.deepcopy(sensors)
        self._timer = CountdownTimer(self._state.timer)

        self._handlers: dict[type[Command], Callable[[Any], list[SupervisorEvent]]] = {
            SetMode: self._on_set_mode,
            ToggleHeater: self._on_toggle_heater,
            ToggleAirDryer: self._on_toggle_air_dryer,
            ToggleFan: self._on_toggle_fan,
            SetDoorOpen: self._on_set_door_open,
            SetEmergencyStop: self._on_set_emergency_stop,
            SetTargetTemperature: self._on_set_target_temperature,
            SetTargetHumidity: self._on_set_target_humidity,
            SetDryingDuration: self._on_set_drying_duration,
            TimerTick: self._on_timer_tick,
            ToggleTimerRun: self._on_toggle_timer_run,
            ResetTimer: self._on_reset_timer,
            MuteAlarm: self._on_mute_alarm,
            PushSensorReadings: self._on_push_sensor_readings,
            SetConnectionStatus: self._on_set_connection_status,
        }

        self._enforce_invariants()
        self._state.alerts = alerts_for_state(self._state, self.room_name)

        self.logger.info(
            f"RoomSupervisor '{room_id}' initialised "
            f"(mode: {self._state.mode.value}, sensors: {len(self._state.sensors)})"
        )

    # ----------------------------------------------------------------
    # State access
    # ----------------------------------------------------------------

    @property
    def state(self) -> RoomState:
        """Live state. Treat as read-only; mutate through handle()."""
        return self._state

    @property
    def alerts(self) -> list[Alert]:
        return list(self._state.alerts)

    @property
    def status(self) -> RoomStatus:
        return self._state.status

    @property
    def timer(self) -> CountdownTimer:
        return self._timer

    def snapshot(self) -> RoomState:
        return self._state.copy()

    # ----------------------------------------------------------------
    # Command dispatch
    # ----------------------------------------------------------------

    def handle(self, command: Command) -> CommandResult:
        """
        Apply one command.

        Args:
            command: Any supervisor command

        Returns:
            CommandResult with an independent copy of the new state

        Raises:
            TypeError: If command is not a known command type
        """
        handler = self._handlers.get(type(command))
        if handler is None:
            raise TypeError(f"Unsupported command {command!r}")

        before = self._state.copy()
        events = handler(command)
        events += self._enforce_invariants()
        self._state.alerts = alerts_for_state(self._state, self.room_name)

        changed = self._state != before
        if changed and not isinstance(command, (TimerTick, PushSensorReadings)):
            self.logger.debug(f"{command.name} applied to '{self.room_id}'")

        return CommandResult(
            room_id=self.room_id,
            command=command,
            state=self._state.copy(),
            alerts=tuple(self._state.alerts),
            events=tuple(events),
            changed=changed,
        )

    def restore(self, state: RoomState) -> CommandResult:
        """
        Replace the room state (e.g. from a persisted snapshot).

        The current sensor layout and connection status are kept when the
        restored state has none. Invariants are re-applied, and a room
        restored in AUTOMATIC resumes its countdown if interlocks are clear.
        """
        before = self._state.copy()
        restored = state.copy()
        if not restored.sensors:
            restored.sensors = before.sensors
            restored.connected = before.connected

        self._state = restored
        self._timer.bind(self._state.timer)

        events = self._enforce_invariants()
        if self._automatic_ready() and self._timer.start():
            events.append(SupervisorEvent.TIMER_STARTED)
        self._state.alerts = alerts_for_state(self._state, self.room_name)

        self.logger.info(
            f"Room '{self.room_id}' restored "
            f"(mode: {self._state.mode.value}, status: {self._state.status.value})"
        )

        return CommandResult(
            room_id=self.room_id,
            command=SetMode(self._state.mode),
            state=self._state.copy(),
            alerts=tuple(self._state.alerts),
            events=tuple(events),
            changed=self._state != before,
        )

    # ----------------------------------------------------------------
    # Convenience methods for programmatic control
    # ----------------------------------------------------------------

    def set_mode(self, mode: OperatingMode) -> CommandResult:
        return self.handle(SetMode(mode))

    def toggle_heater(self, index: int) -> CommandResult:
        return self.handle(ToggleHeater(index))

    def toggle_air_dryer(self) -> CommandResult:
        return self.handle(ToggleAirDryer())

    def toggle_fan(self, index: int) -> CommandResult:
        return self.handle(ToggleFan(index))

    def set_door_open(self, is_open: bool) -> CommandResult:
        return self.handle(SetDoorOpen(is_open))

    def set_emergency_stop(self, active: bool) -> CommandResult:
        return self.handle(SetEmergencyStop(active))

    def set_target_temperature(self, value: float) -> CommandResult:
        return self.handle(SetTargetTemperature(value))

    def set_target_humidity(self, value: float) -> CommandResult:
        return self.handle(SetTargetHumidity(value))

    def set_drying_duration(self, minutes: float) -> CommandResult:
        return self.handle(SetDryingDuration(minutes))

    def tick(self) -> CommandResult:
        return self.handle(TimerTick())

    def toggle_timer(self) -> CommandResult:
        return self.handle(ToggleTimerRun())

    def reset_timer(self) -> CommandResult:
        return self.handle(ResetTimer())

    def mute_alarm(self, muted: bool = True) -> CommandResult:
        return self.handle(MuteAlarm(muted))

    # ----------------------------------------------------------------
    # Transition handlers
    # ----------------------------------------------------------------

    def _on_set_mode(self, command: SetMode) -> list[SupervisorEvent]:
        state = self._state
        if command.mode == state.mode:
            return []

        if command.mode == OperatingMode.AUTOMATIC:
            if state.emergency_stop:
                self.logger.warning(
                    f"Room '{self.room_id}': AUTOMATIC ignored while emergency stop is engaged"
                )
                return []

            state.mode = OperatingMode.AUTOMATIC
            events = [SupervisorEvent.MODE_CHANGED]
            if self._timer.sync(state.targets.drying_duration_seconds):
                events.append(SupervisorEvent.TIMER_RESET)
            if self._automatic_ready():
                self._apply_automatic_outputs()
                if self._timer.start():
                    events.append(SupervisorEvent.TIMER_STARTED)
            self.logger.info(f"Room '{self.room_id}': Mode = AUTOMATIC")
            return events

        state.mode = OperatingMode.MANUAL
        events = [SupervisorEvent.MODE_CHANGED]
        if self._timer.stop():
            events.append(SupervisorEvent.TIMER_STOPPED)
        self.logger.info(f"Room '{self.room_id}': Mode = MANUAL")
        return events

    def _on_toggle_heater(self, command: ToggleHeater) -> list[SupervisorEvent]:
        heaters = self._state.devices.heaters
        if not self._manual_output_allowed("heater"):
            return []
        if not 0 <= command.index < len(heaters):
            self.logger.debug(f"Room '{self.room_id}': no heater {command.index}")
            return []
        heaters[command.index] = not heaters[command.index]
        return []

    def _on_toggle_air_dryer(self, command: ToggleAirDryer) -> list[SupervisorEvent]:
        if not self._manual_output_allowed("air dryer"):
            return []
        self._state.devices.air_dryer = not self._state.devices.air_dryer
        return []

    def _on_toggle_fan(self, command: ToggleFan) -> list[SupervisorEvent]:
        fans = self._state.devices.fans
        if self._state.interlock_active:
            self.logger.debug(f"Room '{self.room_id}': fan toggle ignored (interlock)")
            return []
        if not 0 <= command.index < len(fans):
            self.logger.debug(f"Room '{self.room_id}': no fan {command.index}")
            return []
        fans[command.index] = not fans[command.index]
        return []

    def _on_set_door_open(self, command: SetDoorOpen) -> list[SupervisorEvent]:
        state = self._state
        if command.open == state.door_open:
            return []

        state.door_open = command.open
        if command.open:
            self.logger.warning(f"Room '{self.room_id}': Door opened - outputs forced off")
            return [SupervisorEvent.DOOR_OPENED]

        events = [SupervisorEvent.DOOR_CLOSED]
        self.logger.info(f"Room '{self.room_id}': Door closed")
        if self._automatic_ready():
            self._apply_automatic_outputs()
            if self._timer.start():
                events.append(SupervisorEvent.TIMER_STARTED)
        return events

    def _on_set_emergency_stop(self, command: SetEmergencyStop) -> list[SupervisorEvent]:
        state = self._state
        if command.active == state.emergency_stop:
            return []

        state.emergency_stop = command.active
        if command.active:
            events = [SupervisorEvent.EMERGENCY_STOP_ACTIVATED]
            if state.mode != OperatingMode.MANUAL:
                events.append(SupervisorEvent.MODE_CHANGED)
            self.logger.critical(
                f"Room '{self.room_id}': EMERGENCY STOP - all systems shut down"
            )
            return events

        # No automatic resume: the operator re-selects the mode.
        self.logger.warning(f"Room '{self.room_id}': Emergency stop released")
        return [SupervisorEvent.EMERGENCY_STOP_RELEASED]

    def _on_set_target_temperature(
        self, command: SetTargetTemperature
    ) -> list[SupervisorEvent]:
        value = self._clamped(command.value, TEMPERATURE_RANGE_C, "temperature")
        if value is not None:
            self._state.targets.temperature_c = value
            self.logger.info(f"Room '{self.room_id}': Temperature setpoint = {value}°C")
        return []

    def _on_set_target_humidity(self, command: SetTargetHumidity) -> list[SupervisorEvent]:
        value = self._clamped(command.value, HUMIDITY_RANGE_PCT, "humidity")
        if value is not None:
            self._state.targets.humidity_pct = value
            self.logger.info(f"Room '{self.room_id}': Humidity setpoint = {value}%")
        return []

    def _on_set_drying_duration(self, command: SetDryingDuration) -> list[SupervisorEvent]:
        minutes = self._clamped(
            command.minutes, DRYING_DURATION_RANGE_MINUTES, "drying duration"
        )
        if minutes is None:
            return []

        self._state.targets.drying_duration_minutes = minutes
        self.logger.info(f"Room '{self.room_id}': Drying duration = {minutes} min")

        # A running countdown keeps its cycle until the next reset.
        if not self._state.timer.running:
            self._timer.reset(minutes * 60)
            return [SupervisorEvent.TIMER_RESET]
        return []

    def _on_timer_tick(self, command: TimerTick) -> list[SupervisorEvent]:
        if self._timer.tick():
            self.logger.info(f"Room '{self.room_id}': Drying cycle complete")
            return [SupervisorEvent.TIMER_COMPLETED]
        return []

    def _on_toggle_timer_run(self, command: ToggleTimerRun) -> list[SupervisorEvent]:
        if not self._manual_timer_allowed():
            return []
        was_finished = self._state.timer.remaining_seconds <= 0
        running = self._timer.toggle(self._state.targets.drying_duration_seconds)
        events = [SupervisorEvent.TIMER_RESET] if was_finished else []
        events.append(
            SupervisorEvent.TIMER_STARTED if running else SupervisorEvent.TIMER_STOPPED
        )
        return events

    def _on_reset_timer(self, command: ResetTimer) -> list[SupervisorEvent]:
        if not self._manual_timer_allowed():
            return []
        self._timer.reset(self._state.targets.drying_duration_seconds)
        return [SupervisorEvent.TIMER_RESET]

    def _on_mute_alarm(self, command: MuteAlarm) -> list[SupervisorEvent]:
        timer = self._state.timer
        if command.muted == timer.alarm_muted:
            return []
        timer.alarm_muted = command.muted
        return [SupervisorEvent.ALARM_MUTED] if command.muted else []

    def _on_push_sensor_readings(
        self, command: PushSensorReadings
    ) -> list[SupervisorEvent]:
        for update in command.readings:
            sensor = self._state.find_sensor(update.sensor_id, update.kind)
            if sensor is None:
                self.logger.debug(
                    f"Room '{self.room_id}': reading for unknown sensor "
                    f"{update.kind.value}-{update.sensor_id} dropped"
                )
                continue
            if math.isfinite(update.value):
                sensor.value = float(update.value)

        if command.connected is None:
            return []
        return self._set_connected(command.connected)

    def _on_set_connection_status(
        self, command: SetConnectionStatus
    ) -> list[SupervisorEvent]:
        return self._set_connected(command.connected)

    # ----------------------------------------------------------------
    # Rules
    # ----------------------------------------------------------------

    def _enforce_invariants(self) -> list[SupervisorEvent]:
        """Apply the safety rules. Idempotent."""
        state = self._state
        events: list[SupervisorEvent] = []

        if state.interlock_active:
            state.devices.force_off()
            if self._timer.stop():
                events.append(SupervisorEvent.TIMER_STOPPED)

        if state.emergency_stop and state.mode != OperatingMode.MANUAL:
            state.mode = OperatingMode.MANUAL

        if self._automatic_ready():
            self._apply_automatic_outputs()

        return events

    def _automatic_ready(self) -> bool:
        return (
            self._state.mode == OperatingMode.AUTOMATIC
            and not self._state.interlock_active
        )

    def _apply_automatic_outputs(self) -> None:
        devices = self._state.devices
        devices.heaters = [True] * len(devices.heaters)
        devices.air_dryer = True

    def _manual_output_allowed(self, device: str) -> bool:
        """Heater and air dryer toggles need clear interlocks and MANUAL mode."""
        if self._state.interlock_active:
            self.logger.debug(f"Room '{self.room_id}': {device} toggle ignored (interlock)")
            return False
        if self._state.mode == OperatingMode.AUTOMATIC:
            self.logger.debug(
                f"Room '{self.room_id}': {device} toggle ignored (AUTOMATIC controls it)"
            )
            return False
        return True

    def _manual_timer_allowed(self) -> bool:
        if self._state.interlock_active or self._state.mode != OperatingMode.MANUAL:
            self.logger.debug(
                f"Room '{self.room_id}': timer command ignored "
                f"(mode: {self._state.mode.value}, status: {self._state.status.value})"
            )
            return False
        return True

    def _clamped(self, value: float, bounds: tuple[int, int], what: str) -> int | None:
        try:
            clamped = clamp_int(float(value), bounds)
        except (TypeError, ValueError):
            self.logger.warning(f"Room '{self.room_id}': ignoring {what} value {value!r}")
            return None
        if clamped != value:
            self.logger.debug(
                f"Room '{self.room_id}': {what} {value} clamped to {clamped}"
            )
        return clamped

    def _set_connected(self, connected: bool) -> list[SupervisorEvent]:
        if connected == self._state.connected:
            return []
        self._state.connected = connected
        if connected:
            self.logger.info(f"Room '{self.room_id}': Sensor connection restored")
            return [SupervisorEvent.CONNECTION_RESTORED]
        self.logger.error(f"Room '{self.room_id}': Sensor connection lost")
        return [SupervisorEvent.CONNECTION_LOST]

    # ----------------------------------------------------------------
    # Status
    # ----------------------------------------------------------------

    def estimated_completion(self, now: datetime | None = None) -> datetime | None:
        """Estimated end of the drying cycle, or None if the countdown is stopped."""
        if not self._state.timer.running:
            return None
        return self._timer.estimated_completion(now)

    def get_status(self) -> dict[str, Any]:
        """Get a JSON-friendly status summary."""
        state = self._state
        completion = self.estimated_completion()
        return {
            "room_id": self.room_id,
            "room_name": self.room_name,
            "mode": state.mode.value,
            "status": state.status.value,
            "status_message": state.status_message,
            "door_open": state.door_open,
            "emergency_stop": state.emergency_stop,
            "connected": state.connected,
            "devices": {
                "heaters": list(state.devices.heaters),
                "air_dryer": state.devices.air_dryer,
                "fans": list(state.devices.fans),
            },
            "targets": {
                "temperature_c": state.targets.temperature_c,
                "humidity_pct": state.targets.humidity_pct,
                "drying_duration_minutes": state.targets.drying_duration_minutes,
            },
            "timer": {
                "remaining": self._timer.format_remaining(),
                "remaining_seconds": state.timer.remaining_seconds,
                "total_seconds": state.timer.total_seconds,
                "running": state.timer.running,
                "progress": self._timer.progress(),
                "alarm_active": state.timer.alarm_active,
                "alarm_muted": state.timer.alarm_muted,
                "estimated_completion": completion.isoformat() if completion else None,
            },
            "alerts": [alert.to_dict() for alert in state.alerts],
        }

    def __repr__(self) -> str:
        return (
            f"<{self.__class__.__name__} "
            f"'{self.room_id}' "
            f"(mode: {self._state.mode.value}, "
            f"status: {self._state.status.value})>"
        )
