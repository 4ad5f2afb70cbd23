# components/supervisor/alerts.py
"""
Alert derivation.

Alerts are a pure function of the sensor readings, the two interlocks and
the connection status. The full list is rebuilt after every command; ids
are stable so consumers can diff consecutive lists to spot new alerts.
"""

from collections.abc import Iterable

from components.state.room_state import (
    Alert,
    AlertSeverity,
    RoomState,
    SensorKind,
    SensorReading,
)

DOOR_OPEN_ALERT_ID = "door-open"
EMERGENCY_STOP_ALERT_ID = "emergency-stop"
CONNECTION_ERROR_ALERT_ID = "connection-error"


def derive_alerts(
    sensors: Iterable[SensorReading],
    door_open: bool,
    emergency_stop: bool,
    connected: bool,
    room_name: str = "",
) -> list[Alert]:
    """Build the complete alert list for a room.

    Order: door, emergency stop, connection, temperature sensors,
    humidity sensors (each in sensor order).
    """
    prefix = f"{room_name}: " if room_name else ""
    alerts: list[Alert] = []

    if door_open:
        alerts.append(
            Alert(
                id=DOOR_OPEN_ALERT_ID,
                severity=AlertSeverity.WARNING,
                title="Door Open",
                message=f"{prefix}Door is open. All devices stopped.",
            )
        )

    if emergency_stop:
        alerts.append(
            Alert(
                id=EMERGENCY_STOP_ALERT_ID,
                severity=AlertSeverity.ERROR,
                title="Emergency Stop Activated",
                message=f"{prefix}Emergency stop activated. All systems shut down.",
            )
        )

    if not connected:
        alerts.append(
            Alert(
                id=CONNECTION_ERROR_ALERT_ID,
                severity=AlertSeverity.ERROR,
                title="Connection Error",
                message=f"{prefix}Communication error. Check network connection.",
            )
        )

    sensors = list(sensors)
    for kind in (SensorKind.TEMPERATURE, SensorKind.HUMIDITY):
        for sensor in sensors:
            if sensor.kind == kind:
                alert = sensor_alert(sensor, prefix)
                if alert is not None:
                    alerts.append(alert)

    return alerts


def sensor_alert(sensor: SensorReading, prefix: str = "") -> Alert | None:
    """Threshold alert for one sensor, or None when the value is in range."""
    kind = sensor.kind.value
    reading = f"{sensor.value:.1f}{sensor.unit}"

    if sensor.value < sensor.min_threshold:
        return Alert(
            id=f"{kind}-{sensor.id}-low",
            severity=AlertSeverity.WARNING,
            title=f"{kind.capitalize()} Low",
            message=f"{prefix}{sensor.label} {kind} too low: {reading}",
        )
    if sensor.value > sensor.max_threshold:
        return Alert(
            id=f"{kind}-{sensor.id}-high",
            severity=AlertSeverity.ERROR,
            title=f"{kind.capitalize()} High",
            message=f"{prefix}{sensor.label} {kind} too high: {reading}",
        )
    return None


def alerts_for_state(state: RoomState, room_name: str = "") -> list[Alert]:
    return derive_alerts(
        state.sensors,
        door_open=state.door_open,
        emergency_stop=state.emergency_stop,
        connected=state.connected,
        room_name=room_name,
    )
