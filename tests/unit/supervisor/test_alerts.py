# tests/unit/supervisor/test_alerts.py
"""Tests for alert derivation.

Alerts are a pure function of sensors, interlocks and connection status,
so these tests need no supervisor.
"""

from components.state.room_state import (
    AlertSeverity,
    RoomState,
    SensorKind,
    SensorReading,
)
from components.supervisor.alerts import (
    CONNECTION_ERROR_ALERT_ID,
    DOOR_OPEN_ALERT_ID,
    EMERGENCY_STOP_ALERT_ID,
    alerts_for_state,
    derive_alerts,
    sensor_alert,
)


def temperature(sensor_id, value, name=""):
    return SensorReading(sensor_id, SensorKind.TEMPERATURE, value, 60, 70, name)


def humidity(sensor_id, value, name=""):
    return SensorReading(sensor_id, SensorKind.HUMIDITY, value, 40, 60, name)


# ================================================================
# SENSOR ALERT TESTS
# ================================================================
class TestSensorAlert:
    """Test threshold alerts for a single sensor."""

    def test_in_range_has_no_alert(self):
        assert sensor_alert(temperature(1, 65.0)) is None

    def test_thresholds_are_inclusive(self):
        """Test values exactly on a threshold are in range.

        WHY: min <= value <= max is the acceptable band.
        """
        assert sensor_alert(temperature(1, 60.0)) is None
        assert sensor_alert(temperature(1, 70.0)) is None

    def test_low_is_warning(self):
        alert = sensor_alert(temperature(2, 59.9, "Sensor 2"))

        assert alert.id == "temperature-2-low"
        assert alert.severity == AlertSeverity.WARNING
        assert alert.title == "Temperature Low"
        assert alert.message == "Sensor 2 temperature too low: 59.9°C"

    def test_high_is_error(self):
        alert = sensor_alert(humidity(1, 61.25), "Room A: ")

        assert alert.id == "humidity-1-high"
        assert alert.severity == AlertSeverity.ERROR
        assert alert.message == "Room A: Humidity 1 humidity too high: 61.2%"


# ================================================================
# ROOM ALERT TESTS
# ================================================================
class TestDeriveAlerts:
    """Test the full alert list for a room."""

    def test_no_alerts(self):
        alerts = derive_alerts([temperature(1, 65.0)], False, False, True)
        assert alerts == []

    def test_interlock_and_connection_alerts(self):
        alerts = derive_alerts([], True, True, False, room_name="Drying Room 2")

        assert [a.id for a in alerts] == [
            DOOR_OPEN_ALERT_ID,
            EMERGENCY_STOP_ALERT_ID,
            CONNECTION_ERROR_ALERT_ID,
        ]
        assert [a.severity for a in alerts] == [
            AlertSeverity.WARNING,
            AlertSeverity.ERROR,
            AlertSeverity.ERROR,
        ]
        assert alerts[1].message == (
            "Drying Room 2: Emergency stop activated. All systems shut down."
        )
        assert alerts[2].message == (
            "Drying Room 2: Communication error. Check network connection."
        )

    def test_temperature_before_humidity(self):
        """Test temperature alerts come before humidity alerts.

        WHY: Alert ids and order must be stable between derivations so
        consumers can diff them.
        """
        sensors = [humidity(1, 10.0), temperature(2, 90.0), temperature(1, 10.0)]

        alerts = derive_alerts(sensors, False, False, True)

        assert [a.id for a in alerts] == [
            "temperature-2-high",
            "temperature-1-low",
            "humidity-1-low",
        ]

    def test_derivation_is_deterministic(self):
        sensors = [temperature(1, 10.0), humidity(2, 90.0)]

        first = derive_alerts(sensors, True, False, False)
        second = derive_alerts(sensors, True, False, False)

        assert first == second

    def test_alerts_for_state(self):
        state = RoomState(door_open=True, sensors=[temperature(1, 75.0)])

        alerts = alerts_for_state(state, "Drying Room 1")

        assert [a.id for a in alerts] == ["door-open", "temperature-1-high"]
        assert alerts[0].to_dict() == {
            "id": "door-open",
            "severity": "warning",
            "title": "Door Open",
            "message": "Drying Room 1: Door is open. All devices stopped.",
        }
