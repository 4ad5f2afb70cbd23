#!/usr/bin/env python3
"""
Example: Drying Room Supervisor Walkthrough

Drives one drying room through a typical shift without any background
loops, printing the state after each step.

Workshop Flow:
1. Set a 2-hour drying cycle and switch to AUTOMATIC
2. Open the door (interlock: everything off) and close it again
3. Push out-of-range sensor readings and watch the alerts
4. Engage the emergency stop (forces MANUAL)
5. Back up the room, change it, and restore the backup
"""

import asyncio
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from components.notifications.notification_center import NotificationCenter
from components.state.room_registry import RoomRegistry
from components.state.room_state import OperatingMode, SensorKind, SensorReading
from components.state.snapshot_store import InMemoryBackend, SnapshotStore
from components.supervisor.commands import (
    CommandResult,
    PushSensorReadings,
    SensorUpdate,
    SetDoorOpen,
    SetDryingDuration,
    SetEmergencyStop,
    SetMode,
    SetTargetTemperature,
    TimerTick,
)


def show(title: str, result: CommandResult) -> None:
    state = result.state
    heaters = "".join("█" if on else "·" for on in state.devices.heaters)
    fans = "".join("█" if on else "·" for on in state.devices.fans)
    print(f"--- {title}")
    print(
        f"    mode={state.mode.value:<9} status={state.status_message:<25} "
        f"heaters=[{heaters}] dryer={'on' if state.devices.air_dryer else 'off'} "
        f"fans=[{fans}]"
    )
    print(
        f"    timer={state.timer.remaining_seconds}s/{state.timer.total_seconds}s "
        f"running={state.timer.running}"
    )
    for alert in result.alerts:
        print(f"    [{alert.severity.value.upper():7}] {alert.message}")
    if result.events:
        print(f"    events: {', '.join(e.value for e in result.events)}")
    print()


async def main():
    """Drying room demonstration."""

    print("=" * 70)
    print("Drying Room Supervisor Demonstration")
    print("=" * 70)
    print()

    sensors = [
        SensorReading(i, SensorKind.TEMPERATURE, 65.0, 60, 70, f"Sensor {i}")
        for i in range(1, 5)
    ] + [
        SensorReading(i, SensorKind.HUMIDITY, 50.0, 40, 60, f"Humidity {i}")
        for i in range(1, 3)
    ]

    store = SnapshotStore(InMemoryBackend())
    notifications = NotificationCenter(store)
    registry = RoomRegistry(snapshot_store=store, notification_center=notifications)
    await registry.register_room("room1", "Drying Room 1", sensors)

    # ================================================================
    # 1. Automatic drying
    # ================================================================
    show("120 minute cycle", await registry.dispatch("room1", SetDryingDuration(120)))
    show("Target 150°C (clamped)", await registry.dispatch("room1", SetTargetTemperature(150)))
    show("AUTOMATIC", await registry.dispatch("room1", SetMode(OperatingMode.AUTOMATIC)))
    for _ in range(5):
        result = await registry.dispatch("room1", TimerTick())
    show("After 5 ticks", result)

    # ================================================================
    # 2. Door interlock
    # ================================================================
    show("Door opened", await registry.dispatch("room1", SetDoorOpen(True)))
    show("Door closed", await registry.dispatch("room1", SetDoorOpen(False)))

    # ================================================================
    # 3. Sensor alerts
    # ================================================================
    readings = PushSensorReadings(
        readings=(
            SensorUpdate(1, SensorKind.TEMPERATURE, 55.0),
            SensorUpdate(2, SensorKind.HUMIDITY, 65.0),
        )
    )
    show("Out-of-range readings", await registry.dispatch("room1", readings))

    # ================================================================
    # 4. Emergency stop
    # ================================================================
    await registry.backup_room("room1")
    show("Emergency stop", await registry.dispatch("room1", SetEmergencyStop(True)))
    show("Emergency released", await registry.dispatch("room1", SetEmergencyStop(False)))

    # ================================================================
    # 5. Restore backup
    # ================================================================
    show("Backup restored", await registry.restore_backup("room1"))

    print("Notifications:")
    for notification in notifications.history():
        print(f"  [{notification.level.value:7}] {notification.room_name}: {notification.message}")


if __name__ == "__main__":
    asyncio.run(main())
