# tests/conftest.py
"""Shared pytest fixtures for drying room supervisor tests.

This file provides common fixtures used across all test modules,
following the bottom-up testing strategy where foundation components
are tested with real dependencies wherever possible.
"""

import asyncio
import tempfile
from pathlib import Path
from typing import Generator

import pytest
import yaml

from components.state.room_state import SensorKind, SensorReading


# ----------------------------------------------------------------
# Configuration fixtures
# ----------------------------------------------------------------
@pytest.fixture
def temp_config_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test configuration files.

    Yields:
        Path to temporary configuration directory
    """
    with tempfile.TemporaryDirectory() as tmpdir:
        config_path = Path(tmpdir)
        yield config_path


@pytest.fixture
def default_simulation_config() -> dict:
    """Provide default simulation configuration for testing.

    Returns:
        Dictionary with default simulation runtime configuration
    """
    return {
        "simulation": {
            "runtime": {
                "realtime": True,
                "time_acceleration": 1.0,
                "update_interval": 0.01,
            },
            "timer": {"tick_interval": 1.0},
            "sensors": {
                "feed_interval": 2.0,
                "temperature_step": 0.5,
                "humidity_step": 0.8,
                "margin": 5.0,
                "connection_fault_probability": 0.0,
                "seed": 42,
            },
        }
    }


@pytest.fixture
def accelerated_config() -> dict:
    """Provide accelerated simulation configuration for testing.

    Returns:
        Dictionary with 10x accelerated simulation config
    """
    return {
        "simulation": {
            "runtime": {
                "realtime": False,
                "time_acceleration": 10.0,
                "update_interval": 0.01,
            }
        }
    }


@pytest.fixture
def write_config_file(temp_config_dir):
    """Factory fixture for writing YAML configuration files.

    Returns:
        Function that writes config dict to YAML file
    """

    def _write_config(config: dict, filename: str = "simulation.yml") -> Path:
        config_file = temp_config_dir / filename
        with open(config_file, "w") as f:
            yaml.dump(config, f)
        return config_file

    return _write_config


# ----------------------------------------------------------------
# Real configuration setup (NO MOCKING)
# ----------------------------------------------------------------
@pytest.fixture
def setup_config_files(temp_config_dir, default_simulation_config, monkeypatch):
    """Setup real YAML configuration files for testing.

    This uses the REAL ConfigLoader with actual YAML files.

    Returns:
        Function that writes config and points SimulationTime's
        ConfigLoader at the temp directory
    """

    def _setup(config: dict = None):
        if config is None:
            config = default_simulation_config

        with open(temp_config_dir / "simulation.yml", "w") as f:
            yaml.dump(config, f)

        # Minimal rooms.yml to prevent default creation
        with open(temp_config_dir / "rooms.yml", "w") as f:
            yaml.dump({"rooms": []}, f)

        import components.time.simulation_time

        original_init = components.time.simulation_time.ConfigLoader.__init__

        def patched_init(self, config_dir=None):
            # Always use temp_config_dir so tests use isolated config files
            _ = config_dir
            original_init(self, config_dir=str(temp_config_dir))

        monkeypatch.setattr(
            components.time.simulation_time.ConfigLoader, "__init__", patched_init
        )

    return _setup


# ----------------------------------------------------------------
# Time-related fixtures
# ----------------------------------------------------------------
@pytest.fixture
async def clean_simulation_time(setup_config_files):
    """Provide a clean SimulationTime instance for testing.

    Yields:
        Fresh SimulationTime instance using REAL ConfigLoader
    """
    from components.time.simulation_time import SimulationTime

    setup_config_files()

    sim_time = SimulationTime()
    await sim_time.stop()
    sim_time.reset_for_testing()

    yield sim_time

    await sim_time.stop()
    sim_time.reset_for_testing()


@pytest.fixture
def clean_simulation_time_with_config(setup_config_files):
    """Factory fixture for SimulationTime with custom config.

    Returns:
        Async function that sets up SimulationTime with custom config
    """

    async def _create(config: dict = None):
        from components.time.simulation_time import SimulationTime

        setup_config_files(config)

        sim_time = SimulationTime()
        await sim_time.stop()
        sim_time.reset_for_testing()

        return sim_time

    return _create


# ----------------------------------------------------------------
# Room fixtures
# ----------------------------------------------------------------
@pytest.fixture
def standard_sensors() -> list[SensorReading]:
    """Sensor layout of a standard drying room, all values in range.

    4 temperature sensors (60-70 °C) and 2 humidity sensors (40-60 %).
    """
    sensors = [
        SensorReading(i, SensorKind.TEMPERATURE, 65.0, 60, 70, f"Sensor {i}")
        for i in range(1, 5)
    ]
    sensors += [
        SensorReading(i, SensorKind.HUMIDITY, 50.0, 40, 60, f"Humidity {i}")
        for i in range(1, 3)
    ]
    return sensors


@pytest.fixture
def supervisor(standard_sensors):
    """Fresh RoomSupervisor for room1 with in-range sensors."""
    from components.supervisor.room_supervisor import RoomSupervisor

    return RoomSupervisor("room1", "Drying Room 1", sensors=standard_sensors)


@pytest.fixture
def snapshot_store():
    """SnapshotStore over an in-memory backend."""
    from components.state.snapshot_store import InMemoryBackend, SnapshotStore

    return SnapshotStore(InMemoryBackend())


@pytest.fixture
async def registry(snapshot_store, standard_sensors):
    """RoomRegistry with room1 registered and an in-memory store."""
    from components.notifications.notification_center import NotificationCenter
    from components.state.room_registry import RoomRegistry

    center = NotificationCenter(snapshot_store)
    room_registry = RoomRegistry(
        snapshot_store=snapshot_store, notification_center=center
    )
    await room_registry.register_room("room1", "Drying Room 1", standard_sensors)
    return room_registry


# ----------------------------------------------------------------
# Async utilities
# ----------------------------------------------------------------
@pytest.fixture
def wait_for_condition():
    """Provide utility for waiting on async conditions.

    Returns:
        Async function that polls a condition until true or timeout
    """

    async def _wait(
        condition_fn,
        timeout: float = 1.0,
        poll_interval: float = 0.01,
        error_msg: str = "Condition not met within timeout",
    ):
        loop = asyncio.get_running_loop()
        start = loop.time()
        while loop.time() - start < timeout:
            if condition_fn():
                return
            await asyncio.sleep(poll_interval)

        raise AssertionError(error_msg)

    return _wait
