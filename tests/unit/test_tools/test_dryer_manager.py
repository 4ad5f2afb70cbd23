# tests/unit/tools/test_dryer_manager.py
"""
Unit tests for DryerManager - Main orchestrator - and its CLI.

Tests configuration-driven plant construction, the lifecycle, backup and
restore, CSV export and the command-line entry point.
"""

import asyncio
import json
from unittest.mock import patch

import pytest
import yaml

import components.events.logging_system as logging_system
from components.state.room_state import OperatingMode
from components.supervisor.commands import SetTargetTemperature
from tools.dryer_manager import DryerManager, create_parser, main

# ================================================================
# FIXTURES
# ================================================================


@pytest.fixture(autouse=True)
def restore_logging_defaults():
    saved = (
        logging_system._default_log_dir,
        logging_system._default_enable_json,
        logging_system._default_enable_console,
    )
    yield
    (
        logging_system._default_log_dir,
        logging_system._default_enable_json,
        logging_system._default_enable_console,
    ) = saved


@pytest.fixture
def plant_config_dir(clean_simulation_time, temp_config_dir, tmp_path, standard_sensors):
    """Write a one-room plant configuration with file persistence."""
    sensors = [
        {
            "id": s.id,
            "kind": s.kind.value,
            "name": s.name,
            "value": s.value,
            "min_threshold": s.min_threshold,
            "max_threshold": s.max_threshold,
        }
        for s in standard_sensors
    ]
    files = {
        "rooms.yml": {"rooms": [{"id": "room1", "name": "Drying Room 1", "sensors": sensors}]},
        "simulation.yml": {
            "simulation": {
                "timer": {"tick_interval": 0.01},
                "sensors": {
                    "feed_interval": 0.01,
                    "connection_fault_probability": 0.0,
                    "seed": 7,
                },
                "history": {"max_samples": 50},
            }
        },
        "persistence.yml": {
            "persistence": {"backend": "file", "directory": str(tmp_path / "snapshots")}
        },
        "logging.yml": {"logging": {"log_dir": None, "json": False, "console": False}},
    }
    for name, content in files.items():
        with open(temp_config_dir / name, "w") as f:
            yaml.dump(content, f)
    return temp_config_dir


@pytest.fixture
async def manager(plant_config_dir):
    dryer_manager = DryerManager(config_dir=str(plant_config_dir))
    await dryer_manager.initialise()
    yield dryer_manager
    if dryer_manager._running:
        await dryer_manager.stop()


# ================================================================
# INITIALISATION TESTS
# ================================================================


class TestDryerManagerInit:
    """Test building the plant from configuration."""

    async def test_initialise_builds_rooms(self, manager):
        assert manager.registry.room_ids() == ["room1"]
        assert set(manager.runtimes) == {"room1"}
        assert manager.historians["room1"].max_samples == 50
        assert manager.runtimes["room1"].tick_interval == 0.01

        supervisor = manager.registry.get_supervisor("room1")
        assert supervisor.room_name == "Drying Room 1"
        assert len(supervisor.state.sensors) == 6

    async def test_initialise_twice_is_noop(self, manager):
        registry = manager.registry
        await manager.initialise()
        assert manager.registry is registry

    async def test_initialise_failure_wrapped(self, plant_config_dir):
        with open(plant_config_dir / "persistence.yml", "w") as f:
            yaml.dump({"persistence": {"backend": "tape"}}, f)

        dryer_manager = DryerManager(config_dir=str(plant_config_dir))

        with pytest.raises(RuntimeError):
            await dryer_manager.initialise()

    async def test_no_rooms(self, plant_config_dir):
        with open(plant_config_dir / "rooms.yml", "w") as f:
            yaml.dump({"rooms": [{"name": "missing id"}]}, f)

        dryer_manager = DryerManager(config_dir=str(plant_config_dir))
        await dryer_manager.initialise()

        assert dryer_manager.runtimes == {}

    async def test_start_requires_initialise(self, plant_config_dir):
        dryer_manager = DryerManager(config_dir=str(plant_config_dir))

        with pytest.raises(RuntimeError):
            await dryer_manager.start()


# ================================================================
# LIFECYCLE TESTS
# ================================================================


class TestDryerManagerLifecycle:
    """Test start/stop/run."""

    async def test_start_runs_rooms(self, manager, wait_for_condition):
        await manager.start()

        await wait_for_condition(lambda: len(manager.historians["room1"]) >= 2)

        assert manager.runtimes["room1"].running
        assert manager.sim_time.is_running()

    async def test_stop_persists_rooms(self, manager, tmp_path):
        """Test shutdown writes every room snapshot.

        WHY: Countdown progress is only saved on shutdown.
        """
        await manager.start()
        await manager.stop()

        assert not manager.runtimes["room1"].running
        assert (tmp_path / "snapshots" / "room1.json").exists()
        assert (tmp_path / "snapshots" / "historical-alerts.json").exists()

    async def test_run_until_shutdown(self, plant_config_dir):
        dryer_manager = DryerManager(config_dir=str(plant_config_dir))

        with patch.object(dryer_manager, "setup_signal_handlers") as mock_signals:
            task = asyncio.create_task(dryer_manager.run())
            for _ in range(100):
                if dryer_manager._running:
                    break
                await asyncio.sleep(0.01)
            dryer_manager.request_shutdown()
            await asyncio.wait_for(task, timeout=2.0)

        assert mock_signals.called
        assert not dryer_manager._running


# ================================================================
# OPERATION TESTS
# ================================================================


class TestDryerManagerOperations:
    """Test backup, restore, export and status."""

    async def test_backup_and_restore(self, manager):
        await manager.registry.dispatch("room1", SetTargetTemperature(85))
        assert await manager.backup_room("room1") is True

        await manager.registry.dispatch("room1", SetTargetTemperature(25))
        result = await manager.restore_backup("room1")

        assert result.state.targets.temperature_c == 85

    async def test_export_csv_mock_when_empty(self, manager, tmp_path):
        path = manager.export_csv("room1", tmp_path / "exports")

        lines = path.read_text().splitlines()
        assert path.name == "Drying-Room-1-data.csv"
        assert len(lines) == 25

    async def test_export_csv_no_mock(self, manager, tmp_path):
        path = manager.export_csv("room1", tmp_path, mock_if_empty=False)
        assert len(path.read_text().splitlines()) == 1

    async def test_export_csv_recorded_samples(self, manager, tmp_path):
        await manager.runtimes["room1"].feed_once()

        path = manager.export_csv("room1", tmp_path)

        assert len(path.read_text().splitlines()) == 2

    async def test_export_unknown_room(self, manager, tmp_path):
        with pytest.raises(KeyError):
            manager.export_csv("room9", tmp_path)

    async def test_room_status(self, manager):
        status = await manager.get_status("room1")

        assert status["room_id"] == "room1"
        assert status["mode"] == OperatingMode.MANUAL.value
        assert status["runtime"]["running"] is False

    async def test_plant_status(self, manager):
        status = await manager.get_status()

        assert status["summary"]["rooms"]["total"] == 1
        assert set(status["rooms"]) == {"room1"}
        assert "simulation_time" in status["time"]


# ================================================================
# CLI TESTS
# ================================================================


class TestCreateParser:
    """Test argument parsing."""

    def test_commands(self):
        parser = create_parser()

        assert parser.parse_args(["run"]).command == "run"
        assert parser.parse_args(["status", "--room", "room2"]).room == "room2"
        assert parser.parse_args(["backup", "room1"]).room == "room1"
        assert parser.parse_args(["restore-backup", "room1"]).command == "restore-backup"

    def test_export_csv_args(self):
        args = create_parser().parse_args(
            ["--config-dir", "cfg", "export-csv", "room1", "--output", "out", "--no-mock"]
        )

        assert args.config_dir == "cfg"
        assert args.output == "out"
        assert args.no_mock is True

    def test_export_csv_defaults(self):
        args = create_parser().parse_args(["export-csv", "room1"])

        assert args.output == "exports"
        assert args.no_mock is False


class TestMain:
    """Test the CLI entry point."""

    async def test_no_command_prints_help(self, capsys):
        assert await main([]) == 0
        assert "usage" in capsys.readouterr().out

    async def test_status(self, plant_config_dir, capsys):
        code = await main(["--config-dir", str(plant_config_dir), "status", "--room", "room1"])

        assert code == 0
        out = capsys.readouterr().out
        assert json.loads(out[out.index("{"):])["room_id"] == "room1"

    async def test_backup_then_restore(self, plant_config_dir, capsys):
        config = ["--config-dir", str(plant_config_dir)]

        assert await main(config + ["backup", "room1"]) == 0
        assert await main(config + ["restore-backup", "room1"]) == 0

        out = capsys.readouterr().out
        assert "✓ Backup created for room room1" in out
        assert "✓ Room room1 restored" in out

    async def test_unknown_room(self, plant_config_dir, capsys):
        code = await main(["--config-dir", str(plant_config_dir), "backup", "room9"])

        assert code == 1
        assert "❌" in capsys.readouterr().out

    async def test_export_csv(self, plant_config_dir, tmp_path, capsys):
        code = await main(
            [
                "--config-dir",
                str(plant_config_dir),
                "export-csv",
                "room1",
                "--output",
                str(tmp_path / "out"),
            ]
        )

        assert code == 0
        assert (tmp_path / "out" / "Drying-Room-1-data.csv").exists()

    async def test_initialise_failure(self, plant_config_dir, capsys):
        with open(plant_config_dir / "persistence.yml", "w") as f:
            yaml.dump({"persistence": {"backend": "tape"}}, f)

        code = await main(["--config-dir", str(plant_config_dir), "status"])

        assert code == 1
        assert "Failed to initialise" in capsys.readouterr().out
