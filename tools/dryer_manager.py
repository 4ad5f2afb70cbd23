#!/usr/bin/env python3
# tools/dryer_manager.py
"""
Drying Plant Manager - Main Orchestrator

Builds the drying plant from configuration and runs it:
- Snapshot store (memory or JSON files)
- Room registry with one RoomSupervisor per configured room
- Notification centre (persisted alert history)
- Per-room runtimes: countdown ticks and simulated sensor feed
- Per-room sensor history with CSV export

Usage:
  python -m tools.dryer_manager run
  python -m tools.dryer_manager status --room room1
  python -m tools.dryer_manager backup room1
  python -m tools.dryer_manager restore-backup room1
  python -m tools.dryer_manager export-csv room1 --output exports
"""

import argparse
import asyncio
import json
import signal
import sys
from pathlib import Path
from typing import Any

from components.events.logging_system import configure_logging, get_logger
from components.history.historian import SensorHistorian, generate_mock_history
from components.notifications.notification_center import NotificationCenter
from components.runtime.room_runtime import RoomRuntime
from components.sensors.sensor_simulator import SensorSimulator, SensorSimulatorParameters
from components.state.room_registry import RoomRegistry
from components.state.room_state import SensorReading
from components.state.snapshot_store import SnapshotStore, create_snapshot_store
from components.supervisor.commands import CommandResult
from components.time.simulation_time import SimulationTime
from config.config_loader import ConfigLoader

logger = get_logger(__name__)


class DryerManager:
    """
    Main orchestrator for the drying plant.

    Example:
        >>> manager = DryerManager()
        >>> await manager.initialise()
        >>> await manager.start()
        >>> # Rooms tick and receive sensor readings...
        >>> await manager.stop()
    """

    def __init__(self, config_dir: str = "config"):
        """Initialise dryer manager.

        Args:
            config_dir: Directory containing configuration files
        """
        self.config_dir = Path(config_dir)
        self.config_loader = ConfigLoader(config_dir=str(self.config_dir))
        self.sim_time = SimulationTime()

        self.config: dict[str, Any] = {}
        self.snapshot_store: SnapshotStore | None = None
        self.notification_center: NotificationCenter | None = None
        self.registry: RoomRegistry | None = None

        self.historians: dict[str, SensorHistorian] = {}
        self.runtimes: dict[str, RoomRuntime] = {}

        self._initialised = False
        self._running = False
        self._shutdown_event = asyncio.Event()

    # ----------------------------------------------------------------
    # Initialisation
    # ----------------------------------------------------------------

    async def initialise(self) -> None:
        """Build every component from configuration.

        Raises:
            RuntimeError: If initialisation fails
        """
        if self._initialised:
            logger.warning("Dryer manager already initialised")
            return

        try:
            logger.info("=== Starting Drying Plant Initialisation ===")
            self.config = self.config_loader.load_all()

            logging_cfg = self.config.get("logging", {})
            configure_logging(
                log_dir=logging_cfg.get("log_dir"),
                enable_json=logging_cfg.get("json", False),
                enable_console=logging_cfg.get("console", True),
            )

            self.snapshot_store = create_snapshot_store(self.config.get("persistence"))
            self.notification_center = NotificationCenter(self.snapshot_store)
            loaded = await self.notification_center.load()
            logger.info(f"Loaded {loaded} historical notifications")

            self.registry = RoomRegistry(
                snapshot_store=self.snapshot_store,
                notification_center=self.notification_center,
            )
            await self._create_rooms()

            self._initialised = True
            logger.info(
                f"=== Initialisation Complete ({len(self.runtimes)} rooms) ==="
            )

        except Exception as e:
            logger.error(f"Initialisation failed: {e}", exc_info=True)
            raise RuntimeError(f"Failed to initialise drying plant: {e}") from e

    async def _create_rooms(self) -> None:
        simulation_cfg = self.config.get("simulation", {})
        tick_interval = float(simulation_cfg.get("timer", {}).get("tick_interval", 1.0))
        sensors_cfg = simulation_cfg.get("sensors", {})
        feed_interval = float(sensors_cfg.get("feed_interval", 2.0))
        max_samples = int(simulation_cfg.get("history", {}).get("max_samples", 43200))

        rooms = self.config.get("rooms", [])
        if not rooms:
            logger.warning("No rooms found in configuration")
            return

        for index, room_cfg in enumerate(rooms):
            room_id = room_cfg.get("id")
            if not room_id:
                logger.warning(f"Skipping invalid room config: {room_cfg}")
                continue
            room_name = room_cfg.get("name", room_id)
            sensors = [SensorReading.from_config(s) for s in room_cfg.get("sensors", [])]

            await self.registry.register_room(room_id, room_name, sensors)

            params = SensorSimulatorParameters.from_config(sensors_cfg)
            if params.seed is not None:
                params.seed += index

            historian = SensorHistorian(room_id, room_name, max_samples=max_samples)
            self.historians[room_id] = historian
            self.runtimes[room_id] = RoomRuntime(
                self.registry,
                room_id,
                simulator=SensorSimulator(room_id, sensors, params),
                historian=historian,
                tick_interval=tick_interval,
                feed_interval=feed_interval,
            )

    def _require_registry(self) -> RoomRegistry:
        if self.registry is None:
            raise RuntimeError("Dryer manager not initialised")
        return self.registry

    # ----------------------------------------------------------------
    # Lifecycle
    # ----------------------------------------------------------------

    async def start(self) -> None:
        """Start simulation time and every room runtime.

        Raises:
            RuntimeError: If not initialised
        """
        if not self._initialised:
            raise RuntimeError("Cannot start: dryer manager not initialised")
        if self._running:
            logger.warning("Dryer manager already running")
            return

        logger.info("=== Starting Drying Plant ===")
        await self.sim_time.start()
        for runtime in self.runtimes.values():
            await runtime.start()
        self._running = True

    async def stop(self) -> None:
        """Stop runtimes and persist every room."""
        if not self._running:
            logger.warning("Dryer manager not running")
            return

        logger.info("=== Stopping Drying Plant ===")
        self._running = False

        for room_id, runtime in self.runtimes.items():
            try:
                await runtime.stop()
            except Exception as e:
                logger.error(f"Error stopping runtime {room_id}: {e}")

        await self.registry.save_all()
        await self.notification_center.save()
        await self.sim_time.stop()
        logger.info("Drying plant stopped")

    def setup_signal_handlers(self) -> None:
        """Set up signal handlers for graceful shutdown."""

        def signal_handler(signum, frame):
            logger.info(f"Received signal {signum}")
            self._shutdown_event.set()

        signal.signal(signal.SIGINT, signal_handler)
        signal.signal(signal.SIGTERM, signal_handler)

    async def wait_for_shutdown(self) -> None:
        await self._shutdown_event.wait()

    def request_shutdown(self) -> None:
        self._shutdown_event.set()

    async def run(self) -> None:
        """Initialise, start, and run until interrupted."""
        try:
            self.setup_signal_handlers()
            await self.initialise()
            await self.start()
            logger.info("Drying plant running. Press Ctrl+C to stop.")
            await self.wait_for_shutdown()
        except KeyboardInterrupt:
            logger.info("KeyboardInterrupt received")
        finally:
            if self._running:
                await self.stop()

    # ----------------------------------------------------------------
    # Operations
    # ----------------------------------------------------------------

    async def backup_room(self, room_id: str) -> bool:
        return await self._require_registry().backup_room(room_id)

    async def restore_backup(self, room_id: str) -> CommandResult:
        return await self._require_registry().restore_backup(room_id)

    def export_csv(
        self, room_id: str, directory: Path | str, mock_if_empty: bool = True
    ) -> Path:
        """Write a room's sensor history as CSV.

        Rooms without recorded samples get the synthetic 24-hour series
        unless ``mock_if_empty`` is False.

        Raises:
            KeyError: If the room is not configured
        """
        historian = self.historians.get(room_id)
        if historian is None:
            raise KeyError(f"Unknown room: {room_id}")

        samples = None
        if len(historian) == 0 and mock_if_empty:
            samples = generate_mock_history()
        return historian.write_csv(directory, samples)

    async def get_status(self, room_id: str | None = None) -> dict[str, Any]:
        registry = self._require_registry()
        if room_id is not None:
            status = registry.get_room_status(room_id)
            status["runtime"] = self.runtimes[room_id].get_status()
            return status

        return {
            "summary": await registry.get_summary(),
            "rooms": {rid: registry.get_room_status(rid) for rid in registry.room_ids()},
            "notifications": {
                "active": len(self.notification_center.active()),
                "history": len(self.notification_center.history()),
            },
            "time": await self.sim_time.get_status(),
        }


# ----------------------------------------------------------------
# Command-line interface
# ----------------------------------------------------------------


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser with all commands."""
    parser = argparse.ArgumentParser(
        description="Drying Plant Manager - tobacco drying room supervisor",
        epilog="""
Examples:
  # Run every configured room until Ctrl+C
  python -m tools.dryer_manager run

  # Show one room's mode, interlocks, outputs and countdown
  python -m tools.dryer_manager status --room room1

  # Snapshot a room and roll it back later
  python -m tools.dryer_manager backup room1
  python -m tools.dryer_manager restore-backup room1

  # Export sensor history
  python -m tools.dryer_manager export-csv room1 --output exports

Note: backup and restore need persistence.backend: file in
config/persistence.yml to outlive the command.
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--config-dir", default="config", help="Configuration directory (default: config)"
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    subparsers.add_parser("run", help="Run the drying plant until interrupted")

    status_parser = subparsers.add_parser("status", help="Show plant or room status")
    status_parser.add_argument("--room", help="Room id (default: all rooms)")

    backup_parser = subparsers.add_parser("backup", help="Back up a room's state")
    backup_parser.add_argument("room", help="Room id")

    restore_parser = subparsers.add_parser(
        "restore-backup", help="Restore a room from its backup"
    )
    restore_parser.add_argument("room", help="Room id")

    export_parser = subparsers.add_parser("export-csv", help="Export sensor history as CSV")
    export_parser.add_argument("room", help="Room id")
    export_parser.add_argument(
        "--output", default="exports", help="Output directory (default: exports)"
    )
    export_parser.add_argument(
        "--no-mock",
        action="store_true",
        help="Write only recorded samples, even if there are none",
    )

    return parser


async def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    manager = DryerManager(config_dir=args.config_dir)

    if args.command == "run":
        await manager.run()
        return 0

    try:
        await manager.initialise()
    except RuntimeError as e:
        print(f"❌ Failed to initialise: {e}")
        return 1

    try:
        if args.command == "status":
            status = await manager.get_status(args.room)
            print(json.dumps(status, indent=2, default=str))

        elif args.command == "backup":
            if await manager.backup_room(args.room):
                print(f"✓ Backup created for room {args.room}")
            else:
                print(f"❌ Nothing to back up for room {args.room}")
                return 1

        elif args.command == "restore-backup":
            result = await manager.restore_backup(args.room)
            print(f"✓ Room {args.room} restored")
            print(f"  Mode: {result.state.mode.value}")
            print(f"  Status: {result.state.status_message}")

        elif args.command == "export-csv":
            path = manager.export_csv(
                args.room, args.output, mock_if_empty=not args.no_mock
            )
            print(f"✓ Exported {path}")

    except KeyError as e:
        print(f"❌ {e.args[0] if e.args else e}")
        return 1
    except KeyboardInterrupt:
        print("\n\nInterrupted by user")
        return 130

    return 0


def cli() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    cli()
