# components/runtime/room_runtime.py
"""
Background loops for one drying room.

Two asyncio tasks per room:
- tick loop: one TimerTick per tick_interval while the countdown runs
- feed loop: one SensorSimulator step per feed_interval, recorded in
  the room's SensorHistorian

Intervals are simulation seconds, so time_acceleration shortens both
loops. Both skip their cycle while simulation time is paused. An error in
one cycle is logged and the loop carries on; cancelling the tasks stops
future commands and nothing else.
"""

import asyncio
from typing import Any

from components.events.logging_system import get_logger
from components.history.historian import SensorHistorian
from components.sensors.sensor_simulator import SensorSimulator
from components.state.room_registry import RoomRegistry
from components.supervisor.commands import CommandResult, TimerTick
from components.time.simulation_time import SimulationTime


class RoomRuntime:
    """
    Drives the countdown and sensor feed of one registered room.

    Example:
        >>> runtime = RoomRuntime(registry, "room1", simulator, historian)
        >>> await runtime.start()
        >>> # Room ticks and receives sensor readings...
        >>> await runtime.stop()
    """

    def __init__(
        self,
        registry: RoomRegistry,
        room_id: str,
        simulator: SensorSimulator | None = None,
        historian: SensorHistorian | None = None,
        tick_interval: float = 1.0,
        feed_interval: float = 2.0,
    ):
        """
        Initialise room runtime.

        Args:
            registry: Registry the room is registered with
            room_id: Room to drive
            simulator: Sensor source (None = no sensor feed)
            historian: Sample buffer fed after every sensor step
            tick_interval: Simulation seconds between countdown ticks
            feed_interval: Simulation seconds between sensor steps

        Raises:
            ValueError: If an interval is not positive
            KeyError: If the room is not registered
        """
        if tick_interval <= 0 or feed_interval <= 0:
            raise ValueError("tick_interval and feed_interval must be positive")

        registry.get_supervisor(room_id)

        self.registry = registry
        self.room_id = room_id
        self.simulator = simulator
        self.historian = historian
        self.tick_interval = tick_interval
        self.feed_interval = feed_interval

        self.sim_time = SimulationTime()
        self.logger = get_logger(self.__class__.__name__, room=room_id)

        self._running = False
        self._tick_task: asyncio.Task | None = None
        self._feed_task: asyncio.Task | None = None

        self.metadata: dict[str, Any] = {
            "ticks": 0,
            "feeds": 0,
            "error_count": 0,
        }

    @property
    def running(self) -> bool:
        return self._running

    # ----------------------------------------------------------------
    # Lifecycle
    # ----------------------------------------------------------------

    async def start(self) -> None:
        if self._running:
            self.logger.warning(f"Runtime for room '{self.room_id}' already running")
            return

        self._running = True
        self._tick_task = asyncio.create_task(self._tick_loop())
        if self.simulator is not None:
            self._feed_task = asyncio.create_task(self._feed_loop())

        self.logger.info(
            f"Runtime for room '{self.room_id}' started "
            f"(tick: {self.tick_interval}s, feed: {self.feed_interval}s)"
        )

    async def stop(self) -> None:
        if not self._running:
            return

        self._running = False
        for task in (self._tick_task, self._feed_task):
            if task:
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        self._tick_task = None
        self._feed_task = None

        self.logger.info(f"Runtime for room '{self.room_id}' stopped")

    # ----------------------------------------------------------------
    # Single cycles
    # ----------------------------------------------------------------

    async def tick_once(self) -> CommandResult | None:
        """Send one TimerTick if the countdown is running."""
        supervisor = self.registry.get_supervisor(self.room_id)
        if not supervisor.state.timer.running:
            return None

        result = await self.registry.dispatch(self.room_id, TimerTick())
        self.metadata["ticks"] += 1
        return result

    async def feed_once(self) -> CommandResult | None:
        """Push one simulated sensor step and record it."""
        if self.simulator is None:
            return None

        result = await self.registry.dispatch(self.room_id, self.simulator.step())
        if self.historian is not None:
            self.historian.record(result.state.sensors)
        self.metadata["feeds"] += 1
        return result

    # ----------------------------------------------------------------
    # Loops
    # ----------------------------------------------------------------

    async def _tick_loop(self) -> None:
        while self._running:
            await self.sim_time.sleep(self.tick_interval)
            if self.sim_time.is_paused():
                continue
            try:
                await self.tick_once()
            except Exception as e:
                self.metadata["error_count"] += 1
                self.logger.error(
                    f"Tick failed for room '{self.room_id}': {e}", exc_info=True
                )

    async def _feed_loop(self) -> None:
        while self._running:
            await self.sim_time.sleep(self.feed_interval)
            if self.sim_time.is_paused():
                continue
            try:
                await self.feed_once()
            except Exception as e:
                self.metadata["error_count"] += 1
                self.logger.error(
                    f"Sensor feed failed for room '{self.room_id}': {e}", exc_info=True
                )

    def get_status(self) -> dict[str, Any]:
        return {
            "room_id": self.room_id,
            "running": self._running,
            "tick_interval": self.tick_interval,
            "feed_interval": self.feed_interval,
            "history_samples": len(self.historian) if self.historian else 0,
            **self.metadata,
        }
