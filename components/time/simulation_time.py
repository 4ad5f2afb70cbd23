# components/time/simulation_time.py
"""
Plant-wide simulation clock.

One SimulationTime instance is shared by every room. It advances
simulation seconds from the wall clock, scaled by
simulation.runtime.time_acceleration, and can be paused. Room runtimes
sleep through it (``sleep()``), so acceleration shortens the countdown
and the sensor feed, and a pause freezes every room at once. Log records
are stamped with ``now()``.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from config.config_loader import ConfigLoader

logger = logging.getLogger(__name__)


class TimeMode(Enum):
    REALTIME = "realtime"
    ACCELERATED = "accelerated"


@dataclass
class ClockState:
    simulation_time: float = 0.0
    mode: TimeMode = TimeMode.REALTIME
    speed_multiplier: float = 1.0
    paused: bool = False
    update_interval: float = 0.01
    paused_wall_seconds: float = 0.0
    paused_since: Optional[float] = None


class SimulationTime:
    """Singleton simulation clock.

    Example:
        >>> clock = SimulationTime()
        >>> await clock.start()
        >>> await clock.sleep(1.0)  # 0.1 s of wall time at 10x
        >>> await clock.pause()     # room countdowns freeze
    """

    _instance: Optional["SimulationTime"] = None
    MAX_SPEED = 1000.0

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        if getattr(self, "_initialized", False):
            return
        self._initialized = True
        self._configure()

    def _configure(self) -> None:
        self.state = ClockState()
        self._lock = asyncio.Lock()
        self._running = False
        self._update_task: Optional[asyncio.Task] = None

        runtime_cfg = ConfigLoader().load_all().get("simulation", {}).get("runtime", {})

        interval = runtime_cfg.get("update_interval", 0.01)
        if interval <= 0:
            logger.warning(f"Invalid update_interval {interval}, using 0.01")
            interval = 0.01
        self.state.update_interval = interval

        speed = runtime_cfg.get("time_acceleration", 1.0)
        if speed <= 0:
            logger.warning(f"Invalid time_acceleration {speed}, using 1.0")
            speed = 1.0
        elif speed > self.MAX_SPEED:
            logger.warning(f"time_acceleration {speed} capped at {self.MAX_SPEED}")
            speed = self.MAX_SPEED
        self.state.speed_multiplier = speed

        realtime = runtime_cfg.get("realtime", True)
        self.state.mode = TimeMode.REALTIME if realtime else TimeMode.ACCELERATED

        logger.info(
            f"Simulation clock: {self.state.mode.value}, "
            f"{self.state.speed_multiplier}x, tick {self.state.update_interval}s"
        )

    def reset_for_testing(self) -> None:
        """Reload configuration and zero the clock. The clock must be stopped."""
        self._configure()

    # ----------------------------------------------------------------
    # Lifecycle
    # ----------------------------------------------------------------
    async def start(self) -> None:
        if self._running:
            logger.warning("Simulation clock already running")
            return

        async with self._lock:
            self.state.simulation_time = 0.0
            self.state.paused_wall_seconds = 0.0
            self.state.paused_since = None
            self.state.paused = False

        self._running = True
        self._update_task = asyncio.create_task(self._advance_loop())
        logger.info("Simulation clock started")

    async def stop(self) -> None:
        if not self._running:
            return

        self._running = False
        if self._update_task:
            self._update_task.cancel()
            try:
                await self._update_task
            except asyncio.CancelledError:
                pass
            self._update_task = None

        logger.info("Simulation clock stopped")

    # ----------------------------------------------------------------
    # Queries
    # ----------------------------------------------------------------
    def now(self) -> float:
        """Simulation seconds since start."""
        return self.state.simulation_time

    def speed(self) -> float:
        return self.state.speed_multiplier

    def is_paused(self) -> bool:
        return self.state.paused

    def is_running(self) -> bool:
        return self._running

    async def sleep(self, sim_seconds: float) -> None:
        """Wait for ``sim_seconds`` of simulation time at the current speed."""
        await asyncio.sleep(sim_seconds / self.state.speed_multiplier)

    # ----------------------------------------------------------------
    # Control
    # ----------------------------------------------------------------
    async def pause(self) -> None:
        """Freeze the clock. Room runtimes skip ticks and sensor feeds meanwhile."""
        async with self._lock:
            if self.state.paused:
                logger.warning("Simulation clock already paused")
                return
            self.state.paused = True
            self.state.paused_since = time.monotonic()

        logger.info("Simulation clock paused")

    async def resume(self) -> None:
        async with self._lock:
            if not self.state.paused:
                logger.warning("Simulation clock not paused")
                return
            self.state.paused = False
            if self.state.paused_since is not None:
                self.state.paused_wall_seconds += time.monotonic() - self.state.paused_since
                self.state.paused_since = None

        logger.info("Simulation clock resumed")

    async def set_speed(self, multiplier: float) -> None:
        """Change the acceleration factor; switches to ACCELERATED unless 1.0.

        Raises:
            ValueError: If multiplier is not in (0, MAX_SPEED]
        """
        if not 0 < multiplier <= self.MAX_SPEED:
            raise ValueError(
                f"Speed multiplier must be in (0, {self.MAX_SPEED}], got {multiplier}"
            )

        async with self._lock:
            previous = self.state.speed_multiplier
            self.state.speed_multiplier = multiplier
            self.state.mode = (
                TimeMode.REALTIME if multiplier == 1.0 else TimeMode.ACCELERATED
            )

        logger.info(f"Simulation clock speed {previous}x -> {multiplier}x")

    async def _advance_loop(self) -> None:
        last = time.monotonic()
        while self._running:
            await asyncio.sleep(self.state.update_interval)
            current = time.monotonic()
            async with self._lock:
                if not self.state.paused:
                    self.state.simulation_time += (
                        current - last
                    ) * self.state.speed_multiplier
            last = current

    async def get_status(self) -> dict:
        async with self._lock:
            return {
                "simulation_time": self.state.simulation_time,
                "mode": self.state.mode.value,
                "speed_multiplier": self.state.speed_multiplier,
                "paused": self.state.paused,
                "paused_wall_seconds": self.state.paused_wall_seconds,
            }
