# components/sensors/sensor_simulator.py
"""
Simulated sensor source for a drying room.

Each step moves every sensor by a bounded random walk and occasionally
flips the connection status, then hands the result to the supervisor as a
PushSensorReadings command:
- Temperature: +/- temperature_step per step
- Humidity: +/- humidity_step per step
- Values stay within [min_threshold - margin, max_threshold + margin]

Seed the generator to make runs reproducible.
"""

import random
from dataclasses import dataclass
from typing import Any

from components.events.logging_system import get_logger
from components.state.room_state import SensorKind, SensorReading
from components.supervisor.commands import PushSensorReadings, SensorUpdate


@dataclass
class SensorSimulatorParameters:
    """Random-walk parameters.

    Attributes:
        temperature_step: Maximum temperature change per step (°C)
        humidity_step: Maximum humidity change per step (%)
        margin: How far a value may wander outside its threshold band
        connection_fault_probability: Chance per step that the link flips
        seed: Random seed (None = nondeterministic)
    """

    temperature_step: float = 0.5
    humidity_step: float = 0.8
    margin: float = 5.0
    connection_fault_probability: float = 0.01
    seed: int | None = None

    @classmethod
    def from_config(cls, config: dict[str, Any] | None) -> "SensorSimulatorParameters":
        config = config or {}
        seed = config.get("seed")
        return cls(
            temperature_step=float(config.get("temperature_step", cls.temperature_step)),
            humidity_step=float(config.get("humidity_step", cls.humidity_step)),
            margin=float(config.get("margin", cls.margin)),
            connection_fault_probability=float(
                config.get(
                    "connection_fault_probability", cls.connection_fault_probability
                )
            ),
            seed=int(seed) if seed is not None else None,
        )


class SensorSimulator:
    """
    Random-walk sensor source for one room.

    The simulator keeps its own copy of the sensor values; the supervisor
    only sees what step() pushes.

    Example:
        >>> simulator = SensorSimulator("room1", sensors, SensorSimulatorParameters(seed=7))
        >>> command = simulator.step()
        >>> await registry.dispatch("room1", command)
    """

    def __init__(
        self,
        room_id: str,
        sensors: list[SensorReading],
        params: SensorSimulatorParameters | None = None,
        rng: random.Random | None = None,
    ):
        self.room_id = room_id
        self.params = params or SensorSimulatorParameters()
        self.rng = rng or random.Random(self.params.seed)
        self.logger = get_logger(self.__class__.__name__, room=room_id)

        self._sensors = [
            SensorReading(
                id=s.id,
                kind=s.kind,
                value=s.value,
                min_threshold=s.min_threshold,
                max_threshold=s.max_threshold,
                name=s.name,
            )
            for s in sensors
        ]
        self.connected = True
        self.steps = 0

    @property
    def sensors(self) -> list[SensorReading]:
        return list(self._sensors)

    def _step_size(self, kind: SensorKind) -> float:
        if kind == SensorKind.TEMPERATURE:
            return self.params.temperature_step
        return self.params.humidity_step

    def _walk(self, sensor: SensorReading) -> float:
        delta = (self.rng.random() * 2 - 1) * self._step_size(sensor.kind)
        low = sensor.min_threshold - self.params.margin
        high = sensor.max_threshold + self.params.margin
        return max(low, min(high, sensor.value + delta))

    def step(self) -> PushSensorReadings:
        """Advance every sensor one step and build the feed command."""
        updates = []
        for sensor in self._sensors:
            sensor.value = self._walk(sensor)
            updates.append(SensorUpdate(sensor.id, sensor.kind, sensor.value))

        if self.rng.random() < self.params.connection_fault_probability:
            self.connected = not self.connected
            self.logger.debug(
                f"Simulated link for room '{self.room_id}' "
                f"{'restored' if self.connected else 'lost'}"
            )

        self.steps += 1
        return PushSensorReadings(readings=tuple(updates), connected=self.connected)

    def sample(self) -> dict[str, float]:
        """Current values keyed by CSV column name (e.g. "Temperature1")."""
        return {
            f"{sensor.kind.value.capitalize()}{sensor.id}": sensor.value
            for sensor in self._sensors
        }
