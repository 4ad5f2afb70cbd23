# components/history/historian.py
"""
Sensor history for one drying room.

Keeps a bounded buffer of timestamped sensor samples and exports them as
CSV with one row per sample:

    Timestamp,Temperature1,Temperature2,Temperature3,Temperature4,Humidity1,Humidity2

generate_mock_history() produces a synthetic 24-hour series for rooms
that have no recorded history yet.
"""

import csv
import io
import math
import random
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from pathlib import Path

from components.events.logging_system import get_logger
from components.state.room_state import SensorReading

logger = get_logger(__name__)

CSV_COLUMNS = (
    "Temperature1",
    "Temperature2",
    "Temperature3",
    "Temperature4",
    "Humidity1",
    "Humidity2",
)
CSV_HEADER = ("Timestamp",) + CSV_COLUMNS


def column_name(sensor: SensorReading) -> str:
    return f"{sensor.kind.value.capitalize()}{sensor.id}"


@dataclass
class HistorySample:
    """Sensor values at one point in time, keyed by CSV column name."""

    timestamp: datetime
    values: dict[str, float] = field(default_factory=dict)


class SensorHistorian:
    """
    Bounded time-series buffer of sensor samples.

    Example:
        >>> historian = SensorHistorian("room1", "Drying Room 1")
        >>> historian.record(supervisor.state.sensors)
        >>> historian.write_csv(Path("exports"))
        PosixPath('exports/Drying-Room-1-data.csv')
    """

    def __init__(self, room_id: str, room_name: str = "", max_samples: int = 43200):
        if max_samples <= 0:
            raise ValueError("max_samples must be positive")

        self.room_id = room_id
        self.room_name = room_name or room_id
        self.max_samples = max_samples
        self._samples: deque[HistorySample] = deque(maxlen=max_samples)

    def __len__(self) -> int:
        return len(self._samples)

    def record(
        self, sensors: list[SensorReading], timestamp: datetime | None = None
    ) -> HistorySample:
        """Store the current value of every sensor."""
        sample = HistorySample(
            timestamp=timestamp or datetime.now(),
            values={column_name(s): float(s.value) for s in sensors},
        )
        self._samples.append(sample)
        return sample

    def record_sample(self, sample: HistorySample) -> None:
        self._samples.append(sample)

    def query(
        self, start: datetime | None = None, end: datetime | None = None
    ) -> list[HistorySample]:
        """Samples with start <= timestamp <= end, oldest first."""
        return [
            s
            for s in self._samples
            if (start is None or s.timestamp >= start)
            and (end is None or s.timestamp <= end)
        ]

    def latest(self) -> HistorySample | None:
        return self._samples[-1] if self._samples else None

    def clear(self) -> int:
        count = len(self._samples)
        self._samples.clear()
        return count

    # ----------------------------------------------------------------
    # CSV export
    # ----------------------------------------------------------------

    def export_csv(self, samples: list[HistorySample] | None = None) -> str:
        """Render samples (default: the whole buffer) as CSV text.

        Missing values are left empty; values are written to one decimal.
        """
        if samples is None:
            samples = list(self._samples)

        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\n")
        writer.writerow(CSV_HEADER)
        for sample in samples:
            row = [sample.timestamp.isoformat()]
            for column in CSV_COLUMNS:
                value = sample.values.get(column)
                row.append("" if value is None else f"{value:.1f}")
            writer.writerow(row)
        return buffer.getvalue()

    def export_filename(self) -> str:
        return export_filename(self.room_name)

    def write_csv(
        self, directory: Path | str, samples: list[HistorySample] | None = None
    ) -> Path:
        """Write the CSV export into ``directory`` and return the file path."""
        directory = Path(directory)
        directory.mkdir(parents=True, exist_ok=True)
        if samples is None:
            samples = list(self._samples)

        path = directory / self.export_filename()
        path.write_text(self.export_csv(samples), encoding="utf-8")
        logger.info(f"Exported {len(samples)} samples for room '{self.room_id}' to {path}")
        return path


def export_filename(room_name: str) -> str:
    """CSV file name for a room, e.g. "Drying-Room-1-data.csv"."""
    return f"{'-'.join(room_name.split())}-data.csv"


def generate_mock_history(
    now: datetime | None = None,
    hours: int = 24,
    rng: random.Random | None = None,
) -> list[HistorySample]:
    """Synthetic hourly series ending at ``now``.

    Temperatures follow phase-shifted sine curves around 25-28 °C and
    humidities cosine curves around 50-55 %, each with uniform noise.
    """
    now = now or datetime.now()
    rng = rng or random.Random()

    samples = []
    for i in range(hours):
        values = {
            "Temperature1": 25 + math.sin(i / 3) * 5 + rng.random() * 2,
            "Temperature2": 27 + math.sin(i / 3 + 1) * 4 + rng.random() * 2,
            "Temperature3": 26 + math.sin(i / 3 + 2) * 4.5 + rng.random() * 2,
            "Temperature4": 28 + math.sin(i / 3 + 3) * 3.5 + rng.random() * 2,
            "Humidity1": 55 + math.cos(i / 4) * 10 + rng.random() * 5,
            "Humidity2": 50 + math.cos(i / 4 + 2) * 15 + rng.random() * 5,
        }
        samples.append(
            HistorySample(
                timestamp=now - timedelta(hours=hours - 1 - i),
                values={k: round(v, 1) for k, v in values.items()},
            )
        )
    return samples
