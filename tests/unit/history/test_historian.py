# tests/unit/history/test_historian.py
"""Tests for SensorHistorian and the CSV export."""

import random
from datetime import datetime, timedelta

import pytest

from components.history.historian import (
    CSV_HEADER,
    HistorySample,
    SensorHistorian,
    export_filename,
    generate_mock_history,
)

T0 = datetime(2024, 6, 1, 12, 0, 0)


@pytest.fixture
def historian():
    return SensorHistorian("room1", "Drying Room 1", max_samples=100)


# ================================================================
# BUFFER TESTS
# ================================================================
class TestSensorHistorianBuffer:
    """Test recording and querying samples."""

    def test_record(self, historian, standard_sensors):
        sample = historian.record(standard_sensors, T0)

        assert len(historian) == 1
        assert historian.latest() is sample
        assert sample.values["Temperature3"] == 65.0
        assert sample.values["Humidity1"] == 50.0

    def test_buffer_is_bounded(self, standard_sensors):
        """Test the oldest samples are dropped at capacity.

        WHY: A room runs for days; memory use must stay flat.
        """
        historian = SensorHistorian("room1", max_samples=3)
        for i in range(5):
            historian.record(standard_sensors, T0 + timedelta(seconds=i))

        assert len(historian) == 3
        assert historian.query()[0].timestamp == T0 + timedelta(seconds=2)

    def test_invalid_capacity(self):
        with pytest.raises(ValueError):
            SensorHistorian("room1", max_samples=0)

    def test_query_range(self, historian, standard_sensors):
        for i in range(5):
            historian.record(standard_sensors, T0 + timedelta(minutes=i))

        samples = historian.query(T0 + timedelta(minutes=1), T0 + timedelta(minutes=3))

        assert [s.timestamp.minute for s in samples] == [1, 2, 3]

    def test_clear(self, historian, standard_sensors):
        historian.record(standard_sensors)
        assert historian.clear() == 1
        assert historian.latest() is None


# ================================================================
# CSV EXPORT TESTS
# ================================================================
class TestCsvExport:
    """Test CSV rendering and file export."""

    def test_export_format(self, historian, standard_sensors):
        historian.record(standard_sensors, T0)

        lines = historian.export_csv().splitlines()

        assert lines[0] == ",".join(CSV_HEADER)
        assert lines[0] == (
            "Timestamp,Temperature1,Temperature2,Temperature3,Temperature4,Humidity1,Humidity2"
        )
        assert lines[1] == "2024-06-01T12:00:00,65.0,65.0,65.0,65.0,50.0,50.0"

    def test_missing_values_left_empty(self, historian):
        historian.record_sample(HistorySample(T0, {"Temperature2": 61.26}))

        lines = historian.export_csv().splitlines()

        assert lines[1] == "2024-06-01T12:00:00,,61.3,,,,"

    def test_empty_export_has_header_only(self, historian):
        assert historian.export_csv() == ",".join(CSV_HEADER) + "\n"

    def test_export_filename(self):
        assert export_filename("Drying Room 1") == "Drying-Room-1-data.csv"
        assert export_filename("room1") == "room1-data.csv"

    def test_write_csv(self, historian, standard_sensors, tmp_path):
        historian.record(standard_sensors, T0)

        path = historian.write_csv(tmp_path / "exports")

        assert path == tmp_path / "exports" / "Drying-Room-1-data.csv"
        assert path.read_text(encoding="utf-8").count("\n") == 2


# ================================================================
# MOCK HISTORY TESTS
# ================================================================
class TestMockHistory:
    """Test the synthetic 24-hour series."""

    def test_hourly_samples_ending_now(self):
        samples = generate_mock_history(now=T0, rng=random.Random(1))

        assert len(samples) == 24
        assert samples[-1].timestamp == T0
        assert samples[0].timestamp == T0 - timedelta(hours=23)

    def test_values_in_expected_bands(self):
        """Test the series stays near room conditions.

        WHY: The mock series stands in for real data in exports.
        """
        for sample in generate_mock_history(now=T0, rng=random.Random(2)):
            for column in ("Temperature1", "Temperature2", "Temperature3", "Temperature4"):
                assert 15.0 <= sample.values[column] <= 40.0
            for column in ("Humidity1", "Humidity2"):
                assert 30.0 <= sample.values[column] <= 75.0

    def test_values_rounded(self):
        sample = generate_mock_history(now=T0, hours=1, rng=random.Random(3))[0]

        for value in sample.values.values():
            assert value == round(value, 1)
