# config/config_loader.py
"""
Config loader module for modular YAML configuration.
"""

from pathlib import Path

import yaml


class ConfigLoader:
    """Loads and merges modular configuration files."""

    def __init__(self, config_dir="config"):
        self.config_dir = Path(config_dir)
        self.config_dir.mkdir(parents=True, exist_ok=True)

    def load_all(self):
        """Load all configuration files and merge them."""
        config = {}

        # Load rooms config
        rooms_path = self.config_dir / "rooms.yml"
        if rooms_path.exists():
            with open(rooms_path) as f:
                rooms_data = yaml.safe_load(f) or {}
                config["rooms"] = rooms_data.get("rooms", [])
        else:
            config["rooms"] = self._create_default_rooms()
            self._save_rooms(config["rooms"])

        # Load simulation config
        simulation_path = self.config_dir / "simulation.yml"
        if simulation_path.exists():
            with open(simulation_path) as f:
                simulation_data = yaml.safe_load(f) or {}
                config["simulation"] = simulation_data.get("simulation", {})
        else:
            config["simulation"] = {}

        # Load persistence config
        persistence_path = self.config_dir / "persistence.yml"
        if persistence_path.exists():
            with open(persistence_path) as f:
                persistence_data = yaml.safe_load(f) or {}
                persistence = persistence_data.get("persistence", {})
                config["persistence"] = {
                    "backend": persistence.get("backend", "memory"),
                    "directory": persistence.get("directory", "data/snapshots"),
                }
        else:
            config["persistence"] = {
                "backend": "memory",
                "directory": "data/snapshots",
            }

        # Load logging config
        logging_path = self.config_dir / "logging.yml"
        if logging_path.exists():
            with open(logging_path) as f:
                logging_data = yaml.safe_load(f) or {}
                logging_cfg = logging_data.get("logging", {})
                config["logging"] = {
                    "log_dir": logging_cfg.get("log_dir"),
                    "json": logging_cfg.get("json", False),
                    "console": logging_cfg.get("console", True),
                }
        else:
            config["logging"] = {
                "log_dir": None,
                "json": False,
                "console": True,
            }

        return config

    def _create_default_rooms(self):
        """Create default room configuration."""
        return [
            {
                "id": f"room{number}",
                "name": f"Drying Room {number}",
                "sensors": self._default_sensors(),
            }
            for number in (1, 2, 3)
        ]

    @staticmethod
    def _default_sensors():
        """Sensor layout of a standard drying room (4 temperature, 2 humidity)."""
        temperatures = [65.2, 68.7, 72.1, 67.5]
        humidities = [45.0, 58.0]
        sensors = [
            {
                "id": index,
                "kind": "temperature",
                "name": f"Sensor {index}",
                "value": value,
                "min_threshold": 60,
                "max_threshold": 70,
            }
            for index, value in enumerate(temperatures, start=1)
        ]
        sensors += [
            {
                "id": index,
                "kind": "humidity",
                "name": f"Humidity {index}",
                "value": value,
                "min_threshold": 40,
                "max_threshold": 60,
            }
            for index, value in enumerate(humidities, start=1)
        ]
        return sensors

    def _save_rooms(self, rooms):
        """Save rooms configuration to file."""
        rooms_path = self.config_dir / "rooms.yml"
        with open(rooms_path, "w") as f:
            yaml.dump({"rooms": rooms}, f, default_flow_style=False, sort_keys=False)
        print(f"[INFO] Created default rooms config at {rooms_path}")
