# tests/unit/config/test_config_loader.py
import yaml

from config.config_loader import ConfigLoader


def test_create_default_rooms(tmp_path):
    loader = ConfigLoader(config_dir=tmp_path)
    defaults = loader._create_default_rooms()
    assert isinstance(defaults, list)
    assert [r["id"] for r in defaults] == ["room1", "room2", "room3"]
    assert defaults[0]["name"] == "Drying Room 1"

    kinds = [s["kind"] for s in defaults[0]["sensors"]]
    assert kinds.count("temperature") == 4
    assert kinds.count("humidity") == 2


def test_save_and_load_rooms(tmp_path):
    loader = ConfigLoader(config_dir=tmp_path)
    rooms = loader._create_default_rooms()
    loader._save_rooms(rooms)

    rooms_path = tmp_path / "rooms.yml"
    assert rooms_path.exists()

    with open(rooms_path) as f:
        data = yaml.safe_load(f)
    assert "rooms" in data
    assert len(data["rooms"]) == len(rooms)


def test_missing_sections_get_defaults(tmp_path):
    (tmp_path / "rooms.yml").write_text("rooms: []\n")
    loader = ConfigLoader(config_dir=tmp_path)

    config = loader.load_all()

    assert config["rooms"] == []
    assert config["simulation"] == {}
    assert config["persistence"] == {"backend": "memory", "directory": "data/snapshots"}
    assert config["logging"] == {"log_dir": None, "json": False, "console": True}


def test_persistence_and_logging_sections(tmp_path):
    (tmp_path / "rooms.yml").write_text("rooms: []\n")
    (tmp_path / "persistence.yml").write_text(
        "persistence:\n  backend: file\n  directory: /var/lib/dryer\n"
    )
    (tmp_path / "logging.yml").write_text("logging:\n  log_dir: logs\n  json: true\n")
    loader = ConfigLoader(config_dir=tmp_path)

    config = loader.load_all()

    assert config["persistence"] == {"backend": "file", "directory": "/var/lib/dryer"}
    assert config["logging"] == {"log_dir": "logs", "json": True, "console": True}


def test_empty_files_tolerated(tmp_path):
    for name in ("rooms.yml", "simulation.yml", "persistence.yml", "logging.yml"):
        (tmp_path / name).write_text("")
    loader = ConfigLoader(config_dir=tmp_path)

    config = loader.load_all()

    assert config["rooms"] == []
    assert config["simulation"] == {}
    assert config["persistence"]["backend"] == "memory"
