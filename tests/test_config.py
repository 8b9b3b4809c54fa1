"""Tests for configuration loading and the event bus."""

import json

import pytest
import yaml

from promptstudio.core import config as config_module
from promptstudio.core.config import Config
from promptstudio.core.events import EventBus


@pytest.fixture
def isolated(tmp_path, monkeypatch):
    """No user or project config leaks in from the machine running the tests."""
    monkeypatch.setattr(config_module, "CONFIG_HOME", tmp_path / "home")
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.delenv("API_KEY", raising=False)
    return tmp_path


class TestConfig:
    def test_defaults(self, isolated):
        config = Config.load()
        assert config.api_key is None
        assert config.max_retries == 2
        assert config.history_capacity == 20
        assert config.video_max_polls == 60

    def test_env_key(self, isolated, monkeypatch):
        monkeypatch.setenv("API_KEY", "from-env")
        assert Config.load().api_key == "from-env"

    def test_hierarchy(self, isolated):
        home = isolated / "home"
        home.mkdir()
        (home / "config.yaml").write_text(
            yaml.dump({"timeout": 30, "max_retries": 5, "log_level": "DEBUG"}), encoding="utf-8"
        )
        (isolated / ".promptstudio.yaml").write_text(yaml.dump({"max_retries": 4}), encoding="utf-8")
        explicit = isolated / "custom.json"
        explicit.write_text(json.dumps({"max_retries": 3, "unknown_key": 1}), encoding="utf-8")

        config = Config.load({"log_level": "WARNING", "timeout": None}, config_file=explicit)

        assert config.timeout == 30
        assert config.max_retries == 3
        assert config.log_level == "WARNING"
        assert not hasattr(config, "unknown_key")

    def test_unreadable_file_is_ignored(self, isolated):
        broken = isolated / "broken.yaml"
        broken.write_text("timeout: [unclosed", encoding="utf-8")
        assert Config.load(config_file=broken).timeout == 120.0

    def test_save_leaves_out_secrets(self, isolated):
        config = Config()
        config.api_key = "secret"
        path = isolated / "out" / "config.yaml"

        config.save(path)
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
        assert "api_key" not in data
        assert data["reasoning_budget"] == 2000

        config.save(path, format="json", include_secrets=True)
        assert json.loads(path.read_text(encoding="utf-8"))["api_key"] == "secret"

    def test_history_file(self, isolated):
        config = Config()
        assert config.get_history_file() == isolated / "home" / "history.json"
        config.history_file = str(isolated / "data" / "h.json")
        assert config.get_history_file().parent.is_dir()


class TestEventBus:
    def test_failing_subscriber_does_not_block_others(self):
        bus = EventBus()
        seen = []

        def broken(payload):
            raise RuntimeError("subscriber bug")

        bus.subscribe("thing", broken)
        bus.subscribe("thing", seen.append)
        bus.publish("thing", 1)

        assert seen == [1]
        assert bus.get_event_log("thing") == [("thing", 1)]

    def test_unsubscribe(self):
        bus = EventBus()
        seen = []
        unsubscribe = bus.subscribe("thing", seen.append)
        unsubscribe()
        bus.publish("thing", 1)
        assert seen == []

    def test_log_is_bounded(self):
        bus = EventBus(max_log_size=2)
        for value in range(3):
            bus.publish("thing", value)
        assert [payload for _, payload in bus.get_event_log()] == [1, 2]
