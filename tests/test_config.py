"""Tests for the config module."""

import argparse

import pytest
import yaml

from repop.config import Config, load_config, load_yaml_config, save_yaml_config

_ENV_VARS = (
    "REPOP_SERVER_URL", "REPOP_API_KEY", "REPOP_LOG_PATH", "REPOP_POLL_INTERVAL",
    "REPOP_CORRELATION_WINDOW", "REPOP_HEALTH_TIMEOUT", "REPOP_EARTHQUAKE_TIMEZONE",
    "REPOP_LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def _cli(**kwargs) -> argparse.Namespace:
    fields = dict(server_url=None, api_key=None, log_path=None, poll_interval=None, log_level=None)
    fields.update(kwargs)
    return argparse.Namespace(**fields)


class TestConfigDefaults:
    def test_defaults(self):
        cfg = Config()
        assert cfg.poll_interval == 1.0
        assert cfg.correlation_window == 2.0
        assert cfg.health_timeout == 8.0
        assert cfg.earthquake_timezone == "GMT-0500"

    def test_frozen(self):
        cfg = Config()
        with pytest.raises(AttributeError):
            cfg.api_key = "x"

    def test_missing_fields(self):
        assert Config().missing_fields() == ["server_url", "api_key", "log_path"]
        cfg = Config(server_url="http://x", api_key="  ", log_path="/tmp/log")
        assert cfg.missing_fields() == ["api_key"]
        assert cfg.is_complete is False


class TestLoadConfig:
    def test_layering(self, monkeypatch):
        yaml_data = {"server_url": "http://yaml", "api_key": "yaml-key", "log_path": "/yaml.log"}
        monkeypatch.setenv("REPOP_API_KEY", "env-key")
        monkeypatch.setenv("REPOP_POLL_INTERVAL", "0.5")
        cfg = load_config(_cli(log_path="/cli.log"), yaml_data)
        assert cfg.server_url == "http://yaml"
        assert cfg.api_key == "env-key"
        assert cfg.log_path == "/cli.log"
        assert cfg.poll_interval == 0.5

    def test_unknown_yaml_keys_ignored(self):
        cfg = load_config(None, {"server_url": "http://x", "colour": "blue"})
        assert cfg.server_url == "http://x"

    def test_log_level_uppercased(self):
        assert load_config(_cli(log_level="debug"), {}).log_level == "DEBUG"

    def test_bad_number(self, monkeypatch):
        monkeypatch.setenv("REPOP_HEALTH_TIMEOUT", "soon")
        with pytest.raises(ValueError):
            load_config(None, {})


class TestYamlFile:
    def test_missing_file(self, tmp_path):
        assert load_yaml_config(str(tmp_path / "missing.yml")) == {}
        assert load_yaml_config(None) == {}

    def test_empty_file(self, tmp_path):
        f = tmp_path / "repop.yml"
        f.write_text("")
        assert load_yaml_config(str(f)) == {}

    def test_desktop_client_keys(self, tmp_path):
        f = tmp_path / "repop.yml"
        f.write_text("serverUrl: http://x\napiKey: k\nlogPath: /eq.log\npoll_interval: 2\n")
        assert load_yaml_config(str(f)) == {
            "server_url": "http://x", "api_key": "k", "log_path": "/eq.log", "poll_interval": 2,
        }

    def test_snake_case_wins_over_camel_case(self, tmp_path):
        f = tmp_path / "repop.yml"
        f.write_text("api_key: snake\napiKey: camel\n")
        assert load_yaml_config(str(f)) == {"api_key": "snake"}
        f.write_text("apiKey: camel\napi_key: snake\n")
        assert load_yaml_config(str(f)) == {"api_key": "snake"}

    def test_unknown_keys_dropped_with_warning(self, tmp_path, caplog):
        f = tmp_path / "repop.yml"
        f.write_text("server_url: http://x\ncolour: blue\n")
        with caplog.at_level("WARNING", logger="repop.config"):
            assert load_yaml_config(str(f)) == {"server_url": "http://x"}
        assert "colour" in caplog.text

    def test_non_mapping_rejected(self, tmp_path):
        f = tmp_path / "repop.yml"
        f.write_text("- a\n- b\n")
        with pytest.raises(ValueError):
            load_yaml_config(str(f))

    def test_save_and_load(self, tmp_path):
        path = tmp_path / "nested" / "repop.yml"
        cfg = Config(server_url="http://x", api_key="k", log_path="/eq.log", poll_interval=3.0)
        save_yaml_config(str(path), cfg)

        data = yaml.safe_load(path.read_text())
        assert data == {"server_url": "http://x", "api_key": "k", "log_path": "/eq.log"}
        assert load_config(None, load_yaml_config(str(path))).api_key == "k"
        assert [p.name for p in path.parent.iterdir()] == ["repop.yml"]
