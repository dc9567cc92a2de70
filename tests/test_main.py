"""Tests for the CLI entry point."""

import logging

import pytest
import yaml

from main import build_cli_parser, main


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("REPOP_SERVER_URL", "REPOP_API_KEY", "REPOP_LOG_PATH", "REPOP_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)


class TestCliParser:
    def test_defaults(self):
        args = build_cli_parser().parse_args([])
        assert args.config == "repop.yml"
        assert args.server_url is None
        assert args.save is False
        assert args.debug is False

    def test_overrides(self):
        args = build_cli_parser().parse_args([
            "--server-url", "http://x", "--api-key", "k", "--log-path", "/eq.log",
            "--poll-interval", "0.5", "--debug",
        ])
        assert args.server_url == "http://x"
        assert args.api_key == "k"
        assert args.log_path == "/eq.log"
        assert args.poll_interval == 0.5
        assert args.debug is True


class TestMain:
    def test_save_writes_settings(self, tmp_path, capsys):
        path = tmp_path / "repop.yml"
        code = main([
            "--config", str(path), "--server-url", "http://x",
            "--api-key", "k", "--log-path", "/eq.log", "--save",
        ])
        assert code == 0
        assert yaml.safe_load(path.read_text()) == {
            "server_url": "http://x", "api_key": "k", "log_path": "/eq.log",
        }
        assert "Saved." in capsys.readouterr().err

    def test_missing_config_exits_non_zero(self, tmp_path, capsys):
        code = main(["--config", str(tmp_path / "none.yml")])
        assert code == 1
        err = capsys.readouterr().err
        assert "Fill in server, password and log path." in err

    def test_missing_log_file(self, tmp_path, capsys):
        code = main([
            "--config", str(tmp_path / "none.yml"), "--server-url", "http://127.0.0.1:9",
            "--api-key", "k", "--log-path", str(tmp_path / "missing.txt"),
        ])
        assert code == 1
        assert "Log file not found. Check path." in capsys.readouterr().err


class TestLoggingSetup:
    @pytest.fixture(autouse=True)
    def restore_root_level(self):
        root = logging.getLogger()
        level = root.level
        yield
        root.setLevel(level)

    def test_logging_configured_before_settings_read(self, tmp_path, monkeypatch):
        calls = []
        monkeypatch.setattr(logging, "basicConfig", lambda **kw: calls.append(("basicConfig", kw["level"])))
        monkeypatch.setattr("main.load_yaml_config", lambda path: calls.append(("load", path)) or {})

        path = str(tmp_path / "repop.yml")
        assert main(["--config", path, "--log-level", "debug", "--save"]) == 0
        assert calls == [("basicConfig", logging.DEBUG), ("load", path)]

    def test_settings_file_log_level_applied(self, tmp_path):
        path = tmp_path / "repop.yml"
        path.write_text("log_level: warning\n")
        assert main(["--config", str(path), "--save"]) == 0
        assert logging.getLogger().level == logging.WARNING
