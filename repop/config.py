"""Configuration loading from a YAML settings file, env vars, and CLI args."""

import logging
import os
import tempfile
from dataclasses import asdict, dataclass, fields

import yaml

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("server_url", "api_key", "log_path")

# YAML key / env var for each Config field
_ENV_VARS = {
    "server_url": "REPOP_SERVER_URL",
    "api_key": "REPOP_API_KEY",
    "log_path": "REPOP_LOG_PATH",
    "poll_interval": "REPOP_POLL_INTERVAL",
    "correlation_window": "REPOP_CORRELATION_WINDOW",
    "health_timeout": "REPOP_HEALTH_TIMEOUT",
    "earthquake_timezone": "REPOP_EARTHQUAKE_TIMEZONE",
    "log_level": "REPOP_LOG_LEVEL",
}

_FLOAT_FIELDS = ("poll_interval", "correlation_window", "health_timeout")

# Keys written by the desktop client's settings store
_CAMEL_CASE_KEYS = {
    "serverUrl": "server_url",
    "apiKey": "api_key",
    "logPath": "log_path",
}

# Only the connection settings are persisted by --save.
_PERSISTED_FIELDS = ("server_url", "api_key", "log_path")


@dataclass(frozen=True)
class Config:
    server_url: str = ""
    api_key: str = ""
    log_path: str = ""
    poll_interval: float = 1.0
    correlation_window: float = 2.0
    health_timeout: float = 8.0
    earthquake_timezone: str = "GMT-0500"
    log_level: str = "INFO"

    def missing_fields(self) -> list[str]:
        """Names of required settings that are empty after trimming."""
        return [name for name in REQUIRED_FIELDS if not str(getattr(self, name) or "").strip()]

    @property
    def is_complete(self) -> bool:
        return not self.missing_fields()


def load_yaml_config(path: str | None) -> dict:
    """Read the settings file into a dict keyed by Config field name.

    The desktop client's camelCase keys (``serverUrl``, ``apiKey``,
    ``logPath``) are accepted alongside the snake_case ones; when both
    spellings are present the snake_case value wins. Unknown keys are
    dropped with a warning. A missing file yields ``{}``.
    """
    if not path:
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f)
    except FileNotFoundError:
        logger.warning("Settings file %s not found, using defaults", path)
        return {}
    if raw is None:
        logger.warning("Settings file %s is empty, using defaults", path)
        return {}
    if not isinstance(raw, dict):
        raise ValueError(f"Settings file {path} must contain a mapping, got {type(raw).__name__}")

    known = {f.name for f in fields(Config)}
    data: dict = {}
    for key, value in raw.items():
        name = _CAMEL_CASE_KEYS.get(key, key)
        if name not in known:
            logger.warning("Ignoring unknown setting %r in %s", key, path)
            continue
        if name in data and key != name:
            continue
        data[name] = value
    logger.info("Loaded %d setting(s) from %s", len(data), path)
    return data


def save_yaml_config(path: str, config: Config) -> None:
    """Persist the connection settings atomically (tmp file + os.replace)."""
    data = {name: getattr(config, name) for name in _PERSISTED_FIELDS}
    directory = os.path.dirname(os.path.abspath(path))
    os.makedirs(directory, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=directory, suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            yaml.safe_dump(data, f, default_flow_style=False)
        os.replace(tmp, path)
    except Exception:
        if os.path.exists(tmp):
            os.unlink(tmp)
        raise
    logger.info("Saved settings to %s", path)


def _coerce(name: str, value) -> object:
    if name in _FLOAT_FIELDS:
        return float(value)
    return str(value)


def load_config(cli_args=None, yaml_data: dict | None = None) -> Config:
    """Build Config from defaults <- YAML <- env vars <- CLI args (highest priority)."""
    kwargs = asdict(Config())

    for name, value in (yaml_data or {}).items():
        if name in kwargs and value is not None:
            kwargs[name] = _coerce(name, value)

    for name, env_var in _ENV_VARS.items():
        value = os.environ.get(env_var)
        if value is not None:
            kwargs[name] = _coerce(name, value)

    if cli_args is not None:
        for name in kwargs:
            value = getattr(cli_args, name, None)
            if value is not None:
                kwargs[name] = _coerce(name, value)

    kwargs["log_level"] = str(kwargs["log_level"]).upper()
    return Config(**kwargs)
