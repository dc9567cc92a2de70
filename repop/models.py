"""Event records and connection states shared across the watcher."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class KillEvent:
    npc_name: str
    is_pvp: bool
    occurred_at: datetime = field(default_factory=_utcnow)
    zone: str | None = None
    player_name: str | None = None
    guild_name: str | None = None

    def describe(self) -> str:
        """Short human summary used in debug messages."""
        text = self.npc_name
        if self.player_name:
            text += f" by {self.player_name}"
            if self.guild_name:
                text += f" <{self.guild_name}>"
        return f"{text} [{'PVP' if self.is_pvp else 'Non-PVP'}]"


@dataclass(frozen=True)
class ScheduledEventAnnouncement:
    days: int = 0
    hours: int = 0
    minutes: int = 0
    seconds: int = 0
    event: str = "earthquake"

    @property
    def total_seconds(self) -> int:
        return ((self.days * 24 + self.hours) * 60 + self.minutes) * 60 + self.seconds

    def describe(self) -> str:
        return f"{self.days}d {self.hours}h {self.minutes}m {self.seconds}s"


class ConnectionState(Enum):
    STOPPED = "stopped"
    STARTING = "starting"
    CONNECTED = "connected"
    MISSING_CONFIG = "missing_config"
    FILE_NOT_FOUND = "file_not_found"
    SERVER_OFFLINE = "server_offline"
    INVALID_KEY = "invalid_key"
    ERROR = "error"
    SAVED = "saved"

    @property
    def message(self) -> str:
        return _STATUS_MESSAGES[self]

    @property
    def is_error(self) -> bool:
        return self not in (
            ConnectionState.STOPPED,
            ConnectionState.STARTING,
            ConnectionState.CONNECTED,
            ConnectionState.SAVED,
        )


_STATUS_MESSAGES = {
    ConnectionState.STOPPED: "Stopped.",
    ConnectionState.STARTING: "Starting...",
    ConnectionState.SAVED: "Saved.",
    ConnectionState.CONNECTED: "Connected. Watching log.",
    ConnectionState.INVALID_KEY: "Invalid password. Check with your admin.",
    ConnectionState.FILE_NOT_FOUND: "Log file not found. Check path.",
    ConnectionState.MISSING_CONFIG: "Fill in server, password and log path.",
    ConnectionState.SERVER_OFFLINE: "Server is offline or unreachable.",
    ConnectionState.ERROR: "Connection or file error.",
}


class DebugKind(Enum):
    INFO = "info"
    SUCCESS = "success"
    ERROR = "error"
    PARSE = "parse"
