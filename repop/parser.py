"""Regex-based parsers for kill lines and scheduled-event announcements.

Kill-line precedence (first structural match wins):
  1. [PVP] broadcast
  2. Guild-channel relay of a kill
  3. Third-person "has been slain by"
  4. First-person "You have slain"
"""

import re
from typing import Callable

from repop.models import KillEvent, ScheduledEventAnnouncement

# ---------------------------------------------------------------------------
# Compiled regex patterns
# ---------------------------------------------------------------------------

# Client log prefix, e.g. "[Mon Oct 19 18:20:00 2026] "
_TIMESTAMP_RE = re.compile(
    r'^\[(?:Mon|Tue|Wed|Thu|Fri|Sat|Sun) [A-Z][a-z]{2} +\d{1,2} '
    r'\d{2}:\d{2}:\d{2} \d{4}\]\s*'
)

_PVP_RE = re.compile(
    r'\[PVP\]\s+(?P<player>.+?)'
    r'(?:\s+of\s+<(?P<guild>[^<>]+)>)?'
    r'\s+has killed\s+(?P<npc>.+?)'
    r'(?:\s+in\s+(?P<zone>.+?))?!\s*$'
)

_GUILD_RELAY_RE = re.compile(
    r"^(?P<speaker>.+?) tells the guild, '"
    r"(?P<player>.+?)\s+of\s+<(?P<guild>[^<>]+)>"
    r"\s+has killed\s+(?P<npc>.+?)"
    r"(?:\s+in\s+(?P<zone>.+?))?!'\s*$"
)

_SLAIN_BY_RE = re.compile(
    r'^(?P<npc>.+?)\s+has been slain by\s+(?P<player>.+?)!\s*$'
)

_YOU_SLAIN_RE = re.compile(
    r'You have slain\s+(?P<npc>.*?[^\s.!])[.!]?\s*$'
)

_SCHEDULED_RE = re.compile(
    r'the next\s+(?P<event>.+?)\s+will begin in\s+'
    r'(?:(?P<days>\d+)\s+days?,?\s+)?'
    r'(?:(?:and\s+)?(?P<hours>\d+)\s+hours?,?\s+)?'
    r'(?:(?:and\s+)?(?P<minutes>\d+)\s+minutes?,?\s+)?'
    r'(?:and\s+)?(?P<seconds>\d+)\s+seconds?\b',
    re.IGNORECASE,
)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _optional(value: str | None) -> str | None:
    """Trim a captured group, mapping absent or blank captures to None."""
    if value is None:
        return None
    value = value.strip()
    return value or None


def _strip_timestamp(line: str) -> str:
    return _TIMESTAMP_RE.sub("", line.strip(), count=1)


def _to_int(value: str | None) -> int:
    return int(value) if value else 0


# ---------------------------------------------------------------------------
# Kill-line extractors
# ---------------------------------------------------------------------------


def _build_kill(m: re.Match, is_pvp: bool) -> KillEvent | None:
    npc = m.group("npc").strip()
    if not npc:
        return None
    groups = m.groupdict()
    return KillEvent(
        npc_name=npc,
        is_pvp=is_pvp,
        zone=_optional(groups.get("zone")),
        player_name=_optional(groups.get("player")),
        guild_name=_optional(groups.get("guild")),
    )


def _parse_pvp(line: str) -> KillEvent | None:
    m = _PVP_RE.search(line)
    return _build_kill(m, is_pvp=True) if m else None


def _parse_guild_relay(line: str) -> KillEvent | None:
    # Relayed kills are never PvP, whatever the wording.
    m = _GUILD_RELAY_RE.match(line)
    return _build_kill(m, is_pvp=False) if m else None


def _parse_slain_by(line: str) -> KillEvent | None:
    m = _SLAIN_BY_RE.match(line)
    return _build_kill(m, is_pvp=False) if m else None


def _parse_you_slain(line: str) -> KillEvent | None:
    m = _YOU_SLAIN_RE.search(line)
    return _build_kill(m, is_pvp=False) if m else None


_KILL_PARSERS: tuple[Callable[[str], KillEvent | None], ...] = (
    _parse_pvp,
    _parse_guild_relay,
    _parse_slain_by,
    _parse_you_slain,
)

# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------


def parse_kill_line(line: str) -> KillEvent | None:
    """Parse a single log line into a KillEvent, or None if no grammar matches."""
    if not isinstance(line, str):
        return None
    stripped = _strip_timestamp(line)
    if not stripped:
        return None
    for parse in _KILL_PARSERS:
        event = parse(stripped)
        if event is not None:
            return event
    return None


def parse_scheduled_event_line(line: str) -> ScheduledEventAnnouncement | None:
    """Parse a countdown announcement such as
    'The next earthquake will begin in 3 Days, 20 Hours, 57 Minutes, and 42 Seconds'.
    """
    if not isinstance(line, str):
        return None
    m = _SCHEDULED_RE.search(line)
    if not m:
        return None
    return ScheduledEventAnnouncement(
        days=_to_int(m.group("days")),
        hours=_to_int(m.group("hours")),
        minutes=_to_int(m.group("minutes")),
        seconds=_to_int(m.group("seconds")),
        event=m.group("event").strip().lower(),
    )
