"""Time-buffered correlation of duplicate kill reports.

The same kill is often announced twice: once with non-PVP wording and, if it
was a PvP kill, again by the authoritative [PVP] broadcast. Non-PVP events are
held for a short window so a PVP event for the same NPC can suppress them.
"""

import asyncio
import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Hashable

from repop.models import KillEvent

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_SECS = 2.0

# Leading '#' run, and any whitespace mixed into it
_LEADING_HASHES_RE = re.compile(r'^[\s#]+')
_WHITESPACE_RE = re.compile(r'\s+')


def correlation_key(npc_name: str) -> str:
    """Normalize an NPC name so PVP and non-PVP reports of one kill compare equal."""
    key = npc_name.replace("_", " ").lower()
    key = _LEADING_HASHES_RE.sub("", key).strip()
    return _WHITESPACE_RE.sub(" ", key)


class DeferredTasks:
    """Keyed, cancellable, fire-once callbacks on the running event loop.

    Scheduling under a key that already has a task cancels the old one.
    Cancelling an absent or already-fired key is a no-op.
    """

    def __init__(self) -> None:
        self._handles: dict[Hashable, asyncio.TimerHandle] = {}

    def schedule(self, key: Hashable, delay: float, callback: Callable[..., Any], *args: Any) -> None:
        self.cancel(key)
        loop = asyncio.get_running_loop()
        self._handles[key] = loop.call_later(delay, self._fire, key, callback, args)

    def _fire(self, key: Hashable, callback: Callable[..., Any], args: tuple) -> None:
        self._handles.pop(key, None)
        callback(*args)

    def cancel(self, key: Hashable) -> bool:
        """Cancel the task for *key*. Returns True if one was pending."""
        handle = self._handles.pop(key, None)
        if handle is None:
            return False
        handle.cancel()
        return True

    def cancel_all(self) -> None:
        for handle in self._handles.values():
            handle.cancel()
        self._handles.clear()

    def __contains__(self, key: Hashable) -> bool:
        return key in self._handles

    def __len__(self) -> int:
        return len(self._handles)


@dataclass(frozen=True)
class PendingCorrelation:
    key: str
    event: KillEvent


class Correlator:
    """Decides whether a kill is reported now, buffered, or dropped.

    - PVP: cancel any pending entry for the key, report immediately.
    - Non-PVP: (re)arm a `window`-second timer for the key; when it fires the
      buffered event is passed to `release`.
    """

    def __init__(self, release: Callable[[KillEvent], None], window: float = DEFAULT_WINDOW_SECS):
        self._release = release
        self._window = window
        self._pending: dict[str, PendingCorrelation] = {}
        self._timers = DeferredTasks()
        self.suppressed = 0
        self.superseded = 0

    @property
    def window(self) -> float:
        return self._window

    def submit(self, event: KillEvent) -> KillEvent | None:
        """Apply the correlation policy. Returns the event if it must be reported now."""
        key = correlation_key(event.npc_name)

        if event.is_pvp:
            if self._discard(key):
                self.suppressed += 1
                logger.debug("Cancelled buffered non-PVP for %s", event.npc_name)
            return event

        if self._discard(key):
            self.superseded += 1
        self._pending[key] = PendingCorrelation(key=key, event=event)
        self._timers.schedule(key, self._window, self._fire, key)
        return None

    def _discard(self, key: str) -> bool:
        self._timers.cancel(key)
        return self._pending.pop(key, None) is not None

    def _fire(self, key: str) -> None:
        pending = self._pending.pop(key, None)
        if pending is None:
            return
        self._release(pending.event)

    def pending(self, key: str) -> KillEvent | None:
        entry = self._pending.get(key)
        return entry.event if entry else None

    def cancel_all(self) -> None:
        """Cancel every timer and forget all buffered events."""
        self._timers.cancel_all()
        self._pending.clear()

    def __len__(self) -> int:
        return len(self._pending)
