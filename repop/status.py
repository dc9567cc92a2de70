"""Connection status feed pushed to the presentation layer."""

import logging
from collections import deque
from typing import Callable

from repop.models import ConnectionState, DebugKind

logger = logging.getLogger(__name__)

StatusListener = Callable[[ConnectionState], None]
DebugListener = Callable[[str, DebugKind], None]

_DEBUG_LOG_LEVELS = {
    DebugKind.INFO: logging.INFO,
    DebugKind.SUCCESS: logging.INFO,
    DebugKind.ERROR: logging.ERROR,
    DebugKind.PARSE: logging.DEBUG,
}


class StatusFeed:
    """Holds the current ConnectionState and notifies subscribers.

    The feed has no timers of its own; it only reflects signals raised by the
    watcher and reporter. Debug messages are advisory and mirrored to logging.
    """

    def __init__(self, history_size: int = 50):
        self._state = ConnectionState.STOPPED
        self._history: deque[ConnectionState] = deque(maxlen=history_size)
        self._status_listeners: list[StatusListener] = []
        self._debug_listeners: list[DebugListener] = []

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def history(self) -> list[ConnectionState]:
        return list(self._history)

    def signal(self, state: ConnectionState) -> None:
        if state != self._state:
            logger.info("Connection status: %s -> %s", self._state.value, state.value)
        self._state = state
        self._history.append(state)
        for listener in list(self._status_listeners):
            try:
                listener(state)
            except Exception:
                logger.exception("Status listener failed")

    def debug(self, message: str, kind: DebugKind = DebugKind.INFO) -> None:
        logger.log(_DEBUG_LOG_LEVELS[kind], message)
        for listener in list(self._debug_listeners):
            try:
                listener(message, kind)
            except Exception:
                logger.exception("Debug listener failed")

    def subscribe_status(self, listener: StatusListener) -> Callable[[], None]:
        self._status_listeners.append(listener)
        return lambda: self._remove(self._status_listeners, listener)

    def subscribe_debug(self, listener: DebugListener) -> Callable[[], None]:
        self._debug_listeners.append(listener)
        return lambda: self._remove(self._debug_listeners, listener)

    @staticmethod
    def _remove(listeners: list, listener) -> None:
        if listener in listeners:
            listeners.remove(listener)
