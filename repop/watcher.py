"""Watch-session lifecycle: preflight checks, polling loop, and teardown."""

import asyncio
import logging
from typing import Awaitable

import httpx

from repop.config import Config
from repop.correlator import Correlator, correlation_key
from repop.models import ConnectionState, DebugKind, KillEvent
from repop.parser import parse_kill_line, parse_scheduled_event_line
from repop.reporter import Reporter
from repop.status import StatusFeed
from repop.tailer import LogTailer

logger = logging.getLogger(__name__)


class WatchSession:
    """Everything owned by one watch: cursor, pending correlations, polling task.

    Created by LogWatcher.start_watching and discarded by stop_watching.
    """

    def __init__(
        self,
        tailer: LogTailer,
        reporter: Reporter,
        status: StatusFeed,
        poll_interval: float = 1.0,
        correlation_window: float = 2.0,
    ):
        self.tailer = tailer
        self.reporter = reporter
        self.correlator = Correlator(self._on_release, window=correlation_window)
        self._status = status
        self._poll_interval = poll_interval
        self._task: asyncio.Task | None = None
        self._in_flight: set[asyncio.Task] = set()
        self.active = False
        self.reported = 0
        self.failed = 0

    @property
    def in_flight(self) -> set[asyncio.Task]:
        return set(self._in_flight)

    def start(self) -> None:
        """Begin polling on the running event loop."""
        self.active = True
        self._task = asyncio.create_task(self._poll_loop(), name=f"tail:{self.tailer.path}")

    def stop(self) -> None:
        """Cancel the polling task and every pending correlation timer.

        Reports already in flight are left to finish but their outcomes are
        no longer signalled.
        """
        self.active = False
        if self._task is not None:
            self._task.cancel()
            self._task = None
        self.correlator.cancel_all()

    async def _poll_loop(self) -> None:
        # The next interval starts only after the previous tick's body finished.
        while self.active:
            await asyncio.sleep(self._poll_interval)
            await self.poll_once()

    async def poll_once(self) -> None:
        """One tick: read appended lines and process them. Never raises."""
        try:
            lines = self.tailer.read_new_lines()
            for line in lines:
                await self.process_line(line)
        except OSError as e:
            self._status.debug(f"Log read error: {e}", DebugKind.ERROR)
            self._signal(ConnectionState.ERROR)
        except Exception:
            logger.exception("Unexpected error while processing %s", self.tailer.path)
            self._signal(ConnectionState.ERROR)

    async def process_line(self, line: str) -> None:
        announcement = parse_scheduled_event_line(line)
        if announcement is not None:
            self._status.debug(f"Parsed: Earthquake ({announcement.describe()})", DebugKind.PARSE)
            await self._report(self.reporter.report_scheduled_event(line))
            return

        event = parse_kill_line(line)
        if event is None:
            return
        self._status.debug(f"Parsed: {event.describe()}", DebugKind.PARSE)

        if event.is_pvp and self.correlator.pending(correlation_key(event.npc_name)) is not None:
            self._status.debug(f"Cancelled buffered non-PVP for {event.npc_name}")
        ready = self.correlator.submit(event)
        if ready is None:
            window_ms = int(self.correlator.window * 1000)
            self._status.debug(f"Buffering non-PVP kill for {window_ms}ms")
            return
        await self._report(self.reporter.report_kill(ready))

    def _on_release(self, event: KillEvent) -> None:
        """Correlation timer fired: report the buffered event in a tracked task."""
        task = asyncio.get_running_loop().create_task(self._report(self.reporter.report_kill(event)))
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)

    async def _report(self, call: Awaitable[ConnectionState]) -> None:
        try:
            outcome = await call
        except Exception:
            logger.exception("Report failed unexpectedly")
            outcome = ConnectionState.ERROR
        if outcome is ConnectionState.CONNECTED:
            self.reported += 1
        else:
            self.failed += 1
        self._signal(outcome)

    def _signal(self, state: ConnectionState) -> None:
        if self.active:
            self._status.signal(state)


class LogWatcher:
    """Single logical watcher. Starting a new watch tears down the previous one."""

    def __init__(self, status: StatusFeed | None = None, client: httpx.AsyncClient | None = None):
        self.status = status or StatusFeed()
        self._client = client
        self._owns_client = client is None
        self._session: WatchSession | None = None
        self._retired: list[WatchSession] = []
        self._generation = 0

    @property
    def session(self) -> WatchSession | None:
        return self._session

    @property
    def state(self) -> ConnectionState:
        return self.status.state

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(15.0, connect=8.0))
        return self._client

    async def start_watching(self, config: Config) -> ConnectionState:
        """Run the preflight checks and, if all pass, start polling."""
        self.stop_watching()
        self._generation += 1
        generation = self._generation

        missing = config.missing_fields()
        if missing:
            self.status.debug(f"Missing settings: {', '.join(missing)}", DebugKind.ERROR)
            return self._fail(ConnectionState.MISSING_CONFIG)

        self.status.signal(ConnectionState.STARTING)
        tailer = LogTailer(config.log_path.strip())
        self.status.debug(f"Starting log watcher: {tailer.path}")
        try:
            size = tailer.open()
        except OSError as e:
            self.status.debug(f"Log file not found: {e}", DebugKind.ERROR)
            return self._fail(ConnectionState.FILE_NOT_FOUND)
        self.status.debug(f"Log file found, size: {size} bytes")

        reporter = Reporter(
            config.server_url, config.api_key, self._get_client(), self.status,
            earthquake_timezone=config.earthquake_timezone,
        )
        healthy = await reporter.check_health(timeout=config.health_timeout)
        if generation != self._generation:
            return self.status.state
        if not healthy:
            return self._fail(ConnectionState.SERVER_OFFLINE)

        outcome = await reporter.check_api_key()
        if generation != self._generation:
            return self.status.state
        if outcome is not ConnectionState.CONNECTED:
            return self._fail(outcome)

        self._session = WatchSession(
            tailer, reporter, self.status,
            poll_interval=config.poll_interval,
            correlation_window=config.correlation_window,
        )
        self.status.debug("Watching started", DebugKind.SUCCESS)
        self.status.signal(ConnectionState.CONNECTED)
        self._session.start()
        logger.info("Watching %s (cursor=%d), reporting to %s", tailer.path, size, reporter.base_url)
        return ConnectionState.CONNECTED

    def _fail(self, state: ConnectionState) -> ConnectionState:
        self.status.signal(state)
        return state

    def stop_watching(self) -> None:
        """Tear down the current session, if any, and signal stopped. Idempotent."""
        self._generation += 1
        session = self._session
        self._session = None
        if session is not None:
            session.stop()
            logger.info(
                "Watch session finished: reported=%d, failed=%d, suppressed=%d",
                session.reported, session.failed, session.correlator.suppressed,
            )
            self._retired = [s for s in self._retired if s.in_flight]
            if session.in_flight:
                self._retired.append(session)
        self.status.signal(ConnectionState.STOPPED)

    async def aclose(self) -> None:
        """Stop watching, cancel leftover reports, and close an owned HTTP client."""
        self.stop_watching()
        tasks = [t for s in self._retired for t in s.in_flight]
        self._retired.clear()
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None
