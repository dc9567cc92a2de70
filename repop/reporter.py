"""HTTP reporter for the collector API.

Each call is independent and never retried; the outcome is mapped to a
ConnectionState (2xx -> connected, 401 -> invalid_key, anything else -> error).
"""

import asyncio
import logging
from datetime import timezone
from typing import Any

import httpx

from repop.models import ConnectionState, DebugKind, KillEvent
from repop.status import StatusFeed

logger = logging.getLogger(__name__)

HEALTH_PATH = "/api/health"
API_KEY_PATH = "/api/auth/api-key"
SLAIN_PATH = "/api/slain"
EARTHQUAKE_PATH = "/api/earthquake"

# InvalidURL is raised before any request is sent and is not an HTTPError.
_REQUEST_ERRORS = (httpx.HTTPError, httpx.InvalidURL)

DEFAULT_HEALTH_TIMEOUT = 8.0
# Announcements come from a US-Eastern server clock.
DEFAULT_EARTHQUAKE_TIMEZONE = "GMT-0500"


def kill_payload(event: KillEvent) -> dict[str, Any]:
    """Serialize a KillEvent to the /api/slain body, omitting absent fields."""
    killed_at = event.occurred_at.astimezone(timezone.utc)
    payload: dict[str, Any] = {"npcName": event.npc_name}
    if event.zone:
        payload["zone"] = event.zone
    payload["pvp"] = 1 if event.is_pvp else 0
    payload["killedAt"] = killed_at.isoformat(timespec="milliseconds").replace("+00:00", "Z")
    if event.player_name:
        payload["playerName"] = event.player_name
    if event.guild_name:
        payload["guildName"] = event.guild_name
    return payload


class Reporter:
    """Sends confirmed events to the collector over an httpx.AsyncClient."""

    def __init__(
        self,
        server_url: str,
        api_key: str,
        client: httpx.AsyncClient,
        status: StatusFeed,
        earthquake_timezone: str = DEFAULT_EARTHQUAKE_TIMEZONE,
    ):
        self._base = server_url.strip().rstrip("/")
        self._api_key = api_key.strip()
        self._client = client
        self._status = status
        self._timezone = earthquake_timezone

    @property
    def base_url(self) -> str:
        return self._base

    def _auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._api_key}"}

    # -- preflight ----------------------------------------------------------

    async def check_health(self, timeout: float = DEFAULT_HEALTH_TIMEOUT) -> bool:
        """GET /api/health bounded by `timeout` seconds. True only on 2xx."""
        self._status.debug(f"Checking server health: {self._base}")
        try:
            res = await asyncio.wait_for(
                self._client.get(self._base + HEALTH_PATH), timeout=timeout,
            )
        except (httpx.HTTPError, httpx.InvalidURL, asyncio.TimeoutError) as e:
            self._status.debug(f"Server connection failed: {e!r}", DebugKind.ERROR)
            return False
        if not res.is_success:
            self._status.debug("Server is offline or unreachable", DebugKind.ERROR)
            return False
        self._status.debug("Server is online", DebugKind.SUCCESS)
        return True

    async def check_api_key(self) -> ConnectionState:
        """GET /api/auth/api-key with the bearer credential."""
        self._status.debug("Validating API key...")
        try:
            res = await self._client.get(self._base + API_KEY_PATH, headers=self._auth_headers())
        except _REQUEST_ERRORS as e:
            self._status.debug(f"API key validation error: {e}", DebugKind.ERROR)
            return ConnectionState.ERROR

        if res.status_code == 401:
            self._status.debug("API key validation failed (401)", DebugKind.ERROR)
            return ConnectionState.INVALID_KEY
        if not res.is_success:
            self._status.debug(
                f"API key check failed: {res.status_code} {res.reason_phrase}", DebugKind.ERROR,
            )
            return ConnectionState.ERROR
        self._status.debug("API key is valid", DebugKind.SUCCESS)
        return ConnectionState.CONNECTED

    # -- steady state -------------------------------------------------------

    async def report_kill(self, event: KillEvent) -> ConnectionState:
        message = f"Reporting: {event.npc_name}"
        if event.player_name:
            guild = f" of <{event.guild_name}>" if event.guild_name else ""
            message += f" (killed by {event.player_name}{guild})"
        self._status.debug(message)
        return await self._post(SLAIN_PATH, kill_payload(event), "Reported successfully")

    async def report_scheduled_event(self, raw_line: str) -> ConnectionState:
        self._status.debug("Reporting earthquake announcement")
        body = {"logLine": raw_line, "timezone": self._timezone}
        return await self._post(EARTHQUAKE_PATH, body, "Earthquake reported successfully")

    async def _post(self, path: str, body: dict[str, Any], success_message: str) -> ConnectionState:
        try:
            res = await self._client.post(self._base + path, json=body, headers=self._auth_headers())
        except _REQUEST_ERRORS as e:
            self._status.debug(f"Network Error: {e}", DebugKind.ERROR)
            return ConnectionState.ERROR

        if res.status_code == 401:
            self._status.debug("API Error: Invalid key (401)", DebugKind.ERROR)
            return ConnectionState.INVALID_KEY
        if res.is_success:
            self._status.debug(success_message, DebugKind.SUCCESS)
            return ConnectionState.CONNECTED
        self._status.debug(f"API Error: {res.status_code} {res.reason_phrase}", DebugKind.ERROR)
        return ConnectionState.ERROR
