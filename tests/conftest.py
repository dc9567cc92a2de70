import json

import httpx
import pytest
import pytest_asyncio

from repop.status import StatusFeed


class FakeCollector:
    """In-memory collector behind an httpx.MockTransport.

    `responses` maps a path to a status code (or an exception instance to
    raise). Every request is recorded in `requests`.
    """

    def __init__(self):
        self.responses: dict[str, object] = {}
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        outcome = self.responses.get(request.url.path, 200)
        if isinstance(outcome, Exception):
            raise outcome
        return httpx.Response(outcome, json={"ok": outcome < 400})

    def posts(self, path: str) -> list[dict]:
        return [
            json.loads(r.content)
            for r in self.requests
            if r.method == "POST" and r.url.path == path
        ]


@pytest.fixture
def collector():
    return FakeCollector()


@pytest_asyncio.fixture
async def http_client(collector):
    client = httpx.AsyncClient(transport=httpx.MockTransport(collector.handler))
    yield client
    await client.aclose()


@pytest.fixture
def status():
    return StatusFeed()


@pytest.fixture
def debug_messages(status):
    messages = []
    status.subscribe_debug(lambda message, kind: messages.append((message, kind)))
    return messages
