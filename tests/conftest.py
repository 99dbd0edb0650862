import asyncio
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Any

import httpx
import pytest

# A session is either a list of body chunks, an HTTP status code to answer
# with, or an exception to raise instead of connecting.
Session = list[bytes] | int | Exception


class FakeStreamServer:
    """Serves scripted event-stream sessions through an httpx.MockTransport.

    Each request consumes the next scripted session. Once the script runs out,
    the server accepts the connection and then never sends anything, so the
    client under test stays parked in the streaming state.
    """

    def __init__(self, sessions: list[Session]) -> None:
        self.sessions = list(sessions)
        self.requests: list[httpx.Request] = []
        self._idle = asyncio.Event()

    @property
    def request_count(self) -> int:
        return len(self.requests)

    async def _body(self, chunks: list[bytes]) -> AsyncIterator[bytes]:
        for chunk in chunks:
            await asyncio.sleep(0)
            yield chunk

    async def _idle_body(self) -> AsyncIterator[bytes]:
        await self._idle.wait()
        yield b""

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not self.sessions:
            return httpx.Response(200, content=self._idle_body())

        session = self.sessions.pop(0)
        if isinstance(session, Exception):
            raise session
        if isinstance(session, int):
            return httpx.Response(session, content=b"")
        return httpx.Response(
            200,
            headers={"Content-Type": "text/event-stream"},
            content=self._body(session),
        )

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


@pytest.fixture
def make_server() -> Callable[[list[Session]], FakeStreamServer]:
    """Provides a factory for scripted fake stream servers."""
    return FakeStreamServer


@pytest.fixture
def wait_until() -> Callable[..., Awaitable[None]]:
    """Provides a helper that polls until a predicate holds or a timeout expires."""

    async def _wait_until(predicate: Callable[[], Any], timeout: float = 1.0) -> None:
        async def _poll() -> None:
            while not predicate():
                await asyncio.sleep(0.001)

        await asyncio.wait_for(_poll(), timeout=timeout)

    return _wait_until
