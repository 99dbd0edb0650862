import asyncio

import httpx
from loguru import logger

from songwatch.client import ReconnectingClient
from songwatch.config import StreamSettings
from songwatch.models import Notification
from songwatch.parser import create_parser
from songwatch.publisher import Publisher
from songwatch.query import SongQuery
from songwatch.store import SnapshotStore
from songwatch.supervisor import Supervisor

# Connect/write/pool limits only; reads on the event stream may idle indefinitely.
HTTP_TIMEOUT = httpx.Timeout(20.0, read=None)


class SongService:
    """Owns every long-lived piece of the streaming core.

    A single instance is created at startup and handed explicitly to whatever
    needs it (the UI, tests), instead of being looked up from module globals.
    """

    def __init__(
        self,
        stream_settings: StreamSettings | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initializes the service.

        Args:
            stream_settings: Endpoint, backoff and parser settings.
            http_client: An HTTP client to use for the stream. If omitted, one
                is created and closed by the service.
        """
        self.settings = stream_settings if stream_settings is not None else StreamSettings()
        parser = create_parser(self.settings.parser)
        self._owns_http_client = http_client is None
        self.http_client = (
            http_client
            if http_client is not None
            else httpx.AsyncClient(http2=True, timeout=HTTP_TIMEOUT, follow_redirects=True)
        )

        self.store = SnapshotStore()
        self.query = SongQuery(self.store)
        self._sink: asyncio.Queue[Notification] = asyncio.Queue()
        self.publisher = Publisher(self._sink)
        self.client = ReconnectingClient(
            store=self.store,
            sink=self._sink,
            http_client=self.http_client,
            url=self.settings.url,
            parser=parser,
            reconnect_delay_s=self.settings.reconnect_delay_s,
        )
        self.supervisor = Supervisor(
            self.client,
            restart_on_crash=self.settings.restart_on_crash,
            restart_delay_s=self.settings.restart_delay_s,
        )

    async def start(self) -> None:
        """Starts the publisher and the background stream task without blocking."""
        logger.info("Starting song service...")
        self.publisher.start()
        self.supervisor.start()
        logger.success("Song service started.")

    async def stop(self) -> None:
        """Stops all background work and releases the HTTP client."""
        logger.info("Stopping song service...")
        await self.supervisor.stop()
        await self.publisher.stop()
        if self._owns_http_client:
            await self.http_client.aclose()
        logger.success("Song service stopped.")

    async def subscribe(self, topic: str, queue: "asyncio.Queue[Notification]") -> int:
        """Registers a queue for notifications on a topic."""
        return await self.publisher.subscribe(topic, queue)

    async def unsubscribe(self, sub_id: int) -> None:
        await self.publisher.unsubscribe(sub_id)
