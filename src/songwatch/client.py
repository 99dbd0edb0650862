import asyncio
import enum
from collections.abc import AsyncIterator
from typing import Final

import httpx
from loguru import logger

from songwatch.models import SONG_INFO_UPDATE_TOPIC, IncomingEvent, Notification, SongInfo
from songwatch.parser import ChunkParser, EventParser, StreamDecodeError, parse_events
from songwatch.store import SnapshotStore

# --- Constants for Reconnection Logic ---
DEFAULT_STREAM_URL: Final = "https://startend.xyz/current/stream"
RECONNECT_DELAY_S: Final = 5.0

SSE_HEADERS: Final = {"Accept": "text/event-stream", "Cache-Control": "no-cache"}


class ConnectionState(enum.Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    STREAMING = "streaming"
    CLOSED = "closed"
    FAILED = "failed"


class ReconnectingClient:
    """Keeps a server-sent event subscription alive for the life of the process.

    Each connection attempt issues a GET to a fixed URL and drains the response
    body through an `EventParser`. Every decoded event is turned into a
    `SongInfo`, written to the `SnapshotStore` and handed to the publish sink,
    strictly in arrival order.

    When the stream ends (cleanly or not), the client waits a fixed interval and
    connects again. There is no exponential growth, no jitter and no retry
    limit; only `stop()` or cancellation of the task running `run()` ends it.
    """

    def __init__(
        self,
        store: SnapshotStore,
        sink: "asyncio.Queue[Notification]",
        http_client: httpx.AsyncClient,
        url: str = DEFAULT_STREAM_URL,
        parser: EventParser | None = None,
        reconnect_delay_s: float = RECONNECT_DELAY_S,
    ) -> None:
        """Initializes the client.

        Args:
            store: The snapshot to keep current.
            sink: The queue that receives one Notification per processed update.
            http_client: A shared httpx.AsyncClient used for the stream request.
            url: The event stream endpoint.
            parser: The framing strategy. Defaults to a `ChunkParser`.
            reconnect_delay_s: Seconds to wait between a closed or failed
                connection and the next attempt.
        """
        self.store = store
        self.sink = sink
        self.http_client = http_client
        self.url = url
        self.reconnect_delay_s = reconnect_delay_s
        self._parser = parser if parser is not None else ChunkParser()
        self._running = asyncio.Event()
        self._state = ConnectionState.IDLE
        self.connect_attempts = 0
        self.updates_processed = 0

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._running.is_set()

    def stop(self) -> None:
        """Asks the run loop to exit at its next suspension point."""
        self._running.clear()

    async def run(self) -> None:
        """The main run loop that handles connections and reconnections."""
        self._running.set()
        try:
            while self._running.is_set():
                try:
                    await self._stream_once()
                    if not self._running.is_set():
                        break
                    self._state = ConnectionState.CLOSED
                    logger.info("[stream] Stream closed by the server. Reconnecting...")

                except (httpx.HTTPError, StreamDecodeError, OSError) as e:
                    self._state = ConnectionState.FAILED
                    logger.warning(
                        f"[stream] Connection failed: {type(e).__name__}: {e}. "
                        "Reconnecting..."
                    )
                except Exception:
                    self._state = ConnectionState.FAILED
                    logger.exception("[stream] Unexpected error in run loop. Reconnecting...")

                if not self._running.is_set():
                    break
                logger.info(f"[stream] Reconnecting in {self.reconnect_delay_s:.2f} seconds.")
                await asyncio.sleep(self.reconnect_delay_s)
        finally:
            self._running.clear()
            self._state = ConnectionState.IDLE
            logger.info("[stream] Run loop has terminated.")

    async def _stream_once(self) -> None:
        """Runs a single connection session until the server closes it."""
        self._state = ConnectionState.CONNECTING
        self.connect_attempts += 1
        self._parser.reset()
        logger.info(f"[stream] Connecting to {self.url} (attempt {self.connect_attempts})...")

        async with self.http_client.stream("GET", self.url, headers=SSE_HEADERS) as response:
            response.raise_for_status()
            self._state = ConnectionState.STREAMING
            logger.info(f"[stream] Connected with status {response.status_code}.")

            async for event in parse_events(self._chunks(response), self._parser):
                await self._apply(event)

    async def _chunks(self, response: httpx.Response) -> AsyncIterator[bytes]:
        async for chunk in response.aiter_bytes():
            if not self._running.is_set():
                return
            yield chunk

    async def _apply(self, event: IncomingEvent) -> SongInfo:
        """Stores and publishes one decoded event."""
        song = event.to_song_info()
        self.store.replace(song)
        await self.sink.put(Notification(topic=SONG_INFO_UPDATE_TOPIC, payload=song))
        self.updates_processed += 1
        logger.info(f"[stream] Now playing: {song.title} - {song.artist}")
        return song
