import asyncio
import contextlib

from loguru import logger

from songwatch.client import ReconnectingClient

RESTART_DELAY_S = 5.0


class Supervisor:
    """The single spawn point for the reconnecting client's background task.

    `start()` launches `client.run()` as a detached asyncio task and returns
    immediately. The client's loop already survives every network failure, so
    the task should only ever end through `stop()`. If it ends any other way
    (an exception escaping the loop, or the loop returning on its own), the
    exit is logged at ERROR level and, when `restart_on_crash` is set, the task
    is spawned again after `restart_delay_s`.
    """

    def __init__(
        self,
        client: ReconnectingClient,
        restart_on_crash: bool = True,
        restart_delay_s: float = RESTART_DELAY_S,
    ) -> None:
        self.client = client
        self.restart_on_crash = restart_on_crash
        self.restart_delay_s = restart_delay_s
        self.restarts = 0
        self._running = asyncio.Event()
        self._task: asyncio.Task[None] | None = None
        self._restart_handle: asyncio.TimerHandle | None = None

    @property
    def task(self) -> asyncio.Task[None] | None:
        return self._task

    def start(self) -> None:
        """Starts the client's run loop in a background task."""
        if self._task is None or self._task.done():
            self._running.set()
            self._spawn()
            logger.info("Supervisor started the stream client.")
        else:
            logger.warning("Supervisor is already running.")

    async def stop(self) -> None:
        """Stops the client and waits for its task to finish."""
        if not self._running.is_set():
            logger.warning("Supervisor is not running.")
            return

        logger.info("Stopping stream client...")
        self._running.clear()
        if self._restart_handle is not None:
            self._restart_handle.cancel()
            self._restart_handle = None
        self.client.stop()
        if self._task:
            # A task that already crashed has had its exception logged.
            if not self._task.done():
                self._task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await self._task
            self._task = None
        logger.info("Stream client stopped.")

    def _spawn(self) -> None:
        self._restart_handle = None
        if not self._running.is_set():
            return
        self._task = asyncio.create_task(self.client.run(), name="songwatch-stream")
        self._task.add_done_callback(self._on_task_done)

    def _on_task_done(self, task: asyncio.Task[None]) -> None:
        if not self._running.is_set() or task.cancelled():
            return

        exc = task.exception()
        if exc is not None:
            logger.opt(exception=exc).error("Stream client task crashed.")
        else:
            logger.error("Stream client task exited unexpectedly.")

        if not self.restart_on_crash:
            logger.error("Automatic restart is disabled; stream updates have stopped.")
            return

        self.restarts += 1
        logger.warning(
            f"Restarting stream client in {self.restart_delay_s:.2f} seconds "
            f"(restart #{self.restarts})."
        )
        loop = asyncio.get_running_loop()
        self._restart_handle = loop.call_later(self.restart_delay_s, self._spawn)
