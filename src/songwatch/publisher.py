import asyncio
import itertools
from collections import defaultdict

from loguru import logger

from songwatch.models import Notification

WILDCARD_TOPIC = "*"


class Publisher:
    """A fan-out service that distributes update notifications to subscribers.

    The stream client drops each `Notification` onto the publisher's input
    queue and never waits on, or even knows about, the consumers. The publisher
    forwards every notification, in order, to each queue subscribed to its
    topic (or to the `"*"` wildcard). This keeps the streaming core free of
    any dependency on the UI runtime.
    """

    def __init__(self, input_queue: "asyncio.Queue[Notification]") -> None:
        """Initializes the Publisher.

        Args:
            input_queue: The publish sink the stream client writes to.
        """
        self.input_queue = input_queue
        # A mapping from topic to a dict of {subscription_id: queue}
        self._subscriptions: defaultdict[
            str, dict[int, asyncio.Queue[Notification]]
        ] = defaultdict(dict)
        # A reverse mapping from subscription_id to its topic
        self._id_to_topic: dict[int, str] = {}
        self._id_generator = itertools.count(1)
        self._lock = asyncio.Lock()
        self._task: asyncio.Task[None] | None = None
        self._running = asyncio.Event()

    def start(self) -> None:
        """Starts the publisher's processing loop in a background task."""
        if self._task is None or self._task.done():
            self._running.set()
            self._task = asyncio.create_task(self._run())
            logger.info("Publisher started.")
        else:
            logger.warning("Publisher is already running.")

    async def stop(self) -> None:
        """Stops the publisher's processing loop gracefully."""
        if not self._running.is_set():
            logger.warning("Publisher is not running.")
            return

        logger.info("Stopping Publisher...")
        self._running.clear()
        if self._task:
            try:
                self._task.cancel()
                await self._task
            except asyncio.CancelledError:
                pass
            finally:
                self._task = None
        logger.info("Publisher stopped.")

    async def subscribe(
        self, topic: str, queue: "asyncio.Queue[Notification]"
    ) -> int:
        """Subscribes a queue to receive notifications for a topic.

        Args:
            topic: The topic name (e.g., "song-info-update"), or "*" for all.
            queue: The asyncio.Queue to which notifications will be sent.

        Returns:
            A unique subscription ID that can be used to unsubscribe.
        """
        async with self._lock:
            sub_id = next(self._id_generator)
            self._subscriptions[topic][sub_id] = queue
            self._id_to_topic[sub_id] = topic
            logger.info(f"New subscription (ID: {sub_id}) for '{topic}'.")
            return sub_id

    async def unsubscribe(self, sub_id: int) -> None:
        """Unsubscribes a queue using its subscription ID."""
        async with self._lock:
            if sub_id not in self._id_to_topic:
                logger.warning(f"Attempted to unsubscribe with invalid ID: {sub_id}")
                return

            topic = self._id_to_topic.pop(sub_id)
            del self._subscriptions[topic][sub_id]
            logger.info(f"Unsubscribed ID {sub_id} from '{topic}'.")
            if not self._subscriptions[topic]:
                del self._subscriptions[topic]
                logger.debug(f"Removed empty subscription topic: '{topic}'.")

    async def _run(self) -> None:
        """The main processing loop that fans out notifications."""
        while self._running.is_set():
            try:
                notification = await self.input_queue.get()

                async with self._lock:
                    sub_queues = [
                        *self._subscriptions.get(notification.topic, {}).values(),
                        *self._subscriptions.get(WILDCARD_TOPIC, {}).values(),
                    ]

                for queue in sub_queues:
                    try:
                        queue.put_nowait(notification)
                    except asyncio.QueueFull:  # noqa: PERF203
                        logger.warning(
                            f"Subscriber queue for '{notification.topic}' is full. "
                            "Update was dropped. This may indicate a slow consumer."
                        )

                self.input_queue.task_done()

            except asyncio.CancelledError:
                logger.info("Publisher run loop cancelled.")
                break
            except Exception:
                logger.exception("Unexpected error in Publisher run loop.")
                await asyncio.sleep(1)
        logger.info("Publisher run loop terminated.")
