#!/usr/bin/env python
"""Follows the song stream from the terminal, without starting the Qt overlay.

Useful for checking the upstream endpoint and the reconnect behaviour in
isolation. Each update is printed as it is published; Ctrl+C stops the stream.

Usage:
    python scripts/watch_stream.py [URL]
"""

import asyncio
import contextlib
import sys

from loguru import logger

from songwatch.config import Settings
from songwatch.logging_config import setup_logging
from songwatch.models import SONG_INFO_UPDATE_TOPIC, Notification
from songwatch.service import SongService


async def watch(url: str | None) -> None:
    settings = Settings.get_instance()
    if url:
        settings.stream.url = url

    service = SongService(settings.stream)
    updates: asyncio.Queue[Notification] = asyncio.Queue()
    await service.subscribe(SONG_INFO_UPDATE_TOPIC, updates)
    await service.start()
    print(f"Current: {service.query().title} - {service.query().artist}")

    try:
        while True:
            notification = await updates.get()
            song = notification.payload
            print(f"Now playing: {song.title} - {song.artist}")
    finally:
        await service.stop()


def main() -> int:
    setup_logging(console_level="WARNING")
    url = sys.argv[1] if len(sys.argv) > 1 else None
    with contextlib.suppress(KeyboardInterrupt):
        asyncio.run(watch(url))
    logger.info("Stream watcher exited.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
