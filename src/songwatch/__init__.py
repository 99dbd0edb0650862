# src/songwatch/__init__.py
"""SongWatch: a resilient "now playing" overlay fed by a server-sent event stream.

This package contains the streaming-ingestion core and a small Qt shell.

The core is built on asyncio. A single background task keeps an SSE
connection alive forever, decodes song updates, stores the latest one in a
lock-protected snapshot and republishes it to any interested consumer.

Key modules:
- `store`: The lock-protected current-value snapshot.
- `parser`: Incremental decoding of `data: {...}` frames from byte chunks.
- `client`: The reconnecting SSE client.
- `supervisor`: The single spawn point for the client's background task.
- `publisher`: Topic-based fan-out of update notifications.
- `ui`: The PySide6-based overlay window.
"""

import importlib.metadata

try:
    __version__: str = importlib.metadata.version("songwatch")
except importlib.metadata.PackageNotFoundError:
    __version__ = "0.0.0-dev"
