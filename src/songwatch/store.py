import threading

from loguru import logger

from songwatch.models import SongInfo


class SnapshotStore:
    """A lock-protected cell holding the single current SongInfo.

    The streaming task writes to it and any number of callers, possibly on
    other threads (the Qt GUI thread, for instance), read from it. The lock is
    held only for the duration of a read or a whole-value swap, so waits are
    always short and bounded.

    Because SongInfo is frozen, handing out the stored instance is as safe as
    handing out a copy: a reader can never observe a half-applied update.
    """

    def __init__(self, initial: SongInfo | None = None) -> None:
        """Initializes the store.

        Args:
            initial: The starting value. Defaults to the "Loading..." placeholder.
        """
        self._lock = threading.Lock()
        self._value = initial if initial is not None else SongInfo.placeholder()
        self._version = 0

    def read(self) -> SongInfo:
        """Returns the current value."""
        with self._lock:
            return self._value

    def replace(self, new: SongInfo) -> None:
        """Atomically swaps in a new value, visible to all subsequent reads."""
        with self._lock:
            self._value = new
            self._version += 1
        logger.debug(f"Snapshot replaced: {new.title!r} by {new.artist!r}")

    @property
    def version(self) -> int:
        """The number of replacements applied so far."""
        with self._lock:
            return self._version
