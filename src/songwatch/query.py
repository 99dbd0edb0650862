from songwatch.models import SongInfo
from songwatch.store import SnapshotStore


class SongQuery:
    """A synchronous, parameterless accessor for the current song.

    Safe to call from any thread at any time. It never participates in the
    stream and never fails; before the first update it returns the
    "Loading..." placeholder.
    """

    def __init__(self, store: SnapshotStore) -> None:
        self._store = store

    def __call__(self) -> SongInfo:
        return self._store.read()

    def as_dict(self) -> dict[str, str]:
        """The current song as a `{"title", "artist"}` payload."""
        return self().to_dict()
