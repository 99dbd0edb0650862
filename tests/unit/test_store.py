import threading

from songwatch.models import SongInfo
from songwatch.query import SongQuery
from songwatch.store import SnapshotStore


def test_initial_value_is_placeholder() -> None:
    store = SnapshotStore()
    assert store.read() == SongInfo(title="Loading...", artist="")
    assert store.version == 0


def test_replace_is_visible_to_subsequent_reads() -> None:
    store = SnapshotStore()
    store.replace(SongInfo("Song A", "Artist A"))
    assert store.read() == SongInfo("Song A", "Artist A")

    store.replace(SongInfo("Song B", "Artist B"))
    assert store.read() == SongInfo("Song B", "Artist B")
    assert store.version == 2


def test_replacing_with_identical_value_leaves_value_unchanged() -> None:
    store = SnapshotStore()
    song = SongInfo("Song A", "Artist A")
    store.replace(song)
    store.replace(SongInfo("Song A", "Artist A"))
    assert store.read() == song
    assert store.version == 2


def test_readers_never_observe_mixed_fields() -> None:
    """Concurrent readers only ever see values that were written whole."""
    store = SnapshotStore()
    written = {SongInfo(f"title-{i}", f"artist-{i}") for i in range(200)}
    valid = written | {SongInfo.placeholder()}
    torn: list[SongInfo] = []
    done = threading.Event()

    def reader() -> None:
        while not done.is_set():
            value = store.read()
            if value not in valid:
                torn.append(value)

    readers = [threading.Thread(target=reader) for _ in range(4)]
    for t in readers:
        t.start()
    for song in sorted(written, key=lambda s: s.title):
        store.replace(song)
    done.set()
    for t in readers:
        t.join()

    assert torn == []


def test_query_reads_current_snapshot() -> None:
    store = SnapshotStore()
    query = SongQuery(store)
    assert query() == SongInfo.placeholder()
    assert query.as_dict() == {"title": "Loading...", "artist": ""}

    store.replace(SongInfo("Song A", "Artist A"))
    assert query() == SongInfo("Song A", "Artist A")
    assert query.as_dict() == {"title": "Song A", "artist": "Artist A"}
    # Reading has no side effects.
    assert store.version == 1
