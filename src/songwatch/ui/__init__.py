"""The PySide6 overlay shell around the streaming core.

Nothing in this package is needed by the core: it only reads the current song
through `SongQuery` and listens for `song-info-update` notifications.
"""
