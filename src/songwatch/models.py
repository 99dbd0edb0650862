from dataclasses import dataclass
from typing import Any, Final

SONG_INFO_UPDATE_TOPIC: Final = "song-info-update"

PLACEHOLDER_TITLE: Final = "Loading..."
UNKNOWN_TITLE: Final = "Unknown Title"
UNKNOWN_ARTIST: Final = "Unknown Artist"


@dataclass(frozen=True)
class SongInfo:
    """The current best-known song. Always replaced wholesale, never mutated."""

    title: str
    artist: str

    @classmethod
    def placeholder(cls) -> "SongInfo":
        """The value shown before the first update has been received."""
        return cls(title=PLACEHOLDER_TITLE, artist="")

    def to_dict(self) -> dict[str, str]:
        return {"title": self.title, "artist": self.artist}


@dataclass(frozen=True)
class IncomingEvent:
    """A decoded wire payload. Either field may be absent."""

    title: str | None = None
    artist: str | None = None

    @classmethod
    def from_json(cls, obj: Any) -> "IncomingEvent":
        """Builds an event from a decoded JSON value.

        Args:
            obj: The result of `json.loads` on the frame payload.

        Returns:
            The corresponding IncomingEvent.

        Raises:
            ValueError: If the value is not an object, or if `title`/`artist`
                is present with a non-string, non-null value.
        """
        if not isinstance(obj, dict):
            err_msg = f"Expected a JSON object, got {type(obj).__name__}"
            raise ValueError(err_msg)

        fields: dict[str, str | None] = {}
        for name in ("title", "artist"):
            value = obj.get(name)
            if value is not None and not isinstance(value, str):
                err_msg = f"Field '{name}' must be a string, got {type(value).__name__}"
                raise ValueError(err_msg)
            fields[name] = value
        return cls(**fields)

    def to_song_info(self) -> SongInfo:
        """Converts the event into a fully-defaulted SongInfo."""
        return SongInfo(
            title=self.title if self.title is not None else UNKNOWN_TITLE,
            artist=self.artist if self.artist is not None else UNKNOWN_ARTIST,
        )


@dataclass(frozen=True)
class Notification:
    """A message handed to the publish sink."""

    topic: str
    payload: SongInfo
