"""Decoding of `data: {...}` frames from a server-sent event byte stream.

Two parsers share the same contract, so the client never needs to know which
one it is driving:

- `ChunkParser` treats every transport chunk as an independent frame. A chunk
  that does not start with `data: ` (keep-alives, comments, the tail of a split
  frame) yields nothing. This is the default and mirrors the upstream service,
  which always flushes one event per chunk.
- `FramedParser` buffers text across chunks and splits on the SSE record
  separator, so events split across chunk boundaries are reassembled.

Malformed JSON is never an error at this level: the frame is discarded and the
stream continues. Bytes that are not valid UTF-8 are, and raise
`StreamDecodeError`.
"""

import codecs
import json
from collections.abc import AsyncIterable, AsyncIterator
from typing import Final, Protocol

from loguru import logger

from songwatch.models import IncomingEvent

DATA_PREFIX: Final = "data: "


class StreamDecodeError(Exception):
    """Raised when a chunk from the transport is not valid UTF-8."""


class EventParser(Protocol):
    def feed(self, chunk: bytes) -> list[IncomingEvent]:
        """Consumes one transport chunk and returns the events it completes."""
        ...

    def reset(self) -> None:
        """Discards any per-connection state before a new session."""
        ...


def decode_payload(payload: str) -> IncomingEvent | None:
    """Decodes a JSON frame payload, returning None if it is malformed."""
    try:
        return IncomingEvent.from_json(json.loads(payload.strip()))
    except ValueError as e:
        # json.JSONDecodeError is a subclass of ValueError.
        logger.debug(f"Discarding malformed frame {payload!r}: {e}")
        return None


class ChunkParser:
    """Parses each chunk on its own. Nothing is carried between chunks."""

    def feed(self, chunk: bytes) -> list[IncomingEvent]:
        try:
            text = chunk.decode("utf-8")
        except UnicodeDecodeError as e:
            err_msg = f"Received a chunk that is not valid UTF-8: {e}"
            raise StreamDecodeError(err_msg) from e

        if not text.startswith(DATA_PREFIX):
            return []

        # Every leading prefix is stripped: "data: data: {...}" decodes.
        while text.startswith(DATA_PREFIX):
            text = text[len(DATA_PREFIX) :]
        event = decode_payload(text)
        return [event] if event is not None else []

    def reset(self) -> None:
        pass


class FramedParser:
    """Reassembles SSE records across chunk boundaries.

    Records are separated by a blank line. Within a record, every `data:` line
    contributes to the payload; comment lines (starting with `:`) and other
    fields are ignored.
    """

    def __init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")()
        self._buffer = ""

    def feed(self, chunk: bytes) -> list[IncomingEvent]:
        try:
            text = self._decoder.decode(chunk)
        except UnicodeDecodeError as e:
            err_msg = f"Received a chunk that is not valid UTF-8: {e}"
            raise StreamDecodeError(err_msg) from e

        self._buffer += text.replace("\r\n", "\n").replace("\r", "\n")

        events: list[IncomingEvent] = []
        while "\n\n" in self._buffer:
            record, self._buffer = self._buffer.split("\n\n", 1)
            event = self._parse_record(record)
            if event is not None:
                events.append(event)
        return events

    def reset(self) -> None:
        self._decoder.reset()
        self._buffer = ""

    @staticmethod
    def _parse_record(record: str) -> IncomingEvent | None:
        data_lines = []
        for line in record.split("\n"):
            if line.startswith("data:"):
                value = line[len("data:") :]
                data_lines.append(value.removeprefix(" "))
        if not data_lines:
            return None
        return decode_payload("\n".join(data_lines))


def create_parser(mode: str) -> EventParser:
    """Returns the parser for a configured mode name ('chunk' or 'framed')."""
    parsers: dict[str, type[ChunkParser] | type[FramedParser]] = {
        "chunk": ChunkParser,
        "framed": FramedParser,
    }
    if mode not in parsers:
        err_msg = f"Unknown parser mode: {mode!r}. Expected one of {sorted(parsers)}."
        raise ValueError(err_msg)
    return parsers[mode]()


async def parse_events(
    chunks: AsyncIterable[bytes], parser: EventParser | None = None
) -> AsyncIterator[IncomingEvent]:
    """Lazily yields decoded events from a stream of raw byte chunks.

    Args:
        chunks: The response body, as delivered by the transport.
        parser: The framing strategy. Defaults to a fresh `ChunkParser`.

    Yields:
        Each decoded IncomingEvent, in arrival order.

    Raises:
        StreamDecodeError: If a chunk is not valid UTF-8.
    """
    parser = parser if parser is not None else ChunkParser()
    async for chunk in chunks:
        for event in parser.feed(chunk):
            yield event
