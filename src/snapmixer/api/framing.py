"""Incremental JSON frame decoding for the Snapcast TCP stream.

Snapcast terminates each message with CRLF, but message boundaries are
determined purely by JSON structure: a frame ends when the nesting depth of
the top-level object (or batch array) returns to zero. The decoder scans raw
bytes, so a UTF-8 character split across two chunks is never a problem; the
structural characters are all ASCII and never occur inside a multi-byte
sequence.
"""

import json
import re
from collections.abc import AsyncIterable, AsyncIterator
from typing import Any

from snapmixer.api.errors import DecodeError

# Bytes that change the scanner state outside of a string
_STRUCTURAL = re.compile(rb'["{}\[\]]')
# Bytes that change the scanner state inside a string
_STRING_SPECIAL = re.compile(rb'["\\]')
_NON_WHITESPACE = re.compile(rb"[^ \t\r\n]")

_QUOTE = ord('"')
_BACKSLASH = ord("\\")
_OPENERS = frozenset(b"{[")

_DEFAULT_COMPACT_THRESHOLD = 64 * 1024


class FrameDecoder:
    """Extract complete JSON values from an open-ended byte stream.

    The buffer holds exactly the unconsumed tail of everything fed so far.
    Scan state (depth, string, escape) is kept between calls to ``feed`` so
    every byte is examined once, however the stream is chunked.

    Example:
        decoder = FrameDecoder()
        decoder.feed(b'{"id": "a", "res')   # -> []
        decoder.feed(b'ult": 1}\\r\\n{}')    # -> [{"id": "a", "result": 1}, {}]
    """

    def __init__(self, compact_threshold: int = _DEFAULT_COMPACT_THRESHOLD) -> None:
        """Initialize the decoder.

        Args:
            compact_threshold: Consumed bytes allowed to accumulate at the
                front of the buffer before it is compacted.
        """
        self._buffer = bytearray()
        self._offset = 0  # start of the first unconsumed byte
        self._scan = 0  # next byte to examine
        self._depth = 0
        self._in_string = False
        self._escape = False
        self._compact_threshold = compact_threshold

    @property
    def pending(self) -> int:
        """Return the number of received bytes not yet emitted as a value."""
        return len(self._buffer) - self._offset

    def feed(self, chunk: bytes) -> list[Any]:
        """Append a chunk and return every value it completes, in order.

        Args:
            chunk: Raw bytes as received from the transport.

        Returns:
            Decoded JSON values (possibly none).

        Raises:
            DecodeError: If the stream contains bytes that cannot start a
                message or a completed frame is not valid JSON.
        """
        self._buffer += chunk
        values: list[Any] = []
        buf = self._buffer
        end = len(buf)
        i = self._scan

        while i < end:
            if self._depth == 0:
                match = _NON_WHITESPACE.search(buf, i)
                if match is None:
                    # Only whitespace left; nothing to keep
                    i = end
                    self._offset = end
                    break
                i = match.start()
                self._offset = i
                if buf[i] not in _OPENERS:
                    raise DecodeError(
                        f"Unexpected byte {bytes(buf[i : i + 1])!r} between messages"
                    )
                self._depth = 1
                i += 1
                continue

            if self._in_string:
                if self._escape:
                    self._escape = False
                    i += 1
                    continue
                match = _STRING_SPECIAL.search(buf, i)
                if match is None:
                    i = end
                    break
                i = match.start()
                if buf[i] == _BACKSLASH:
                    self._escape = True
                else:
                    self._in_string = False
                i += 1
                continue

            match = _STRUCTURAL.search(buf, i)
            if match is None:
                i = end
                break
            i = match.start()
            byte = buf[i]
            i += 1
            if byte == _QUOTE:
                self._in_string = True
            elif byte in _OPENERS:
                self._depth += 1
            else:
                self._depth -= 1
                if self._depth == 0:
                    values.append(self._decode_frame(bytes(buf[self._offset : i])))
                    self._offset = i

        self._scan = i
        self._compact()
        return values

    def _decode_frame(self, frame: bytes) -> Any:
        try:
            return json.loads(frame)
        except ValueError as e:
            # JSONDecodeError and UnicodeDecodeError are both ValueErrors
            raise DecodeError(f"Malformed JSON message ({len(frame)} bytes): {e}") from e

    def _compact(self) -> None:
        """Drop the consumed prefix once it is large or the buffer is drained."""
        if self._offset == 0:
            return
        if self._offset < len(self._buffer) and self._offset < self._compact_threshold:
            return
        del self._buffer[: self._offset]
        self._scan -= self._offset
        self._offset = 0


async def decode_stream(
    chunks: AsyncIterable[bytes],
    decoder: FrameDecoder | None = None,
) -> AsyncIterator[Any]:
    """Yield decoded JSON values from a stream of raw byte chunks.

    The sequence is consumed once; use a fresh decoder for each connection.

    Args:
        chunks: Raw byte chunks in arrival order.
        decoder: Decoder to use (a new one if omitted).

    Raises:
        DecodeError: On malformed content. No attempt is made to resync.
    """
    if decoder is None:
        decoder = FrameDecoder()
    async for chunk in chunks:
        for value in decoder.feed(chunk):
            yield value
