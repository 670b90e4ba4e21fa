"""Incremental decoder for streamed JSON array bodies.

``streamGenerateContent`` without ``alt=sse`` answers with one JSON array
whose elements arrive over time::

    [{"candidates": [...]}
    ,
    {"candidates": [...], "usageMetadata": {...}}
    ]

:class:`JsonArrayDecoder` scans the raw bytes, tracking string/escape
state and nesting depth, and hands back each top-level element as soon
as its closing byte has been seen. Structural characters are ASCII, so
chunk boundaries may fall anywhere, including inside a multi-byte UTF-8
sequence.
"""

import json
from typing import Any, Iterable, Iterator, List

from .errors import StreamError

_WHITESPACE = frozenset(b" \t\r\n")
_OPENERS = frozenset(b"{[")
_CLOSERS = frozenset(b"}]")
_QUOTE = ord('"')
_BACKSLASH = ord("\\")
_COMMA = ord(",")
_LBRACKET = ord("[")
_RBRACKET = ord("]")
_PRIMITIVE_END = _WHITESPACE | {_COMMA, _RBRACKET}

# Decoder states
_START = "start"
_EXPECT_VALUE = "expect_value"
_IN_VALUE = "in_value"
_EXPECT_SEPARATOR = "expect_separator"
_END = "end"


class JsonArrayDecoder:
    """Push-style decoder yielding the elements of a JSON array.

    Args:
        max_object_size: Largest accepted element, in bytes.
    """

    def __init__(self, max_object_size: int):
        if max_object_size <= 0:
            raise ValueError("max_object_size must be positive")
        self._max_object_size = max_object_size
        self._state = _START
        self._buffer = bytearray()
        self._depth = 0
        self._in_string = False
        self._escape = False

    @property
    def finished(self) -> bool:
        """True once the closing ``]`` has been consumed."""
        return self._state == _END

    def feed(self, chunk: bytes) -> List[Any]:
        """Consume a chunk and return the elements it completed.

        Raises:
            StreamError: The bytes are not a well-formed JSON array.
        """
        values: List[Any] = []
        i = 0
        n = len(chunk)

        while i < n:
            byte = chunk[i]
            state = self._state

            if state == _IN_VALUE:
                if self._in_string:
                    self._append(byte)
                    if self._escape:
                        self._escape = False
                    elif byte == _BACKSLASH:
                        self._escape = True
                    elif byte == _QUOTE:
                        self._in_string = False
                        if self._depth == 0:
                            values.append(self._finish_value())
                    i += 1
                    continue

                if self._depth == 0 and self._buffer and byte in _PRIMITIVE_END:
                    # Bare number/literal ends at the separator; reprocess it.
                    values.append(self._finish_value())
                    continue

                self._append(byte)
                if byte == _QUOTE:
                    self._in_string = True
                elif byte in _OPENERS:
                    self._depth += 1
                elif byte in _CLOSERS:
                    self._depth -= 1
                    if self._depth < 0:
                        raise StreamError(f"Unbalanced {chr(byte)!r} in stream body")
                    if self._depth == 0:
                        values.append(self._finish_value())
                i += 1
                continue

            if byte in _WHITESPACE:
                i += 1
                continue

            if state == _START:
                if byte != _LBRACKET:
                    raise StreamError("Expected '[' at start of stream body")
                self._state = _EXPECT_VALUE

            elif state == _EXPECT_VALUE:
                if byte == _RBRACKET:
                    self._state = _END
                elif byte == _COMMA:
                    raise StreamError("Unexpected ',' in stream body")
                else:
                    self._state = _IN_VALUE
                    continue

            elif state == _EXPECT_SEPARATOR:
                if byte == _COMMA:
                    self._state = _EXPECT_VALUE
                elif byte == _RBRACKET:
                    self._state = _END
                else:
                    raise StreamError(f"Expected ',' or ']' in stream body, got {chr(byte)!r}")

            else:
                raise StreamError("Unexpected data after end of stream body")

            i += 1

        return values

    def close(self) -> None:
        """Signal end of input.

        Raises:
            StreamError: The array was not closed.
        """
        if self._state != _END:
            raise StreamError("Stream ended before the JSON array was closed")

    def _append(self, byte: int) -> None:
        self._buffer.append(byte)
        if len(self._buffer) > self._max_object_size:
            raise StreamError(
                f"JSON object exceeds maximum size of {self._max_object_size} bytes"
            )

    def _finish_value(self) -> Any:
        raw = bytes(self._buffer)
        self._buffer.clear()
        self._depth = 0
        self._state = _EXPECT_SEPARATOR
        try:
            return json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise StreamError(f"Invalid JSON object in stream body: {e}") from e


def iter_json_array(chunks: Iterable[bytes], max_object_size: int) -> Iterator[Any]:
    """Yield each element of a JSON array delivered as byte chunks.

    Args:
        chunks: Raw body chunks, e.g. ``httpx.Response.iter_bytes()``.
        max_object_size: Largest accepted element, in bytes.

    Raises:
        StreamError: The body is malformed, truncated, or an element is
            larger than ``max_object_size``.
    """
    decoder = JsonArrayDecoder(max_object_size)
    for chunk in chunks:
        if chunk:
            yield from decoder.feed(chunk)
    decoder.close()
