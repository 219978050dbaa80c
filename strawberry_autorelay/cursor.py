"""Opaque offset cursors.

A cursor wraps the absolute position of an edge inside the ordered result set
of a connection. The encoding is the one strawberry uses for its relay
``ListConnection``: ``base64("arrayconnection:<position>")``.
"""

from __future__ import annotations

from typing import Any, Optional

from strawberry.relay import from_base64, to_base64

from .exceptions import InvalidCursorError, InvalidPositionError

__all__ = [
    "DEFAULT_CURSOR_PREFIX",
    "EMPTY_CURSOR",
    "CursorCodec",
    "decode_cursor",
    "default_codec",
    "encode_cursor",
]

DEFAULT_CURSOR_PREFIX = "arrayconnection"

#: Start/end cursor reported by a page without edges.
EMPTY_CURSOR: Optional[str] = None


class CursorCodec:
    """Encode integer positions into cursors and decode them back.

    `decode` is the single validation boundary for client supplied cursors:
    only tokens produced by `encode` with the same prefix are accepted.
    """

    def __init__(self, prefix: str = DEFAULT_CURSOR_PREFIX):
        self.prefix = prefix

    def __repr__(self) -> str:
        return f"{type(self).__name__}(prefix={self.prefix!r})"

    def encode(self, position: int) -> str:
        # bool is an int subclass, but True is not a position
        if (
            isinstance(position, bool)
            or not isinstance(position, int)
            or position < 0
        ):
            raise InvalidPositionError(position)

        try:
            return to_base64(self.prefix, position)
        except ValueError as e:
            # Too many digits for the interpreter's int to str conversion limit
            raise InvalidPositionError(position) from e

    def decode(self, cursor: Any) -> int:
        if not isinstance(cursor, str) or not cursor:
            raise InvalidCursorError(cursor)

        try:
            prefix, value = from_base64(cursor)
        except (ValueError, TypeError) as e:
            raise InvalidCursorError(cursor) from e

        if prefix != self.prefix or not value.isdigit() or not value.isascii():
            raise InvalidCursorError(cursor)

        try:
            position = int(value)
        except ValueError as e:
            raise InvalidCursorError(cursor) from e

        # Reject anything that decodes to a position but is not the exact token
        # we would have produced, e.g. "007" or a re-padded base64 string.
        try:
            expected = self.encode(position)
        except InvalidPositionError as e:
            raise InvalidCursorError(cursor) from e

        if expected != cursor:
            raise InvalidCursorError(cursor)

        return position


default_codec = CursorCodec()


def encode_cursor(position: int) -> str:
    return default_codec.encode(position)


def decode_cursor(cursor: Any) -> int:
    return default_codec.decode(cursor)
