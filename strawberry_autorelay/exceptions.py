from __future__ import annotations

from typing import Any

from django.core.exceptions import ImproperlyConfigured


class AutoRelayError(Exception):
    """Base class for every error raised by strawberry-autorelay."""


class ConfigurationError(AutoRelayError, ImproperlyConfigured):
    """The process-wide configuration is missing or invalid.

    Raised eagerly, usually while the schema is being built, and never retried.
    """


class InvalidArgumentError(AutoRelayError, ValueError):
    def __init__(self, argument: str, message: str):
        self.argument = argument
        super().__init__(message)


class InvalidCursorError(AutoRelayError, ValueError):
    def __init__(self, cursor: Any):
        self.cursor = cursor
        super().__init__(f"Invalid cursor: {cursor!r}")


class InvalidPositionError(AutoRelayError, ValueError):
    def __init__(self, position: Any):
        self.position = position
        super().__init__(
            f"Cursor positions must be non-negative integers, got {_describe(position)}"
        )


def _describe(value: Any) -> str:
    try:
        return repr(value)
    except ValueError:
        # Integers over the interpreter's int to str conversion limit
        return f"an int of {value.bit_length()} bits"
