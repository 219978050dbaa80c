"""Translation of relay connection arguments into offset/limit fetch windows."""

from __future__ import annotations

import dataclasses
import enum
from typing import NamedTuple, Optional, Sequence, cast

from .cursor import CursorCodec, default_codec
from .exceptions import ConfigurationError, InvalidArgumentError

__all__ = [
    "ConnectionArguments",
    "FetchResult",
    "FetchWindow",
    "FirstLastPolicy",
    "PaginationDirection",
    "requires_total_count",
    "translate",
    "validate_arguments",
]


class PaginationDirection(enum.Enum):
    FORWARD = "forward"
    BACKWARD = "backward"


class FirstLastPolicy(enum.Enum):
    """What to do when a client sends both `first` and `last`."""

    #: Paginate forwards using `first`, ignoring `last`.
    FIRST = "first"
    #: Paginate backwards using `last`, ignoring `first`.
    LAST = "last"
    #: Refuse the request.
    REJECT = "reject"


@dataclasses.dataclass(frozen=True)
class ConnectionArguments:
    first: Optional[int] = None
    after: Optional[str] = None
    last: Optional[int] = None
    before: Optional[str] = None


@dataclasses.dataclass(frozen=True)
class FetchWindow:
    offset: int = 0
    limit: int = 0
    direction: PaginationDirection = PaginationDirection.FORWARD

    def __post_init__(self):
        if self.offset < 0:
            raise ValueError(f"offset must be non-negative, got {self.offset}")
        if self.limit < 0:
            raise ValueError(f"limit must be non-negative, got {self.limit}")

    @property
    def stop(self) -> int:
        return self.offset + self.limit


class FetchResult(NamedTuple):
    items: Sequence
    total_count: int


def _validate_size(name: str, value: Optional[int], max_page_size: Optional[int]):
    if value is None:
        return

    if value < 0:
        raise InvalidArgumentError(
            name, f"Argument '{name}' must be a non-negative integer."
        )

    if max_page_size is not None and value > max_page_size:
        raise InvalidArgumentError(
            name, f"Argument '{name}' cannot be higher than {max_page_size}."
        )


def _direction(
    args: ConnectionArguments,
    policy: FirstLastPolicy,
) -> PaginationDirection:
    if args.first is not None and args.last is not None:
        if policy is FirstLastPolicy.REJECT:
            raise InvalidArgumentError(
                "last",
                "Passing both 'first' and 'last' to paginate a connection "
                "is not supported.",
            )
        if policy is FirstLastPolicy.LAST:
            return PaginationDirection.BACKWARD
        return PaginationDirection.FORWARD

    if args.last is not None:
        return PaginationDirection.BACKWARD

    return PaginationDirection.FORWARD


def validate_arguments(
    args: ConnectionArguments,
    *,
    policy: FirstLastPolicy = FirstLastPolicy.FIRST,
    max_page_size: Optional[int] = None,
    codec: CursorCodec = default_codec,
) -> tuple[PaginationDirection, Optional[int], Optional[int]]:
    """Validate `args`, returning the direction and the decoded cursors.

    Raises:
    ------
        InvalidArgumentError: `first` or `last` are invalid.
        InvalidCursorError: `after` or `before` are not valid cursors.

    """
    _validate_size("first", args.first, max_page_size)
    _validate_size("last", args.last, max_page_size)

    direction = _direction(args, policy)

    after = codec.decode(args.after) if args.after is not None else None
    before = codec.decode(args.before) if args.before is not None else None

    return direction, after, before


def requires_total_count(
    args: ConnectionArguments,
    policy: FirstLastPolicy = FirstLastPolicy.FIRST,
) -> bool:
    """Check if `args` can only be translated once the total count is known.

    That is the case when paginating backwards from the end of the collection,
    which has no `before` cursor to anchor the window on.
    """
    return args.before is None and (
        _direction(args, policy) is PaginationDirection.BACKWARD
    )


def translate(
    args: ConnectionArguments,
    default_page_size: int,
    *,
    total_count: Optional[int] = None,
    policy: FirstLastPolicy = FirstLastPolicy.FIRST,
    max_page_size: Optional[int] = None,
    codec: CursorCodec = default_codec,
) -> FetchWindow:
    """Compute the window of rows to fetch for the given connection arguments.

    Args:
    ----
        args: The relay arguments sent by the client.
        default_page_size: The limit used when neither `first` nor `last`
          are given.
        total_count: The number of rows in the whole collection, if known.
          It is required to paginate backwards without a `before` cursor.
        policy: How to resolve requests sending both `first` and `last`.
        max_page_size: Upper bound for `first` and `last`, if any.
        codec: The codec used to decode `after` and `before`.

    Raises:
    ------
        InvalidArgumentError: `first` or `last` are invalid.
        InvalidCursorError: `after` or `before` are not valid cursors.

    """
    if default_page_size <= 0:
        raise ConfigurationError(
            f"The default page size must be a positive integer, got {default_page_size}"
        )

    direction, after, before = validate_arguments(
        args,
        policy=policy,
        max_page_size=max_page_size,
        codec=codec,
    )

    lower = after + 1 if after is not None else 0

    if direction is PaginationDirection.BACKWARD:
        # validate_arguments only picks the backward direction when `last` is set
        last = cast(int, args.last)

        if before is None:
            if total_count is None:
                raise ValueError(
                    "total_count is required to paginate backwards without 'before'"
                )
            upper = total_count
        elif total_count is not None:
            upper = min(before, total_count)
        else:
            upper = before

        offset = max(lower, upper - last)
        limit = max(0, upper - offset)
        return FetchWindow(offset=offset, limit=limit, direction=direction)

    offset = lower
    limit = args.first if args.first is not None else default_page_size

    if before is not None:
        limit = min(limit, max(0, before - offset))

    if total_count is not None:
        limit = min(limit, max(0, total_count - offset))

    return FetchWindow(offset=offset, limit=limit, direction=direction)
