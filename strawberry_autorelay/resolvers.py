from __future__ import annotations

import contextvars
import functools
import inspect
from typing import TYPE_CHECKING, TypeVar, overload

from asgiref.sync import sync_to_async
from strawberry.utils.inspect import in_async_context
from typing_extensions import ParamSpec

if TYPE_CHECKING:
    from collections.abc import Callable

    from graphql.pyutils import AwaitableOrValue

_R = TypeVar("_R")
_P = ParamSpec("_P")

resolving_async: contextvars.ContextVar[bool] = contextvars.ContextVar(
    "autorelay-resolving-async",
    default=False,
)


@overload
def django_resolver(
    f: Callable[_P, _R],
) -> Callable[_P, AwaitableOrValue[_R]]: ...


@overload
def django_resolver(
    f: None = None,
) -> Callable[[Callable[_P, _R]], Callable[_P, AwaitableOrValue[_R]]]: ...


def django_resolver(f=None):
    """Make sure a function touching the Django ORM always runs in a sync context.

    When called from an async context the function is run through
    `sync_to_async` and an awaitable is returned, because the Django ORM
    cannot be used from a running event loop. Coroutine functions are
    returned as is.
    """

    def wrapper(resolver):
        if inspect.iscoroutinefunction(resolver):
            return resolver

        @sync_to_async
        def async_resolver(*args, **kwargs):
            token = resolving_async.set(True)
            try:
                return resolver(*args, **kwargs)
            finally:
                resolving_async.reset(token)

        @functools.wraps(resolver)
        def inner_wrapper(*args, **kwargs):
            if in_async_context() and not resolving_async.get():
                return async_resolver(*args, **kwargs)
            return resolver(*args, **kwargs)

        return inner_wrapper

    if f is not None:
        return wrapper(f)

    return wrapper
