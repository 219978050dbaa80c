from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional, Sequence

from typing_extensions import Protocol, runtime_checkable

if TYPE_CHECKING:
    from strawberry.utils.await_maybe import AwaitableOrValue

    from strawberry_autorelay.pagination import FetchResult, FetchWindow


@runtime_checkable
class StoreAdapter(Protocol):
    """What a store must provide to back connections without a fetch function.

    `fetch_related` returns the nodes of `relation` inside `window`, in the
    requested order, together with the number of nodes in the whole relation,
    ignoring the window. It must never return more than `window.limit` nodes
    and may return an awaitable.

    `owner` is the object the connection field is resolved on. Root fields
    have no owner, in which case `relation` is whatever the field declared as
    its `model`.

    Connections declared with a `through` type and no `edge_extra` callback
    need an adapter that attaches the association rows.
    """

    #: Whether nodes fetched through an association model carry their
    #: association row in `THROUGH_ATTR`, to fill the extra edge fields.
    attaches_through_rows: bool

    def fetch_related(
        self,
        owner: Optional[Any],
        relation: Any,
        window: FetchWindow,
        order_by: Optional[Sequence[str]] = None,
    ) -> AwaitableOrValue[FetchResult]: ...
