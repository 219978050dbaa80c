from __future__ import annotations

import operator
from typing import Any, Optional, Sequence

from strawberry_autorelay.pagination import FetchResult, FetchWindow

__all__ = ["IterableStoreAdapter"]


class IterableStoreAdapter:
    """Paginate plain Python sequences held by the owner object.

    `relation` is the name of an attribute of the owner (or, for root fields,
    the iterable itself). Callables are called to get the values.

    Plain sequences know nothing about association rows, so connections with
    a `through` type need an `edge_extra` callback.
    """

    attaches_through_rows = False

    def get_items(self, owner: Optional[Any], relation: Any) -> list[Any]:
        values = (
            getattr(owner, relation)
            if owner is not None and isinstance(relation, str)
            else relation
        )
        if callable(values):
            values = values()

        return list(values) if values is not None else []

    def fetch_related(
        self,
        owner: Optional[Any],
        relation: Any,
        window: FetchWindow,
        order_by: Optional[Sequence[str]] = None,
    ) -> FetchResult:
        items = self.get_items(owner, relation)

        # Sorting is stable, so sort by the least significant key first
        for order in reversed(order_by or ()):
            items.sort(
                key=operator.attrgetter(order.lstrip("-")),
                reverse=order.startswith("-"),
            )

        return FetchResult(items[window.offset : window.stop], len(items))
