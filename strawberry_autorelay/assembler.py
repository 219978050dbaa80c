from __future__ import annotations

import warnings
from collections.abc import Mapping
from typing import Any, Callable, Optional, Sequence

from .cursor import EMPTY_CURSOR, CursorCodec, default_codec
from .pagination import FetchWindow
from .registry import ConnectionTypes

__all__ = ["EdgeExtra", "assemble"]

EdgeExtra = Callable[[Any], Any]


def _edge_values(edge_fields: Sequence[str], extra: Any) -> dict[str, Any]:
    if not edge_fields:
        return {}

    if extra is None:
        return dict.fromkeys(edge_fields)

    if isinstance(extra, Mapping):
        return {name: extra.get(name) for name in edge_fields}

    return {name: getattr(extra, name, None) for name in edge_fields}


def assemble(
    types: ConnectionTypes,
    items: Sequence[Any],
    window: FetchWindow,
    total_count: int,
    *,
    edge_extra: Optional[EdgeExtra] = None,
    codec: CursorCodec = default_codec,
) -> Any:
    """Build a connection from a fetched slice of nodes.

    Args:
    ----
        types: The generated types of the connection.
        items: The nodes fetched for `window`, in the requested order.
        window: The window used to fetch `items`.
        total_count: The number of nodes in the whole collection.
        edge_extra: Returns the values of the extra edge fields for a node,
          either as a mapping or as an object with those attributes.
        codec: The codec used to build the cursors.

    """
    if total_count < 0:
        raise ValueError(f"total_count must be non-negative, got {total_count}")

    items = list(items)
    if len(items) > window.limit:
        warnings.warn(
            (
                f"Fetched {len(items)} items for a window limited to {window.limit}, "
                "discarding the extra ones."
            ),
            RuntimeWarning,
            stacklevel=2,
        )
        items = items[: window.limit]

    edges = [
        types.edge(
            cursor=codec.encode(window.offset + i),
            node=item,
            **_edge_values(
                types.edge_fields,
                edge_extra(item) if edge_extra is not None else None,
            ),
        )
        for i, item in enumerate(items)
    ]

    page_info = types.page_info(
        has_next_page=window.offset + len(items) < total_count,
        has_previous_page=window.offset > 0,
        start_cursor=edges[0].cursor if edges else EMPTY_CURSOR,
        end_cursor=edges[-1].cursor if edges else EMPTY_CURSOR,
    )

    return types.connection(
        edges=edges,
        page_info=page_info,
        **{name: resolver(total_count) for name, resolver in types.extension_resolvers},
    )
