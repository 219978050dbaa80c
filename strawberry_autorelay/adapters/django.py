from __future__ import annotations

from typing import Any, Optional, Sequence

from django.db import models
from django.db.models.manager import BaseManager

from strawberry_autorelay.pagination import FetchResult, FetchWindow
from strawberry_autorelay.resolvers import django_resolver

__all__ = ["THROUGH_ATTR", "DjangoStoreAdapter"]

#: Attribute holding the through model instance on nodes fetched from a
#: many-to-many relation with a custom `through` model.
THROUGH_ATTR = "_autorelay_through"


def _prefix_order(order: str, prefix: str) -> str:
    if order.startswith("-"):
        return f"-{prefix}__{order[1:]}"
    return f"{prefix}__{order}"


class DjangoStoreAdapter:
    """Fetch connection nodes with the Django ORM.

    Relations are resolved from the owner's related managers. Many-to-many
    relations declared with a custom `through` model are fetched through it,
    and each node gets its through row in `THROUGH_ATTR`, so edges can expose
    the association data.
    """

    attaches_through_rows = True

    def get_queryset(self, owner: Optional[Any], relation: Any) -> models.QuerySet:
        if owner is None:
            if isinstance(relation, models.QuerySet):
                return relation
            if isinstance(relation, BaseManager):
                return relation.all()
            if isinstance(relation, type) and issubclass(relation, models.Model):
                return relation._default_manager.all()

            raise TypeError(
                "Root connections need a model, a manager or a queryset to fetch "
                f"from, got {relation!r}"
            )

        value = getattr(owner, relation)
        if isinstance(value, BaseManager):
            return value.all()
        if isinstance(value, models.QuerySet):
            return value

        raise TypeError(
            f"{type(owner).__name__}.{relation} is not a to-many relation or a queryset"
        )

    def get_through_manager(self, owner: Optional[Any], relation: Any) -> Optional[Any]:
        """Return the related manager if `relation` goes through a custom model."""
        if owner is None or not isinstance(relation, str):
            return None

        manager = getattr(owner, relation)
        through = getattr(manager, "through", None)
        if through is None or through._meta.auto_created:
            return None

        return manager

    def apply_order(
        self,
        queryset: models.QuerySet,
        order_by: Optional[Sequence[str]] = None,
    ) -> models.QuerySet:
        # Offset cursors are only meaningful on a deterministic ordering
        if order_by:
            return queryset.order_by(*order_by, "pk")
        if not queryset.ordered:
            return queryset.order_by("pk")
        return queryset

    def fetch(self, queryset: models.QuerySet, window: FetchWindow) -> FetchResult:
        total_count = queryset.count()

        if window.limit == 0 or window.offset >= total_count:
            return FetchResult([], total_count)

        return FetchResult(list(queryset[window.offset : window.stop]), total_count)

    @django_resolver
    def fetch_related(
        self,
        owner: Optional[Any],
        relation: Any,
        window: FetchWindow,
        order_by: Optional[Sequence[str]] = None,
    ) -> FetchResult:
        manager = self.get_through_manager(owner, relation)
        if manager is not None:
            return self.fetch_through(manager, window, order_by)

        queryset = self.apply_order(self.get_queryset(owner, relation), order_by)
        return self.fetch(queryset, window)

    def fetch_through(
        self,
        manager: Any,
        window: FetchWindow,
        order_by: Optional[Sequence[str]] = None,
    ) -> FetchResult:
        target = manager.target_field_name
        rows = manager.through._default_manager.filter(
            **{manager.source_field_name: manager.instance},
        ).select_related(target)

        order = [_prefix_order(o, target) for o in order_by or ("pk",)]
        result = self.fetch(rows.order_by(*order, "pk"), window)

        nodes = []
        for row in result.items:
            node = getattr(row, target)
            setattr(node, THROUGH_ATTR, row)
            nodes.append(node)

        return FetchResult(nodes, result.total_count)
