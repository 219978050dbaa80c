from .base import StoreAdapter
from .django import THROUGH_ATTR, DjangoStoreAdapter
from .iterables import IterableStoreAdapter

__all__ = [
    "THROUGH_ATTR",
    "DjangoStoreAdapter",
    "IterableStoreAdapter",
    "StoreAdapter",
]
