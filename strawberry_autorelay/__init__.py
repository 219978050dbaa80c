from .adapters import DjangoStoreAdapter, IterableStoreAdapter, StoreAdapter
from .assembler import assemble
from .cursor import EMPTY_CURSOR, CursorCodec, decode_cursor, encode_cursor
from .exceptions import (
    AutoRelayError,
    ConfigurationError,
    InvalidArgumentError,
    InvalidCursorError,
    InvalidPositionError,
)
from .fields import (
    AutoRelayConnectionExtension,
    ConnectionBinding,
    ResolverBinder,
    connection,
    get_binder,
    relayed_query,
)
from .pagination import (
    ConnectionArguments,
    FetchResult,
    FetchWindow,
    FirstLastPolicy,
    PaginationDirection,
    translate,
)
from .registry import (
    ConnectionTypes,
    TotalCountConnection,
    TypeRegistry,
    extension_field,
    get_registry,
)
from .settings import AutoRelayConfig, configure, get_config

__all__ = [
    "EMPTY_CURSOR",
    "AutoRelayConfig",
    "AutoRelayConnectionExtension",
    "AutoRelayError",
    "ConfigurationError",
    "ConnectionArguments",
    "ConnectionBinding",
    "ConnectionTypes",
    "CursorCodec",
    "DjangoStoreAdapter",
    "FetchResult",
    "FetchWindow",
    "FirstLastPolicy",
    "InvalidArgumentError",
    "InvalidCursorError",
    "InvalidPositionError",
    "IterableStoreAdapter",
    "PaginationDirection",
    "ResolverBinder",
    "StoreAdapter",
    "TotalCountConnection",
    "TypeRegistry",
    "assemble",
    "configure",
    "connection",
    "decode_cursor",
    "encode_cursor",
    "extension_field",
    "get_binder",
    "get_config",
    "get_registry",
    "relayed_query",
    "translate",
]
