"""Generation and caching of the Edge/Connection types of relay connections."""

from __future__ import annotations

import copy
import dataclasses
import logging
import threading
from typing import Any, Callable, Optional

import strawberry
from strawberry.types import get_object_definition, has_object_definition

from .exceptions import ConfigurationError
from .settings import AutoRelayConfig, get_config

__all__ = [
    "EXTENSION_RESOLVER",
    "ConnectionTypes",
    "TotalCountConnection",
    "TypeRegistry",
    "connection_type_names",
    "extension_field",
    "get_registry",
    "get_type_name",
]

logger = logging.getLogger(__name__)

#: Key in a strawberry field's metadata holding the callback that computes the
#: field value from the raw total count of the connection.
EXTENSION_RESOLVER = "strawberry_autorelay.extension_resolver"

RegistryKey = tuple[str, Optional[str]]


def extension_field(
    resolver: Callable[[int], Any],
    *,
    name: Optional[str] = None,
    description: Optional[str] = None,
    deprecation_reason: Optional[str] = None,
) -> Any:
    """Declare a connection extension field computed from the total count.

    Examples
    --------
        >>> @strawberry.type
        ... class PagedConnection:
        ...     total_count: int = extension_field(lambda total: total)
        ...     page_count: int = extension_field(lambda total: -(-total // 10))

    """
    return strawberry.field(
        name=name,
        description=description,
        deprecation_reason=deprecation_reason,
        metadata={EXTENSION_RESOLVER: resolver},
    )


@strawberry.type
class TotalCountConnection:
    total_count: int = extension_field(
        lambda total_count: total_count,
        description="Total quantity of existing nodes.",
    )


@dataclasses.dataclass(frozen=True)
class ConnectionTypes:
    """The generated types of a connection, plus what is needed to fill them."""

    key: RegistryKey
    edge: type
    connection: type
    page_info: type
    #: Fields of the edge whose value is read from the edge extra of each row.
    edge_fields: tuple[str, ...] = ()
    #: Extension fields of the connection computed from the total count.
    extension_resolvers: tuple[tuple[str, Callable[[int], Any]], ...] = ()

    @property
    def name(self) -> str:
        return self.connection.__strawberry_definition__.name  # type: ignore


def get_type_name(type_: Any) -> str:
    """Return the GraphQL name of a strawberry type, or the class name."""
    if has_object_definition(type_):
        return get_object_definition(type_, strict=True).name

    name = getattr(type_, "__name__", None)
    if not isinstance(name, str):
        raise TypeError(f"Cannot determine a type name for {type_!r}")

    return name


def _escape_name(name: str) -> str:
    return name.replace("_", "__")


def connection_type_names(
    node_name: str,
    through_name: Optional[str] = None,
) -> tuple[str, str]:
    """Return the `(edge, connection)` type names for a node/through pair.

    Underscores inside the type names are doubled and a through type is joined
    with `_Via_`, whose underscores end up in runs of odd length. Every run of
    underscores coming from the type names has an even length, so distinct
    pairs always get distinct names.

    Examples
    --------
        >>> connection_type_names("Recipe")
        ('RecipeEdge', 'RecipeConnection')
        >>> connection_type_names("Recipe", "Rate")
        ('Recipe_Via_RateEdge', 'Recipe_Via_RateConnection')
        >>> connection_type_names("RecipeViaRate")
        ('RecipeViaRateEdge', 'RecipeViaRateConnection')

    """
    prefix = _escape_name(node_name)
    if through_name is not None:
        prefix = f"{prefix}_Via_{_escape_name(through_name)}"

    return f"{prefix}Edge", f"{prefix}Connection"


def _copy_fields(source: type) -> dict[str, Any]:
    type_def = get_object_definition(source)
    if type_def is None:
        raise ConfigurationError(
            f"Through type {source!r} must be a strawberry type to be used "
            "to extend connection edges"
        )

    return {f.python_name: copy.copy(f) for f in type_def.fields}


def _make_type(
    name: str,
    *,
    bases: tuple[type, ...],
    annotations: dict[str, Any],
    namespace: dict[str, Any],
    description: str,
) -> type:
    cls = type(
        name,
        bases,
        {
            **namespace,
            "__annotations__": annotations,
            "__module__": __name__,
            "__qualname__": name,
        },
    )
    return strawberry.type(cls, name=name, description=description)


class TypeRegistry:
    """Factory and cache of the Edge/Connection types of connections.

    Types are generated on first request for a given node/through pair and
    cached for the lifetime of the registry, because the schema refuses two
    types with the same name.
    """

    def __init__(self, config: Optional[AutoRelayConfig] = None):
        self._config = config
        self._types: dict[RegistryKey, ConnectionTypes] = {}
        self._lock = threading.RLock()

    def __contains__(self, key: RegistryKey) -> bool:
        return key in self._types

    def __len__(self) -> int:
        return len(self._types)

    @property
    def config(self) -> AutoRelayConfig:
        return self._config if self._config is not None else get_config()

    def get(
        self,
        node: Any,
        through: Optional[Any] = None,
    ) -> Optional[ConnectionTypes]:
        key = (
            get_type_name(node),
            get_type_name(through) if through is not None else None,
        )
        return self._types.get(key)

    def get_or_create(
        self,
        node: Any,
        through: Optional[Any] = None,
    ) -> ConnectionTypes:
        """Return the Edge/Connection types for `node`, generating them if needed.

        Args:
        ----
            node: The strawberry type of the connection nodes.
            through: An optional strawberry type of the association between the
              owner and the nodes. Its fields are exposed in each edge.

        Raises:
        ------
            ConfigurationError: The PageInfo type is not registered or the
              extension types are invalid.

        """
        key = (
            get_type_name(node),
            get_type_name(through) if through is not None else None,
        )

        existing = self._types.get(key)
        if existing is not None:
            return existing

        with self._lock:
            existing = self._types.get(key)
            if existing is not None:
                return existing

            types = self._generate(key, node, through)
            self._types[key] = types

        logger.debug(
            "Generated connection types %s and %s for %r",
            types.edge.__name__,
            types.connection.__name__,
            key,
        )
        return types

    def _get_page_info(self) -> type:
        thunk = self.config.page_info
        if thunk is None:
            raise ConfigurationError(
                "No PageInfo type registered. Set PAGE_INFO in "
                "settings.STRAWBERRY_AUTORELAY or pass `page_info` to AutoRelayConfig."
            )
        if has_object_definition(thunk):
            return thunk
        if not callable(thunk):
            raise ConfigurationError(
                f"The registered PageInfo must be a callable returning a type, got {thunk!r}"
            )

        page_info = thunk()
        if page_info is None:
            raise ConfigurationError("The registered PageInfo callable returned None")
        if not has_object_definition(page_info):
            raise ConfigurationError(
                f"The registered PageInfo {page_info!r} is not a strawberry type"
            )

        return page_info

    def _get_base(self, thunk: Optional[Callable[[], Any]], what: str) -> tuple[type, ...]:
        if thunk is None:
            return ()

        base = thunk()
        if base is None:
            return ()
        if not has_object_definition(base):
            raise ConfigurationError(
                f"The registered {what} extension {base!r} is not a strawberry type"
            )

        return (base,)

    def _generate(self, key: RegistryKey, node: Any, through: Optional[Any]) -> ConnectionTypes:
        page_info = self._get_page_info()
        edge_bases = self._get_base(self.config.edge_extension, "edge")
        connection_bases = self._get_base(
            self.config.connection_extension, "connection"
        )

        edge_name, connection_name = connection_type_names(*key)

        through_fields = _copy_fields(through) if through is not None else {}

        edge = _make_type(
            edge_name,
            bases=edge_bases,
            annotations={"cursor": str, "node": node},
            namespace={
                **through_fields,
                "cursor": strawberry.field(description="A cursor for use in pagination"),
                "node": strawberry.field(description="The item at the end of the edge"),
            },
            description="An edge in a connection.",
        )

        connection = _make_type(
            connection_name,
            bases=connection_bases,
            annotations={
                "edges": list[Optional[edge]],  # type: ignore[valid-type]
                "page_info": page_info,
            },
            namespace={
                "edges": strawberry.field(
                    description="Contains the nodes in this connection"
                ),
                "page_info": strawberry.field(description="Pagination data for this connection"),
            },
            description="A connection to a list of items.",
        )

        edge_fields = tuple(
            f.python_name
            for f in get_object_definition(edge, strict=True).fields
            if f.python_name not in {"cursor", "node"} and f.base_resolver is None
        )

        extension_resolvers = []
        for f in get_object_definition(connection, strict=True).fields:
            if f.python_name in {"edges", "page_info"} or f.base_resolver is not None:
                continue

            resolver = (f.metadata or {}).get(EXTENSION_RESOLVER)
            if resolver is not None:
                extension_resolvers.append((f.python_name, resolver))
            elif (
                f.default is dataclasses.MISSING
                and f.default_factory is dataclasses.MISSING
            ):
                raise ConfigurationError(
                    f"Connection extension field {f.python_name!r} needs either a "
                    "resolver, a default value or an `extension_field` callback"
                )

        return ConnectionTypes(
            key=key,
            edge=edge,
            connection=connection,
            page_info=page_info,
            edge_fields=edge_fields,
            extension_resolvers=tuple(extension_resolvers),
        )


_registry: Optional[TypeRegistry] = None
_registry_lock = threading.Lock()


def get_registry() -> TypeRegistry:
    """Return the process-wide registry, bound to the process-wide config."""
    global _registry  # noqa: PLW0603

    if _registry is None:
        with _registry_lock:
            if _registry is None:
                _registry = TypeRegistry()

    return _registry
