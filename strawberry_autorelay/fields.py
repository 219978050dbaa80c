"""Connection fields: binding of generated connection types to resolvers."""

from __future__ import annotations

import contextvars
import dataclasses
import functools
import inspect
import logging
import threading
from collections.abc import Mapping, Sequence
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Callable, Optional

from strawberry.annotation import StrawberryAnnotation
from strawberry.extensions.field_extension import FieldExtension
from strawberry.types import has_object_definition
from strawberry.types.field import StrawberryField
from strawberry.types.fields.resolver import StrawberryResolver

from .adapters.django import THROUGH_ATTR
from .arguments import (
    AFTER_ARG,
    BEFORE_ARG,
    FIRST_ARG,
    LAST_ARG,
    connection_arguments,
)
from .assembler import EdgeExtra, assemble
from .exceptions import ConfigurationError
from .pagination import (
    ConnectionArguments,
    FetchResult,
    FetchWindow,
    PaginationDirection,
    requires_total_count,
    translate,
    validate_arguments,
)
from .registry import ConnectionTypes, TypeRegistry, get_registry, get_type_name
from .settings import AutoRelayConfig, get_config

if TYPE_CHECKING:
    from graphql.pyutils import AwaitableOrValue
    from strawberry.extensions.field_extension import (
        AsyncExtensionResolver,
        SyncExtensionResolver,
    )
    from strawberry.permission import BasePermission
    from strawberry.types import Info

    from .adapters.base import StoreAdapter

__all__ = [
    "WINDOW_ARG",
    "AutoRelayConnectionExtension",
    "ConnectionBinding",
    "ResolverBinder",
    "connection",
    "get_binder",
    "relayed_query",
]

logger = logging.getLogger(__name__)

#: Name of the fetch function parameter receiving the window to fetch.
WINDOW_ARG = "window"

Fetcher = Callable[[FetchWindow], "AwaitableOrValue[Any]"]

_current_window: contextvars.ContextVar[Optional[FetchWindow]] = (
    contextvars.ContextVar("autorelay-current-window", default=None)
)


def through_edge_extra(node: Any) -> Any:
    """Return the through row the store adapter attached to `node`, if any."""
    return getattr(node, THROUGH_ATTR, None)


@dataclasses.dataclass(frozen=True)
class ConnectionBinding:
    """Everything needed to resolve one connection field.

    A binding either fetches with the field's own resolver (`fetch`) or with
    the configured store adapter, which receives `relation` (or `model`, for
    fields fetching a whole collection) and `order_by`.
    """

    types: ConnectionTypes
    fetch: Optional[Callable[..., Any]] = None
    relation: Optional[Any] = None
    model: Optional[Any] = None
    order_by: tuple[str, ...] = ()
    edge_extra: Optional[EdgeExtra] = None

    @property
    def uses_store_adapter(self) -> bool:
        return self.fetch is None

    def get_edge_extra(self) -> Optional[EdgeExtra]:
        if self.edge_extra is not None:
            return self.edge_extra
        if self.types.key[1] is not None:
            return through_edge_extra
        return None


def _then(value: Any, callback: Callable[[Any], Any]) -> Any:
    if inspect.isawaitable(value):

        async def async_resolver():
            resolved = callback(await value)
            if inspect.isawaitable(resolved):
                resolved = await resolved

            return resolved

        return async_resolver()

    return callback(value)


def _unpack(result: Any) -> FetchResult:
    try:
        items, total_count = result
    except (TypeError, ValueError) as e:
        raise TypeError(
            "Connection fetchers must return an `(items, total_count)` pair, "
            f"got {result!r}"
        ) from e

    return FetchResult(items, total_count)


class ResolverBinder:
    """Resolve connection fields and keep track of the bound ones.

    The binding table maps `(owner type name, field name)` to the binding of
    each connection field that was added to a schema.
    """

    def __init__(
        self,
        config: Optional[AutoRelayConfig] = None,
        registry: Optional[TypeRegistry] = None,
        store_adapter: Optional[StoreAdapter] = None,
    ):
        self._config = config
        self._registry = registry
        self._store_adapter = store_adapter
        self._bindings: dict[tuple[str, str], ConnectionBinding] = {}
        self._lock = threading.Lock()

    @property
    def config(self) -> AutoRelayConfig:
        return self._config if self._config is not None else get_config()

    @property
    def registry(self) -> TypeRegistry:
        if self._registry is None:
            self._registry = (
                TypeRegistry(self._config) if self._config is not None else get_registry()
            )

        return self._registry

    @property
    def bindings(self) -> Mapping[tuple[str, str], ConnectionBinding]:
        return MappingProxyType(self._bindings)

    def get_store_adapter(self) -> StoreAdapter:
        if self._store_adapter is None:
            with self._lock:
                if self._store_adapter is None:
                    factory = self.config.store_adapter_factory
                    if factory is None:
                        raise ConfigurationError(
                            "Connections without a fetch function need a store "
                            "adapter. Set STORE_ADAPTER in settings.STRAWBERRY_AUTORELAY."
                        )
                    self._store_adapter = factory()

        return self._store_adapter

    def bind(self, owner: str, field_name: str, binding: ConnectionBinding) -> None:
        key = (owner, field_name)

        with self._lock:
            existing = self._bindings.get(key)
            if existing is not None and existing != binding:
                raise ConfigurationError(
                    f"{owner}.{field_name} is already bound to the "
                    f"{existing.types.name} connection"
                )
            self._bindings[key] = binding

        if existing is None:
            logger.debug(
                "Bound %s.%s to %s", owner, field_name, binding.types.name
            )

    def get_binding(self, owner: str, field_name: str) -> Optional[ConnectionBinding]:
        return self._bindings.get((owner, field_name))

    def resolve_connection(
        self,
        binding: ConnectionBinding,
        fetch: Fetcher,
        args: ConnectionArguments,
    ) -> AwaitableOrValue[Any]:
        """Fetch the window requested by `args` and build the connection.

        Paginating backwards without a `before` cursor needs the total count
        to know where the collection ends, so `fetch` is first called with an
        empty window to get it.

        Arguments are validated before anything is fetched. Errors raised by
        `fetch` are propagated unchanged.
        """
        config = self.config
        policy = config.first_last_policy

        def fetch_window(total_count: Optional[int]) -> AwaitableOrValue[Any]:
            window = translate(
                args,
                config.default_page_size,
                total_count=total_count,
                policy=policy,
                max_page_size=config.max_page_size,
            )
            logger.debug("Fetching %r for %s", window, binding.types.name)

            return _then(
                fetch(window),
                lambda result: self._assemble(binding, window, result),
            )

        if not requires_total_count(args, policy):
            return fetch_window(None)

        validate_arguments(args, policy=policy, max_page_size=config.max_page_size)
        probe = fetch(FetchWindow(direction=PaginationDirection.BACKWARD))
        return _then(probe, lambda result: fetch_window(_unpack(result).total_count))

    def _assemble(
        self,
        binding: ConnectionBinding,
        window: FetchWindow,
        result: Any,
    ) -> Any:
        items, total_count = _unpack(result)
        return assemble(
            binding.types,
            items,
            window,
            total_count,
            edge_extra=binding.get_edge_extra(),
        )


_binder: Optional[ResolverBinder] = None
_binder_lock = threading.Lock()


def get_binder() -> ResolverBinder:
    """Return the process-wide binder, bound to the process-wide config."""
    global _binder  # noqa: PLW0603

    if _binder is None:
        with _binder_lock:
            if _binder is None:
                _binder = ResolverBinder()

    return _binder


def _owner_name(field: StrawberryField) -> str:
    origin = field.origin
    if isinstance(origin, type) and has_object_definition(origin):
        return get_type_name(origin)

    # Fields declared with a resolver may have the resolver as their origin
    qualname = getattr(origin, "__qualname__", None)
    if isinstance(qualname, str) and "." in qualname:
        return qualname.split(".")[-2]

    raise ConfigurationError(
        f"Cannot determine the type owning the connection field {field.python_name!r}"
    )


class AutoRelayConnectionExtension(FieldExtension):
    """Turn a field into a relay connection of generated types.

    `apply` adds the relay arguments, sets the generated Connection as the
    field type and registers the binding. Resolution translates the relay
    arguments into a `FetchWindow`, fetches it and assembles the connection,
    either synchronously or asynchronously depending on the fetcher.
    """

    def __init__(
        self,
        binding: ConnectionBinding,
        *,
        binder: Optional[ResolverBinder] = None,
    ):
        self.binding = binding
        self._binder = binder

    @property
    def binder(self) -> ResolverBinder:
        return self._binder if self._binder is not None else get_binder()

    def apply(self, field: StrawberryField) -> None:
        relay_args = {FIRST_ARG, AFTER_ARG, LAST_ARG, BEFORE_ARG}
        field.arguments = [
            *(
                arg
                for arg in field.arguments
                if arg.python_name != WINDOW_ARG and arg.python_name not in relay_args
            ),
            *connection_arguments(),
        ]
        field.type_annotation = StrawberryAnnotation(self.binding.types.connection)

        if (
            self.binding.uses_store_adapter
            and self.binding.relation is None
            and self.binding.model is None
        ):
            self.binding = dataclasses.replace(
                self.binding,
                relation=field.python_name,
            )

        owner = _owner_name(field)
        self.check_edge_extra(owner, field.python_name)
        self.binder.bind(owner, field.python_name, self.binding)

    def check_edge_extra(self, owner: str, field_name: str) -> None:
        binding = self.binding
        if (
            binding.types.key[1] is None
            or binding.edge_extra is not None
            or not binding.uses_store_adapter
        ):
            return

        adapter = self.binder.get_store_adapter()
        if not getattr(adapter, "attaches_through_rows", False):
            raise ConfigurationError(
                f"{owner}.{field_name} exposes the fields of {binding.types.key[1]} "
                f"in its edges, but {type(adapter).__name__} does not attach "
                "association rows to the nodes it fetches. Pass `edge_extra` "
                "to compute them."
            )

    def get_fetcher(
        self,
        next_: Callable[..., Any],
        source: Any,
        info: Info,
        kwargs: dict[str, Any],
    ) -> Fetcher:
        binding = self.binding

        if binding.uses_store_adapter:
            adapter = self.binder.get_store_adapter()
            if binding.model is not None:
                owner, relation = None, binding.model
            else:
                owner, relation = source, binding.relation

            def fetch_from_store(window: FetchWindow) -> Any:
                return adapter.fetch_related(owner, relation, window, binding.order_by)

            return fetch_from_store

        def fetch_from_resolver(window: FetchWindow) -> Any:
            token = _current_window.set(window)
            try:
                return next_(source, info, **kwargs)
            finally:
                _current_window.reset(token)

        return fetch_from_resolver

    def resolve(
        self,
        next_: SyncExtensionResolver,
        source: Any,
        info: Info,
        *,
        before: Optional[str] = None,
        after: Optional[str] = None,
        first: Optional[int] = None,
        last: Optional[int] = None,
        **kwargs: Any,
    ) -> Any:
        args = ConnectionArguments(first=first, after=after, last=last, before=before)
        return self.binder.resolve_connection(
            self.binding,
            self.get_fetcher(next_, source, info, kwargs),
            args,
        )

    async def resolve_async(
        self,
        next_: AsyncExtensionResolver,
        source: Any,
        info: Info,
        *,
        before: Optional[str] = None,
        after: Optional[str] = None,
        first: Optional[int] = None,
        last: Optional[int] = None,
        **kwargs: Any,
    ) -> Any:
        args = ConnectionArguments(first=first, after=after, last=last, before=before)
        retval = self.binder.resolve_connection(
            self.binding,
            self.get_fetcher(next_, source, info, kwargs),
            args,
        )
        while inspect.isawaitable(retval):
            retval = await retval

        return retval


def _owner_resolver(root: Any) -> Any:
    return root


def _inject_window(fetch: Callable[..., Any]) -> Callable[..., Any]:
    signature = inspect.signature(fetch)
    if WINDOW_ARG not in signature.parameters:
        raise ConfigurationError(
            f"{fetch.__qualname__} must accept a {WINDOW_ARG!r} argument to "
            "receive the window of nodes to fetch"
        )

    @functools.wraps(fetch)
    def wrapper(*args, **kwargs):
        window = _current_window.get()
        if window is None:
            raise RuntimeError(
                f"{fetch.__qualname__} can only be called while resolving a connection"
            )

        return fetch(*args, **{WINDOW_ARG: window}, **kwargs)

    # Hide the window from the GraphQL arguments
    wrapper.__signature__ = signature.replace(  # type: ignore[attr-defined]
        parameters=[
            p for p in signature.parameters.values() if p.name != WINDOW_ARG
        ],
    )
    return wrapper


def connection(
    node: type,
    *,
    through: Optional[type] = None,
    relation: Optional[str] = None,
    model: Optional[Any] = None,
    order_by: Optional[Sequence[str]] = None,
    edge_extra: Optional[EdgeExtra] = None,
    name: Optional[str] = None,
    description: Optional[str] = None,
    permission_classes: Optional[list[type[BasePermission]]] = None,
    deprecation_reason: Optional[str] = None,
    directives: Sequence[object] = (),
    extensions: Sequence[FieldExtension] = (),
    binder: Optional[ResolverBinder] = None,
) -> Any:
    """Create a relay connection field fetched by the store adapter.

    The Edge and Connection types are generated for `node` (and `through`, if
    given) when the field is declared.

    Args:
    ----
        node: The strawberry type of the nodes.
        through: A strawberry type describing the association between the
          owner and each node. Its fields are exposed in the edges.
        relation: The name of the relation on the owner to fetch from.
          Defaults to the field's name.
        model: What to fetch from when the field does not depend on its owner,
          e.g. a Django model for a root query field.
        order_by: Fields to order the nodes by, "-" prefixed for descending.
        edge_extra: Returns the values of the `through` fields for a node.
          Defaults to the through row the adapter attached to the node, which
          requires a store adapter with `attaches_through_rows` set.

    Raises:
    ------
        ConfigurationError: `through` is given without `edge_extra` and the
          store adapter does not attach through rows. Raised when the field
          is added to a schema.

    Examples
    --------
        >>> @strawberry.type
        ... class UserType:
        ...     recipes = connection(RecipeType, order_by=["name"])
        ...     rated_recipes = connection(RecipeType, through=RateType)

    """
    binder = binder if binder is not None else get_binder()
    types = binder.registry.get_or_create(node, through)
    binding = ConnectionBinding(
        types=types,
        relation=relation,
        model=model,
        order_by=tuple(order_by or ()),
        edge_extra=edge_extra,
    )

    f = StrawberryField(
        python_name=None,
        graphql_name=name,
        type_annotation=StrawberryAnnotation.from_annotation(types.connection),
        description=description,
        permission_classes=permission_classes or [],
        deprecation_reason=deprecation_reason,
        directives=directives or (),
        extensions=[
            *extensions,
            AutoRelayConnectionExtension(binding, binder=binder),
        ],
    )
    return f(StrawberryResolver(_owner_resolver))


def relayed_query(
    node: type,
    *,
    through: Optional[type] = None,
    edge_extra: Optional[EdgeExtra] = None,
    name: Optional[str] = None,
    description: Optional[str] = None,
    permission_classes: Optional[list[type[BasePermission]]] = None,
    deprecation_reason: Optional[str] = None,
    directives: Sequence[object] = (),
    extensions: Sequence[FieldExtension] = (),
    binder: Optional[ResolverBinder] = None,
) -> Callable[[Callable[..., Any]], Any]:
    """Decorate a fetch function to create a relay connection field.

    The fetch function receives the `FetchWindow` to fetch in its `window`
    argument and must return the nodes inside it together with the total
    number of nodes, either directly or through an awaitable. Its other
    arguments are exposed in the schema next to the relay ones.

    With a `through` type, the nodes must carry their association row in
    `THROUGH_ATTR` unless `edge_extra` is given.

    Examples
    --------
        >>> @strawberry.type
        ... class Query:
        ...     @relayed_query(RecipeType)
        ...     def recipes(self, window: FetchWindow, name: str = "") -> Any:
        ...         qs = Recipe.objects.filter(name__icontains=name)
        ...         return qs[window.offset : window.stop], qs.count()

    """

    def decorator(fetch: Callable[..., Any]) -> Any:
        resolved_binder = binder if binder is not None else get_binder()
        types = resolved_binder.registry.get_or_create(node, through)
        binding = ConnectionBinding(
            types=types,
            fetch=fetch,
            edge_extra=edge_extra,
        )

        f = StrawberryField(
            python_name=None,
            graphql_name=name,
            type_annotation=StrawberryAnnotation.from_annotation(types.connection),
            description=description,
            permission_classes=permission_classes or [],
            deprecation_reason=deprecation_reason,
            directives=directives or (),
            extensions=[
                *extensions,
                AutoRelayConnectionExtension(binding, binder=resolved_binder),
            ],
        )
        return f(StrawberryResolver(_inject_window(fetch)))

    return decorator
