"""Process-wide configuration and the code for reading it from Django settings."""

from __future__ import annotations

import dataclasses
import threading
from typing import Any, Callable, Optional, Union, cast

from django.conf import settings
from django.utils.module_loading import import_string
from typing_extensions import TypedDict

from .exceptions import ConfigurationError
from .pagination import FirstLastPolicy

__all__ = [
    "DEFAULT_AUTORELAY_SETTINGS",
    "AutoRelayConfig",
    "StrawberryAutoRelaySettings",
    "autorelay_settings",
    "configure",
    "get_config",
    "reset_config",
]


class StrawberryAutoRelaySettings(TypedDict):
    """Dictionary defining the shape `settings.STRAWBERRY_AUTORELAY` should have.

    All settings are optional and have defaults as described in their docstrings and
    defined in `DEFAULT_AUTORELAY_SETTINGS`.
    """

    #: Dotted path to the strawberry type used as `pageInfo` in every connection.
    PAGE_INFO: Optional[str]

    #: Dotted path to a strawberry type whose fields every generated
    #: connection inherits, e.g. a `totalCount` field.
    CONNECTION_EXTENSION: Optional[str]

    #: Dotted path to a strawberry type whose fields every generated edge inherits.
    EDGE_EXTENSION: Optional[str]

    #: Dotted path to a callable returning the store adapter used by
    #: connections that do not define their own fetch function.
    STORE_ADAPTER: Optional[str]

    #: The limit used when neither `first` nor `last` are given.
    DEFAULT_PAGE_SIZE: int

    #: Upper bound for `first` and `last`. Can be set to `None` to disable it.
    MAX_PAGE_SIZE: Optional[int]

    #: Which argument wins when both `first` and `last` are given. One of
    #: "first", "last" or "reject".
    FIRST_LAST_POLICY: str


DEFAULT_AUTORELAY_SETTINGS = StrawberryAutoRelaySettings(
    PAGE_INFO="strawberry.relay.PageInfo",
    CONNECTION_EXTENSION=None,
    EDGE_EXTENSION=None,
    STORE_ADAPTER="strawberry_autorelay.adapters.DjangoStoreAdapter",
    DEFAULT_PAGE_SIZE=100,
    MAX_PAGE_SIZE=None,
    FIRST_LAST_POLICY=FirstLastPolicy.FIRST.value,
)


def autorelay_settings() -> StrawberryAutoRelaySettings:
    """Get strawberry autorelay settings.

    Return the dictionary from `settings.STRAWBERRY_AUTORELAY`, with defaults
    for missing keys.
    """
    defaults = DEFAULT_AUTORELAY_SETTINGS
    return cast(
        "StrawberryAutoRelaySettings",
        {**defaults, **getattr(settings, "STRAWBERRY_AUTORELAY", {})},
    )


@dataclasses.dataclass(frozen=True)
class AutoRelayConfig:
    """Immutable configuration shared by the registry and the resolver binder.

    Shapes are given as thunks (`() -> type`) so that they can be declared
    before the types they point to are importable.
    """

    page_info: Optional[Callable[[], Any]] = None
    connection_extension: Optional[Callable[[], Optional[type]]] = None
    edge_extension: Optional[Callable[[], Optional[type]]] = None
    store_adapter_factory: Optional[Callable[[], Any]] = None
    default_page_size: int = 100
    max_page_size: Optional[int] = None
    first_last_policy: FirstLastPolicy = FirstLastPolicy.FIRST

    def __post_init__(self):
        if self.default_page_size <= 0:
            raise ConfigurationError(
                "DEFAULT_PAGE_SIZE must be a positive integer, "
                f"got {self.default_page_size}"
            )
        if self.max_page_size is not None and self.max_page_size < 0:
            raise ConfigurationError(
                f"MAX_PAGE_SIZE must be non-negative, got {self.max_page_size}"
            )
        if not isinstance(self.first_last_policy, FirstLastPolicy):
            object.__setattr__(
                self,
                "first_last_policy",
                _parse_policy(self.first_last_policy),
            )

    @classmethod
    def from_settings(cls) -> AutoRelayConfig:
        """Build the configuration from `settings.STRAWBERRY_AUTORELAY`."""
        conf = autorelay_settings()
        return cls(
            page_info=_lazy_import(conf["PAGE_INFO"]),
            connection_extension=_lazy_import(conf["CONNECTION_EXTENSION"]),
            edge_extension=_lazy_import(conf["EDGE_EXTENSION"]),
            store_adapter_factory=_lazy_factory(conf["STORE_ADAPTER"]),
            default_page_size=conf["DEFAULT_PAGE_SIZE"],
            max_page_size=conf["MAX_PAGE_SIZE"],
            first_last_policy=_parse_policy(conf["FIRST_LAST_POLICY"]),
        )


def _parse_policy(value: Union[str, FirstLastPolicy]) -> FirstLastPolicy:
    try:
        return FirstLastPolicy(value)
    except ValueError as e:
        choices = ", ".join(repr(p.value) for p in FirstLastPolicy)
        raise ConfigurationError(
            f"FIRST_LAST_POLICY must be one of {choices}, got {value!r}"
        ) from e


def _lazy_import(path: Optional[str]) -> Optional[Callable[[], Any]]:
    if path is None:
        return None

    def loader():
        try:
            return import_string(path)
        except ImportError as e:
            raise ConfigurationError(f"Could not import {path!r}: {e}") from e

    loader.__qualname__ = f"import_string({path!r})"
    return loader


def _lazy_factory(path: Optional[str]) -> Optional[Callable[[], Any]]:
    loader = _lazy_import(path)
    if loader is None:
        return None

    def factory():
        return loader()()

    factory.__qualname__ = f"{loader.__qualname__}()"
    return factory


_config: Optional[AutoRelayConfig] = None
_config_lock = threading.Lock()


def configure(config: AutoRelayConfig) -> AutoRelayConfig:
    """Install the process-wide configuration.

    This is meant to be called once during startup, before any schema using
    autorelay connections is built. Calling it again with the same config is
    a no-op, with a different one is an error.
    """
    global _config  # noqa: PLW0603

    with _config_lock:
        if _config is not None and _config != config:
            raise ConfigurationError(
                "strawberry-autorelay is already configured. The configuration "
                "cannot be changed once it has been set."
            )
        _config = config

    return config


def get_config() -> AutoRelayConfig:
    """Return the process-wide configuration.

    If `configure` was never called, the configuration is loaded from Django
    settings on first access and kept from then on.
    """
    global _config  # noqa: PLW0603

    if _config is None:
        with _config_lock:
            if _config is None:
                _config = AutoRelayConfig.from_settings()

    return _config


def reset_config() -> None:
    """Forget the process-wide configuration. Meant for tests only."""
    global _config  # noqa: PLW0603

    with _config_lock:
        _config = None
