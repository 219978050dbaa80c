import threading
from typing import Optional

import pytest
import strawberry
from strawberry import relay
from strawberry.types import get_object_definition

from strawberry_autorelay.cursor import encode_cursor
from strawberry_autorelay.exceptions import ConfigurationError
from strawberry_autorelay.registry import (
    EXTENSION_RESOLVER,
    TotalCountConnection,
    TypeRegistry,
    connection_type_names,
    extension_field,
)
from strawberry_autorelay.settings import AutoRelayConfig

from .conftest import RateType, RecipeType


def field_names(type_) -> set[str]:
    return {f.python_name for f in get_object_definition(type_, strict=True).fields}


def test_type_names():
    assert connection_type_names("Recipe") == ("RecipeEdge", "RecipeConnection")
    assert connection_type_names("Recipe", "Rate") == (
        "Recipe_Via_RateEdge",
        "Recipe_Via_RateConnection",
    )


def test_generated_types(registry):
    types = registry.get_or_create(RecipeType)

    assert types.key == ("Recipe", None)
    assert types.name == "RecipeConnection"
    assert types.page_info is relay.PageInfo
    assert get_object_definition(types.edge, strict=True).name == "RecipeEdge"
    assert field_names(types.edge) == {"cursor", "node"}
    assert field_names(types.connection) == {"edges", "page_info", "total_count"}
    assert types.edge_fields == ()
    assert [name for name, _ in types.extension_resolvers] == ["total_count"]


def test_get_or_create_is_idempotent(registry):
    types = registry.get_or_create(RecipeType)

    assert registry.get_or_create(RecipeType) is types
    assert registry.get(RecipeType) is types
    assert ("Recipe", None) in registry
    assert len(registry) == 1


def test_through_fields_are_merged_into_edges(registry):
    plain = registry.get_or_create(RecipeType)
    types = registry.get_or_create(RecipeType, RateType)

    assert types is not plain
    assert types.key == ("Recipe", "Rate")
    assert types.name == "Recipe_Via_RateConnection"
    assert field_names(types.edge) == {"cursor", "node", "value"}
    assert types.edge_fields == ("value",)
    assert len(registry) == 2


def test_through_must_be_strawberry_type(registry):
    class NotAType:
        value: int

    with pytest.raises(ConfigurationError, match="strawberry type"):
        registry.get_or_create(RecipeType, NotAType)


def test_types_are_usable_in_a_schema(registry):
    types = registry.get_or_create(RecipeType, RateType)

    @strawberry.type
    class Query:
        @strawberry.field
        def recipes(self) -> types.connection:  # type: ignore
            return None

    schema = str(strawberry.Schema(query=Query))
    assert "type Recipe_Via_RateEdge" in schema
    assert "type Recipe_Via_RateConnection" in schema
    assert "totalCount: Int!" in schema
    assert "value: Int!" in schema


def test_missing_page_info():
    registry = TypeRegistry(AutoRelayConfig(page_info=None))

    with pytest.raises(ConfigurationError, match="PageInfo"):
        registry.get_or_create(RecipeType)

    assert len(registry) == 0


@pytest.mark.parametrize(
    "page_info",
    ["strawberry.relay.PageInfo", lambda: None, lambda: dict],
)
def test_invalid_page_info(page_info):
    registry = TypeRegistry(AutoRelayConfig(page_info=page_info))

    with pytest.raises(ConfigurationError, match="PageInfo"):
        registry.get_or_create(RecipeType)


def test_page_info_type_instead_of_callable():
    registry = TypeRegistry(AutoRelayConfig(page_info=relay.PageInfo))
    assert registry.get_or_create(RecipeType).page_info is relay.PageInfo


def test_page_info_comes_from_settings():
    registry = TypeRegistry()
    assert registry.get_or_create(RecipeType).page_info is relay.PageInfo


@pytest.mark.parametrize(
    ("first", "second"),
    [
        (("Recipe", "Rate"), ("RecipeViaRate", None)),
        (("Recipe_", "Rate"), ("Recipe", "_Rate")),
        (("Recipe", "Via_Rate"), ("Recipe_Via", "Rate")),
        (("Recipe", None), ("Recip", "e")),
    ],
)
def test_type_names_of_distinct_pairs_differ(first, second):
    first_names = connection_type_names(*first)
    second_names = connection_type_names(*second)

    assert not set(first_names) & set(second_names)


def test_lookalike_types_get_their_own_connections(registry):
    @strawberry.type(name="RecipeViaRate")
    class RecipeViaRate:
        name: str

    via_rate = registry.get_or_create(RecipeType, RateType)
    lookalike = registry.get_or_create(RecipeViaRate)

    assert lookalike is not via_rate
    assert lookalike.name == "RecipeViaRateConnection"
    assert via_rate.name == "Recipe_Via_RateConnection"
    assert len(registry) == 2

    @strawberry.type
    class Query:
        @strawberry.field
        def rated(self) -> via_rate.connection:  # type: ignore
            return None

        @strawberry.field
        def similar(self) -> lookalike.connection:  # type: ignore
            return None

    schema = str(strawberry.Schema(query=Query))
    assert "type RecipeViaRateEdge" in schema
    assert "type Recipe_Via_RateEdge" in schema


def test_edge_extension():
    @strawberry.type
    class EdgeExtension:
        @strawberry.field
        def is_first(self) -> bool:
            return self.cursor == encode_cursor(0)  # type: ignore

    registry = TypeRegistry(
        AutoRelayConfig(
            page_info=lambda: relay.PageInfo,
            edge_extension=lambda: EdgeExtension,
        )
    )
    types = registry.get_or_create(RecipeType)

    assert issubclass(types.edge, EdgeExtension)
    assert field_names(types.edge) == {"cursor", "node", "is_first"}
    assert types.edge_fields == ()


def test_extension_fields():
    @strawberry.type
    class PagedConnection:
        total_count: int = extension_field(lambda total: total)
        page_count: int = extension_field(lambda total: -(-total // 10))

    registry = TypeRegistry(
        AutoRelayConfig(
            page_info=lambda: relay.PageInfo,
            connection_extension=lambda: PagedConnection,
        )
    )
    types = registry.get_or_create(RecipeType)
    resolvers = dict(types.extension_resolvers)

    assert resolvers["total_count"](25) == 25
    assert resolvers["page_count"](25) == 3


def test_extension_field_metadata():
    field = extension_field(len, description="Something")
    assert field.metadata[EXTENSION_RESOLVER] is len
    assert field.description == "Something"


def test_extension_fields_need_a_value():
    @strawberry.type
    class BrokenConnection:
        total_count: int

    registry = TypeRegistry(
        AutoRelayConfig(
            page_info=lambda: relay.PageInfo,
            connection_extension=lambda: BrokenConnection,
        )
    )

    with pytest.raises(ConfigurationError, match="total_count"):
        registry.get_or_create(RecipeType)


def test_invalid_extension():
    registry = TypeRegistry(
        AutoRelayConfig(
            page_info=lambda: relay.PageInfo,
            connection_extension=lambda: dict,
        )
    )

    with pytest.raises(ConfigurationError, match="connection extension"):
        registry.get_or_create(RecipeType)


def test_total_count_connection_is_a_strawberry_type():
    assert field_names(TotalCountConnection) == {"total_count"}


def test_concurrent_first_use(registry):
    barrier = threading.Barrier(8)
    results: list[Optional[object]] = []

    def create():
        barrier.wait()
        results.append(registry.get_or_create(RecipeType))

    threads = [threading.Thread(target=create) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(results) == 8
    assert all(r is results[0] for r in results)
    assert len(registry) == 1
