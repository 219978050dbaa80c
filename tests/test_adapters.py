import dataclasses
import inspect

import pytest

from strawberry_autorelay.adapters import (
    THROUGH_ATTR,
    DjangoStoreAdapter,
    IterableStoreAdapter,
    StoreAdapter,
)
from strawberry_autorelay.pagination import FetchResult, FetchWindow

from . import models


@pytest.fixture
def adapter():
    return DjangoStoreAdapter()


def test_adapters_satisfy_protocol():
    assert isinstance(DjangoStoreAdapter(), StoreAdapter)
    assert isinstance(IterableStoreAdapter(), StoreAdapter)


def test_only_the_django_adapter_attaches_through_rows():
    assert DjangoStoreAdapter.attaches_through_rows
    assert not IterableStoreAdapter.attaches_through_rows


def test_fetch_related_manager(adapter, users, recipes):
    result = adapter.fetch_related(users[0], "recipes", FetchWindow(2, 3))

    assert isinstance(result, FetchResult)
    assert result.items == recipes[2:5]
    assert result.total_count == 10


def test_fetch_related_order_by(adapter, users, recipes):
    result = adapter.fetch_related(
        users[0], "recipes", FetchWindow(0, 3), order_by=["-name"]
    )

    assert [r.name for r in result.items] == ["recipe9", "recipe8", "recipe7"]
    assert result.total_count == 10


def test_fetch_related_empty(adapter, users):
    result = adapter.fetch_related(users[1], "recipes", FetchWindow(0, 3))

    assert result == FetchResult([], 0)


def test_zero_limit_only_counts(adapter, users, recipes, django_assert_num_queries):
    with django_assert_num_queries(1):
        result = adapter.fetch_related(users[0], "recipes", FetchWindow(0, 0))

    assert result == FetchResult([], 10)


def test_offset_past_the_end_only_counts(
    adapter, users, recipes, django_assert_num_queries
):
    with django_assert_num_queries(1):
        result = adapter.fetch_related(users[0], "recipes", FetchWindow(20, 5))

    assert result == FetchResult([], 10)


def test_fetch_model(adapter, users):
    result = adapter.fetch_related(None, models.User, FetchWindow(1, 5))

    assert result.items == users[1:]
    assert result.total_count == 2


def test_fetch_queryset(adapter, recipes):
    queryset = models.Recipe.objects.filter(name__in=["recipe1", "recipe5"])
    result = adapter.fetch_related(None, queryset, FetchWindow(0, 5))

    assert result.items == [recipes[1], recipes[5]]
    assert result.total_count == 2


def test_fetch_manager(adapter, recipes):
    result = adapter.fetch_related(None, models.Recipe.objects, FetchWindow(9, 5))

    assert result.items == [recipes[9]]
    assert result.total_count == 10


@pytest.mark.django_db
def test_root_fetch_needs_a_collection(adapter):
    with pytest.raises(TypeError, match="Root connections"):
        adapter.fetch_related(None, "recipes", FetchWindow(0, 5))


def test_relation_must_be_to_many(adapter, users):
    with pytest.raises(TypeError, match="to-many"):
        adapter.fetch_related(users[0], "name", FetchWindow(0, 5))


def test_fetch_through_model(adapter, users, recipes, rates):
    result = adapter.fetch_related(users[1], "rated_recipes", FetchWindow(0, 10))

    assert result.items == recipes[:4]
    assert result.total_count == 4
    assert [getattr(r, THROUGH_ATTR) for r in result.items] == rates
    assert [getattr(r, THROUGH_ATTR).value for r in result.items] == [5, 3, 4, 1]


def test_fetch_through_model_window_and_order(adapter, users, recipes, rates):
    result = adapter.fetch_related(
        users[1],
        "rated_recipes",
        FetchWindow(1, 2),
        order_by=["-name"],
    )

    assert result.items == [recipes[2], recipes[1]]
    assert result.total_count == 4
    assert [getattr(r, THROUGH_ATTR).value for r in result.items] == [4, 3]


def test_fetch_through_model_reverse(adapter, users, recipes, rates):
    result = adapter.fetch_related(recipes[0], "raters", FetchWindow(0, 5))

    assert result.items == [users[1]]
    assert getattr(result.items[0], THROUGH_ATTR) == rates[0]


def test_fetch_through_model_without_rows(adapter, users, recipes):
    result = adapter.fetch_related(users[0], "rated_recipes", FetchWindow(0, 5))

    assert result == FetchResult([], 0)


@pytest.mark.django_db(transaction=True)
async def test_fetch_related_async(adapter):
    user = await models.User.objects.acreate(name="Carol")
    for i in range(3):
        await models.Recipe.objects.acreate(name=f"async{i}", owner=user)

    result = adapter.fetch_related(user, "recipes", FetchWindow(1, 5))
    assert inspect.isawaitable(result)

    items, total_count = await result
    assert [r.name for r in items] == ["async1", "async2"]
    assert total_count == 3


@dataclasses.dataclass
class Ingredient:
    name: str
    grams: int


@dataclasses.dataclass
class Dish:
    ingredients: list[Ingredient]

    def heavy_ingredients(self):
        return [i for i in self.ingredients if i.grams >= 100]


@pytest.fixture
def dish():
    return Dish(
        ingredients=[
            Ingredient("flour", 500),
            Ingredient("salt", 5),
            Ingredient("butter", 250),
            Ingredient("sugar", 250),
            Ingredient("yeast", 10),
        ]
    )


def test_iterable_window(dish):
    result = IterableStoreAdapter().fetch_related(dish, "ingredients", FetchWindow(1, 2))

    assert [i.name for i in result.items] == ["salt", "butter"]
    assert result.total_count == 5


def test_iterable_callable_relation(dish):
    result = IterableStoreAdapter().fetch_related(
        dish, "heavy_ingredients", FetchWindow(0, 10)
    )

    assert [i.name for i in result.items] == ["flour", "butter", "sugar"]
    assert result.total_count == 3


def test_iterable_order_by(dish):
    result = IterableStoreAdapter().fetch_related(
        dish,
        "ingredients",
        FetchWindow(0, 10),
        order_by=["-grams", "name"],
    )

    assert [i.name for i in result.items] == [
        "flour",
        "butter",
        "sugar",
        "yeast",
        "salt",
    ]


def test_iterable_root(dish):
    result = IterableStoreAdapter().fetch_related(None, dish.ingredients, FetchWindow(4, 10))

    assert [i.name for i in result.items] == ["yeast"]
    assert result.total_count == 5


def test_iterable_none_relation():
    @dataclasses.dataclass
    class Empty:
        items: None = None

    assert IterableStoreAdapter().fetch_related(
        Empty(), "items", FetchWindow(0, 10)
    ) == FetchResult([], 0)
