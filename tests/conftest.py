import pytest
import strawberry
from strawberry import relay

from strawberry_autorelay import settings
from strawberry_autorelay.adapters import DjangoStoreAdapter
from strawberry_autorelay.fields import ResolverBinder
from strawberry_autorelay.registry import TotalCountConnection, TypeRegistry

from . import models


@strawberry.type(name="Recipe")
class RecipeType:
    id: int
    name: str


@strawberry.type(name="Rate")
class RateType:
    value: int


@pytest.fixture(autouse=True)
def _reset_config():
    settings.reset_config()
    yield
    settings.reset_config()


@pytest.fixture
def config():
    return settings.AutoRelayConfig(
        page_info=lambda: relay.PageInfo,
        connection_extension=lambda: TotalCountConnection,
        store_adapter_factory=DjangoStoreAdapter,
        default_page_size=20,
    )


@pytest.fixture
def registry(config):
    return TypeRegistry(config)


@pytest.fixture
def binder(config, registry):
    return ResolverBinder(config=config, registry=registry)


@pytest.fixture
def users(db):
    return [
        models.User.objects.create(name="Alice"),
        models.User.objects.create(name="Bob"),
    ]


@pytest.fixture
def recipes(db, users):
    return [
        models.Recipe.objects.create(name=f"recipe{i}", owner=users[0])
        for i in range(10)
    ]


@pytest.fixture
def rates(db, users, recipes):
    return [
        models.Rate.objects.create(user=users[1], recipe=recipe, value=value)
        for recipe, value in zip(recipes[:4], [5, 3, 4, 1])
    ]
