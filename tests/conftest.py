import pytest
from fakes import (
    FakeRedis,
    InMemoryCatalog,
    InMemoryContactStore,
    InMemoryFeedStore,
    InMemoryUploadStore,
)

from storefront.auth.verify import auth_dependency


@pytest.fixture
def auth_override():
    def _override():
        return {"sub": "user-123"}

    return _override


@pytest.fixture
def apply_auth_override(auth_override):
    def _apply(app):
        app.dependency_overrides[auth_dependency] = auth_override

    return _apply


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def contact_store():
    return InMemoryContactStore()


@pytest.fixture
def feed_store():
    return InMemoryFeedStore()


@pytest.fixture
def upload_store():
    return InMemoryUploadStore()


@pytest.fixture
def catalog():
    return InMemoryCatalog()
