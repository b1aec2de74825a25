"""
Shared fixtures: a fake clock, a seeded in-memory store and a context wired to both
"""
import pytest

from evaluator.context import AppContext
from evaluator.core.cache import TTLCache
from evaluator.core.loader import CollectionLoader
from evaluator.core.storage import MemoryStorage
from evaluator.core.store import InMemoryStore
from evaluator.models import Settings
from tests.sample_data import FakeClock, sample_documents


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def storage():
    return MemoryStorage(max_entries=200)


@pytest.fixture
def cache(storage, clock):
    return TTLCache(storage, clock=clock)


@pytest.fixture
def store():
    return InMemoryStore(sample_documents())


@pytest.fixture
def context(cache, store):
    return AppContext(settings=Settings(), cache=cache, store=store)


@pytest.fixture
def loader(context, clock):
    return CollectionLoader(context, clock=clock)
