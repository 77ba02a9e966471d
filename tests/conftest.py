import pytest

from bloger.core.cache import HistoryCache, SlotStore
from bloger.services.generation import GenerationClient
from tests.fakes import FakeOpenAI, StubClient


@pytest.fixture
def fake_openai():
    return FakeOpenAI()


@pytest.fixture
def generation_client(fake_openai):
    return GenerationClient(client=fake_openai, timeout=5, retry_tries=1)


@pytest.fixture
def stub_client():
    return StubClient()


@pytest.fixture
def store(tmp_path):
    return SlotStore(tmp_path / "history.db")


@pytest.fixture
def history(store):
    return HistoryCache(store)
