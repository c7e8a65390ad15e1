import pytest

from indexer.models.config import ChainConfigTable
from indexer.processor import EventProcessor
from indexer.repositories.store import InMemoryEntityStore

from builders import TOKEN_DECIMALS, TOKEN_SYMBOLS, StaticMetadataResolver, make_chain_config


@pytest.fixture
def chain():
    return make_chain_config()


@pytest.fixture
def chains(chain):
    return ChainConfigTable([chain])


@pytest.fixture
def store():
    return InMemoryEntityStore()


@pytest.fixture
def resolver():
    return StaticMetadataResolver(TOKEN_DECIMALS, TOKEN_SYMBOLS)


@pytest.fixture
def processor(store, chains, resolver):
    return EventProcessor(store, chains, resolver)
