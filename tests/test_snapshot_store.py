from decimal import Decimal
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from tortoise.exceptions import DBConnectionError

from indexer.models.entities import Bundle, Factory, Pool, Token
from indexer.models.snapshots import EntitySnapshot, close_db, init_db
from indexer.repositories import snapshot
from indexer.repositories.snapshot import TortoiseEntityStore, retry_on_db_error

from builders import FACTORY, POOL, USDC, WETH


@pytest_asyncio.fixture
async def db():
    await init_db("sqlite://:memory:")
    yield
    await close_db()


@pytest.mark.asyncio
async def test_round_trip_preserves_decimals(db):
    store = TortoiseEntityStore()
    bundle = Bundle(id="1", eth_price_usd=Decimal("1987.123456789012345678901234567890"))

    await store.set(bundle)

    assert await store.get(Bundle, "1") == bundle


@pytest.mark.asyncio
async def test_missing_snapshot(db):
    store = TortoiseEntityStore()
    assert await store.get(Factory, FACTORY) is None


@pytest.mark.asyncio
async def test_set_replaces_snapshot(db):
    store = TortoiseEntityStore()
    await store.set(Factory(id=FACTORY, pool_count=1))
    await store.set(Factory(id=FACTORY, pool_count=2))

    assert (await store.get(Factory, FACTORY)).pool_count == 2
    assert await store.count("Factory") == 1


@pytest.mark.asyncio
async def test_set_many_and_all(db):
    store = TortoiseEntityStore()
    pool = Pool(
        id=POOL,
        token0_id=WETH,
        token1_id=USDC,
        fee_tier=500,
        created_at_timestamp=1,
        created_at_block_number=1,
    )
    token = Token(id=WETH, symbol="WETH", name="Wrapped Ether", decimals=18, whitelist_pools=(POOL,))

    await store.set_many([pool, token, Bundle(id="1")])

    assert await store.count() == 3
    assert await store.all(Pool) == [pool]
    stored_token = await store.get(Token, WETH)
    assert stored_token.whitelist_pools == (POOL,)
    # Uninitialized pools keep their tick unset
    assert (await store.get(Pool, POOL)).tick is None


@pytest.mark.asyncio
async def test_rows_keyed_by_type_and_id(db):
    store = TortoiseEntityStore()
    await store.set(Bundle(id="1"))

    row = await EntitySnapshot.get(entity_type="Bundle", entity_id="1")
    assert row.data["eth_price_usd"] == "0"


@pytest.mark.asyncio
async def test_count_rejects_unknown_type(db):
    store = TortoiseEntityStore()
    with pytest.raises(ValueError):
        await store.count("Nope")


@pytest.mark.asyncio
async def test_connection(db):
    assert await TortoiseEntityStore().test_connection() is True


@pytest.mark.asyncio
async def test_retry_on_transient_errors(monkeypatch):
    monkeypatch.setattr(snapshot, "RETRY_DELAY_BASE", 0)
    operation = AsyncMock(side_effect=[DBConnectionError("down"), "ok"])

    result = await retry_on_db_error(operation)()

    assert result == "ok"
    assert operation.call_count == 2


@pytest.mark.asyncio
async def test_retry_gives_up(monkeypatch):
    monkeypatch.setattr(snapshot, "RETRY_DELAY_BASE", 0)
    operation = AsyncMock(side_effect=DBConnectionError("down"))

    with pytest.raises(DBConnectionError):
        await retry_on_db_error(operation)()

    assert operation.call_count == snapshot.MAX_RETRIES
