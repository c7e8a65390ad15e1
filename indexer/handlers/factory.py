"""
Factory event transitions.
"""
import asyncio
import logging
from typing import Optional

from indexer.handlers.context import HandlerContext
from indexer.models.entities import Bundle, Factory, Pool, Token
from indexer.models.events import PoolCreatedEvent
from indexer.utils.math import UniswapV3Math

logger = logging.getLogger(__name__)


async def _load_or_create_token(context: HandlerContext, address: str) -> Optional[Token]:
    """
    Existing token snapshot, or a new zeroed one built from ERC-20 metadata.

    Returns None when the token is new and its decimals cannot be resolved.
    """
    token = await context.store.get(Token, address)
    if token is not None:
        return token

    if context.metadata_resolver is None:
        raise ValueError("A token metadata resolver is required to create tokens")

    metadata = await context.metadata_resolver.fetch_token_metadata(
        address, context.chain.token_overrides, context.chain.chain_id
    )
    if metadata.decimals is None:
        logger.debug(f"The decimals of token {address} could not be resolved")
        return None

    return Token(
        id=address,
        symbol=metadata.symbol,
        name=metadata.name,
        decimals=metadata.decimals,
        total_supply=metadata.total_supply,
    )


async def handle_pool_created(event: PoolCreatedEvent, context: HandlerContext) -> bool:
    """
    Register a new pool and its tokens.

    Creates the chain's Factory and Bundle on the first pool. Nothing is
    written if either token is new and its decimals are unknown.

    Returns:
        True if the event was applied
    """
    chain = context.chain
    params = event.params

    if not chain.should_index_pool(params.pool):
        logger.debug(f"Skipping pool {params.pool} on chain {chain.chain_id}")
        return False

    # Unknown fee tiers are a configuration error, not bad data
    UniswapV3Math.fee_tier_to_tick_spacing(params.fee)

    factory, token0, token1 = await asyncio.gather(
        context.store.get(Factory, context.factory_id),
        _load_or_create_token(context, params.token0),
        _load_or_create_token(context, params.token1),
    )

    if token0 is None or token1 is None:
        return False

    if factory is None:
        logger.info(f"Creating factory {context.factory_id} for chain {chain.chain_id}")
        factory = Factory(id=context.factory_id)
        await context.store.set(Bundle(id=context.bundle_id))

    factory = factory.replace(pool_count=factory.pool_count + 1)

    pool = Pool(
        id=params.pool,
        token0_id=token0.id,
        token1_id=token1.id,
        fee_tier=params.fee,
        created_at_timestamp=event.block_timestamp,
        created_at_block_number=event.block_number,
    )

    token0 = token0.replace(pool_count=token0.pool_count + 1)
    token1 = token1.replace(pool_count=token1.pool_count + 1)

    # A token can be priced through this pool only if its counterpart is trusted
    if chain.is_whitelisted(token0.id) and pool.id not in token1.whitelist_pools:
        token1 = token1.replace(whitelist_pools=token1.whitelist_pools + (pool.id,))
    if chain.is_whitelisted(token1.id) and pool.id not in token0.whitelist_pools:
        token0 = token0.replace(whitelist_pools=token0.whitelist_pools + (pool.id,))

    await context.store.set(pool)
    await context.store.set(token0)
    await context.store.set(token1)
    await context.store.set(factory)

    logger.info(
        f"Created pool {pool.id} ({token0.symbol}/{token1.symbol}, fee {pool.fee_tier}) "
        f"on chain {chain.chain_id}"
    )
    return True
