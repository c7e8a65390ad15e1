"""
Pricing graph: derives token prices in the native asset and in USD.

Token prices are never given by the event stream. The native asset's USD
price is read from a configured stablecoin/native pool, and every other token
is priced through its whitelisted pools, trusting only the pool with the most
native liquidity above a minimum floor.
"""
import logging
from decimal import Decimal
from typing import AbstractSet, Dict, Optional

from indexer.models.entities import Bundle, Pool, Token
from indexer.repositories.store import EntityStore
from indexer.utils.math import ONE_BD, ZERO_BD, safe_div

logger = logging.getLogger(__name__)


def get_native_price_in_usd(
    stablecoin_is_token0: bool, stablecoin_wrapped_native_pool: Optional[Pool]
) -> Decimal:
    """
    USD price of the native asset from the stablecoin/native reference pool.

    Returns zero when the reference pool does not exist or has not been
    initialized yet.
    """
    if stablecoin_wrapped_native_pool is None or not stablecoin_wrapped_native_pool.is_initialized:
        return ZERO_BD
    if stablecoin_is_token0:
        return stablecoin_wrapped_native_pool.token0_price
    return stablecoin_wrapped_native_pool.token1_price


async def find_native_per_token(
    store: EntityStore,
    token: Token,
    wrapped_native_address: str,
    stablecoin_addresses: AbstractSet[str],
    minimum_native_locked: Decimal,
    bundle: Bundle,
) -> Decimal:
    """
    Price of `token` in the native asset.

    The native asset is worth 1 and stablecoins 1/ethPriceUSD. Any other token
    takes its price from the whitelisted pool holding the most native value on
    the counterpart side, provided that value exceeds `minimum_native_locked`.
    Without a qualifying pool the price is zero.

    Args:
        store: Store to read whitelisted pools and their counterpart tokens from
        token: Token being priced
        wrapped_native_address: Address of the wrapped native asset
        stablecoin_addresses: Addresses priced off the bundle directly
        minimum_native_locked: Native liquidity floor for a reference pool
        bundle: Current bundle (already refreshed for this event)

    Returns:
        derivedETH for the token
    """
    if token.id == wrapped_native_address:
        return ONE_BD

    if token.id in stablecoin_addresses:
        return safe_div(ONE_BD, bundle.eth_price_usd)

    pools = [
        pool
        for pool in await store.get_many(Pool, token.whitelist_pools)
        if pool is not None and pool.liquidity > 0
    ]
    counterpart_ids = {
        pool.token1_id if pool.token0_id == token.id else pool.token0_id for pool in pools
    }
    counterpart_ids = sorted(counterpart_ids)
    counterparts: Dict[str, Optional[Token]] = dict(
        zip(counterpart_ids, await store.get_many(Token, counterpart_ids))
    )

    largest_liquidity_eth = ZERO_BD
    price_so_far = ZERO_BD

    for pool in pools:
        if pool.token0_id == token.id:
            other = counterparts.get(pool.token1_id)
            if other is None:
                continue
            eth_locked = pool.total_value_locked_token1 * other.derived_eth
            candidate_price = pool.token1_price * other.derived_eth
        elif pool.token1_id == token.id:
            other = counterparts.get(pool.token0_id)
            if other is None:
                continue
            eth_locked = pool.total_value_locked_token0 * other.derived_eth
            candidate_price = pool.token0_price * other.derived_eth
        else:
            continue

        if eth_locked > largest_liquidity_eth and eth_locked > minimum_native_locked:
            largest_liquidity_eth = eth_locked
            price_so_far = candidate_price

    if price_so_far == ZERO_BD and pools:
        logger.debug(
            f"No whitelisted pool for token {token.id} clears {minimum_native_locked} native locked"
        )
    return price_so_far


def get_tracked_amount_usd(
    token_amount0: Decimal,
    token0: Token,
    token_amount1: Decimal,
    token1: Token,
    whitelist_tokens: AbstractSet[str],
    bundle: Bundle,
) -> Decimal:
    """
    USD value of a two-legged amount, counting only whitelisted legs.

    Both legs whitelisted: the sum of both USD legs. One leg whitelisted:
    twice that leg, so the untrusted leg is excluded rather than zeroed.
    Neither: zero. Callers halve the result for swap volume, which turns the
    two-whitelisted case into the average of the legs.
    """
    price0_usd = token0.derived_eth * bundle.eth_price_usd
    price1_usd = token1.derived_eth * bundle.eth_price_usd

    token0_whitelisted = token0.id in whitelist_tokens
    token1_whitelisted = token1.id in whitelist_tokens

    if token0_whitelisted and token1_whitelisted:
        return token_amount0 * price0_usd + token_amount1 * price1_usd

    if token0_whitelisted and not token1_whitelisted:
        return token_amount0 * price0_usd * Decimal(2)

    if token1_whitelisted and not token0_whitelisted:
        return token_amount1 * price1_usd * Decimal(2)

    return ZERO_BD
