from indexer.models.entities import Tick
from indexer.utils.math import ONE_BD, UniswapV3Math, safe_div


def tick_id(pool_id: str, tick_idx: int) -> str:
    return f"{pool_id}#{tick_idx}"


def create_tick(tick_idx: int, pool_id: str, timestamp: int, block_number: int) -> Tick:
    """
    New, empty tick record.

    price0 is 1.0001^tick (token1 per token0, before decimal adjustment) and
    price1 its reciprocal.
    """
    price0 = UniswapV3Math.price_at_tick(tick_idx)
    return Tick(
        id=tick_id(pool_id, tick_idx),
        pool_id=pool_id,
        tick_idx=tick_idx,
        price0=price0,
        price1=safe_div(ONE_BD, price0),
        created_at_timestamp=timestamp,
        created_at_block_number=block_number,
    )
