"""
Shared constants and builders for indexer tests.
"""
from decimal import Decimal
from typing import Any, Dict, Mapping, Optional

from indexer.models.config import ChainConfig, TokenOverride
from indexer.models.events import Event, parse_event
from indexer.services.token import UNKNOWN, TokenMetadataResolver

CHAIN_ID = 1
OTHER_CHAIN_ID = 8453

FACTORY = "0x1f98431c8ad98523631ae4a59f267346ea31f984"
WETH = "0xc02aaa39b223fe8d0a0e5c4f27ead9083c756cc2"
USDC = "0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48"
RAND = "0x1111111111111111111111111111111111111111"
NO_DECIMALS = "0x2222222222222222222222222222222222222222"

# WETH/USDC, also the chain's reference pool
POOL = "0x3333333333333333333333333333333333333333"
# RAND/WETH
RAND_POOL = "0x4444444444444444444444444444444444444444"
SKIPPED_POOL = "0x5555555555555555555555555555555555555555"

OWNER = "0x6666666666666666666666666666666666666666"
ORIGIN = "0x7777777777777777777777777777777777777777"

TIMESTAMP = 1_700_000_000

Q96 = 1 << 96
# sqrtPriceX96 for 2000 USDC per WETH (WETH token0 with 18 decimals, USDC token1 with 6)
SQRT_PRICE_2000 = int((Decimal(2000) / Decimal(10**12)).sqrt() * Q96)
# Tick matching SQRT_PRICE_2000
TICK_2000 = -200311

TOKEN_DECIMALS = {
    WETH: 18,
    USDC: 6,
    RAND: 18,
    NO_DECIMALS: None,
}
TOKEN_SYMBOLS = {
    WETH: "WETH",
    USDC: "USDC",
    RAND: "RAND",
}


class StaticMetadataResolver(TokenMetadataResolver):
    """Resolver answering from fixed tables; counts lookups per address."""

    def __init__(self, decimals: Mapping[str, Optional[int]], symbols: Mapping[str, str] = None):
        self.decimals = dict(decimals)
        self.symbols = dict(symbols or {})
        self.lookups: Dict[str, int] = {}

    async def fetch_token_decimals(self, address, token_overrides, chain_id):
        self.lookups[address] = self.lookups.get(address, 0) + 1
        if address in token_overrides:
            return token_overrides[address].decimals
        return self.decimals.get(address)

    async def fetch_token_symbol(self, address, token_overrides, chain_id):
        return self.symbols.get(address, UNKNOWN)

    async def fetch_token_name(self, address, token_overrides, chain_id):
        return self.symbols.get(address, UNKNOWN)

    async def fetch_token_total_supply(self, address, token_overrides, chain_id):
        return 0


def make_chain_config(**overrides: Any) -> ChainConfig:
    config = dict(
        chain_id=CHAIN_ID,
        factory_address=FACTORY,
        wrapped_native_address=WETH,
        stablecoin_wrapped_native_pool_address=POOL,
        stablecoin_is_token0=False,
        stablecoin_addresses=[USDC],
        whitelist_tokens=[WETH, USDC],
        minimum_native_locked=Decimal("0.5"),
        token_overrides=[
            TokenOverride(address=USDC, symbol="USDC", name="USD Coin", decimals=6),
        ],
        pools_to_skip=[SKIPPED_POOL],
    )
    config.update(overrides)
    return ChainConfig(**config)


def make_event(
    kind: str,
    params: Dict[str, Any],
    src_address: str = POOL,
    block_number: int = 100,
    log_index: int = 0,
    timestamp: int = TIMESTAMP,
    transaction_hash: Optional[str] = None,
    chain_id: int = CHAIN_ID,
) -> Event:
    if transaction_hash is None:
        transaction_hash = f"0x{block_number:060x}{log_index:04x}"
    return parse_event(
        {
            "event": kind,
            "chain_id": chain_id,
            "src_address": src_address,
            "block_number": block_number,
            "block_timestamp": timestamp,
            "transaction_hash": transaction_hash,
            "transaction_from": ORIGIN,
            "log_index": log_index,
            "params": params,
        }
    )


def pool_created(pool=POOL, token0=WETH, token1=USDC, fee=3000, **kwargs) -> Event:
    kwargs.setdefault("block_number", 1)
    return make_event(
        "PoolCreated",
        {"pool": pool, "token0": token0, "token1": token1, "fee": fee, "tick_spacing": 60},
        src_address=FACTORY,
        **kwargs,
    )


def initialize(pool=POOL, sqrt_price_x96=SQRT_PRICE_2000, tick=TICK_2000, **kwargs) -> Event:
    kwargs.setdefault("block_number", 2)
    return make_event(
        "Initialize",
        {"sqrt_price_x96": sqrt_price_x96, "tick": tick},
        src_address=pool,
        **kwargs,
    )


def mint(
    amount, amount0, amount1, tick_lower, tick_upper, pool=POOL, **kwargs
) -> Event:
    return make_event(
        "Mint",
        {
            "owner": OWNER,
            "sender": OWNER,
            "amount": amount,
            "amount0": amount0,
            "amount1": amount1,
            "tick_lower": tick_lower,
            "tick_upper": tick_upper,
        },
        src_address=pool,
        **kwargs,
    )


def burn(
    amount, amount0, amount1, tick_lower, tick_upper, pool=POOL, **kwargs
) -> Event:
    return make_event(
        "Burn",
        {
            "owner": OWNER,
            "amount": amount,
            "amount0": amount0,
            "amount1": amount1,
            "tick_lower": tick_lower,
            "tick_upper": tick_upper,
        },
        src_address=pool,
        **kwargs,
    )


def collect(amount0, amount1, tick_lower, tick_upper, pool=POOL, **kwargs) -> Event:
    return make_event(
        "Collect",
        {
            "owner": OWNER,
            "recipient": OWNER,
            "amount0": amount0,
            "amount1": amount1,
            "tick_lower": tick_lower,
            "tick_upper": tick_upper,
        },
        src_address=pool,
        **kwargs,
    )


def swap(
    amount0, amount1, liquidity, sqrt_price_x96=SQRT_PRICE_2000, tick=TICK_2000, pool=POOL, **kwargs
) -> Event:
    return make_event(
        "Swap",
        {
            "sender": OWNER,
            "recipient": OWNER,
            "amount0": amount0,
            "amount1": amount1,
            "sqrt_price_x96": sqrt_price_x96,
            "liquidity": liquidity,
            "tick": tick,
        },
        src_address=pool,
        **kwargs,
    )
